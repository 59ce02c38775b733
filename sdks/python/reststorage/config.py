"""reststorage configuration."""

import math
import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional

from .exceptions import ValidationError

DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_TIMEOUT = 30.0

_PLACEHOLDER = re.compile(r"\{env\.([A-Za-z_][A-Za-z0-9_]*)\}")
_API_KEY_ALIASES = ("api_key", "apikey", "apiKey", "ApiKey")


def expand_placeholders(value: str, environ: Optional[Mapping[str, str]] = None) -> str:
    """Replace ``{env.NAME}`` placeholders with environment values.

    Unknown variables are replaced with the empty string.
    """
    environ = os.environ if environ is None else environ
    return _PLACEHOLDER.sub(lambda m: environ.get(m.group(1), ""), value)


@dataclass(frozen=True)
class StorageConfig:
    """Connection settings shared by the storage clients.

    Args:
        endpoint: Base URL of the remote storage service
        api_key: Pre-shared credential sent with every request
        poll_interval: Seconds to wait between lock attempts
        timeout: Per-request HTTP timeout in seconds
    """
    endpoint: str
    api_key: str
    poll_interval: float = DEFAULT_POLL_INTERVAL
    timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self):
        for name in ("endpoint", "api_key"):
            value = getattr(self, name)
            if value is not None and not isinstance(value, str):
                raise ValidationError(f"{name} must be a string, got {type(value).__name__}")
        # frozen: normalise through object.__setattr__
        endpoint = (self.endpoint or "").strip()
        if endpoint and not endpoint.endswith("/"):
            endpoint += "/"
        object.__setattr__(self, "endpoint", endpoint)
        object.__setattr__(self, "api_key", expand_placeholders(self.api_key or ""))
        self.validate()

    def validate(self) -> None:
        """Validate the configuration."""
        if not self.endpoint:
            raise ValidationError("endpoint must be specified")
        if not self.api_key:
            raise ValidationError("api key must be defined")
        for name in ("poll_interval", "timeout"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(f"{name} must be a number, got {type(value).__name__}")
            if not math.isfinite(value) or value <= 0:
                raise ValidationError(f"{name} must be positive and finite")

    @classmethod
    def from_mapping(cls, data: Mapping) -> "StorageConfig":
        """Build a configuration from a decoded JSON object."""
        api_key = ""
        for alias in _API_KEY_ALIASES:
            if data.get(alias):
                api_key = data[alias]
                break
        try:
            poll_interval = float(data.get("poll_interval", DEFAULT_POLL_INTERVAL))
            timeout = float(data.get("timeout", DEFAULT_TIMEOUT))
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid numeric setting: {e}") from e
        return cls(
            endpoint=data.get("endpoint", ""),
            api_key=api_key,
            poll_interval=poll_interval,
            timeout=timeout,
        )

    @classmethod
    def from_env(cls, prefix: str = "RESTSTORAGE_",
                 environ: Optional[Mapping[str, str]] = None) -> "StorageConfig":
        """Build a configuration from ``<prefix>ENDPOINT``, ``<prefix>API_KEY`` etc."""
        environ = os.environ if environ is None else environ
        try:
            poll_interval = float(environ.get(prefix + "POLL_INTERVAL", DEFAULT_POLL_INTERVAL))
            timeout = float(environ.get(prefix + "TIMEOUT", DEFAULT_TIMEOUT))
        except ValueError as e:
            raise ValidationError(f"Invalid numeric setting: {e}") from e
        return cls(
            endpoint=environ.get(prefix + "ENDPOINT", ""),
            api_key=environ.get(prefix + "API_KEY", ""),
            poll_interval=poll_interval,
            timeout=timeout,
        )
