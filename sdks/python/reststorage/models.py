"""reststorage data models."""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import List


@dataclass(frozen=True)
class KeyInfo:
    """Metadata about a stored key."""
    key: str
    modified: datetime
    size: int
    is_terminal: bool


@dataclass
class KeyRequest:
    """Request body for operations addressing a single key."""
    key: str

    def to_json(self) -> dict:
        return asdict(self)


@dataclass
class StoreRequest:
    """Request body for storing a value."""
    key: str
    value: str

    def to_json(self) -> dict:
        return asdict(self)


@dataclass
class ListRequest:
    """Request body for listing keys under a prefix."""
    prefix: str
    recursive: bool

    def to_json(self) -> dict:
        return asdict(self)


@dataclass
class StatResponse:
    """Decoded body of a stat response."""
    key: str
    modified: str
    size: int
    is_terminal: bool


@dataclass
class ListResponse:
    """Decoded body of a list response."""
    keys: List[str]
