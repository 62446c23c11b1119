"""Version content: present text or a tombstone.

The ``versions.content`` column is nullable and NULL means the file was
removed as of that version. In Python the two cases are distinct types so
a deleted file cannot be mistaken for an empty one.
"""

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class Present:
    """File content as of a version."""

    text: str

    @property
    def size(self) -> int:
        return len(self.text)


class _Tombstone:
    """Marker for a file removed as of a version."""

    _instance: Optional["_Tombstone"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "TOMBSTONE"

    def __bool__(self) -> bool:
        return False


TOMBSTONE = _Tombstone()

Content = Union[Present, _Tombstone]


def from_column(value: Optional[str]) -> Content:
    """Map a ``versions.content`` column value to ``Content``."""
    return TOMBSTONE if value is None else Present(value)


def to_column(content: Content) -> Optional[str]:
    """Map ``Content`` to its ``versions.content`` column value."""
    return content.text if isinstance(content, Present) else None
