"""Data access repositories."""

from .base import BaseRepository
from .diagram_repository import DiagramRepository
from .version_repository import VersionRepository

__all__ = [
    "BaseRepository",
    "DiagramRepository",
    "VersionRepository",
]
