"""Database models."""

from .diagram import Diagram
from .version import Version
from .content import Content, Present, TOMBSTONE

__all__ = ["Diagram", "Version", "Content", "Present", "TOMBSTONE"]
