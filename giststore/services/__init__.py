"""Business logic services."""

from .diagram_service import DiagramService, NO_VERSION

__all__ = ["DiagramService", "NO_VERSION"]
