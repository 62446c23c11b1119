"""API routes."""

from .gists import router as gists_router

__all__ = ["gists_router"]
