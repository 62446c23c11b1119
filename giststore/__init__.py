"""Versioned diagram store with a GitHub-Gist-shaped API."""

__version__ = "1.0.0"
