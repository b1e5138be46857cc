"""Matching CLI."""

from .matching_cli import app

__all__ = ["app"]
