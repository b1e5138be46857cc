"""Application layer for matching."""
