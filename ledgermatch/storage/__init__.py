"""Backing store: SQLAlchemy base, session helpers."""
