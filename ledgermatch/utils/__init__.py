"""Shared utilities: configuration, logging, retry."""
