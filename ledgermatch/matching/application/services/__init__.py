"""Caller-facing services built on the matching engine.

Service Layer Pattern: one service per caller, each supplying its own profile.
"""

__all__ = [
    "DuplicateDetectionService",
    "ReconciliationMatchingService",
]

from .duplicate_detection import DuplicateDetectionService
from .reconciliation import ReconciliationMatchingService
