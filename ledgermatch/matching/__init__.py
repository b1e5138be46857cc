"""Similarity-based matching engine.

One generic engine serves two callers:
- Duplicate detection for newly ingested documents (auto-suggested actions)
- Bank reconciliation of unmatched transactions (always confirmed by a person)

Pipeline: candidate selector → field comparators → composite scorer →
decision classifier → match recorder.

Architecture: Domain-Driven Design (DDD) + Hexagonal Architecture
"""

__all__ = [
    "MatchingEngine",
    "build_engine",
    "CompositeScorer",
    "DecisionClassifier",
    "CandidateSelector",
    "MatchRecorder",
    "RecordRepository",
    "MatchProfile",
    "WeightTable",
    "FieldRule",
    "DUPLICATE_DETECTION",
    "RECONCILIATION",
    "get_profile",
    "MatchDecision",
    "MatchResult",
    "DuplicateDetectionService",
    "ReconciliationMatchingService",
]

from .application.services import DuplicateDetectionService, ReconciliationMatchingService
from .classifier import DecisionClassifier
from .domain.value_objects import MatchDecision, MatchResult
from .engine import MatchingEngine, build_engine
from .infrastructure import CandidateSelector, MatchRecorder, RecordRepository
from .profiles import (
    DUPLICATE_DETECTION,
    RECONCILIATION,
    FieldRule,
    MatchProfile,
    WeightTable,
    get_profile,
)
from .scorer import CompositeScorer
