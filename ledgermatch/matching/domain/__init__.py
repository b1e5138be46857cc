"""Matching domain: enums, typed fields, value objects and persistence models."""

__all__ = [
    "RecordKind",
    "ComparatorKind",
    "MatchType",
    "RecommendedAction",
    "AmountField",
    "DateField",
    "VendorField",
    "DescriptionField",
    "UnparsedField",
    "ExtractedField",
    "parse_extracted_data",
    "MatchRecord",
    "MatchTarget",
    "MatchCandidate",
    "FieldScore",
    "FieldDifference",
    "MatchResult",
    "MatchDecision",
]

from .enums import ComparatorKind, MatchType, RecommendedAction, RecordKind
from .fields import (
    AmountField,
    DateField,
    DescriptionField,
    ExtractedField,
    UnparsedField,
    VendorField,
    parse_extracted_data,
)
from .value_objects import (
    FieldDifference,
    FieldScore,
    MatchCandidate,
    MatchDecision,
    MatchRecord,
    MatchResult,
    MatchTarget,
)
