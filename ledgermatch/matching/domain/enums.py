"""Enumerations for the matching domain."""

from enum import Enum


class RecordKind(str, Enum):
    """Kind of record held in the backing store."""

    DOCUMENT = "document"  # Invoice, receipt, bill (ingested, OCR-extracted)
    LEDGER_ENTRY = "ledger_entry"  # Posted ledger line
    BANK_TRANSACTION = "bank_transaction"  # Bank-feed line

    def __str__(self) -> str:
        return self.value


class ComparatorKind(str, Enum):
    """Field comparator families."""

    NUMERIC_TOLERANCE = "numeric_tolerance"
    STRING_SIMILARITY = "string_similarity"
    DATE_PROXIMITY = "date_proximity"

    def __str__(self) -> str:
        return self.value


class MatchType(str, Enum):
    """Per-candidate agreement tier."""

    EXACT = "exact"
    PARTIAL = "partial"
    FUZZY = "fuzzy"

    def __str__(self) -> str:
        return self.value


class RecommendedAction(str, Enum):
    """Next step suggested for a duplicate-detection decision."""

    DELETE_DUPLICATE = "delete_duplicate"
    MERGE = "merge"
    KEEP_BOTH = "keep_both"
    REVIEW = "review"

    def __str__(self) -> str:
        return self.value
