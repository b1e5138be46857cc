"""Field comparators using the Strategy pattern.

Each comparator computes a normalized similarity in [0, 1] for one field
kind and decides whether the field counts as matching.

Available Comparators:
- NumericToleranceComparator: relative amount difference (matching > 0.99)
- StringSimilarityComparator: normalized Levenshtein similarity (vendor > 0.8,
  description > 0.7)
- DateProximityComparator: step function over a time window (24h by default)

Usage:
    >>> from ledgermatch.matching.comparators import StringSimilarityComparator
    >>> comparator = StringSimilarityComparator(threshold=0.8)
    >>> comparator.compare("vendor", VendorField("Acme Ltd"), VendorField("ACME LTD")).score
    1.0
"""

__all__ = [
    "FieldComparator",
    "NumericToleranceComparator",
    "StringSimilarityComparator",
    "DateProximityComparator",
    "normalize_text",
]

from .base import FieldComparator
from .date_window import DateProximityComparator
from .numeric import NumericToleranceComparator
from .text import StringSimilarityComparator, normalize_text
