"""Normalized string similarity comparator for vendor and description text."""

import re

from rapidfuzz.distance import Levenshtein

from ..domain.enums import ComparatorKind
from ..domain.fields import DescriptionField, ExtractedField, VendorField
from ..domain.value_objects import FieldScore
from .base import FieldComparator

_WHITESPACE = re.compile(r"\s+")


class StringSimilarityComparator(FieldComparator):
    """Score text by normalized Levenshtein edit distance.

    Scoring:
        score = 1 - editDistance(a, b) / max(len(a), len(b))

    Edit distance uses unit-cost insertions, deletions and substitutions
    (rapidfuzz's Levenshtein). Both texts are case-folded and whitespace is
    collapsed first. The comparison is symmetric.

    Edge cases:
        - identical texts → 1.0
        - one side empty or absent → 0.0
        - both sides empty or absent → excluded (no signal, not penalized)

    Attributes:
        threshold: Score above which the text counts as matching
            (0.8 for vendor names, 0.7 for descriptions)
    """

    kind = ComparatorKind.STRING_SIMILARITY

    def __init__(self, threshold: float = 0.8) -> None:
        self.threshold = self._validate_threshold(threshold)

    def compare(
        self,
        field_name: str,
        target_value: ExtractedField | None,
        candidate_value: ExtractedField | None,
    ) -> FieldScore:
        target = self._text(field_name, target_value)
        candidate = self._text(field_name, candidate_value)

        if not target and not candidate:
            return FieldScore.excluded_field(field_name)

        score = self.similarity(target, candidate)
        return FieldScore(field=field_name, score=score, matching=score > self.threshold)

    def similarity(self, a: str, b: str) -> float:
        """Similarity of two already-normalized strings in [0, 1]."""
        if not a or not b:
            return 0.0
        if a == b:
            return 1.0
        return float(Levenshtein.normalized_similarity(a, b))

    def _text(self, field_name: str, value: ExtractedField | None) -> str:
        value = self._require(field_name, value, (VendorField, DescriptionField))
        if value is None:
            return ""
        return normalize_text(value.value)


def normalize_text(text: str) -> str:
    """Case-fold and collapse whitespace."""
    return _WHITESPACE.sub(" ", text.casefold()).strip()
