"""Numeric-with-tolerance comparator for amounts."""

from decimal import Decimal

from ..domain.enums import ComparatorKind
from ..domain.fields import AmountField, ExtractedField
from ..domain.value_objects import FieldScore
from .base import FieldComparator


class NumericToleranceComparator(FieldComparator):
    """Score amounts by relative difference to the target amount.

    Scoring:
        score = 1 - min(|target - candidate| / max(target, epsilon), 1)

    Magnitudes are compared (an outgoing bank amount of -120.00 compares
    against an invoice total of 120.00). A zero target scores 1 only
    against a zero candidate, so coincidental zero amounts are never
    rewarded by a division.

    The comparison is NOT symmetric: the difference is relative to the
    target's magnitude, so swapping target and candidate can change the
    score (100 vs 50 scores 0.5, 50 vs 100 scores 0.0).

    Amounts in two different known currencies score 0.

    Attributes:
        threshold: Score above which the amount counts as matching (default 0.99,
            i.e. within ~1%)
        epsilon: Lower bound of the denominator
    """

    kind = ComparatorKind.NUMERIC_TOLERANCE

    def __init__(self, threshold: float = 0.99, epsilon: Decimal = Decimal("0.000001")) -> None:
        self.threshold = self._validate_threshold(threshold)
        if epsilon <= 0:
            raise ValueError(f"epsilon must be > 0, got {epsilon}")
        self.epsilon = epsilon

    def compare(
        self,
        field_name: str,
        target_value: ExtractedField | None,
        candidate_value: ExtractedField | None,
    ) -> FieldScore:
        target = self._require(field_name, target_value, AmountField)
        candidate = self._require(field_name, candidate_value, AmountField)

        if target is None or candidate is None:
            return FieldScore(field=field_name, score=0.0, matching=False)

        if target.currency and candidate.currency and target.currency != candidate.currency:
            return FieldScore(field=field_name, score=0.0, matching=False)

        score = self.similarity(target.value, candidate.value)
        return FieldScore(field=field_name, score=score, matching=score > self.threshold)

    def similarity(self, target: Decimal, candidate: Decimal) -> float:
        """Relative similarity of two amounts in [0, 1]."""
        target_abs = abs(target)
        candidate_abs = abs(candidate)

        if target_abs == 0:
            return 1.0 if candidate_abs == 0 else 0.0

        ratio = abs(target_abs - candidate_abs) / max(target_abs, self.epsilon)
        return float(1 - min(ratio, Decimal(1)))
