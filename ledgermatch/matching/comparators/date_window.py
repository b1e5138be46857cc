"""Date proximity comparator."""

from datetime import timedelta

from ..domain.enums import ComparatorKind
from ..domain.fields import DateField, ExtractedField
from ..domain.value_objects import FieldScore
from .base import FieldComparator


class DateProximityComparator(FieldComparator):
    """Binary date score: 1 inside the window, 0 outside.

    The score is a step function, never a decay. Timestamps are inputs; the
    comparator never looks at the current time.

    Attributes:
        window: Strict upper bound on |target - candidate| (default 24h)
    """

    kind = ComparatorKind.DATE_PROXIMITY

    def __init__(self, window: timedelta = timedelta(hours=24)) -> None:
        if window <= timedelta(0):
            raise ValueError(f"window must be positive, got {window}")
        self.window = window
        self.threshold = 0.9

    def compare(
        self,
        field_name: str,
        target_value: ExtractedField | None,
        candidate_value: ExtractedField | None,
    ) -> FieldScore:
        target = self._require(field_name, target_value, DateField)
        candidate = self._require(field_name, candidate_value, DateField)

        if target is None or candidate is None:
            return FieldScore(field=field_name, score=0.0, matching=False)

        delta = abs(target.value - candidate.value)
        score = 1.0 if delta < self.window else 0.0
        return FieldScore(field=field_name, score=score, matching=score > self.threshold)

    def __repr__(self) -> str:
        return f"<DateProximityComparator(window={self.window})>"
