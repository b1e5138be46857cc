"""Base interface for field comparators.

Implements the Strategy pattern: each comparator scores one field kind and
owns the threshold that decides whether the field counts as matching.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from ...exceptions import ComparisonError
from ..domain.fields import UnparsedField

if TYPE_CHECKING:
    from ..domain.enums import ComparatorKind
    from ..domain.fields import ExtractedField
    from ..domain.value_objects import FieldScore


class FieldComparator(ABC):
    """Abstract base class for field comparators.

    Comparators are pure: no I/O, no clock, same inputs give the same score.
    A comparator receives the typed field values of target and candidate
    (either may be None when the field is absent) and returns a FieldScore
    with a score in [0, 1].

    Implementing a new comparator:
        1. Inherit from FieldComparator
        2. Set ``kind``
        3. Implement compare(field_name, target_value, candidate_value)
        4. Raise ComparisonError for values of the wrong variant
    """

    kind: "ComparatorKind"
    threshold: float

    @abstractmethod
    def compare(
        self,
        field_name: str,
        target_value: "ExtractedField | None",
        candidate_value: "ExtractedField | None",
    ) -> "FieldScore":
        """Compare one field of target and candidate.

        Args:
            field_name: Name the score is reported under
            target_value: Target's typed value, or None when absent
            candidate_value: Candidate's typed value, or None when absent

        Returns:
            FieldScore for the field

        Raises:
            ComparisonError: If either value cannot be compared
        """

    def _validate_threshold(self, threshold: float) -> float:
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"Threshold must be between 0.0 and 1.0, got {threshold}")
        return threshold

    @staticmethod
    def _require(
        field_name: str,
        value: "ExtractedField | None",
        expected: type | tuple[type, ...],
    ) -> Any:
        """Check a value is absent or of the expected variant(s)."""
        if value is None or isinstance(value, expected):
            return value
        if isinstance(value, UnparsedField):
            raise ComparisonError(
                f"Unparsed value for {field_name}: {value.reason}", field=field_name
            )
        names = (
            " or ".join(t.__name__ for t in expected)
            if isinstance(expected, tuple)
            else expected.__name__
        )
        raise ComparisonError(
            f"Expected {names} for {field_name}, got {type(value).__name__}",
            field=field_name,
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(threshold={self.threshold})>"
