"""Comparison profiles: weight tables, candidate selection and classification policy.

A profile parameterizes the generic engine for one caller. Two ship with
the package:

- ``DUPLICATE_DETECTION``: document ingestion pipeline. Weights
  amount 0.4 / vendor 0.3 / date 0.2 / description 0.1; recommends
  delete_duplicate / merge / keep_both / review.
- ``RECONCILIATION``: bank-feed matching. A bank transaction is compared
  against unreconciled documents and ledger entries; results carry an
  exact / partial / fuzzy match type and are never auto-applied.
"""

import math
from dataclasses import dataclass, field
from datetime import timedelta

from ..exceptions import ValidationError
from .comparators import (
    DateProximityComparator,
    FieldComparator,
    NumericToleranceComparator,
    StringSimilarityComparator,
)
from .domain.enums import RecordKind

WEIGHT_SUM_TOLERANCE = 1e-9


@dataclass(frozen=True)
class FieldRule:
    """One row of a weight table.

    Attributes:
        field: Field name on both records
        comparator: Comparator scoring the field
        weight: Share of the composite score, in (0, 1]
        fallback_field: Candidate field read when ``field`` is absent on the
            candidate (e.g. a document's vendor standing in for its description)
    """

    field: str
    comparator: FieldComparator
    weight: float
    fallback_field: str | None = None


@dataclass(frozen=True)
class WeightTable:
    """Ordered field rules whose weights sum to exactly 1.0.

    Raises:
        ValidationError: On construction, if the table is empty, names a field
            twice, has a weight outside (0, 1] or weights not summing to 1.0
    """

    name: str
    rules: tuple[FieldRule, ...]

    def __post_init__(self) -> None:
        if not self.rules:
            raise ValidationError(
                f"Weight table '{self.name}' has no fields", constraint="non_empty"
            )

        seen: set[str] = set()
        for rule in self.rules:
            if rule.field in seen:
                raise ValidationError(
                    f"Weight table '{self.name}' lists field '{rule.field}' twice",
                    field=rule.field,
                    constraint="unique_fields",
                )
            seen.add(rule.field)
            if not 0.0 < rule.weight <= 1.0:
                raise ValidationError(
                    f"Weight for '{rule.field}' must be in (0, 1]",
                    field=rule.field,
                    value=rule.weight,
                    constraint="weight_range",
                )
            if not isinstance(rule.comparator, FieldComparator):
                raise ValidationError(
                    f"Field '{rule.field}' has no comparator",
                    field=rule.field,
                    constraint="comparator_required",
                )

        total = math.fsum(rule.weight for rule in self.rules)
        if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
            raise ValidationError(
                f"Weights of '{self.name}' must sum to 1.0, got {total}",
                value=total,
                constraint="weights_sum_to_one",
            )

    @property
    def fields(self) -> tuple[str, ...]:
        return tuple(rule.field for rule in self.rules)

    @classmethod
    def from_weights(
        cls,
        name: str,
        weights: dict[str, float],
        comparators: dict[str, FieldComparator],
    ) -> "WeightTable":
        """Build a table from a ``{field: weight}`` mapping.

        Example:
            >>> WeightTable.from_weights(
            ...     "amount_only",
            ...     {"amount": 1.0},
            ...     {"amount": NumericToleranceComparator()},
            ... )
        """
        missing = set(weights) - set(comparators)
        if missing:
            raise ValidationError(
                f"No comparator configured for {sorted(missing)}",
                constraint="comparator_required",
            )
        return cls(
            name=name,
            rules=tuple(FieldRule(f, comparators[f], w) for f, w in weights.items()),
        )


@dataclass(frozen=True)
class SelectionCriteria:
    """How the candidate selector pre-filters the store.

    Attributes:
        kinds: Candidate kinds; None means "same kind as the target"
        match_category: Require the candidate's category to equal the target's
        unreconciled_only: Skip records that are already reconciled
        window_days: Coarse time window around the target's date
    """

    kinds: tuple[RecordKind, ...] | None = None
    match_category: bool = True
    unreconciled_only: bool = False
    window_days: int = 7

    def __post_init__(self) -> None:
        if self.window_days < 1:
            raise ValidationError(
                "Candidate window must be at least one day",
                field="window_days",
                value=self.window_days,
            )

    def kinds_for(self, target_kind: RecordKind) -> tuple[RecordKind, ...]:
        return self.kinds if self.kinds is not None else (target_kind,)


@dataclass(frozen=True)
class ClassificationPolicy:
    """Score thresholds turning results into a decision.

    Attributes:
        strong_match_threshold: Top score must reach this for has_strong_match
        exact_threshold: Match type EXACT at or above this score
        partial_threshold: Match type PARTIAL at or above this score, else FUZZY
        delete_threshold: Action DELETE_DUPLICATE above this score (None: no actions)
        merge_threshold: Action MERGE above this score
        auto_apply: Whether the highest action band may be applied without confirmation
        min_reportable_score: Results at or below this score are kept in the
            ranking (and audit trail) but are not reported as matches
    """

    strong_match_threshold: float = 0.9
    exact_threshold: float = 0.95
    partial_threshold: float = 0.8
    delete_threshold: float | None = None
    merge_threshold: float | None = None
    auto_apply: bool = False
    min_reportable_score: float = 0.0

    def __post_init__(self) -> None:
        if not self.partial_threshold <= self.exact_threshold:
            raise ValidationError(
                "partial_threshold must not exceed exact_threshold",
                constraint="ordered_thresholds",
            )
        if (self.delete_threshold is None) != (self.merge_threshold is None):
            raise ValidationError(
                "delete_threshold and merge_threshold must be set together",
                constraint="action_bands",
            )
        if (
            self.delete_threshold is not None
            and self.merge_threshold is not None
            and self.merge_threshold > self.delete_threshold
        ):
            raise ValidationError(
                "merge_threshold must not exceed delete_threshold",
                constraint="ordered_thresholds",
            )
        if self.auto_apply and self.delete_threshold is None:
            raise ValidationError(
                "auto_apply requires action bands",
                constraint="action_bands",
            )

    @property
    def recommends_actions(self) -> bool:
        return self.delete_threshold is not None


@dataclass(frozen=True)
class MatchProfile:
    """Everything one caller configures: what to compare, against what, and how to decide."""

    name: str
    weight_table: WeightTable
    selection: SelectionCriteria = field(default_factory=SelectionCriteria)
    policy: ClassificationPolicy = field(default_factory=ClassificationPolicy)

    def with_window(self, window_days: int) -> "MatchProfile":
        """Copy of this profile with a different candidate window."""
        selection = SelectionCriteria(
            kinds=self.selection.kinds,
            match_category=self.selection.match_category,
            unreconciled_only=self.selection.unreconciled_only,
            window_days=window_days,
        )
        return MatchProfile(self.name, self.weight_table, selection, self.policy)


DUPLICATE_WEIGHTS = WeightTable(
    name="duplicate_detection",
    rules=(
        FieldRule("amount", NumericToleranceComparator(threshold=0.99), 0.4),
        FieldRule("vendor", StringSimilarityComparator(threshold=0.8), 0.3),
        FieldRule("date", DateProximityComparator(window=timedelta(hours=24)), 0.2),
        FieldRule("description", StringSimilarityComparator(threshold=0.7), 0.1),
    ),
)

RECONCILIATION_WEIGHTS = WeightTable(
    name="reconciliation",
    rules=(
        FieldRule("amount", NumericToleranceComparator(threshold=0.99), 0.5),
        FieldRule("date", DateProximityComparator(window=timedelta(days=3)), 0.3),
        FieldRule(
            "description",
            StringSimilarityComparator(threshold=0.7),
            0.2,
            fallback_field="vendor",
        ),
    ),
)

DUPLICATE_DETECTION = MatchProfile(
    name="duplicate_detection",
    weight_table=DUPLICATE_WEIGHTS,
    selection=SelectionCriteria(kinds=None, match_category=True, window_days=7),
    policy=ClassificationPolicy(
        strong_match_threshold=0.9,
        exact_threshold=0.95,
        partial_threshold=0.85,
        delete_threshold=0.95,
        merge_threshold=0.85,
        auto_apply=True,
    ),
)

RECONCILIATION = MatchProfile(
    name="reconciliation",
    weight_table=RECONCILIATION_WEIGHTS,
    selection=SelectionCriteria(
        kinds=(RecordKind.DOCUMENT, RecordKind.LEDGER_ENTRY),
        match_category=False,
        unreconciled_only=True,
        window_days=7,
    ),
    policy=ClassificationPolicy(
        strong_match_threshold=0.9,
        exact_threshold=0.95,
        partial_threshold=0.8,
        auto_apply=False,
    ),
)

PROFILES: dict[str, MatchProfile] = {
    DUPLICATE_DETECTION.name: DUPLICATE_DETECTION,
    RECONCILIATION.name: RECONCILIATION,
}


def get_profile(name: str) -> MatchProfile:
    """Look up a built-in profile by name."""
    try:
        return PROFILES[name]
    except KeyError:
        raise ValidationError(
            f"Unknown match profile '{name}'",
            value=name,
            constraint=f"one of {sorted(PROFILES)}",
        ) from None
