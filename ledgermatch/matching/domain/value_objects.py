"""Domain value objects for the matching engine.

Value Objects in DDD:
- Immutable (frozen dataclasses)
- No identity (equality based on attributes)
- Targets and candidates are read-only snapshots fetched per match run
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from .enums import MatchType, RecommendedAction, RecordKind
from .fields import AmountField, DateField, ExtractedField


@dataclass(frozen=True)
class MatchRecord:
    """Snapshot of a stored record, as seen by the matching engine.

    Attributes:
        id: Record identifier
        tenant_id: Owning tenant; matching never crosses this boundary
        kind: Document, ledger entry or bank transaction
        category: Document type / transaction category
        created_at: When the record entered the store (naive UTC)
        fields: Typed extracted fields keyed by field name
        currency: ISO 4217 currency code, if known
        record_date: Semantic date column as stored (may differ from the parsed field)
    """

    id: str
    tenant_id: str
    kind: RecordKind
    category: str
    created_at: datetime
    fields: Mapping[str, ExtractedField] = field(default_factory=dict)
    currency: str | None = None
    record_date: datetime | None = None

    def value_of(self, name: str) -> ExtractedField | None:
        """Typed value of a field, or None when absent.

        The ``date`` field falls back to the creation time when the record has
        no semantic date of its own.
        """
        value = self.fields.get(name)
        if value is None and name == "date":
            return DateField(value=self.created_at)
        return value

    @property
    def amount(self) -> Decimal | None:
        value = self.fields.get("amount")
        return value.value if isinstance(value, AmountField) else None

    @property
    def effective_date(self) -> datetime:
        """Semantic date if parsed, otherwise creation time."""
        value = self.fields.get("date")
        return value.value if isinstance(value, DateField) else self.created_at


@dataclass(frozen=True)
class MatchTarget(MatchRecord):
    """The record being matched (document or bank transaction)."""


@dataclass(frozen=True)
class MatchCandidate(MatchRecord):
    """A record considered comparable to the target."""


@dataclass(frozen=True)
class FieldScore:
    """Result of comparing one field between target and candidate.

    Attributes:
        field: Field name
        score: Normalized similarity in [0, 1]
        matching: Whether the score passed the comparator's threshold
        excluded: True when the field carried no signal on either side and
            was left out of scoring entirely
        error: Why the comparison failed, if it did (score is then 0)
    """

    field: str
    score: float
    matching: bool
    excluded: bool = False
    error: str | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.score <= 1.0:
            raise ValueError(f"Field score must be between 0.0 and 1.0, got {self.score}")

    @classmethod
    def excluded_field(cls, field_name: str) -> "FieldScore":
        return cls(field=field_name, score=0.0, matching=False, excluded=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "score": self.score,
            "matching": self.matching,
            "excluded": self.excluded,
            "error": self.error,
        }


@dataclass(frozen=True)
class FieldDifference:
    """A considered field that did not match, with both raw values."""

    field: str
    target_value: Any
    candidate_value: Any
    score: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "target_value": _jsonable(self.target_value),
            "candidate_value": _jsonable(self.candidate_value),
            "score": self.score,
        }


@dataclass(frozen=True)
class MatchResult:
    """Composite comparison of one (target, candidate) pair.

    ``matching_fields`` and the fields of ``differences`` together cover every
    field of the weight table except ``excluded_fields``.
    """

    candidate_id: str
    candidate_kind: RecordKind
    candidate_created_at: datetime
    composite_score: float
    field_scores: tuple[FieldScore, ...] = ()
    matching_fields: tuple[str, ...] = ()
    differences: tuple[FieldDifference, ...] = ()
    excluded_fields: tuple[str, ...] = ()
    match_type: MatchType | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.composite_score <= 1.0:
            raise ValueError(
                f"Composite score must be between 0.0 and 1.0, got {self.composite_score}"
            )

    @property
    def considered_fields(self) -> tuple[str, ...]:
        return self.matching_fields + tuple(d.field for d in self.differences)

    @property
    def match_reason(self) -> str:
        """Human-readable explanation of the score."""
        if self.matching_fields:
            return f"Matched on {', '.join(self.matching_fields)} → {self.composite_score:.0%}"
        return f"No matching fields → {self.composite_score:.0%}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "candidate_id": self.candidate_id,
            "candidate_kind": self.candidate_kind.value,
            "candidate_created_at": self.candidate_created_at.isoformat(),
            "composite_score": self.composite_score,
            "match_type": self.match_type.value if self.match_type else None,
            "matching_fields": list(self.matching_fields),
            "excluded_fields": list(self.excluded_fields),
            "differences": [d.to_dict() for d in self.differences],
            "field_scores": [s.to_dict() for s in self.field_scores],
            "match_reason": self.match_reason,
        }


@dataclass(frozen=True)
class MatchDecision:
    """Aggregate over every MatchResult of one target.

    Built only by ``DecisionClassifier``; re-running a match produces a new
    decision rather than patching an old one.

    Attributes:
        results: Every scored candidate, best first
        matches: The subset of results above the policy's reporting floor
        has_strong_match: Top match reaches the strong-match threshold
        recommended_action: Duplicate-detection action (None for reconciliation)
        auto_apply_allowed: Whether the caller may act without confirmation
        failure_reason: Set on fail-safe decisions produced after an error
    """

    target_id: str
    tenant_id: str
    profile: str
    results: tuple[MatchResult, ...]
    matches: tuple[MatchResult, ...]
    has_strong_match: bool
    recommended_action: RecommendedAction | None
    auto_apply_allowed: bool
    failure_reason: str | None = None

    @property
    def is_duplicate(self) -> bool:
        return self.has_strong_match

    @property
    def failed(self) -> bool:
        return self.failure_reason is not None

    @property
    def top(self) -> MatchResult | None:
        return self.matches[0] if self.matches else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "target_id": self.target_id,
            "tenant_id": self.tenant_id,
            "profile": self.profile,
            "is_duplicate": self.is_duplicate,
            "has_strong_match": self.has_strong_match,
            "recommended_action": (
                self.recommended_action.value if self.recommended_action else None
            ),
            "auto_apply_allowed": self.auto_apply_allowed,
            "failure_reason": self.failure_reason,
            "matches": [r.to_dict() for r in self.matches],
            "results": [r.to_dict() for r in self.results],
        }


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)
