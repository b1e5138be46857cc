"""Composite scorer: weighted, field-by-field comparison of one target/candidate pair."""

from decimal import InvalidOperation
from typing import Any

from ..exceptions import ComparisonError
from ..utils.logging import get_logger
from .domain.fields import ExtractedField, UnparsedField
from .domain.value_objects import (
    FieldDifference,
    FieldScore,
    MatchCandidate,
    MatchResult,
    MatchTarget,
)
from .metrics import record_comparator_failure
from .profiles import FieldRule, WeightTable

logger = get_logger(__name__)

SCORE_PRECISION = 6


class CompositeScorer:
    """Score a candidate against a target using a weight table.

    Algorithm:
    1. For each rule of the weight table (in order):
       a. Read the field on both records (candidate falls back to
          ``rule.fallback_field`` when the field is absent)
       b. Compare with the rule's comparator
       c. Excluded fields (no signal on either side) leave the table
       d. Matching fields add ``score * weight`` to the composite
       e. Non-matching fields are reported as differences with both values
    2. The composite is the plain weighted sum; an excluded field keeps its
       weight out of reach, so a pair agreeing on fewer fields scores lower
    3. Round to 6 places and clamp to [0, 1]

    Only confirmed matches contribute: a weak, below-threshold agreement on
    a field adds nothing, which keeps the score conservative.

    A comparator failure (unparseable value) scores that field 0, is logged
    and lands in ``differences``; it never aborts scoring of the candidate.

    The scorer is stateless and safe to call from several threads at once.
    """

    def score(
        self,
        target: MatchTarget,
        candidate: MatchCandidate,
        weight_table: WeightTable,
    ) -> MatchResult:
        """Compare ``candidate`` to ``target`` over every rule of ``weight_table``."""
        field_scores: list[FieldScore] = []
        matching_fields: list[str] = []
        differences: list[FieldDifference] = []
        excluded_fields: list[str] = []

        weighted_sum = 0.0

        for rule in weight_table.rules:
            target_value = target.value_of(rule.field)
            candidate_value = self._candidate_value(candidate, rule)
            field_score = self._compare(rule, target_value, candidate_value, target, candidate)
            field_scores.append(field_score)

            if field_score.excluded:
                excluded_fields.append(rule.field)
                continue

            if field_score.matching:
                weighted_sum += field_score.score * rule.weight
                matching_fields.append(rule.field)
            else:
                differences.append(
                    FieldDifference(
                        field=rule.field,
                        target_value=raw_value(target_value),
                        candidate_value=raw_value(candidate_value),
                        score=field_score.score,
                    )
                )

        composite = min(1.0, max(0.0, round(weighted_sum, SCORE_PRECISION)))

        return MatchResult(
            candidate_id=candidate.id,
            candidate_kind=candidate.kind,
            candidate_created_at=candidate.created_at,
            composite_score=composite,
            field_scores=tuple(field_scores),
            matching_fields=tuple(matching_fields),
            differences=tuple(differences),
            excluded_fields=tuple(excluded_fields),
        )

    @staticmethod
    def _candidate_value(candidate: MatchCandidate, rule: FieldRule) -> ExtractedField | None:
        value = candidate.fields.get(rule.field)
        if value is None and rule.fallback_field:
            value = candidate.fields.get(rule.fallback_field)
        if value is None:
            value = candidate.value_of(rule.field)
        return value

    @staticmethod
    def _compare(
        rule: FieldRule,
        target_value: ExtractedField | None,
        candidate_value: ExtractedField | None,
        target: MatchTarget,
        candidate: MatchCandidate,
    ) -> FieldScore:
        try:
            return rule.comparator.compare(rule.field, target_value, candidate_value)
        except (ComparisonError, TypeError, ValueError, InvalidOperation) as e:
            logger.warning(
                "field_comparison_failed",
                field=rule.field,
                target_id=target.id,
                candidate_id=candidate.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            record_comparator_failure(rule.field)
            return FieldScore(field=rule.field, score=0.0, matching=False, error=str(e))

    def __repr__(self) -> str:
        return "<CompositeScorer>"


def raw_value(value: ExtractedField | None) -> Any:
    """The plain value behind a typed field, for difference reports."""
    if value is None:
        return None
    if isinstance(value, UnparsedField):
        return value.raw
    return value.value
