"""Tests for matching value objects."""

from datetime import datetime
from decimal import Decimal

import pytest

from ledgermatch.matching.domain.enums import MatchType, RecommendedAction, RecordKind
from ledgermatch.matching.domain.fields import DateField
from ledgermatch.matching.domain.value_objects import (
    FieldDifference,
    FieldScore,
    MatchDecision,
    MatchResult,
)

pytestmark = pytest.mark.unit

CREATED = datetime(2024, 1, 12, 9, 30)


def result(score: float, **kwargs) -> MatchResult:
    return MatchResult(
        candidate_id=kwargs.pop("candidate_id", "c1"),
        candidate_kind=RecordKind.DOCUMENT,
        candidate_created_at=CREATED,
        composite_score=score,
        **kwargs,
    )


class TestMatchRecord:
    def test_date_falls_back_to_created_at(self, make_target):
        target = make_target(total="10")

        assert target.value_of("date") == DateField(CREATED)
        assert target.effective_date == CREATED

    def test_semantic_date_preferred(self, make_target):
        target = make_target(date="2024-01-10")

        assert target.effective_date == datetime(2024, 1, 10)

    def test_amount_property(self, make_target):
        assert make_target(total="12.34").amount == Decimal("12.34")
        assert make_target(total="n/a").amount is None


class TestScores:
    @pytest.mark.parametrize("score", [-0.01, 1.01])
    def test_field_score_bounds(self, score):
        with pytest.raises(ValueError, match="Field score must be between"):
            FieldScore(field="amount", score=score, matching=False)

    @pytest.mark.parametrize("score", [-0.5, 1.5])
    def test_composite_score_bounds(self, score):
        with pytest.raises(ValueError, match="Composite score must be between"):
            result(score)

    def test_match_reason_lists_matching_fields(self):
        r = result(0.6, matching_fields=("amount", "date"))

        assert r.match_reason == "Matched on amount, date → 60%"

    def test_considered_fields_cover_matches_and_differences(self):
        r = result(
            0.4,
            matching_fields=("amount",),
            differences=(FieldDifference("vendor", "Acme", "Other", 0.2),),
            excluded_fields=("description",),
        )

        assert r.considered_fields == ("amount", "vendor")

    def test_difference_serializes_raw_values(self):
        diff = FieldDifference("amount", Decimal("100.00"), datetime(2024, 1, 10), 0.0)

        assert diff.to_dict() == {
            "field": "amount",
            "target_value": "100.00",
            "candidate_value": "2024-01-10T00:00:00",
            "score": 0.0,
        }


class TestMatchDecision:
    def test_to_dict_round_trips_to_plain_types(self):
        top = result(0.97, match_type=MatchType.EXACT, matching_fields=("amount",))
        decision = MatchDecision(
            target_id="t1",
            tenant_id="tenant-a",
            profile="duplicate_detection",
            results=(top,),
            matches=(top,),
            has_strong_match=True,
            recommended_action=RecommendedAction.DELETE_DUPLICATE,
            auto_apply_allowed=True,
        )

        data = decision.to_dict()

        assert data["is_duplicate"] is True
        assert data["recommended_action"] == "delete_duplicate"
        assert data["matches"][0]["match_type"] == "exact"
        assert data["matches"][0]["candidate_kind"] == "document"
        assert decision.top is top
        assert decision.failed is False
