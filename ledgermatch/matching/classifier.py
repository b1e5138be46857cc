"""Decision classifier: turns scored results into a MatchDecision."""

from collections.abc import Iterable
from dataclasses import replace

from .domain.enums import MatchType, RecommendedAction
from .domain.value_objects import MatchDecision, MatchRecord, MatchResult
from .profiles import ClassificationPolicy, MatchProfile


class DecisionClassifier:
    """Rank results and derive the decision for one target.

    Ranking is by composite score descending; ties go to the most recently
    created candidate, then to the candidate id, so the output order never
    depends on the order candidates were scored in.

    Duplicate detection (policy with action bands):
        - top > 0.95 → delete_duplicate (the only auto-applicable action)
        - top > 0.85 → merge
        - any scored candidate below → keep_both, even at 0
        - no candidate → review

    A strong match reaches the strong-match threshold (inclusive), so a pair
    agreeing on amount, vendor and date (0.4 + 0.3 + 0.2) is a duplicate.

    Reconciliation (policy without action bands):
        - each result gets a match type: exact (≥ 0.95), partial (≥ 0.8), fuzzy
        - no recommended action and never auto-applied; a person confirms

    The classifier never touches the source records.

    Example:
        >>> classifier = DecisionClassifier(DUPLICATE_DETECTION)
        >>> decision = classifier.classify(target, results)
        >>> decision.recommended_action
        <RecommendedAction.MERGE: 'merge'>
    """

    def __init__(self, profile: MatchProfile) -> None:
        self.profile = profile
        self.policy: ClassificationPolicy = profile.policy

    def classify(self, target: MatchRecord, results: Iterable[MatchResult]) -> MatchDecision:
        """Build the decision for ``target`` from its scored results."""
        ranked = tuple(
            replace(result, match_type=self.match_type(result.composite_score))
            for result in sorted(results, key=rank_key)
        )
        matches = tuple(
            r for r in ranked if r.composite_score > self.policy.min_reportable_score
        )
        top_score = ranked[0].composite_score if ranked else None

        has_strong_match = (
            top_score is not None and top_score >= self.policy.strong_match_threshold
        )
        action = self.recommend(top_score) if self.policy.recommends_actions else None

        return MatchDecision(
            target_id=target.id,
            tenant_id=target.tenant_id,
            profile=self.profile.name,
            results=ranked,
            matches=matches,
            has_strong_match=has_strong_match,
            recommended_action=action,
            auto_apply_allowed=self._auto_apply_allowed(action),
        )

    def fail_safe(self, target_id: str, tenant_id: str, reason: str) -> MatchDecision:
        """Decision returned when a run could not complete.

        Duplicate detection falls back to keep_both so nothing is ever
        deleted on error; reconciliation reports no matches.
        """
        return MatchDecision(
            target_id=target_id,
            tenant_id=tenant_id,
            profile=self.profile.name,
            results=(),
            matches=(),
            has_strong_match=False,
            recommended_action=(
                RecommendedAction.KEEP_BOTH if self.policy.recommends_actions else None
            ),
            auto_apply_allowed=False,
            failure_reason=reason,
        )

    def match_type(self, score: float) -> MatchType:
        if score >= self.policy.exact_threshold:
            return MatchType.EXACT
        if score >= self.policy.partial_threshold:
            return MatchType.PARTIAL
        return MatchType.FUZZY

    def recommend(self, top_score: float | None) -> RecommendedAction:
        if top_score is None:
            return RecommendedAction.REVIEW
        if self.policy.delete_threshold is not None and top_score > self.policy.delete_threshold:
            return RecommendedAction.DELETE_DUPLICATE
        if self.policy.merge_threshold is not None and top_score > self.policy.merge_threshold:
            return RecommendedAction.MERGE
        return RecommendedAction.KEEP_BOTH

    def _auto_apply_allowed(self, action: RecommendedAction | None) -> bool:
        return self.policy.auto_apply and action is RecommendedAction.DELETE_DUPLICATE

    def __repr__(self) -> str:
        return f"<DecisionClassifier(profile={self.profile.name!r})>"


def rank_key(result: MatchResult) -> tuple[float, float, str]:
    """Sort key: score desc, candidate recency desc, candidate id asc."""
    return (
        -result.composite_score,
        -result.candidate_created_at.timestamp(),
        result.candidate_id,
    )
