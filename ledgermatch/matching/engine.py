"""Matching engine: select, score, classify and record for one target.

Data flow:
    load target → select candidates → score each candidate (parallel)
    → classify (sequential) → record (the only write, always last)

Scoring is CPU-only and each candidate is independent, so it is fanned out
over a thread pool; the classifier's total ordering makes the decision
identical whatever order the futures complete in.
"""

import contextvars
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait

from sqlalchemy.orm import Session

from ..exceptions import ScoringTimeoutError
from ..utils.config import Settings
from ..utils.logging import (
    LogPerformance,
    clear_correlation_id,
    get_correlation_id,
    get_logger,
    set_correlation_id,
)
from .classifier import DecisionClassifier
from .domain.value_objects import MatchCandidate, MatchDecision, MatchResult, MatchTarget
from .infrastructure.recorder import MatchRecorder
from .infrastructure.selector import CandidateSelector
from .metrics import (
    record_match_run,
    record_recommended_action,
    record_top_score,
    track_matching_duration,
)
from .profiles import MatchProfile, WeightTable
from .scorer import CompositeScorer

logger = get_logger(__name__)


class MatchingEngine:
    """One generic engine shared by duplicate detection and reconciliation.

    Callers differ only in the ``MatchProfile`` they pass: weight table,
    candidate selection and classification policy.

    Args:
        selector: Candidate selector bound to a session
        recorder: Match recorder bound to the same session
        scorer: Composite scorer (a fresh one by default)
        max_workers: Threads used to score candidates; 1 scores inline
        timeout: Seconds allowed for scoring; on expiry pending scorings are
            cancelled, ``ScoringTimeoutError`` is raised and nothing is recorded
        window_days: Overrides the profile's candidate window when set

    Example:
        >>> engine = MatchingEngine(CandidateSelector(db), MatchRecorder(db))
        >>> decision = engine.run("tenant-1", document_id, DUPLICATE_DETECTION)
        >>> decision.recommended_action
        <RecommendedAction.KEEP_BOTH: 'keep_both'>
    """

    def __init__(
        self,
        selector: CandidateSelector,
        recorder: MatchRecorder,
        scorer: CompositeScorer | None = None,
        max_workers: int = 4,
        timeout: float | None = None,
        window_days: int | None = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be > 0")

        self.selector = selector
        self.recorder = recorder
        self.scorer = scorer or CompositeScorer()
        self.max_workers = max_workers
        self.timeout = timeout
        self.window_days = window_days

    def run(
        self,
        tenant_id: str,
        target_id: str,
        profile: MatchProfile,
        max_candidates: int | None = None,
        run_key: str | None = None,
        record: bool = True,
    ) -> MatchDecision:
        """Match one target and return its decision.

        Raises:
            NotFoundError: Target missing in the tenant scope
            ValidationError: Invalid candidate cap
            TransientStoreError: Store unavailable during fetch or write
            ScoringTimeoutError: Scoring exceeded ``timeout``
        """
        owns_correlation_id = get_correlation_id() is None
        correlation_id = set_correlation_id() if owns_correlation_id else get_correlation_id()

        if self.window_days is not None:
            profile = profile.with_window(self.window_days)

        logger.info(
            "match_run_started",
            tenant_id=tenant_id,
            target_id=target_id,
            profile=profile.name,
            correlation_id=correlation_id,
        )

        try:
            with LogPerformance("match_run", logger), track_matching_duration(profile.name):
                target = self.selector.load_target(tenant_id, target_id)
                candidates = self.selector.select_candidates(
                    target,
                    tenant_id,
                    max_candidates=max_candidates,
                    criteria=profile.selection,
                )
                results = self.score_candidates(target, candidates, profile.weight_table)
                decision = DecisionClassifier(profile).classify(target, results)

                if record:
                    self.recorder.record(target, decision, run_key=run_key)

            self._observe(profile, decision)
            logger.info(
                "match_decision_made",
                tenant_id=tenant_id,
                target_id=target_id,
                profile=profile.name,
                correlation_id=correlation_id,
                candidate_count=len(decision.results),
                match_count=len(decision.matches),
                top_score=decision.top.composite_score if decision.top else None,
                has_strong_match=decision.has_strong_match,
                recommended_action=(
                    decision.recommended_action.value if decision.recommended_action else None
                ),
                recorded=record,
            )
        except Exception:
            record_match_run(profile.name, "failure")
            raise
        finally:
            if owns_correlation_id:
                clear_correlation_id()

        return decision

    def score_candidates(
        self,
        target: MatchTarget,
        candidates: list[MatchCandidate],
        weight_table: WeightTable,
    ) -> list[MatchResult]:
        """Score every candidate; results come back in no particular order."""
        if self.max_workers == 1 or len(candidates) <= 1:
            return self._score_inline(target, candidates, weight_table)
        return self._score_parallel(target, candidates, weight_table)

    def _score_inline(
        self,
        target: MatchTarget,
        candidates: list[MatchCandidate],
        weight_table: WeightTable,
    ) -> list[MatchResult]:
        deadline = time.monotonic() + self.timeout if self.timeout is not None else None
        results = []
        for candidate in candidates:
            if deadline is not None and time.monotonic() > deadline:
                raise self._timeout_error(target, len(results), len(candidates))
            results.append(self.scorer.score(target, candidate, weight_table))
        return results

    def _score_parallel(
        self,
        target: MatchTarget,
        candidates: list[MatchCandidate],
        weight_table: WeightTable,
    ) -> list[MatchResult]:
        executor = ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(candidates)),
            thread_name_prefix="ledgermatch-score",
        )
        try:
            # Workers inherit the caller's correlation id
            futures = [
                executor.submit(
                    contextvars.copy_context().run,
                    self.scorer.score,
                    target,
                    candidate,
                    weight_table,
                )
                for candidate in candidates
            ]
            done, pending = wait(futures, timeout=self.timeout, return_when=FIRST_EXCEPTION)
            for future in pending:
                future.cancel()
            failed = next((f for f in done if f.exception() is not None), None)
            if failed is not None:
                raise failed.exception()
            if pending:
                raise self._timeout_error(target, len(done), len(candidates))
            return [future.result() for future in futures]
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _timeout_error(self, target: MatchTarget, scored: int, total: int) -> ScoringTimeoutError:
        logger.error(
            "candidate_scoring_timeout",
            tenant_id=target.tenant_id,
            target_id=target.id,
            scored=scored,
            total=total,
            timeout=self.timeout,
        )
        return ScoringTimeoutError(
            "Candidate scoring timed out",
            timeout=self.timeout,
            context={"target_id": target.id, "scored": scored, "total": total},
        )

    @staticmethod
    def _observe(profile: MatchProfile, decision: MatchDecision) -> None:
        record_match_run(profile.name, "success", len(decision.results))
        if decision.top is not None:
            record_top_score(profile.name, decision.top.composite_score)
        if decision.recommended_action is not None:
            record_recommended_action(decision.recommended_action.value)

    def __repr__(self) -> str:
        return f"<MatchingEngine(max_workers={self.max_workers}, timeout={self.timeout})>"


def build_engine(session: Session, settings: Settings) -> MatchingEngine:
    """Wire an engine to ``session`` using the runtime settings."""
    return MatchingEngine(
        selector=CandidateSelector(session, default_max_candidates=settings.max_candidates),
        recorder=MatchRecorder(session),
        max_workers=settings.scoring_workers,
        timeout=settings.scoring_timeout_seconds,
        window_days=settings.candidate_window_days,
    )
