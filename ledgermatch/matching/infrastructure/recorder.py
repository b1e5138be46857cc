"""Match recorder: append-only audit trail of match decisions."""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ...utils.logging import get_correlation_id, get_logger
from ..domain.models import MatchRun, MatchRunResult
from ..domain.value_objects import MatchDecision, MatchRecord, MatchResult
from .store_errors import transient_store_errors

logger = get_logger(__name__)


class MatchRecorder:
    """Persist every decision together with every candidate it considered.

    Near-misses are recorded alongside the winner so that a later
    investigation can see what else was scored.

    Versioning:
        Each call to ``record`` appends a new version for the target. Two
        concurrent runs for the same target may both be recorded (and may
        even compute the same version number); callers that need exactly-once
        semantics pass a ``run_key``, in which case an existing run with the
        same key is returned and nothing is written.

    The write is one transaction: the run row and all of its result rows are
    committed together or not at all.
    """

    def __init__(self, session: Session):
        self.session = session

    def record(
        self,
        target: MatchRecord,
        decision: MatchDecision,
        run_key: str | None = None,
    ) -> MatchRun:
        """Append ``decision`` to the audit trail of ``target``.

        Raises:
            TransientStoreError: If the store is unavailable (nothing is written)
        """
        with transient_store_errors(
            "record_decision", tenant_id=target.tenant_id, target_id=target.id
        ):
            try:
                if run_key is not None:
                    existing = self.find_run(target.tenant_id, target.id, run_key)
                    if existing is not None:
                        logger.info(
                            "match_run_skipped_existing",
                            tenant_id=target.tenant_id,
                            target_id=target.id,
                            run_key=run_key,
                            version=existing.version,
                        )
                        return existing

                run = self._build_run(target, decision, run_key)
                self.session.add(run)
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise

        logger.info(
            "match_decision_recorded",
            tenant_id=target.tenant_id,
            target_id=target.id,
            profile=decision.profile,
            version=run.version,
            candidate_count=len(decision.results),
            recommended_action=(
                decision.recommended_action.value if decision.recommended_action else None
            ),
        )
        return run

    def find_run(self, tenant_id: str, target_id: str, run_key: str) -> MatchRun | None:
        return self.session.scalars(
            select(MatchRun)
            .where(
                MatchRun.tenant_id == tenant_id,
                MatchRun.target_id == target_id,
                MatchRun.run_key == run_key,
            )
            .order_by(MatchRun.version.desc())
        ).first()

    def next_version(self, tenant_id: str, target_id: str) -> int:
        current = self.session.scalar(
            select(func.max(MatchRun.version)).where(
                MatchRun.tenant_id == tenant_id,
                MatchRun.target_id == target_id,
            )
        )
        return (current or 0) + 1

    def history(self, tenant_id: str, target_id: str) -> list[MatchRun]:
        """All recorded runs for a target, newest first."""
        with transient_store_errors(
            "match_history", self.session, tenant_id=tenant_id, target_id=target_id
        ):
            return list(
                self.session.scalars(
                    select(MatchRun)
                    .where(MatchRun.tenant_id == tenant_id, MatchRun.target_id == target_id)
                    .order_by(MatchRun.version.desc(), MatchRun.id.desc())
                ).all()
            )

    def _build_run(
        self, target: MatchRecord, decision: MatchDecision, run_key: str | None
    ) -> MatchRun:
        top = decision.top
        run = MatchRun(
            tenant_id=target.tenant_id,
            target_id=target.id,
            target_kind=target.kind,
            profile=decision.profile,
            version=self.next_version(target.tenant_id, target.id),
            run_key=run_key,
            correlation_id=get_correlation_id(),
            candidate_count=len(decision.results),
            top_candidate_id=top.candidate_id if top else None,
            top_score=_score(top.composite_score) if top else None,
            has_strong_match=decision.has_strong_match,
            recommended_action=decision.recommended_action,
            auto_apply_allowed=decision.auto_apply_allowed,
        )
        run.results = [
            _build_result(rank, result) for rank, result in enumerate(decision.results, start=1)
        ]
        return run

    def __repr__(self) -> str:
        return "<MatchRecorder>"


def _build_result(rank: int, result: MatchResult) -> MatchRunResult:
    return MatchRunResult(
        rank=rank,
        candidate_id=result.candidate_id,
        candidate_kind=result.candidate_kind,
        composite_score=_score(result.composite_score),
        match_type=result.match_type,
        matching_fields=list(result.matching_fields),
        excluded_fields=list(result.excluded_fields),
        differences=[d.to_dict() for d in result.differences],
        field_scores=[s.to_dict() for s in result.field_scores],
    )


def _score(value: float) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.000001"))
