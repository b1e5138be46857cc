"""Candidate selector: bounded, tenant-scoped pre-filtering of the store."""

from datetime import datetime, time, timedelta

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from ...exceptions import NotFoundError, ValidationError
from ...utils.logging import get_logger
from ..domain.models import Record
from ..domain.value_objects import MatchCandidate, MatchTarget
from ..profiles import SelectionCriteria
from .store_errors import transient_store_errors

logger = get_logger(__name__)

DEFAULT_MAX_CANDIDATES = 50


class CandidateSelector:
    """Fetch the target and a bounded set of plausible candidates.

    Every query is scoped by tenant; candidates of another tenant are never
    returned, whatever their similarity.

    Candidates must:
    - belong to the same tenant
    - have one of the configured kinds (by default the target's own kind)
    - share the target's category (when the criteria ask for it)
    - be unreconciled (when the criteria ask for it)
    - not be the target itself
    - fall in the time window: created within N days of the target's date
      OR carrying a semantic date within N days of it. The OR is deliberate;
      it favors recall and leaves precision to the scorer.

    Known limitation: the result is capped at ``max_candidates`` newest
    records, so true duplicates outside the window or beyond the cap are
    never scored.
    """

    def __init__(self, session: Session, default_max_candidates: int = DEFAULT_MAX_CANDIDATES):
        self.session = session
        self.default_max_candidates = default_max_candidates

    def load_target(self, tenant_id: str, target_id: str) -> MatchTarget:
        """Load a fresh snapshot of the target.

        Raises:
            NotFoundError: If the record does not exist within ``tenant_id``
            TransientStoreError: If the store is unavailable
        """
        with transient_store_errors(
            "load_target", self.session, tenant_id=tenant_id, target_id=target_id
        ):
            row = self.session.scalars(
                select(Record).where(Record.id == target_id, Record.tenant_id == tenant_id)
            ).first()

        if row is None:
            raise NotFoundError(
                "Match target not found",
                entity_type="record",
                entity_id=target_id,
                tenant_id=tenant_id,
            )
        return row.to_target()

    def select_candidates(
        self,
        target: MatchTarget,
        tenant_id: str,
        max_candidates: int | None = None,
        criteria: SelectionCriteria | None = None,
    ) -> list[MatchCandidate]:
        """Return candidates for ``target``, newest first.

        An empty list (not an error) means nothing passed the filters.

        Raises:
            NotFoundError: If ``target`` does not belong to ``tenant_id``
            ValidationError: If ``max_candidates`` is not positive
            TransientStoreError: If the store is unavailable
        """
        if target.tenant_id != tenant_id:
            raise NotFoundError(
                "Match target not found",
                entity_type="record",
                entity_id=target.id,
                tenant_id=tenant_id,
            )

        limit = max_candidates if max_candidates is not None else self.default_max_candidates
        if limit < 1:
            raise ValidationError(
                "max_candidates must be at least 1",
                field="max_candidates",
                value=limit,
            )

        criteria = criteria or SelectionCriteria()
        anchor = target.effective_date
        window = timedelta(days=criteria.window_days)
        window_start, window_end = anchor - window, anchor + window
        # Semantic dates compare by calendar day, both ends inclusive
        first_day = datetime.combine(window_start.date(), time.min)
        after_last_day = datetime.combine(window_end.date() + timedelta(days=1), time.min)

        conditions = [
            Record.tenant_id == tenant_id,
            Record.id != target.id,
            Record.kind.in_(criteria.kinds_for(target.kind)),
            or_(
                and_(Record.created_at > window_start, Record.created_at < window_end),
                and_(Record.record_date >= first_day, Record.record_date < after_last_day),
            ),
        ]
        if criteria.match_category:
            conditions.append(Record.category == target.category)
        if criteria.unreconciled_only:
            conditions.append(Record.reconciled.is_(False))

        query = (
            select(Record)
            .where(*conditions)
            .order_by(Record.created_at.desc(), Record.id.desc())
            .limit(limit)
        )

        with transient_store_errors(
            "select_candidates", self.session, tenant_id=tenant_id, target_id=target.id
        ):
            rows = self.session.scalars(query).all()

        candidates = [row.to_candidate() for row in rows]
        logger.info(
            "candidates_selected",
            tenant_id=tenant_id,
            target_id=target.id,
            candidate_count=len(candidates),
            max_candidates=limit,
            window_days=criteria.window_days,
        )
        return candidates

    def __repr__(self) -> str:
        return f"<CandidateSelector(max_candidates={self.default_max_candidates})>"
