"""Persistence models for the matching engine.

DDD Entities mapped to database tables via SQLAlchemy:
- Record: a document, ledger entry or bank transaction in the shared store
- MatchRun: one recorded decision (append-only, versioned per target)
- MatchRunResult: one ranked candidate of a recorded decision
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ...storage.database.base import Base, IntPKMixin, TimestampMixin
from ...utils.datetime import utc_now
from .enums import MatchType, RecommendedAction, RecordKind
from .fields import DateField, parse_extracted_data
from .value_objects import MatchCandidate, MatchTarget


class Record(TimestampMixin, Base):
    """A matchable record in the shared, multi-tenant store.

    Attributes:
        id: Record identifier (UUID string)
        tenant_id: Owning tenant
        kind: document / ledger_entry / bank_transaction
        category: Document type or transaction category
        record_date: Semantic date copied out of extracted_data for indexing
        currency: ISO 4217 code
        reconciled: Whether the record has been reconciled
        reconciled_with_id: Record it was reconciled with
        extracted_data: Raw extracted fields (total/amount, date, vendor, description, ...)
    """

    __tablename__ = "match_records"
    __table_args__ = (
        Index("ix_match_records_tenant_kind_created", "tenant_id", "kind", "created_at"),
        Index("ix_match_records_tenant_kind_record_date", "tenant_id", "kind", "record_date"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    kind: Mapped[RecordKind] = mapped_column(Enum(RecordKind), nullable=False)
    category: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    record_date: Mapped[datetime | None] = mapped_column(DateTime)
    currency: Mapped[str | None] = mapped_column(String(3))
    reconciled: Mapped[bool] = mapped_column(default=False, nullable=False)
    reconciled_with_id: Mapped[str | None] = mapped_column(String(36))
    extracted_data: Mapped[dict[str, Any] | None] = mapped_column(JSON)

    def sync_record_date(self) -> None:
        """Copy the parsed semantic date out of extracted_data."""
        parsed = parse_extracted_data(self.extracted_data).get("date")
        self.record_date = parsed.value if isinstance(parsed, DateField) else None

    def mark_reconciled(self, other_id: str) -> None:
        self.reconciled = True
        self.reconciled_with_id = other_id

    def _snapshot_kwargs(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "kind": self.kind,
            "category": self.category,
            "created_at": self.created_at,
            "fields": parse_extracted_data(self.extracted_data, self.currency),
            "currency": self.currency,
            "record_date": self.record_date,
        }

    def to_target(self) -> MatchTarget:
        return MatchTarget(**self._snapshot_kwargs())

    def to_candidate(self) -> MatchCandidate:
        return MatchCandidate(**self._snapshot_kwargs())

    def __repr__(self) -> str:
        return (
            f"<Record(id={self.id}, tenant_id='{self.tenant_id}', "
            f"kind='{self.kind.value}', category='{self.category}')>"
        )


class MatchRun(IntPKMixin, Base):
    """One recorded match decision.

    Runs are append-only: re-running the match for a target adds a new
    version instead of overwriting history.
    """

    __tablename__ = "match_runs"
    __table_args__ = (
        Index("ix_match_runs_tenant_target", "tenant_id", "target_id"),
        Index("ix_match_runs_tenant_target_run_key", "tenant_id", "target_id", "run_key"),
    )

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    target_id: Mapped[str] = mapped_column(String(36), nullable=False)
    target_kind: Mapped[RecordKind] = mapped_column(Enum(RecordKind), nullable=False)
    profile: Mapped[str] = mapped_column(String(64), nullable=False)
    version: Mapped[int] = mapped_column(nullable=False, default=1)
    run_key: Mapped[str | None] = mapped_column(String(128))
    correlation_id: Mapped[str | None] = mapped_column(String(64))

    candidate_count: Mapped[int] = mapped_column(nullable=False, default=0)
    top_candidate_id: Mapped[str | None] = mapped_column(String(36))
    top_score: Mapped[Decimal | None] = mapped_column(Numeric(7, 6))
    has_strong_match: Mapped[bool] = mapped_column(default=False, nullable=False)
    recommended_action: Mapped[RecommendedAction | None] = mapped_column(Enum(RecommendedAction))
    auto_apply_allowed: Mapped[bool] = mapped_column(default=False, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    results: Mapped[list["MatchRunResult"]] = relationship(
        back_populates="run",
        cascade="all, delete-orphan",
        order_by="MatchRunResult.rank",
    )

    def __repr__(self) -> str:
        return (
            f"<MatchRun(id={self.id}, target_id='{self.target_id}', "
            f"profile='{self.profile}', version={self.version})>"
        )


class MatchRunResult(IntPKMixin, Base):
    """One candidate considered by a recorded run, winners and near-misses alike."""

    __tablename__ = "match_run_results"

    run_id: Mapped[int] = mapped_column(ForeignKey("match_runs.id"), nullable=False, index=True)
    run: Mapped["MatchRun"] = relationship(back_populates="results")

    rank: Mapped[int] = mapped_column(nullable=False)
    candidate_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    candidate_kind: Mapped[RecordKind] = mapped_column(Enum(RecordKind), nullable=False)
    composite_score: Mapped[Decimal] = mapped_column(Numeric(7, 6), nullable=False)
    match_type: Mapped[MatchType | None] = mapped_column(Enum(MatchType))
    matching_fields: Mapped[list[str]] = mapped_column(JSON, default=list)
    excluded_fields: Mapped[list[str]] = mapped_column(JSON, default=list)
    differences: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    field_scores: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)

    def __repr__(self) -> str:
        return (
            f"<MatchRunResult(run_id={self.run_id}, rank={self.rank}, "
            f"candidate_id='{self.candidate_id}', score={self.composite_score})>"
        )
