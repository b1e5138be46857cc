"""Record repository: loading and reconciling records in the shared store."""

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from ...exceptions import ValidationError
from ...utils.datetime import to_naive_utc, utc_now
from ...utils.logging import get_logger
from ..domain.enums import RecordKind
from ..domain.models import Record
from .store_errors import transient_store_errors

logger = get_logger(__name__)


class RecordRepository:
    """Tenant-scoped access to ``match_records``.

    Reads never cross tenants: ``get`` returns None for a record owned by
    another tenant exactly as it does for a missing one.
    """

    def __init__(self, session: Session):
        self.session = session

    def add(
        self,
        tenant_id: str,
        kind: RecordKind,
        extracted_data: Mapping[str, Any] | None = None,
        *,
        category: str = "",
        currency: str | None = None,
        created_at: datetime | None = None,
        record_id: str | None = None,
        commit: bool = True,
    ) -> Record:
        """Add a record; its semantic date column is derived from ``extracted_data``."""
        record = Record(
            tenant_id=tenant_id,
            kind=kind,
            category=category,
            currency=currency.upper() if currency else None,
            extracted_data=dict(extracted_data or {}),
            created_at=to_naive_utc(created_at) if created_at else utc_now(),
        )
        if record_id:
            record.id = record_id
        record.sync_record_date()

        self.session.add(record)
        if commit:
            self._commit("add_record", tenant_id=tenant_id)
        return record

    def add_from_dict(self, data: Mapping[str, Any], *, commit: bool = True) -> Record:
        """Add a record from its JSON representation.

        Expected keys: ``tenant_id``, ``kind`` and optionally ``id``,
        ``category``, ``currency``, ``created_at`` (ISO 8601) and
        ``extracted_data``.

        Raises:
            ValidationError: If a required key is missing or malformed
        """
        tenant_id = data.get("tenant_id")
        if not tenant_id or not isinstance(tenant_id, str):
            raise ValidationError("Record needs a tenant_id", field="tenant_id", value=tenant_id)

        try:
            kind = RecordKind(data.get("kind"))
        except ValueError as e:
            raise ValidationError(
                "Unknown record kind",
                field="kind",
                value=data.get("kind"),
                constraint=", ".join(k.value for k in RecordKind),
            ) from e

        extracted = data.get("extracted_data") or {}
        if not isinstance(extracted, Mapping):
            raise ValidationError(
                "extracted_data must be an object", field="extracted_data", value=extracted
            )

        created_at = data.get("created_at")
        if created_at is not None:
            try:
                created_at = datetime.fromisoformat(str(created_at))
            except ValueError as e:
                raise ValidationError(
                    "created_at must be an ISO 8601 timestamp",
                    field="created_at",
                    value=created_at,
                ) from e

        return self.add(
            tenant_id,
            kind,
            extracted,
            category=str(data.get("category") or ""),
            currency=data.get("currency"),
            created_at=created_at,
            record_id=data.get("id"),
            commit=commit,
        )

    def add_many(self, rows: Iterable[Mapping[str, Any]]) -> list[Record]:
        """Add several records in one transaction."""
        try:
            records = [self.add_from_dict(row, commit=False) for row in rows]
        except ValidationError:
            self.session.rollback()
            raise
        self._commit("add_records")
        logger.info("records_loaded", count=len(records))
        return records

    def get(self, tenant_id: str, record_id: str) -> Record | None:
        with transient_store_errors(
            "get_record", self.session, tenant_id=tenant_id, record_id=record_id
        ):
            return self.session.scalars(
                select(Record).where(Record.id == record_id, Record.tenant_id == tenant_id)
            ).first()

    def reconcile_pair(self, first: Record, second: Record) -> None:
        """Mark two records reconciled with each other in one transaction."""
        first.mark_reconciled(second.id)
        second.mark_reconciled(first.id)
        self._commit("reconcile_records", tenant_id=first.tenant_id)

    def _commit(self, operation: str, **context: str) -> None:
        with transient_store_errors(operation, **context):
            try:
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise

    def __repr__(self) -> str:
        return "<RecordRepository>"
