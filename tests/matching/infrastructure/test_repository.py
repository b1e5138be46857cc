"""Tests for RecordRepository."""

from datetime import UTC, datetime

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from ledgermatch.exceptions import TransientStoreError, ValidationError
from ledgermatch.matching.domain.enums import RecordKind
from ledgermatch.matching.domain.models import Record

pytestmark = pytest.mark.integration


def count_records(session) -> int:
    return session.scalar(select(func.count()).select_from(Record))


class TestAdd:
    def test_semantic_date_is_indexed(self, repository):
        record = repository.add(
            "tenant-a", RecordKind.DOCUMENT, {"total": "10.00", "date": "2024-01-10"}
        )

        assert record.record_date == datetime(2024, 1, 10)

    def test_unparseable_date_leaves_column_empty(self, repository):
        record = repository.add("tenant-a", RecordKind.DOCUMENT, {"date": "last week"})

        assert record.record_date is None
        assert record.extracted_data == {"date": "last week"}

    def test_currency_is_upper_cased(self, repository):
        record = repository.add("tenant-a", RecordKind.DOCUMENT, {}, currency="gbp")

        assert record.currency == "GBP"

    def test_aware_created_at_stored_as_naive_utc(self, repository):
        created = datetime(2024, 1, 12, 9, 30, tzinfo=UTC)

        record = repository.add("tenant-a", RecordKind.DOCUMENT, {}, created_at=created)

        assert record.created_at == datetime(2024, 1, 12, 9, 30)

    def test_explicit_id_is_kept(self, repository):
        record = repository.add("tenant-a", RecordKind.DOCUMENT, {}, record_id="doc-1")

        assert record.id == "doc-1"


class TestAddFromDict:
    def test_full_row(self, repository):
        record = repository.add_from_dict(
            {
                "id": "tx-1",
                "tenant_id": "tenant-a",
                "kind": "bank_transaction",
                "category": "card",
                "currency": "eur",
                "created_at": "2024-01-12T09:30:00",
                "extracted_data": {"amount": "-42.50", "description": "COFFEE"},
            }
        )

        assert record.id == "tx-1"
        assert record.kind is RecordKind.BANK_TRANSACTION
        assert record.currency == "EUR"
        assert record.created_at == datetime(2024, 1, 12, 9, 30)
        assert record.to_target().amount is not None

    @pytest.mark.parametrize(
        ("row", "field"),
        [
            ({"kind": "document"}, "tenant_id"),
            ({"tenant_id": "tenant-a", "kind": "receipt"}, "kind"),
            ({"tenant_id": "tenant-a"}, "kind"),
            (
                {"tenant_id": "tenant-a", "kind": "document", "extracted_data": ["x"]},
                "extracted_data",
            ),
            (
                {"tenant_id": "tenant-a", "kind": "document", "created_at": "yesterday"},
                "created_at",
            ),
        ],
    )
    def test_malformed_rows_rejected(self, repository, row, field):
        with pytest.raises(ValidationError) as exc_info:
            repository.add_from_dict(row)

        assert exc_info.value.context["field"] == field

    def test_add_many_is_one_transaction(self, repository, db_session):
        rows = [
            {"tenant_id": "tenant-a", "kind": "document", "extracted_data": {"total": "1"}},
            {"tenant_id": "tenant-a", "kind": "unknown"},
        ]

        with pytest.raises(ValidationError):
            repository.add_many(rows)

        assert count_records(db_session) == 0

    def test_add_many(self, repository, db_session):
        records = repository.add_many(
            [
                {"tenant_id": "tenant-a", "kind": "document"},
                {"tenant_id": "tenant-b", "kind": "ledger_entry"},
            ]
        )

        assert len(records) == 2
        assert count_records(db_session) == 2


class TestGet:
    def test_scoped_by_tenant(self, repository, make_record):
        record = make_record(total="10")

        assert repository.get("tenant-a", record.id) is record
        assert repository.get("tenant-b", record.id) is None
        assert repository.get("tenant-a", "missing") is None

    def test_unavailable_store(self, repository, mocker):
        mocker.patch.object(
            repository.session,
            "scalars",
            side_effect=OperationalError("SELECT", {}, Exception("server closed connection")),
        )

        with pytest.raises(TransientStoreError):
            repository.get("tenant-a", "any")


class TestReconcilePair:
    def test_marks_both_sides(self, repository, make_record, db_session):
        transaction = make_record(kind=RecordKind.BANK_TRANSACTION, amount="-10")
        document = make_record(total="10")

        repository.reconcile_pair(transaction, document)
        db_session.expire_all()

        assert transaction.reconciled is True
        assert transaction.reconciled_with_id == document.id
        assert document.reconciled is True
        assert document.reconciled_with_id == transaction.id

    def test_failed_commit_leaves_nothing_reconciled(
        self, repository, make_record, db_session, mocker
    ):
        transaction = make_record(kind=RecordKind.BANK_TRANSACTION, amount="-10")
        document = make_record(total="10")
        mocker.patch.object(
            db_session,
            "commit",
            side_effect=OperationalError("UPDATE", {}, Exception("database is locked")),
        )

        with pytest.raises(TransientStoreError):
            repository.reconcile_pair(transaction, document)

        assert transaction.reconciled is False
        assert document.reconciled is False
