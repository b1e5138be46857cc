"""Tests for CandidateSelector against an in-memory SQLite store."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from ledgermatch.exceptions import NotFoundError, TransientStoreError, ValidationError
from ledgermatch.matching.domain.enums import RecordKind
from ledgermatch.matching.infrastructure import CandidateSelector
from ledgermatch.matching.profiles import DUPLICATE_DETECTION, RECONCILIATION, SelectionCriteria

pytestmark = pytest.mark.integration

TARGET_DATE = "2024-01-10"
NOW = datetime(2024, 1, 12, 9, 30)


@pytest.fixture
def selector(db_session):
    return CandidateSelector(db_session)


@pytest.fixture
def target(make_record):
    return make_record(total="100.00", vendor="Acme Ltd", date=TARGET_DATE)


def ids(candidates):
    return [c.id for c in candidates]


class TestLoadTarget:
    def test_loads_snapshot(self, selector, target):
        snapshot = selector.load_target("tenant-a", target.id)

        assert snapshot.id == target.id
        assert snapshot.amount is not None
        assert snapshot.effective_date == datetime(2024, 1, 10)

    def test_missing_target_raises_not_found(self, selector):
        with pytest.raises(NotFoundError, match="Match target not found"):
            selector.load_target("tenant-a", "missing")

    def test_other_tenant_cannot_load_target(self, selector, target):
        with pytest.raises(NotFoundError):
            selector.load_target("tenant-b", target.id)


class TestSelectCandidates:
    def test_excludes_target_itself(self, selector, target, make_record):
        other = make_record(total="100.00", vendor="Acme Ltd", date=TARGET_DATE)

        candidates = selector.select_candidates(
            selector.load_target("tenant-a", target.id), "tenant-a"
        )

        assert ids(candidates) == [other.id]

    def test_never_crosses_tenants(self, selector, target, make_record):
        make_record(tenant_id="tenant-b", total="100.00", vendor="Acme Ltd", date=TARGET_DATE)

        candidates = selector.select_candidates(
            selector.load_target("tenant-a", target.id), "tenant-a"
        )

        assert candidates == []

    def test_mismatched_tenant_scope_rejected(self, selector, target):
        snapshot = selector.load_target("tenant-a", target.id)

        with pytest.raises(NotFoundError):
            selector.select_candidates(snapshot, "tenant-b")

    def test_filters_by_category_and_kind(self, selector, target, make_record):
        make_record(category="receipt", date=TARGET_DATE)
        make_record(kind=RecordKind.LEDGER_ENTRY, date=TARGET_DATE)
        same = make_record(date=TARGET_DATE)

        candidates = selector.select_candidates(
            selector.load_target("tenant-a", target.id),
            "tenant-a",
            criteria=DUPLICATE_DETECTION.selection,
        )

        assert ids(candidates) == [same.id]

    def test_semantic_date_window_is_inclusive(self, selector, target, make_record):
        edge = make_record(date="2024-01-17", created_at=datetime(2023, 6, 1))
        make_record(date="2024-01-18", created_at=datetime(2023, 6, 1))

        candidates = selector.select_candidates(
            selector.load_target("tenant-a", target.id), "tenant-a"
        )

        assert ids(candidates) == [edge.id]

    def test_semantic_window_ignores_time_of_day(self, selector, make_record):
        afternoon = make_record(total="100.00", date="2024-01-10T15:00:00")
        last_day = make_record(date="2024-01-17T18:30:00", created_at=datetime(2023, 6, 1))
        first_day = make_record(date="2024-01-03T08:00:00", created_at=datetime(2023, 6, 1))
        make_record(date="2024-01-18T00:00:00", created_at=datetime(2023, 6, 1))
        make_record(date="2024-01-02T23:59:00", created_at=datetime(2023, 6, 1))

        candidates = selector.select_candidates(
            selector.load_target("tenant-a", afternoon.id), "tenant-a"
        )

        assert set(ids(candidates)) == {last_day.id, first_day.id}

    def test_creation_window_or_semantic_window(self, selector, target, make_record):
        """Either window admits a candidate; the OR maximizes recall."""
        created_near = make_record(date="2023-01-01", created_at=datetime(2024, 1, 12))
        dated_near = make_record(date="2024-01-11", created_at=datetime(2023, 1, 1))
        make_record(date="2023-01-01", created_at=datetime(2023, 1, 1))

        candidates = selector.select_candidates(
            selector.load_target("tenant-a", target.id), "tenant-a"
        )

        assert set(ids(candidates)) == {created_near.id, dated_near.id}

    def test_creation_window_is_strict(self, selector, target, make_record):
        make_record(created_at=datetime(2024, 1, 10) + timedelta(days=7))
        inside = make_record(created_at=datetime(2024, 1, 10) + timedelta(days=6, hours=23))

        candidates = selector.select_candidates(
            selector.load_target("tenant-a", target.id), "tenant-a"
        )

        assert ids(candidates) == [inside.id]

    def test_newest_first_and_capped(self, selector, target, make_record):
        created = [
            make_record(date=TARGET_DATE, created_at=NOW - timedelta(hours=h)) for h in range(5)
        ]

        candidates = selector.select_candidates(
            selector.load_target("tenant-a", target.id), "tenant-a", max_candidates=3
        )

        assert ids(candidates) == [r.id for r in created[:3]]

    def test_invalid_cap_rejected(self, selector, target):
        with pytest.raises(ValidationError, match="max_candidates"):
            selector.select_candidates(
                selector.load_target("tenant-a", target.id), "tenant-a", max_candidates=0
            )

    def test_empty_result_is_not_an_error(self, selector, target):
        assert (
            selector.select_candidates(selector.load_target("tenant-a", target.id), "tenant-a")
            == []
        )

    def test_reconciliation_pools(self, selector, make_record):
        transaction = make_record(
            kind=RecordKind.BANK_TRANSACTION, category="card", amount="-100.00", date=TARGET_DATE
        )
        document = make_record(kind=RecordKind.DOCUMENT, date=TARGET_DATE)
        entry = make_record(kind=RecordKind.LEDGER_ENTRY, category="expense", date=TARGET_DATE)
        reconciled = make_record(kind=RecordKind.DOCUMENT, date=TARGET_DATE)
        reconciled.mark_reconciled("elsewhere")
        make_record(kind=RecordKind.BANK_TRANSACTION, category="card", date=TARGET_DATE)

        candidates = selector.select_candidates(
            selector.load_target("tenant-a", transaction.id),
            "tenant-a",
            criteria=RECONCILIATION.selection,
        )

        assert set(ids(candidates)) == {document.id, entry.id}

    def test_custom_window(self, selector, target, make_record):
        far = make_record(date="2024-01-25", created_at=datetime(2023, 1, 1))

        narrow = selector.select_candidates(
            selector.load_target("tenant-a", target.id), "tenant-a"
        )
        wide = selector.select_candidates(
            selector.load_target("tenant-a", target.id),
            "tenant-a",
            criteria=SelectionCriteria(window_days=30),
        )

        assert far.id not in ids(narrow)
        assert far.id in ids(wide)


class TestStoreErrors:
    def test_operational_error_becomes_transient(self, selector, mocker):
        mocker.patch.object(
            selector.session,
            "scalars",
            side_effect=OperationalError("SELECT", {}, Exception("connection refused")),
        )

        with pytest.raises(TransientStoreError) as exc_info:
            selector.load_target("tenant-a", "any")

        assert isinstance(exc_info.value.original_error, OperationalError)

    def test_other_store_errors_propagate_unmodified(self, selector, mocker):
        mocker.patch.object(
            selector.session,
            "scalars",
            side_effect=IntegrityError("SELECT", {}, Exception("constraint")),
        )

        with pytest.raises(IntegrityError):
            selector.load_target("tenant-a", "any")
