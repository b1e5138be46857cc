"""Tests for ReconciliationMatchingService."""

import pytest
from sqlalchemy.exc import OperationalError

from ledgermatch.exceptions import (
    NotFoundError,
    ScoringTimeoutError,
    TransientStoreError,
    ValidationError,
)
from ledgermatch.matching.application.services import ReconciliationMatchingService
from ledgermatch.matching.domain.enums import MatchType, RecordKind
from ledgermatch.matching.engine import MatchingEngine
from ledgermatch.matching.infrastructure import CandidateSelector, MatchRecorder
from ledgermatch.utils.retry import store_retry_config

pytestmark = pytest.mark.integration


@pytest.fixture
def service(db_session, repository):
    engine = MatchingEngine(CandidateSelector(db_session), MatchRecorder(db_session))
    return ReconciliationMatchingService(engine, repository)


@pytest.fixture
def transaction(make_record):
    return make_record(
        kind=RecordKind.BANK_TRANSACTION,
        category="card",
        amount="-120.00",
        description="ACME LTD",
        date="2024-01-10",
    )


class TestFindMatches:
    def test_ranks_across_documents_and_ledger_entries(self, service, transaction, make_record):
        entry = make_record(
            kind=RecordKind.LEDGER_ENTRY,
            category="expense",
            amount="120.00",
            description="Acme Ltd",
            date="2024-01-12",
        )
        document = make_record(total="120.00", vendor="Acme Ltd", date="2024-01-11")
        make_record(total="15.00", vendor="Cafe", date="2024-01-10")

        matches = service.find_matches("tenant-a", transaction.id)

        assert {m.candidate_id for m in matches[:2]} == {entry.id, document.id}
        assert all(m.match_type is MatchType.EXACT for m in matches[:2])
        assert matches[-1].match_type is MatchType.FUZZY

    def test_partial_match(self, service, transaction, make_record):
        document = make_record(total="120.00", vendor="Zeta Corp", date="2024-01-11")

        (match,) = service.find_matches("tenant-a", transaction.id)

        # amount + date = 0.8 of the weight
        assert match.candidate_id == document.id
        assert match.composite_score == pytest.approx(0.8)
        assert match.match_type is MatchType.PARTIAL

    def test_reconciled_records_are_not_offered(self, service, transaction, make_record):
        document = make_record(total="120.00", vendor="Acme Ltd", date="2024-01-11")
        document.mark_reconciled("tx-elsewhere")

        assert service.find_matches("tenant-a", transaction.id) == []

    def test_other_bank_transactions_are_not_offered(self, service, transaction, make_record):
        make_record(
            kind=RecordKind.BANK_TRANSACTION,
            category="card",
            amount="-120.00",
            description="ACME LTD",
            date="2024-01-10",
        )

        assert service.find_matches("tenant-a", transaction.id) == []

    def test_missing_transaction(self, service):
        with pytest.raises(NotFoundError, match="Bank transaction not found"):
            service.find_matches("tenant-a", "missing")

    def test_target_must_be_a_transaction(self, service, make_record):
        document = make_record(total="120.00")

        with pytest.raises(ValidationError, match="not a bank transaction"):
            service.find_matches("tenant-a", document.id)

    def test_decision_is_recorded(self, service, transaction, make_record, db_session):
        make_record(total="120.00", vendor="Acme Ltd", date="2024-01-11")

        service.find_matches("tenant-a", transaction.id)

        (run,) = MatchRecorder(db_session).history("tenant-a", transaction.id)
        assert run.profile == "reconciliation"
        assert run.recommended_action is None
        assert run.auto_apply_allowed is False


class TestUnavailable:
    @pytest.mark.parametrize(
        "error",
        [
            TransientStoreError("Store unavailable during fetch_candidates"),
            ScoringTimeoutError("Candidate scoring timed out", timeout=1.0),
        ],
    )
    def test_failure_means_no_matches(self, service, transaction, mocker, error):
        mocker.patch.object(service.engine, "run", side_effect=error)

        assert service.find_matches("tenant-a", transaction.id) == []
        assert service.decide("tenant-a", transaction.id) is None

    def test_store_down_while_loading_transaction(self, service, mocker):
        mocker.patch.object(
            service.repository.session,
            "scalars",
            side_effect=OperationalError("SELECT", {}, Exception("connection refused")),
        )

        assert service.find_matches("tenant-a", "tx-1") == []

    def test_retry_before_giving_up(self, db_session, repository, transaction, mocker):
        engine = MatchingEngine(CandidateSelector(db_session), MatchRecorder(db_session))
        mocker.patch.object(
            engine, "run", side_effect=TransientStoreError("Store unavailable during record")
        )
        service = ReconciliationMatchingService(
            engine, repository, retry_config=store_retry_config(max_retries=2, base_delay=0.01)
        )

        assert service.find_matches("tenant-a", transaction.id) == []
        assert engine.run.call_count == 3


class TestConfirmMatch:
    def test_marks_both_records(self, service, transaction, make_record):
        document = make_record(total="120.00", vendor="Acme Ltd", date="2024-01-11")

        reconciled = service.confirm_match("tenant-a", transaction.id, document.id)

        assert reconciled.reconciled_with_id == document.id
        assert document.reconciled is True
        assert document.reconciled_with_id == transaction.id

    def test_confirmed_candidate_leaves_the_pool(self, service, transaction, make_record):
        document = make_record(total="120.00", vendor="Acme Ltd", date="2024-01-11")
        service.confirm_match("tenant-a", transaction.id, document.id)
        other = make_record(
            kind=RecordKind.BANK_TRANSACTION,
            category="card",
            amount="-120.00",
            description="ACME LTD",
            date="2024-01-10",
        )

        assert service.find_matches("tenant-a", other.id) == []

    def test_missing_candidate(self, service, transaction):
        with pytest.raises(NotFoundError, match="Match candidate not found"):
            service.confirm_match("tenant-a", transaction.id, "missing")

    def test_candidate_from_other_tenant(self, service, transaction, make_record):
        foreign = make_record(tenant_id="tenant-b", total="120.00")

        with pytest.raises(NotFoundError):
            service.confirm_match("tenant-a", transaction.id, foreign.id)

    def test_candidate_must_be_document_or_ledger_entry(self, service, transaction, make_record):
        other = make_record(kind=RecordKind.BANK_TRANSACTION, amount="120.00")

        with pytest.raises(ValidationError, match="only against documents or ledger entries"):
            service.confirm_match("tenant-a", transaction.id, other.id)

    def test_already_reconciled(self, service, transaction, make_record):
        first = make_record(total="120.00")
        second = make_record(total="120.00")
        service.confirm_match("tenant-a", transaction.id, first.id)

        with pytest.raises(ValidationError, match="already reconciled"):
            service.confirm_match("tenant-a", transaction.id, second.id)

        assert second.reconciled is False
