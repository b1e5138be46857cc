"""Reconciliation matching for unmatched bank transactions."""

from ....exceptions import (
    NotFoundError,
    ScoringTimeoutError,
    TransientStoreError,
    ValidationError,
)
from ....utils.logging import get_logger
from ....utils.retry import RetryConfig, retry_sync
from ...domain.enums import RecordKind
from ...domain.models import Record
from ...domain.value_objects import MatchDecision, MatchResult
from ...engine import MatchingEngine
from ...infrastructure.repository import RecordRepository
from ...metrics import record_match_run
from ...profiles import RECONCILIATION, MatchProfile

logger = get_logger(__name__)

RECONCILABLE_KINDS = (RecordKind.DOCUMENT, RecordKind.LEDGER_ENTRY)


class ReconciliationMatchingService:
    """Suggest and confirm matches between bank transactions and the books.

    Suggestions are ranked across the document and ledger-entry pools and
    are never applied automatically: a reconciliation only happens through
    ``confirm_match``, after a person has picked a candidate.

    A transient failure while matching shows up as "no matches found"
    (an empty list) rather than an error.

    Args:
        engine: Matching engine bound to a session
        repository: Record repository bound to the same session
        profile: Reconciliation profile (weights, pools, match-type bands)
        retry_config: Optional caller-side retry of transient store failures
    """

    def __init__(
        self,
        engine: MatchingEngine,
        repository: RecordRepository,
        profile: MatchProfile = RECONCILIATION,
        retry_config: RetryConfig | None = None,
    ) -> None:
        self.engine = engine
        self.repository = repository
        self.profile = profile
        self.retry_config = retry_config

    def find_matches(
        self,
        tenant_id: str,
        transaction_id: str,
        max_candidates: int | None = None,
        run_key: str | None = None,
    ) -> list[MatchResult]:
        """Ranked candidate matches for a transaction, best first.

        Raises:
            NotFoundError: If the transaction does not exist for ``tenant_id``
            ValidationError: If the transaction is not a bank transaction
        """
        decision = self.decide(tenant_id, transaction_id, max_candidates, run_key)
        return list(decision.matches) if decision is not None else []

    def decide(
        self,
        tenant_id: str,
        transaction_id: str,
        max_candidates: int | None = None,
        run_key: str | None = None,
    ) -> MatchDecision | None:
        """Full decision for a transaction, or None after a transient failure."""

        def run() -> MatchDecision:
            self._require_transaction(tenant_id, transaction_id)
            return self.engine.run(
                tenant_id,
                transaction_id,
                self.profile,
                max_candidates=max_candidates,
                run_key=run_key,
            )

        try:
            if self.retry_config is not None:
                return retry_sync(run, config=self.retry_config)
            return run()
        except (TransientStoreError, ScoringTimeoutError) as e:
            logger.warning(
                "reconciliation_matching_unavailable",
                tenant_id=tenant_id,
                transaction_id=transaction_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            record_match_run(self.profile.name, "fail_safe")
            return None

    def confirm_match(self, tenant_id: str, transaction_id: str, candidate_id: str) -> Record:
        """Reconcile a transaction with the candidate a person picked.

        Both records are marked reconciled with each other in one transaction.

        Returns:
            The reconciled transaction

        Raises:
            NotFoundError: If either record does not exist for ``tenant_id``
            ValidationError: If the records cannot be reconciled together
            TransientStoreError: If the store is unavailable
        """
        transaction = self._require_transaction(tenant_id, transaction_id)
        candidate = self.repository.get(tenant_id, candidate_id)
        if candidate is None:
            raise NotFoundError(
                "Match candidate not found",
                entity_type="record",
                entity_id=candidate_id,
                tenant_id=tenant_id,
            )

        if candidate.kind not in RECONCILABLE_KINDS:
            raise ValidationError(
                "Transactions reconcile only against documents or ledger entries",
                field="candidate_id",
                value=candidate_id,
                constraint=", ".join(k.value for k in RECONCILABLE_KINDS),
            )
        for record in (transaction, candidate):
            if record.reconciled:
                raise ValidationError(
                    "Record is already reconciled",
                    field="id",
                    value=record.id,
                    constraint="unreconciled",
                )

        self.repository.reconcile_pair(transaction, candidate)
        logger.info(
            "transaction_reconciled",
            tenant_id=tenant_id,
            transaction_id=transaction_id,
            candidate_id=candidate_id,
            candidate_kind=candidate.kind.value,
        )
        return transaction

    def _require_transaction(self, tenant_id: str, transaction_id: str) -> Record:
        transaction = self.repository.get(tenant_id, transaction_id)
        if transaction is None:
            raise NotFoundError(
                "Bank transaction not found",
                entity_type="bank_transaction",
                entity_id=transaction_id,
                tenant_id=tenant_id,
            )
        if transaction.kind is not RecordKind.BANK_TRANSACTION:
            raise ValidationError(
                "Record is not a bank transaction",
                field="transaction_id",
                value=transaction_id,
                constraint=RecordKind.BANK_TRANSACTION.value,
            )
        return transaction
