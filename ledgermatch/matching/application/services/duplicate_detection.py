"""Duplicate detection for newly ingested documents."""

from ....exceptions import ScoringTimeoutError, TransientStoreError
from ....utils.logging import get_logger
from ....utils.retry import RetryConfig, retry_sync
from ...classifier import DecisionClassifier
from ...domain.value_objects import MatchDecision
from ...engine import MatchingEngine
from ...metrics import record_match_run, record_recommended_action
from ...profiles import DUPLICATE_DETECTION, MatchProfile

logger = get_logger(__name__)


class DuplicateDetectionService:
    """Decide what to do with a document that may already be in the store.

    The decision's ``recommended_action`` drives the ingestion pipeline:
    ``delete_duplicate`` may be applied automatically (``auto_apply_allowed``),
    ``merge`` and ``keep_both`` are suggestions, ``review`` queues the document
    for a person.

    Failures are fail-safe: if the store is unavailable or scoring times out,
    the service answers ``keep_both`` with auto-apply disabled, so nothing is
    ever deleted on error. A missing document or an invalid configuration is
    still raised, since neither is fixed by waiting.

    Args:
        engine: Matching engine bound to a session
        profile: Duplicate-detection profile (weights and action bands)
        retry_config: Optional caller-side retry of transient store failures,
            applied before falling back to the fail-safe decision
    """

    def __init__(
        self,
        engine: MatchingEngine,
        profile: MatchProfile = DUPLICATE_DETECTION,
        retry_config: RetryConfig | None = None,
    ) -> None:
        self.engine = engine
        self.profile = profile
        self.retry_config = retry_config

    def detect(
        self,
        tenant_id: str,
        document_id: str,
        run_key: str | None = None,
        max_candidates: int | None = None,
    ) -> MatchDecision:
        """Run duplicate detection for one document and record the decision.

        Raises:
            NotFoundError: If the document does not exist for ``tenant_id``
            ValidationError: If the profile or candidate cap is invalid
        """

        def run() -> MatchDecision:
            return self.engine.run(
                tenant_id,
                document_id,
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
                "duplicate_detection_fail_safe",
                tenant_id=tenant_id,
                document_id=document_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            decision = DecisionClassifier(self.profile).fail_safe(
                document_id, tenant_id, reason=type(e).__name__
            )
            record_match_run(self.profile.name, "fail_safe")
            if decision.recommended_action is not None:
                record_recommended_action(decision.recommended_action.value)
            return decision
