"""Prometheus metrics instrumentation for the matching engine.

Provides metrics for match-run volume, scoring cost, score distribution and
the actions recommended to callers.
"""

from typing import Any

from prometheus_client import Counter, Histogram, start_http_server

from ..utils.logging import get_logger

logger = get_logger(__name__)

# ============================================================================
# Metric Definitions
# ============================================================================

# Counter: Match runs performed
match_runs_total = Counter(
    "ledgermatch_match_runs_total",
    "Total number of match runs",
    ["profile", "status"],  # labels: duplicate_detection/reconciliation, success/failure/fail_safe
)

# Histogram: Candidates scored per run
candidates_scored = Histogram(
    "ledgermatch_candidates_scored",
    "Number of candidates scored per match run",
    buckets=(0, 1, 5, 10, 20, 50, 100, 250, 1000),
)

# Histogram: Top composite score per run
match_top_score = Histogram(
    "ledgermatch_match_top_score",
    "Distribution of the best composite score per match run",
    ["profile"],
    buckets=(0.0, 0.4, 0.5, 0.6, 0.7, 0.8, 0.85, 0.9, 0.95, 1.0),
)

# Counter: Recommended actions
recommended_actions_total = Counter(
    "ledgermatch_recommended_actions_total",
    "Total number of recommended duplicate-detection actions",
    ["action"],  # labels: delete_duplicate/merge/keep_both/review
)

# Histogram: Matching duration
matching_duration_seconds = Histogram(
    "ledgermatch_matching_duration_seconds",
    "Time taken to select, score and classify candidates",
    ["profile"],
    buckets=(0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0),
)

# Counter: Comparator failures folded into differences
comparator_failures_total = Counter(
    "ledgermatch_comparator_failures_total",
    "Field comparisons that failed and scored 0",
    ["field"],
)


# ============================================================================
# Metrics Server
# ============================================================================


def start_metrics_server(port: int = 8000) -> bool:
    """Start Prometheus metrics HTTP server.

    Returns:
        True if the server started, False if the port was unavailable
    """
    try:
        start_http_server(port)
    except OSError as e:
        logger.warning("metrics_server_unavailable", port=port, error=str(e))
        return False
    logger.info("metrics_server_started", port=port)
    return True


# ============================================================================
# Convenience Functions
# ============================================================================


def record_match_run(profile: str, status: str, candidate_count: int = 0) -> None:
    """Record a finished match run.

    Args:
        profile: Profile name
        status: success, failure or fail_safe
        candidate_count: Number of candidates scored
    """
    match_runs_total.labels(profile=profile, status=status).inc()
    if status == "success":
        candidates_scored.observe(candidate_count)


def record_top_score(profile: str, score: float) -> None:
    match_top_score.labels(profile=profile).observe(score)


def record_recommended_action(action: str) -> None:
    recommended_actions_total.labels(action=action).inc()


def record_comparator_failure(field: str) -> None:
    comparator_failures_total.labels(field=field).inc()


# ============================================================================
# Context Managers for Duration Tracking
# ============================================================================


class track_matching_duration:
    """Context manager to track matching duration per profile."""

    def __init__(self, profile: str):
        self.profile = profile
        self.timer: Any = None

    def __enter__(self) -> "track_matching_duration":
        self.timer = matching_duration_seconds.labels(profile=self.profile).time()
        self.timer.__enter__()
        return self

    def __exit__(self, *args: Any) -> None:
        if self.timer:
            self.timer.__exit__(*args)
