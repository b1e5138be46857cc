"""Store-facing components: candidate selection, recording and record access."""

from .recorder import MatchRecorder
from .repository import RecordRepository
from .selector import DEFAULT_MAX_CANDIDATES, CandidateSelector
from .store_errors import TRANSIENT_STORE_ERRORS, transient_store_errors

__all__ = [
    "CandidateSelector",
    "DEFAULT_MAX_CANDIDATES",
    "MatchRecorder",
    "RecordRepository",
    "TRANSIENT_STORE_ERRORS",
    "transient_store_errors",
]
