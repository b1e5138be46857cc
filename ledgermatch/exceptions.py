"""Exception hierarchy for ledgermatch.

All exceptions carry a human-readable message plus a ``context`` dict for
structured logging, and optionally the original error they wrap.

Usage:
    from ledgermatch.exceptions import NotFoundError, ValidationError

    try:
        decision = engine.run(tenant_id, document_id, DUPLICATE_DETECTION)
    except NotFoundError as e:
        logger.error("match_target_missing", error=str(e), context=e.context)
"""

from __future__ import annotations

from typing import Any


class LedgerMatchError(Exception):
    """Base exception for all ledgermatch errors.

    Attributes:
        message: Human-readable error message
        context: Additional context for debugging (dict)
        original_error: Original exception if wrapped
    """

    def __init__(
        self,
        message: str,
        *,
        context: dict[str, Any] | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.original_error = original_error

    def __str__(self) -> str:
        """Format exception with context for logging."""
        base = self.message
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base = f"{base} ({ctx_str})"
        if self.original_error:
            base = f"{base} [caused by: {type(self.original_error).__name__}]"
        return base

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, context={self.context!r})"


# =============================================================================
# Validation & Configuration Errors
# =============================================================================


class ValidationError(LedgerMatchError):
    """Raised when input or configuration validation fails.

    Used for malformed weight tables (weights not summing to 1.0, duplicate
    fields), invalid profiles and invalid confirmation requests.
    """

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        constraint: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if field:
            context["field"] = field
        if value is not None:
            context["value"] = str(value)[:100]  # Truncate for safety
        if constraint:
            context["constraint"] = constraint
        kwargs["context"] = context
        super().__init__(message, **kwargs)


class ConfigurationError(LedgerMatchError):
    """Raised when application configuration is invalid or missing."""

    def __init__(
        self,
        message: str,
        *,
        setting: str | None = None,
        expected: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if setting:
            context["setting"] = setting
        if expected:
            context["expected"] = expected
        kwargs["context"] = context
        super().__init__(message, **kwargs)


# =============================================================================
# Store Errors
# =============================================================================


class DatabaseError(LedgerMatchError):
    """Base class for backing-store errors."""


class NotFoundError(DatabaseError):
    """Raised when a record cannot be located within the tenant scope.

    A missing match target aborts the match run.
    """

    def __init__(
        self,
        message: str,
        *,
        entity_type: str | None = None,
        entity_id: int | str | None = None,
        tenant_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if entity_type:
            context["entity_type"] = entity_type
        if entity_id:
            context["entity_id"] = str(entity_id)
        if tenant_id:
            context["tenant_id"] = tenant_id
        kwargs["context"] = context
        super().__init__(message, **kwargs)


class TransientStoreError(DatabaseError):
    """Raised when the store is unavailable while fetching or writing.

    Retryable by the caller with backoff; the engine never retries.
    """


# =============================================================================
# Matching Errors
# =============================================================================


class MatchingError(LedgerMatchError):
    """Base class for errors raised while scoring or classifying."""


class ComparisonError(MatchingError):
    """Raised by a field comparator when a value cannot be compared.

    The scorer never lets this escape: the field scores 0 and is reported
    as a difference.
    """

    def __init__(self, message: str, *, field: str | None = None, **kwargs: Any) -> None:
        context = kwargs.get("context", {})
        if field:
            context["field"] = field
        kwargs["context"] = context
        super().__init__(message, **kwargs)


class ScoringTimeoutError(MatchingError):
    """Raised when candidate scoring does not finish in time.

    Nothing is recorded for the run.
    """

    def __init__(self, message: str, *, timeout: float | None = None, **kwargs: Any) -> None:
        context = kwargs.get("context", {})
        if timeout is not None:
            context["timeout"] = timeout
        kwargs["context"] = context
        super().__init__(message, **kwargs)


# =============================================================================
# Utility Functions
# =============================================================================


def wrap_exception(
    error: Exception,
    message: str,
    *,
    exception_class: type[LedgerMatchError] = LedgerMatchError,
    **context: Any,
) -> LedgerMatchError:
    """Wrap an external exception in the ledgermatch hierarchy.

    Example:
        try:
            session.execute(query)
        except OperationalError as e:
            raise wrap_exception(
                e,
                "Candidate fetch failed",
                exception_class=TransientStoreError,
                tenant_id=tenant_id,
            ) from e
    """
    return exception_class(
        message,
        context=context,
        original_error=error,
    )


__all__ = [
    "LedgerMatchError",
    "ValidationError",
    "ConfigurationError",
    "DatabaseError",
    "NotFoundError",
    "TransientStoreError",
    "MatchingError",
    "ComparisonError",
    "ScoringTimeoutError",
    "wrap_exception",
]
