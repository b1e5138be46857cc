"""Translation of store failures into the ledgermatch hierarchy."""

from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from ...exceptions import TransientStoreError, wrap_exception
from ...utils.logging import get_logger

logger = get_logger(__name__)

TRANSIENT_STORE_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError)


@contextmanager
def transient_store_errors(
    operation: str, session: Session | None = None, **context: str
) -> Generator[None, None, None]:
    """Re-raise connectivity failures as TransientStoreError.

    Only errors that a retry can plausibly fix are wrapped; every other
    store error propagates unmodified. When ``session`` is given it is rolled
    back so the caller can retry on the same session.
    """
    try:
        yield
    except TRANSIENT_STORE_ERRORS as e:
        logger.error(
            "store_unavailable",
            operation=operation,
            error=str(e),
            error_type=type(e).__name__,
            **context,
        )
        if session is not None:
            session.rollback()
        raise wrap_exception(
            e,
            f"Store unavailable during {operation}",
            exception_class=TransientStoreError,
            operation=operation,
            **context,
        ) from e
