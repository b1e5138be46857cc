"""Database session management with the context manager pattern.

Usage:
    factory = create_session_factory(settings.database_url)

    with db_session(factory) as db:
        engine = build_engine(db, settings)
        decision = engine.run(tenant_id, document_id, DUPLICATE_DETECTION)

    # Process-wide factory (CLI only, after init_db())
    with db_session() as db:
        ...
"""

from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy.orm import Session, sessionmaker

from ledgermatch.utils.logging import get_logger

logger = get_logger(__name__)


@contextmanager
def db_session(factory: sessionmaker[Session] | None = None) -> Generator[Session, None, None]:
    """Context manager for database sessions with automatic cleanup.

    Args:
        factory: Session factory to use. Falls back to the process-wide
            factory configured by ``init_db()``.

    Yields:
        Session: SQLAlchemy session

    Raises:
        ConfigurationError: If no factory is given and the database is not initialized
        Exception: Any exception from within the context (after rollback)

    Note:
        - Session is automatically rolled back on exception
        - Session is automatically closed on exit
        - You must call db.commit() to persist changes
    """
    if factory is None:
        from ledgermatch.storage.database.base import get_session

        db = get_session()
    else:
        db = factory()

    try:
        logger.debug("db_session_created", session_id=id(db))
        yield db
    except Exception as e:
        logger.error(
            "db_session_error_rollback",
            error=str(e),
            error_type=type(e).__name__,
            session_id=id(db),
        )
        db.rollback()
        raise
    finally:
        logger.debug("db_session_closed", session_id=id(db))
        db.close()
