"""Database base configuration and session management."""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, MetaData, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from ...exceptions import ConfigurationError
from ...utils.datetime import utc_now

# Naming convention for constraints (helps with migrations)
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)


class Base(DeclarativeBase):
    """Base class for all database models."""

    metadata = metadata

    def to_dict(self) -> dict[str, Any]:
        """Convert model to dictionary."""
        return {c.name: getattr(self, c.name) for c in self.__table__.columns}


class IntPKMixin:
    """Autoincrement integer primary key."""

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)


class TimestampMixin:
    """Creation and update timestamps (naive UTC)."""

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )


def create_session_factory(database_url: str, *, echo: bool = False) -> sessionmaker[Session]:
    """Create an engine for ``database_url``, ensure tables exist, return a session factory.

    Components receive the factory (or a session built from it) explicitly;
    nothing below this call depends on module state.
    """
    from ...matching.domain import models  # noqa: F401  register tables on the metadata

    engine: Engine = create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,  # Verify connections before using
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Process-wide factory used by the CLI entry point only
SessionLocal: sessionmaker[Session] | None = None


def init_db(database_url: str) -> sessionmaker[Session]:
    """Initialize the process-wide session factory (CLI entry point)."""
    global SessionLocal
    SessionLocal = create_session_factory(database_url)
    return SessionLocal


def get_session() -> Session:
    """Return a new session from the process-wide factory."""
    if SessionLocal is None:
        raise ConfigurationError(
            "Database not initialized. Call init_db() first.",
            setting="database_url",
            expected="init_db() before opening sessions",
        )
    return SessionLocal()
