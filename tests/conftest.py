"""
Pytest configuration and global fixtures.

This module provides shared fixtures used across all tests.
"""

from collections.abc import Callable, Generator
from datetime import datetime
from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from ledgermatch.matching.domain import models  # noqa: F401  register tables
from ledgermatch.matching.domain.enums import RecordKind
from ledgermatch.matching.domain.fields import parse_extracted_data
from ledgermatch.matching.domain.models import Record
from ledgermatch.matching.domain.value_objects import MatchCandidate, MatchTarget
from ledgermatch.matching.infrastructure import RecordRepository
from ledgermatch.storage.database.base import Base
from ledgermatch.utils.logging import clear_correlation_id

TENANT = "tenant-a"
OTHER_TENANT = "tenant-b"

# Creation time of stored records, close to the semantic dates used in tests
NOW = datetime(2024, 1, 12, 9, 30)


@pytest.fixture(autouse=True)
def _reset_correlation_id() -> Generator[None, None, None]:
    yield
    clear_correlation_id()


@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()  # Properly close all database connections


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """
    Create a database session for testing.

    Each test gets a fresh session with automatic rollback.
    """
    SessionLocal = sessionmaker(bind=db_engine)
    session = SessionLocal()

    yield session

    session.rollback()
    session.close()


@pytest.fixture
def repository(db_session: Session) -> RecordRepository:
    return RecordRepository(db_session)


@pytest.fixture
def make_record(repository: RecordRepository) -> Callable[..., Record]:
    """Factory adding a record to the store.

    Keyword arguments other than the record columns become extracted data:

        make_record(total="100.00", vendor="Acme Ltd", date="2024-01-10")
    """

    def _make(
        *,
        tenant_id: str = TENANT,
        kind: RecordKind = RecordKind.DOCUMENT,
        category: str = "invoice",
        currency: str | None = "GBP",
        created_at: datetime = NOW,
        record_id: str | None = None,
        **extracted: Any,
    ) -> Record:
        return repository.add(
            tenant_id,
            kind,
            extracted,
            category=category,
            currency=currency,
            created_at=created_at,
            record_id=record_id,
        )

    return _make


def build_snapshot(
    cls: type,
    record_id: str = "rec-1",
    *,
    tenant_id: str = TENANT,
    kind: RecordKind = RecordKind.DOCUMENT,
    category: str = "invoice",
    currency: str | None = "GBP",
    created_at: datetime = NOW,
    **extracted: Any,
) -> Any:
    """Build a MatchTarget / MatchCandidate without touching the store."""
    return cls(
        id=record_id,
        tenant_id=tenant_id,
        kind=kind,
        category=category,
        created_at=created_at,
        fields=parse_extracted_data(extracted, currency),
        currency=currency,
    )


@pytest.fixture
def make_target() -> Callable[..., MatchTarget]:
    def _make(record_id: str = "target", **kwargs: Any) -> MatchTarget:
        return build_snapshot(MatchTarget, record_id, **kwargs)

    return _make


@pytest.fixture
def make_candidate() -> Callable[..., MatchCandidate]:
    def _make(record_id: str = "candidate", **kwargs: Any) -> MatchCandidate:
        return build_snapshot(MatchCandidate, record_id, **kwargs)

    return _make
