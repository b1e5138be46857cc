"""Tests for the ledgermatch exception hierarchy."""

import pytest
from sqlalchemy.exc import OperationalError

from ledgermatch.exceptions import (
    DatabaseError,
    LedgerMatchError,
    NotFoundError,
    ScoringTimeoutError,
    TransientStoreError,
    ValidationError,
    wrap_exception,
)

pytestmark = pytest.mark.unit


def test_str_includes_context_and_cause():
    error = LedgerMatchError(
        "Store unavailable",
        context={"operation": "record"},
        original_error=OperationalError("INSERT", {}, Exception("locked")),
    )

    assert str(error) == "Store unavailable (operation=record) [caused by: OperationalError]"


def test_validation_error_truncates_value():
    error = ValidationError("Bad value", field="vendor", value="x" * 500, constraint="short")

    assert error.context == {"field": "vendor", "value": "x" * 100, "constraint": "short"}


def test_not_found_context():
    error = NotFoundError(
        "Match target not found", entity_type="record", entity_id="doc-1", tenant_id="acme"
    )

    assert isinstance(error, DatabaseError)
    assert error.context == {"entity_type": "record", "entity_id": "doc-1", "tenant_id": "acme"}


def test_scoring_timeout_keeps_timeout():
    error = ScoringTimeoutError("Candidate scoring timed out", timeout=2.5)

    assert error.context["timeout"] == 2.5


def test_wrap_exception():
    cause = OperationalError("SELECT", {}, Exception("refused"))

    wrapped = wrap_exception(
        cause, "Store unavailable", exception_class=TransientStoreError, tenant_id="acme"
    )

    assert isinstance(wrapped, TransientStoreError)
    assert wrapped.original_error is cause
    assert wrapped.context == {"tenant_id": "acme"}
