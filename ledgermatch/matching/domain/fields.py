"""Typed extracted fields.

Extracted document data arrives as loosely typed JSON. It is parsed once,
at the store boundary, into a closed set of variants so that comparators
can dispatch on the variant instead of probing dictionaries:

    AmountField | DateField | VendorField | DescriptionField | UnparsedField

Anything that cannot be interpreted (a total of ``"n/a"``, a date of
``"yesterday"``, an unexpected key) becomes an ``UnparsedField`` that keeps
the raw value for the audit trail.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar

from ...utils.datetime import to_naive_utc

AMOUNT_KEYS = ("total", "amount")


@dataclass(frozen=True)
class AmountField:
    """Monetary amount with optional ISO 4217 currency."""

    kind: ClassVar[str] = "amount"

    value: Decimal
    currency: str | None = None

    def display(self) -> str:
        return f"{self.value} {self.currency}" if self.currency else str(self.value)


@dataclass(frozen=True)
class DateField:
    """Semantic date of the record (invoice date, value date), naive UTC."""

    kind: ClassVar[str] = "date"

    value: datetime

    def display(self) -> str:
        return self.value.isoformat()


@dataclass(frozen=True)
class VendorField:
    """Counterparty / vendor name."""

    kind: ClassVar[str] = "vendor"

    value: str

    def display(self) -> str:
        return self.value


@dataclass(frozen=True)
class DescriptionField:
    """Free-text description or memo."""

    kind: ClassVar[str] = "description"

    value: str

    def display(self) -> str:
        return self.value


@dataclass(frozen=True)
class UnparsedField:
    """A value that could not be interpreted as any known field kind."""

    kind: ClassVar[str] = "unparsed"

    name: str
    raw: Any
    reason: str

    def display(self) -> str:
        return repr(self.raw)


ExtractedField = AmountField | DateField | VendorField | DescriptionField | UnparsedField


def parse_amount(raw: Any, currency: str | None = None) -> AmountField | UnparsedField:
    """Parse a numeric amount; booleans and non-finite values are rejected."""
    if isinstance(raw, bool):
        return UnparsedField(name="amount", raw=raw, reason="boolean is not an amount")
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return UnparsedField(name="amount", raw=raw, reason="not a number")
    if not value.is_finite():
        return UnparsedField(name="amount", raw=raw, reason="not a finite number")
    return AmountField(value=value, currency=currency.upper() if currency else None)


def parse_date(raw: Any) -> DateField | UnparsedField:
    """Parse an ISO-8601 date or datetime (or an existing date object)."""
    if isinstance(raw, date):
        return DateField(value=to_naive_utc(raw))
    if isinstance(raw, str):
        text = raw.strip()
        try:
            return DateField(value=to_naive_utc(datetime.fromisoformat(text)))
        except ValueError:
            return UnparsedField(name="date", raw=raw, reason="not an ISO-8601 date")
    return UnparsedField(name="date", raw=raw, reason="unsupported date type")


def _parse_text(name: str, raw: Any) -> VendorField | DescriptionField | UnparsedField:
    if not isinstance(raw, str):
        return UnparsedField(name=name, raw=raw, reason="not a string")
    if name == "vendor":
        return VendorField(value=raw)
    return DescriptionField(value=raw)


def parse_extracted_data(
    data: Mapping[str, Any] | None, currency: str | None = None
) -> dict[str, ExtractedField]:
    """Parse raw extracted data into typed fields keyed by field name.

    ``total`` and ``amount`` both map to the ``amount`` field (``total``
    wins when both are present). ``None`` values are treated as absent.

    Example:
        >>> fields = parse_extracted_data({"total": "100.00", "vendor": "Acme Ltd"}, "GBP")
        >>> fields["amount"]
        AmountField(value=Decimal('100.00'), currency='GBP')
    """
    fields: dict[str, ExtractedField] = {}
    if not data:
        return fields

    for key in AMOUNT_KEYS:
        if data.get(key) is not None:
            fields["amount"] = parse_amount(data[key], currency)
            break

    for key, raw in data.items():
        if raw is None or key in AMOUNT_KEYS:
            continue
        if key == "date":
            fields["date"] = parse_date(raw)
        elif key in ("vendor", "description"):
            fields[key] = _parse_text(key, raw)
        else:
            fields[key] = UnparsedField(name=key, raw=raw, reason="unknown field")

    return fields
