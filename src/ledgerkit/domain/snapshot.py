"""Full-state snapshot export and load.

A snapshot is a JSON-ready dict holding every account, journal entry,
counterparty, invoice, payment and tax rate plus the tax settings. Loading
replaces the whole ledger; cached balances are then recomputed from the
journal.
"""

import json
import logging
from dataclasses import asdict, fields
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from ledgerkit.database.base import Database
from ledgerkit.domain.balance import BalanceService
from ledgerkit.domain.entities import (
    Account,
    AccountType,
    ConsistencyWarning,
    Customer,
    Invoice,
    InvoiceStatus,
    InvoiceType,
    JournalEntry,
    JournalLine,
    LedgerState,
    Payment,
    PaymentMethod,
    ReferenceType,
    TaxRate,
    TaxSettings,
    TOLERANCE,
    Vendor,
    ZERO,
)
from ledgerkit.domain.errors import ValidationError

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

SECTIONS = (
    "accounts",
    "journal_entries",
    "customers",
    "vendors",
    "invoices",
    "payments",
    "tax_rates",
)


def _encode(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _encode(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode(item) for item in value]
    return value


def _decimal(value: Any) -> Decimal:
    return Decimal(str(value)).quantize(TOLERANCE)


def _optional(convert, value: Any):
    return None if value is None else convert(value)


def _decode(cls, data: dict, converters: dict):
    """Build a dataclass from a snapshot record, converting typed fields."""
    kwargs = {}
    for f in fields(cls):
        if f.name not in data:
            continue
        value = data[f.name]
        convert = converters.get(f.name)
        kwargs[f.name] = convert(value) if convert and value is not None else value
    return cls(**kwargs)


_COUNTERPARTY = {
    "created_at": datetime.fromisoformat,
    "credit_limit": _decimal,
    "balance": _decimal,
}

_CONVERTERS = {
    Account: {
        "account_type": AccountType,
        "balance": _decimal,
        "created_at": datetime.fromisoformat,
    },
    JournalLine: {"debit": _decimal, "credit": _decimal},
    Customer: _COUNTERPARTY,
    Vendor: _COUNTERPARTY,
    Invoice: {
        "invoice_type": InvoiceType,
        "status": InvoiceStatus,
        "issue_date": date.fromisoformat,
        "due_date": date.fromisoformat,
        "subtotal": _decimal,
        "tax_amount": _decimal,
        "total_amount": _decimal,
        "paid_amount": _decimal,
        "created_at": datetime.fromisoformat,
        "updated_at": datetime.fromisoformat,
    },
    Payment: {
        "payment_method": PaymentMethod,
        "amount": _decimal,
        "payment_date": date.fromisoformat,
        "created_at": datetime.fromisoformat,
    },
    TaxRate: {
        "rate": Decimal,
        "created_at": datetime.fromisoformat,
    },
}


def _decode_entry(data: dict) -> JournalEntry:
    lines = tuple(_decode(JournalLine, line, _CONVERTERS[JournalLine]) for line in data["lines"])
    return _decode(
        JournalEntry,
        {**data, "lines": lines},
        {
            "date": date.fromisoformat,
            "reference_type": ReferenceType,
            "created_at": datetime.fromisoformat,
        },
    )


def state_to_snapshot(state: LedgerState) -> dict:
    """Encode a ledger state as a JSON-ready dict."""
    snapshot = {"version": SNAPSHOT_VERSION}
    for section in SECTIONS:
        snapshot[section] = [_encode(asdict(item)) for item in getattr(state, section)]
    snapshot["tax_settings"] = _encode(asdict(state.tax_settings))
    return snapshot


def snapshot_to_state(snapshot: dict) -> LedgerState:
    """Decode a snapshot dict.

    Raises:
        ValidationError: If the version is unsupported or a record is malformed
    """
    version = snapshot.get("version")
    if version != SNAPSHOT_VERSION:
        raise ValidationError(f"Unsupported snapshot version: {version!r}")

    decoders = {
        "accounts": lambda d: _decode(Account, d, _CONVERTERS[Account]),
        "journal_entries": _decode_entry,
        "customers": lambda d: _decode(Customer, d, _CONVERTERS[Customer]),
        "vendors": lambda d: _decode(Vendor, d, _CONVERTERS[Vendor]),
        "invoices": lambda d: _decode(Invoice, d, _CONVERTERS[Invoice]),
        "payments": lambda d: _decode(Payment, d, _CONVERTERS[Payment]),
        "tax_rates": lambda d: _decode(TaxRate, d, _CONVERTERS[TaxRate]),
    }
    try:
        sections = {
            section: tuple(decoders[section](record) for record in snapshot.get(section, []))
            for section in SECTIONS
        }
        tax_settings = _decode(TaxSettings, snapshot.get("tax_settings") or {}, {})
    except (KeyError, TypeError, ValueError, InvalidOperation) as e:
        raise ValidationError(f"Malformed snapshot: {e}")
    return LedgerState(tax_settings=tax_settings, **sections)


def _check_state(state: LedgerState) -> None:
    account_ids = {account.id for account in state.accounts}
    codes = [account.code for account in state.accounts]
    if len(set(codes)) != len(codes):
        raise ValidationError("Snapshot has duplicate account codes")
    for entry in state.journal_entries:
        for line in entry.lines:
            if line.account_id not in account_ids:
                raise ValidationError(
                    f"Journal entry {entry.id} references unknown account {line.account_id}"
                )
            if line.debit < ZERO or line.credit < ZERO:
                raise ValidationError(f"Journal entry {entry.id} has a negative amount")
        if abs(entry.debit_total - entry.credit_total) >= TOLERANCE:
            raise ValidationError(
                f"Journal entry {entry.id} is unbalanced: debits {entry.debit_total} "
                f"!= credits {entry.credit_total}"
            )


class SnapshotService:
    """Service for exporting and loading the full ledger state."""

    def __init__(self, db: Database):
        """Initialize snapshot service.

        Args:
            db: Database instance
        """
        self.db = db
        self.balances = BalanceService(db)

    def export_snapshot(self) -> dict:
        """Return the whole ledger as a JSON-ready dict."""
        state = self.db.dump_state()
        return state_to_snapshot(state)

    def load_snapshot(self, snapshot: dict) -> list[ConsistencyWarning]:
        """Replace the whole ledger with a snapshot.

        Cached balances in the snapshot are checked against the journal
        and then recomputed from it.

        Returns:
            Warnings for accounts whose stored balance disagreed with the journal

        Raises:
            ValidationError: If the snapshot is malformed or holds an
                unbalanced entry; the current ledger is left untouched
        """
        state = snapshot_to_state(snapshot)
        _check_state(state)
        with self.db.transaction():
            self.db.replace_state(state)
            warnings = self.balances.verify_cached_balances()
            self.balances.rebuild_cached_balances()
        logger.info(
            "Loaded snapshot: %d accounts, %d journal entries, %d warnings",
            len(state.accounts),
            len(state.journal_entries),
            len(warnings),
        )
        return warnings

    def dump_json(self, path: Optional[Path] = None, indent: int = 2) -> str:
        """Export the ledger as JSON, writing it to ``path`` when given."""
        text = json.dumps(self.export_snapshot(), indent=indent, ensure_ascii=False)
        if path is not None:
            Path(path).write_text(text, encoding="utf-8")
        return text

    def load_json(self, source: str | Path) -> list[ConsistencyWarning]:
        """Load a JSON snapshot from a file path or a JSON string."""
        if isinstance(source, Path) or not source.lstrip().startswith("{"):
            text = Path(source).read_text(encoding="utf-8")
        else:
            text = source
        try:
            snapshot = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid snapshot JSON: {e}")
        return self.load_snapshot(snapshot)
