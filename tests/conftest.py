"""Shared pytest fixtures for ledgerkit tests."""

import os
import tempfile
from datetime import date
from decimal import Decimal

import pytest

from ledgerkit.database.factories import create_memory_database, create_sqlite_database
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.balance import BalanceService
from ledgerkit.domain.counterparty import CounterpartyService
from ledgerkit.domain.entities import JournalEntryDraft, JournalLineDraft
from ledgerkit.domain.invoice import InvoiceService
from ledgerkit.domain.journal import JournalService
from ledgerkit.domain.posting import PostingService
from ledgerkit.domain.reports import ReportService
from ledgerkit.domain.snapshot import SnapshotService
from ledgerkit.domain.tax import TaxService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def memory_db():
    """Create an in-memory database."""
    db = create_memory_database()
    db.connect()
    db.initialize_schema()
    yield db
    db.disconnect()


@pytest.fixture
def account_service(temp_db):
    return AccountService(temp_db)


@pytest.fixture
def journal_service(temp_db):
    return JournalService(temp_db)


@pytest.fixture
def balance_service(temp_db):
    return BalanceService(temp_db)


@pytest.fixture
def report_service(temp_db):
    return ReportService(temp_db)


@pytest.fixture
def counterparty_service(temp_db):
    return CounterpartyService(temp_db)


@pytest.fixture
def invoice_service(temp_db):
    return InvoiceService(temp_db)


@pytest.fixture
def tax_service(temp_db):
    return TaxService(temp_db)


@pytest.fixture
def posting_service(temp_db):
    return PostingService(temp_db)


@pytest.fixture
def snapshot_service(temp_db):
    return SnapshotService(temp_db)


@pytest.fixture
def seeded_accounts(account_service):
    """Seed the default chart of accounts and return accounts keyed by code."""
    account_service.seed_chart_of_accounts()
    return {acc.code: acc for acc in account_service.list_accounts()}


@pytest.fixture
def customer(counterparty_service):
    """Create a sample customer."""
    customer_id = counterparty_service.create_customer("Acme Corp", email="ap@acme.test")
    return counterparty_service.get_customer(customer_id)


@pytest.fixture
def vendor(counterparty_service):
    """Create a sample vendor."""
    vendor_id = counterparty_service.create_vendor("Supply Co", payment_terms=15)
    return counterparty_service.get_vendor(vendor_id)


@pytest.fixture
def vat_rate(tax_service, seeded_accounts):
    """Create a 15% tax rate credited to tax payable."""
    tax_rate_id = tax_service.add_tax_rate("VAT", Decimal("0.15"), seeded_accounts["2-201"].id)
    return tax_service.get_tax_rate(tax_rate_id)


@pytest.fixture
def post(journal_service):
    """Post a simple two-line entry: post(date, debit_id, credit_id, amount)."""

    def _post(on: date, debit_id: int, credit_id: int, amount, description="Test entry"):
        return journal_service.post_entry(
            JournalEntryDraft(
                date=on,
                description=description,
                lines=(
                    JournalLineDraft(account_id=debit_id, debit=Decimal(str(amount))),
                    JournalLineDraft(account_id=credit_id, credit=Decimal(str(amount))),
                ),
            )
        )

    return _post


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def reopen_db(temp_db):
    """Open a second handle on the temp database, to read what the CLI committed."""
    handles = []

    def _reopen():
        fresh = create_sqlite_database(database_path=temp_db.database_path)
        fresh.connect()
        handles.append(fresh)
        return fresh

    yield _reopen
    for handle in handles:
        handle.disconnect()
