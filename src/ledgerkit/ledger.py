"""Ledger handle bundling one database with every service."""

from typing import Optional

from ledgerkit.database.base import Database
from ledgerkit.database.factories import create_memory_database, create_sqlite_database
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.balance import BalanceService
from ledgerkit.domain.counterparty import CounterpartyService
from ledgerkit.domain.invoice import InvoiceService
from ledgerkit.domain.journal import JournalService
from ledgerkit.domain.posting import PostingService
from ledgerkit.domain.reports import ReportService
from ledgerkit.domain.snapshot import SnapshotService
from ledgerkit.domain.tax import TaxService


class Ledger:
    """One entity's books.

    Every service shares the same database, so independent ledgers never
    see each other's state.
    """

    def __init__(self, db: Database):
        self.db = db
        self.accounts = AccountService(db)
        self.journal = JournalService(db)
        self.balances = BalanceService(db)
        self.reports = ReportService(db)
        self.counterparties = CounterpartyService(db)
        self.invoices = InvoiceService(db)
        self.tax = TaxService(db)
        self.posting = PostingService(db)
        self.snapshots = SnapshotService(db)

    def close(self) -> None:
        self.db.disconnect()

    def __enter__(self) -> "Ledger":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def open_ledger(
    database_path: Optional[str] = None, in_memory: bool = False, seed: bool = False
) -> Ledger:
    """Connect to a ledger database, creating the schema if needed.

    Args:
        database_path: SQLite file (defaults to LEDGERKIT_DB_PATH or ~/.ledgerkit/ledger.db)
        in_memory: Use a throwaway in-memory database instead
        seed: Create the default chart of accounts

    Returns:
        Ledger handle
    """
    db = create_memory_database() if in_memory else create_sqlite_database(database_path)
    db.connect()
    db.initialize_schema()
    ledger = Ledger(db)
    if seed:
        ledger.accounts.seed_chart_of_accounts()
    return ledger
