"""Tests for the Ledger handle."""

from datetime import date
from decimal import Decimal

import ledgerkit
from ledgerkit.ledger import Ledger, open_ledger


def test_open_in_memory_ledger_with_chart():
    with open_ledger(in_memory=True, seed=True) as ledger:
        assert isinstance(ledger, Ledger)
        assert len(ledger.accounts.list_accounts()) == 13
        assert ledger.journal.list_entries() == []


def test_open_file_ledger(tmp_path):
    path = str(tmp_path / "books.db")

    with open_ledger(path, seed=True) as ledger:
        ledger.posting.record_sale(date(2024, 3, 1), "250")

    with open_ledger(path) as reopened:
        assert reopened.accounts.get_account_by_code("4-101").balance == Decimal("250.00")
        assert reopened.accounts.seed_chart_of_accounts() == []


def test_ledgers_do_not_share_state():
    """Test that two in-memory ledgers keep separate books."""
    first = open_ledger(in_memory=True, seed=True)
    second = open_ledger(in_memory=True, seed=True)
    try:
        first.posting.record_purchase(date(2024, 3, 1), "80")

        assert len(first.journal.list_entries()) == 1
        assert second.journal.list_entries() == []
        assert second.reports.trial_balance().total_debit == Decimal("0.00")
    finally:
        first.close()
        second.close()


def test_services_share_one_database():
    with open_ledger(in_memory=True, seed=True) as ledger:
        entry_id = ledger.posting.record_sale(date(2024, 3, 1), "100", cost_of_goods="60")

        assert ledger.journal.get_entry(entry_id).lines
        assert ledger.reports.income_statement(
            date(2024, 3, 1), date(2024, 3, 31)
        ).gross_profit == Decimal("40.00")
        assert ledger.balances.verify_cached_balances() == []


def test_package_exports_are_lazy():
    assert ledgerkit.Ledger is Ledger
    assert ledgerkit.open_ledger is open_ledger
    assert ledgerkit.__version__
