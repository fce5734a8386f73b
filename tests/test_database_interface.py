"""Tests for the Database interface and its SQLAlchemy implementation."""

import pytest
from datetime import date, datetime
from decimal import Decimal

from ledgerkit.database.factories import create_memory_database, create_sqlite_database
from ledgerkit.domain import entities
from ledgerkit.domain.entities import (
    AccountType,
    InvoiceStatus,
    InvoiceType,
    JournalLineDraft,
    LedgerState,
    PaymentMethod,
    ReferenceType,
)


def _two_accounts(db):
    cash = db.create_account("1-101", "Cash", AccountType.ASSET, is_cash=True)
    revenue = db.create_account("4-101", "Sales Revenue", AccountType.REVENUE, is_current=False)
    return cash, revenue


class TestDatabaseInterface:
    """Tests to verify Database interface returns domain models."""

    def test_get_account_returns_domain_model(self, temp_db):
        """Test that get_account returns a domain Account entity."""
        account_id = temp_db.create_account("1-101", "Cash", AccountType.ASSET, is_cash=True)

        account = temp_db.get_account(account_id)

        assert isinstance(account, entities.Account)
        assert account.id == account_id
        assert account.account_type == AccountType.ASSET
        assert account.balance == Decimal("0.00")
        assert account.is_active
        assert isinstance(account.created_at, datetime)
        assert temp_db.get_account_by_code("1-101") == account

    def test_missing_rows_return_none(self, temp_db):
        assert temp_db.get_account(42) is None
        assert temp_db.get_account_by_code("9-999") is None
        assert temp_db.get_journal_entry(42) is None
        assert temp_db.get_invoice_by_number("INV-00042") is None

    def test_list_accounts_ordered_by_code(self, temp_db):
        temp_db.create_account("4-101", "Sales Revenue", AccountType.REVENUE)
        temp_db.create_account("1-101", "Cash", AccountType.ASSET)
        inactive = temp_db.create_account("1-102", "Bank", AccountType.ASSET)
        temp_db.update_account_active(inactive, False)

        assert [a.code for a in temp_db.list_accounts()] == ["1-101", "1-102", "4-101"]
        assert [a.code for a in temp_db.list_accounts(include_inactive=False)] == [
            "1-101",
            "4-101",
        ]
        assert [a.code for a in temp_db.list_accounts(account_type=AccountType.REVENUE)] == [
            "4-101"
        ]

    def test_journal_entry_returns_domain_model(self, temp_db):
        """Test that a stored entry comes back with its lines in order."""
        cash, revenue = _two_accounts(temp_db)
        entry_id = temp_db.create_journal_entry(
            date(2024, 3, 1),
            "Cash sale",
            (
                JournalLineDraft(account_id=cash, debit=Decimal("50.00")),
                JournalLineDraft(account_id=revenue, credit=Decimal("50.00")),
            ),
            reference_type=ReferenceType.SALE,
            is_automatic=True,
        )

        entry = temp_db.get_journal_entry(entry_id)

        assert isinstance(entry, entities.JournalEntry)
        assert entry.reference_type == ReferenceType.SALE
        assert [line.account_id for line in entry.lines] == [cash, revenue]
        assert entry.lines[0].debit == Decimal("50.00")
        assert not entry.is_reversed
        assert temp_db.get_account_line_count(cash) == 1

    def test_adjust_and_set_balances(self, temp_db):
        cash, revenue = _two_accounts(temp_db)

        temp_db.adjust_account_balances({cash: Decimal("10.00"), revenue: Decimal("10.00")})
        temp_db.adjust_account_balances({cash: Decimal("-2.50")})
        assert temp_db.get_account(cash).balance == Decimal("7.50")

        temp_db.set_account_balances({revenue: Decimal("0.00")})
        assert temp_db.get_account(revenue).balance == Decimal("0.00")

    def test_account_dependents(self, temp_db):
        payable = temp_db.create_account("2-201", "Tax Payable", AccountType.LIABILITY)
        revenue = temp_db.create_account("4-101", "Sales Revenue", AccountType.REVENUE)
        temp_db.create_account("4-102", "Online Sales", AccountType.REVENUE, parent_id=revenue)
        temp_db.create_tax_rate("VAT", Decimal("0.15"), payable)
        temp_db.create_invoice(
            "INV-00001",
            InvoiceType.SALE,
            date(2024, 3, 1),
            date(2024, 3, 31),
            Decimal("100.00"),
            Decimal("0.00"),
            Decimal("100.00"),
            InvoiceStatus.DRAFT,
            account_id=revenue,
        )

        assert temp_db.get_account_dependents(payable) == {
            "tax rate": 1,
            "invoice": 0,
            "child account": 0,
        }
        assert temp_db.get_account_dependents(revenue) == {
            "tax rate": 0,
            "invoice": 1,
            "child account": 1,
        }

    def test_update_missing_row_raises(self, temp_db):
        with pytest.raises(ValueError, match="Account 5 not found"):
            temp_db.update_account_active(5, False)
        with pytest.raises(ValueError, match="Journal entry 5 not found"):
            temp_db.mark_journal_entry_reversed(5)

    def test_unknown_counterparty_field(self, temp_db):
        with pytest.raises(ValueError, match="Unknown fields: shoe_size"):
            temp_db.create_customer("Acme", shoe_size=42)

    def test_invoice_and_payment_round_trip(self, temp_db):
        customer_id = temp_db.create_customer("Acme", payment_terms=30)
        invoice_id = temp_db.create_invoice(
            "INV-00001",
            InvoiceType.SALE,
            date(2024, 3, 1),
            date(2024, 3, 31),
            Decimal("100.00"),
            Decimal("15.00"),
            Decimal("115.00"),
            InvoiceStatus.ISSUED,
            customer_id=customer_id,
        )
        payment_id = temp_db.create_payment(
            invoice_id, Decimal("15.00"), date(2024, 3, 5), PaymentMethod.CASH
        )
        temp_db.update_invoice(
            invoice_id, status=InvoiceStatus.PARTIALLY_PAID, paid_amount=Decimal("15.00")
        )

        invoice = temp_db.get_invoice_by_number("INV-00001")
        assert invoice.id == invoice_id
        assert invoice.status == InvoiceStatus.PARTIALLY_PAID
        assert invoice.outstanding == Decimal("100.00")
        assert [p.id for p in temp_db.list_payments(invoice_id)] == [payment_id]
        assert temp_db.list_invoices(invoice_type=InvoiceType.PURCHASE) == []

    def test_tax_settings_defaults_then_saved(self, temp_db):
        assert temp_db.get_tax_settings() == entities.TaxSettings()

        temp_db.save_tax_settings(entities.TaxSettings(include_tax_in_price=True))
        temp_db.save_tax_settings(entities.TaxSettings(enabled=False, include_tax_in_price=True))

        assert temp_db.get_tax_settings() == entities.TaxSettings(
            enabled=False, include_tax_in_price=True
        )


class TestTransactions:
    """Tests for atomic units of work."""

    def test_failed_transaction_rolls_back(self, temp_db):
        with pytest.raises(RuntimeError):
            with temp_db.transaction():
                temp_db.create_account("1-101", "Cash", AccountType.ASSET)
                raise RuntimeError("boom")

        assert temp_db.get_account_by_code("1-101") is None
        assert temp_db.list_accounts() == []

    def test_nested_transactions_commit_once(self, temp_db):
        """Test that an inner success is undone when the outer block fails."""
        with pytest.raises(RuntimeError):
            with temp_db.transaction():
                with temp_db.transaction():
                    temp_db.create_account("1-101", "Cash", AccountType.ASSET)
                assert temp_db.get_account_by_code("1-101") is not None
                raise RuntimeError("boom")

        assert temp_db.get_account_by_code("1-101") is None

    def test_committed_work_is_visible_to_new_handle(self, temp_db):
        temp_db.create_account("1-101", "Cash", AccountType.ASSET)

        fresh = create_sqlite_database(temp_db.database_path)
        try:
            assert fresh.get_account_by_code("1-101").name == "Cash"
        finally:
            fresh.disconnect()


def test_memory_databases_are_independent():
    first = create_memory_database()
    second = create_memory_database()

    first.create_account("1-101", "Cash", AccountType.ASSET)

    assert second.list_accounts() == []
    assert len(first.list_accounts()) == 1


def test_replace_state_clears_and_keeps_ids(memory_db):
    cash, revenue = _two_accounts(memory_db)
    memory_db.create_customer("Acme")
    state = memory_db.dump_state()

    memory_db.replace_state(LedgerState(accounts=state.accounts[1:]))

    assert [a.id for a in memory_db.list_accounts()] == [revenue]
    assert memory_db.list_customers(include_inactive=True) == []
    assert memory_db.get_account(cash) is None
