"""Tests for database mappers."""

from datetime import datetime, date, UTC
from decimal import Decimal

from ledgerkit.database.models import (
    Account as ORMAccount,
    Invoice as ORMInvoice,
    JournalEntry as ORMJournalEntry,
    JournalLine as ORMJournalLine,
    Payment as ORMPayment,
    TaxSettings as ORMTaxSettings,
    Vendor as ORMVendor,
)
from ledgerkit.database.mappers import (
    account_to_domain,
    account_to_orm,
    invoice_to_domain,
    journal_entry_to_domain,
    journal_entry_to_orm,
    payment_to_domain,
    tax_settings_to_domain,
    vendor_to_domain,
)
from ledgerkit.domain.entities import (
    Account,
    AccountType,
    InvoiceStatus,
    InvoiceType,
    PaymentMethod,
    ReferenceType,
    TaxSettings,
)


class TestAccountMapper:
    """Tests for Account mapper."""

    def test_account_to_domain(self):
        """Test converting ORM Account to domain Account."""
        orm_account = ORMAccount(
            id=1,
            code="1-101",
            name="Cash",
            account_type="asset",
            balance=Decimal("12.5"),
            is_active=True,
            is_current=True,
            is_cash=True,
            created_at=datetime.now(UTC),
        )
        account = account_to_domain(orm_account)

        assert isinstance(account, Account)
        assert account.code == "1-101"
        assert account.account_type == AccountType.ASSET
        assert account.balance == Decimal("12.50")
        assert account.is_cash
        assert account.parent_id is None
        assert account.created_at == orm_account.created_at

    def test_account_to_orm_keeps_id(self):
        account = Account(
            id=7,
            code="4-101",
            name="Sales Revenue",
            account_type=AccountType.REVENUE,
            balance=Decimal("300.00"),
            is_active=False,
            is_current=False,
            is_cash=False,
            created_at=datetime(2024, 1, 1, tzinfo=UTC),
        )

        orm_account = account_to_orm(account)

        assert orm_account.id == 7
        assert orm_account.account_type == "revenue"
        assert orm_account.is_active is False
        assert account_to_domain(orm_account) == account


class TestJournalEntryMapper:
    """Tests for JournalEntry mapper."""

    def test_journal_entry_to_domain_keeps_line_order(self):
        orm_entry = ORMJournalEntry(
            id=3,
            date=date(2024, 3, 1),
            description="Stock on credit",
            reference="PO-9",
            reference_type="purchase",
            is_automatic=True,
            is_reversed=False,
            created_at=datetime.now(UTC),
            lines=[
                ORMJournalLine(position=0, account_id=5, debit=Decimal("80"), credit=Decimal("0")),
                ORMJournalLine(position=1, account_id=9, debit=Decimal("0"), credit=Decimal("80")),
            ],
        )

        entry = journal_entry_to_domain(orm_entry)

        assert entry.reference_type == ReferenceType.PURCHASE
        assert [line.account_id for line in entry.lines] == [5, 9]
        assert entry.lines[0].debit == Decimal("80.00")
        assert entry.lines[1].credit == Decimal("80.00")
        assert entry.reversal_of is None

    def test_manual_entry_without_reference_type(self):
        orm_entry = ORMJournalEntry(
            id=1,
            date=date(2024, 3, 1),
            description="Adjustment",
            is_automatic=False,
            is_reversed=True,
            created_at=datetime.now(UTC),
            lines=[],
        )

        entry = journal_entry_to_domain(orm_entry)

        assert entry.reference_type is None
        assert entry.is_reversed
        assert entry.lines == ()

    def test_journal_entry_to_orm_numbers_lines(self):
        orm_entry = ORMJournalEntry(
            id=4,
            date=date(2024, 3, 2),
            description="Rent",
            reference_type="manual",
            is_automatic=False,
            is_reversed=False,
            created_at=datetime(2024, 3, 2, tzinfo=UTC),
            lines=[
                ORMJournalLine(position=0, account_id=12, debit=Decimal("700"), credit=Decimal("0")),
                ORMJournalLine(position=1, account_id=1, debit=Decimal("0"), credit=Decimal("700")),
            ],
        )
        entry = journal_entry_to_domain(orm_entry)

        rebuilt = journal_entry_to_orm(entry)

        assert [line.position for line in rebuilt.lines] == [0, 1]
        assert rebuilt.reference_type == "manual"
        assert journal_entry_to_domain(rebuilt) == entry


class TestSubledgerMappers:
    """Tests for counterparty, invoice and payment mappers."""

    def test_vendor_to_domain(self):
        orm_vendor = ORMVendor(
            id=2,
            name="Supply Co",
            is_active=True,
            payment_terms=15,
            credit_limit=Decimal("1000"),
            created_at=datetime.now(UTC),
        )

        vendor = vendor_to_domain(orm_vendor)

        assert vendor.payment_terms == 15
        assert vendor.credit_limit == Decimal("1000.00")
        assert vendor.email is None
        assert vendor.balance == Decimal("0.00")

    def test_invoice_to_domain(self):
        now = datetime.now(UTC)
        orm_invoice = ORMInvoice(
            id=1,
            invoice_number="INV-00001",
            invoice_type="sale",
            customer_id=4,
            issue_date=date(2024, 3, 1),
            due_date=date(2024, 3, 31),
            subtotal=Decimal("1000"),
            tax_amount=Decimal("150"),
            total_amount=Decimal("1150"),
            paid_amount=Decimal("400"),
            status="partially_paid",
            created_at=now,
            updated_at=now,
        )

        invoice = invoice_to_domain(orm_invoice)

        assert invoice.invoice_type == InvoiceType.SALE
        assert invoice.status == InvoiceStatus.PARTIALLY_PAID
        assert invoice.outstanding == Decimal("750.00")
        assert invoice.vendor_id is None

    def test_payment_to_domain(self):
        orm_payment = ORMPayment(
            id=1,
            invoice_id=1,
            amount=Decimal("400"),
            payment_date=date(2024, 3, 5),
            payment_method="card",
            journal_entry_id=2,
            created_at=datetime.now(UTC),
        )

        payment = payment_to_domain(orm_payment)

        assert payment.payment_method == PaymentMethod.CARD
        assert payment.amount == Decimal("400.00")
        assert payment.journal_entry_id == 2


def test_tax_settings_default_when_missing():
    assert tax_settings_to_domain(None) == TaxSettings()


def test_tax_settings_to_domain():
    orm_settings = ORMTaxSettings(
        id=1,
        enabled=False,
        default_tax_rate_id=3,
        include_tax_in_price=True,
        show_tax_on_receipts=False,
    )

    settings = tax_settings_to_domain(orm_settings)

    assert settings == TaxSettings(
        enabled=False,
        default_tax_rate_id=3,
        include_tax_in_price=True,
        show_tax_on_receipts=False,
    )
