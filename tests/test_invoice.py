"""Tests for invoices, payments and aging."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from ledgerkit.cli.main import cli
from ledgerkit.domain.entities import (
    AgingKind,
    InvoiceDraft,
    InvoiceStatus,
    InvoiceType,
    PaymentMethod,
    ReferenceType,
)
from ledgerkit.domain.errors import (
    ConflictError,
    HasPaymentsError,
    InvoiceNotFoundError,
    NotFoundError,
    OverpaymentError,
    ValidationError,
)
from ledgerkit.domain.invoice import bucket_label, status_for


def _sale(customer_id, subtotal="1000", issue_date=date(2024, 3, 1), **kwargs):
    return InvoiceDraft(
        invoice_type=InvoiceType.SALE,
        issue_date=issue_date,
        subtotal=Decimal(subtotal),
        customer_id=customer_id,
        **kwargs,
    )


def _bill(vendor_id, subtotal="500", issue_date=date(2024, 3, 1), **kwargs):
    return InvoiceDraft(
        invoice_type=InvoiceType.PURCHASE,
        issue_date=issue_date,
        subtotal=Decimal(subtotal),
        vendor_id=vendor_id,
        **kwargs,
    )


@pytest.mark.parametrize(
    "days, label",
    [(0, "0-30"), (30, "0-30"), (31, "31-60"), (60, "31-60"), (61, "61-90"), (90, "61-90"), (91, ">90")],
)
def test_bucket_label(days, label):
    assert bucket_label(days) == label


def test_status_for():
    assert status_for(Decimal("0"), Decimal("100")) == InvoiceStatus.ISSUED
    assert status_for(Decimal("40"), Decimal("100")) == InvoiceStatus.PARTIALLY_PAID
    assert status_for(Decimal("100"), Decimal("100")) == InvoiceStatus.PAID


class TestCreateInvoice:
    """Tests for InvoiceService.create_invoice."""

    def test_sales_invoice_posts_to_receivables(
        self, invoice_service, journal_service, account_service, customer, seeded_accounts
    ):
        """Test that issuing a sale debits receivables against revenue."""
        invoice_id = invoice_service.create_invoice(_sale(customer.id))

        invoice = invoice_service.get_invoice(invoice_id)
        assert invoice.invoice_number == "INV-00001"
        assert invoice.status == InvoiceStatus.ISSUED
        assert invoice.total_amount == Decimal("1000.00")
        assert invoice.due_date == date(2024, 3, 31)

        entry = journal_service.get_entry(invoice.journal_entry_id)
        assert entry.reference == f"invoice-{invoice_id}"
        assert entry.reference_type == ReferenceType.SALE
        assert entry.description == "Invoice INV-00001"
        assert entry.date == date(2024, 3, 1)
        assert account_service.get_account_by_code("1-301").balance == Decimal("1000.00")
        assert account_service.get_account_by_code("4-101").balance == Decimal("1000.00")

    def test_sales_invoice_with_tax(
        self, invoice_service, account_service, customer, seeded_accounts, vat_rate
    ):
        invoice_id = invoice_service.create_invoice(_sale(customer.id, tax_rate_id=vat_rate.id))

        invoice = invoice_service.get_invoice(invoice_id)
        assert invoice.tax_amount == Decimal("150.00")
        assert invoice.total_amount == Decimal("1150.00")
        assert account_service.get_account_by_code("1-301").balance == Decimal("1150.00")
        assert account_service.get_account_by_code("2-201").balance == Decimal("150.00")

    def test_purchase_bill_posts_to_payables(
        self, invoice_service, account_service, vendor, seeded_accounts
    ):
        """Test that a bill uses vendor terms and credits payables."""
        invoice_id = invoice_service.create_invoice(
            _bill(vendor.id, account_id=seeded_accounts["6-301"].id)
        )

        invoice = invoice_service.get_invoice(invoice_id)
        assert invoice.invoice_number == "BILL-00001"
        assert invoice.due_date == date(2024, 3, 16)
        assert account_service.get_account_by_code("6-301").balance == Decimal("500.00")
        assert account_service.get_account_by_code("2-101").balance == Decimal("500.00")

    def test_draft_posts_nothing(self, invoice_service, journal_service, customer, seeded_accounts):
        invoice_id = invoice_service.create_invoice(_sale(customer.id, issue=False))

        invoice = invoice_service.get_invoice(invoice_id)
        assert invoice.status == InvoiceStatus.DRAFT
        assert invoice.journal_entry_id is None
        assert journal_service.list_entries() == []

        entry_id = invoice_service.issue_invoice(invoice_id)

        assert invoice_service.get_invoice(invoice_id).status == InvoiceStatus.ISSUED
        assert journal_service.get_entry(entry_id).reference == f"invoice-{invoice_id}"

    def test_issue_twice(self, invoice_service, customer, seeded_accounts):
        invoice_id = invoice_service.create_invoice(_sale(customer.id))

        with pytest.raises(ConflictError, match="not draft"):
            invoice_service.issue_invoice(invoice_id)

    def test_numbers_are_sequential_and_unique(self, invoice_service, customer, seeded_accounts):
        first = invoice_service.create_invoice(_sale(customer.id))
        second = invoice_service.create_invoice(_sale(customer.id, invoice_number="CUSTOM-1"))
        third = invoice_service.create_invoice(_sale(customer.id))

        assert invoice_service.get_invoice(first).invoice_number == "INV-00001"
        assert invoice_service.get_invoice(second).invoice_number == "CUSTOM-1"
        assert invoice_service.get_invoice(third).invoice_number == "INV-00003"
        assert invoice_service.get_invoice_by_number("CUSTOM-1").id == second

        with pytest.raises(ValidationError, match="already exists"):
            invoice_service.create_invoice(_sale(customer.id, invoice_number="CUSTOM-1"))

    @pytest.mark.parametrize(
        "kwargs, error",
        [
            ({"subtotal": "0"}, ValidationError),
            ({"subtotal": "-10"}, ValidationError),
            ({"due_date": date(2024, 2, 1)}, ValidationError),
            ({"tax_amount": Decimal("-1")}, ValidationError),
            ({"tax_rate_id": 99}, NotFoundError),
        ],
    )
    def test_invalid_invoice(
        self, invoice_service, journal_service, customer, seeded_accounts, kwargs, error
    ):
        with pytest.raises(error):
            invoice_service.create_invoice(_sale(customer.id, **kwargs))
        assert invoice_service.list_invoices() == []
        assert journal_service.list_entries() == []

    def test_unknown_invoice_type(self, invoice_service, customer, seeded_accounts):
        draft = InvoiceDraft(
            invoice_type="quote", issue_date=date(2024, 3, 1), subtotal=Decimal("100"), customer_id=customer.id
        )

        with pytest.raises(ValidationError, match="Invalid invoice type: quote"):
            invoice_service.create_invoice(draft)
        assert invoice_service.list_invoices() == []

    def test_wrong_counterparty(self, invoice_service, customer, vendor, seeded_accounts):
        with pytest.raises(ValidationError, match="requires a customer"):
            invoice_service.create_invoice(_sale(None))
        with pytest.raises(ValidationError, match="cannot have a vendor"):
            invoice_service.create_invoice(_sale(customer.id, vendor_id=vendor.id))
        with pytest.raises(NotFoundError):
            invoice_service.create_invoice(_bill(999))

    def test_list_filters(self, invoice_service, customer, vendor, seeded_accounts):
        sale_id = invoice_service.create_invoice(_sale(customer.id))
        bill_id = invoice_service.create_invoice(_bill(vendor.id))

        assert [i.id for i in invoice_service.list_invoices(InvoiceType.SALE)] == [sale_id]
        assert [i.id for i in invoice_service.list_invoices(vendor_id=vendor.id)] == [bill_id]
        assert invoice_service.list_invoices(status=InvoiceStatus.PAID) == []


class TestPayments:
    """Tests for InvoiceService.record_payment."""

    def test_partial_then_full_payment(
        self, invoice_service, account_service, balance_service, customer, seeded_accounts
    ):
        """Test a 1000 invoice paid 400 then 600."""
        invoice_id = invoice_service.create_invoice(_sale(customer.id))

        invoice_service.record_payment(invoice_id, "400", payment_date=date(2024, 3, 10))
        invoice = invoice_service.get_invoice(invoice_id)
        assert invoice.status == InvoiceStatus.PARTIALLY_PAID
        assert invoice.paid_amount == Decimal("400.00")
        assert invoice.outstanding == Decimal("600.00")

        invoice_service.record_payment(
            invoice_id, "600", payment_method=PaymentMethod.TRANSFER, payment_date=date(2024, 3, 20)
        )
        invoice = invoice_service.get_invoice(invoice_id)
        assert invoice.status == InvoiceStatus.PAID
        assert invoice.outstanding == Decimal("0.00")

        assert account_service.get_account_by_code("1-301").balance == Decimal("0.00")
        assert account_service.get_account_by_code("1-101").balance == Decimal("400.00")
        assert account_service.get_account_by_code("1-102").balance == Decimal("600.00")
        assert balance_service.verify_cached_balances() == []

        report = invoice_service.aging_report(AgingKind.RECEIVABLE, date(2024, 12, 31))
        assert report.total == Decimal("0.00")
        assert report.details == ()

    def test_payment_is_linked_to_journal(self, invoice_service, journal_service, customer, seeded_accounts):
        invoice_id = invoice_service.create_invoice(_sale(customer.id))

        payment_id = invoice_service.record_payment(invoice_id, "250", payment_date=date(2024, 3, 5))

        (payment,) = invoice_service.list_payments(invoice_id)
        assert payment.id == payment_id
        entry = journal_service.get_entry(payment.journal_entry_id)
        assert entry.reference == f"payment-{payment_id}"
        assert entry.reference_type == ReferenceType.PAYMENT
        assert entry.date == date(2024, 3, 5)

    def test_bill_payment(self, invoice_service, account_service, vendor, seeded_accounts):
        invoice_id = invoice_service.create_invoice(_bill(vendor.id))

        invoice_service.record_payment(
            invoice_id, "500", payment_method=PaymentMethod.CARD, payment_date=date(2024, 3, 10)
        )

        assert invoice_service.get_invoice(invoice_id).status == InvoiceStatus.PAID
        assert account_service.get_account_by_code("2-101").balance == Decimal("0.00")
        assert account_service.get_account_by_code("1-102").balance == Decimal("-500.00")

    def test_overpayment(self, invoice_service, journal_service, customer, seeded_accounts):
        """Test that paying more than is outstanding is rejected outright."""
        invoice_id = invoice_service.create_invoice(_sale(customer.id))
        invoice_service.record_payment(invoice_id, "900", payment_date=date(2024, 3, 5))
        entries_before = len(journal_service.list_entries())

        with pytest.raises(OverpaymentError) as excinfo:
            invoice_service.record_payment(invoice_id, "100.01", payment_date=date(2024, 3, 6))

        assert excinfo.value.outstanding == Decimal("100.00")
        assert isinstance(excinfo.value, ValidationError)
        assert invoice_service.get_invoice(invoice_id).paid_amount == Decimal("900.00")
        assert len(invoice_service.list_payments(invoice_id)) == 1
        assert len(journal_service.list_entries()) == entries_before

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_non_positive_payment(self, invoice_service, customer, seeded_accounts, amount):
        invoice_id = invoice_service.create_invoice(_sale(customer.id))

        with pytest.raises(ValidationError, match="must be positive"):
            invoice_service.record_payment(invoice_id, amount, payment_date=date(2024, 3, 5))

    def test_unknown_payment_method(self, invoice_service, journal_service, customer, seeded_accounts):
        invoice_id = invoice_service.create_invoice(_sale(customer.id))
        entries_before = len(journal_service.list_entries())

        with pytest.raises(ValidationError, match="Invalid payment method: barter"):
            invoice_service.record_payment(invoice_id, "10", "barter", payment_date=date(2024, 3, 5))
        assert invoice_service.list_payments(invoice_id) == []
        assert len(journal_service.list_entries()) == entries_before

    def test_payment_before_issue_date(self, invoice_service, customer, seeded_accounts):
        invoice_id = invoice_service.create_invoice(_sale(customer.id))

        with pytest.raises(ValidationError, match="before the invoice issue date"):
            invoice_service.record_payment(invoice_id, "10", payment_date=date(2024, 2, 1))

    def test_pay_draft(self, invoice_service, customer, seeded_accounts):
        invoice_id = invoice_service.create_invoice(_sale(customer.id, issue=False))

        with pytest.raises(ConflictError, match="cannot be paid"):
            invoice_service.record_payment(invoice_id, "10", payment_date=date(2024, 3, 5))

    def test_pay_missing_invoice(self, invoice_service, seeded_accounts):
        with pytest.raises(InvoiceNotFoundError):
            invoice_service.record_payment(12, "10")


class TestCancelAndDelete:
    """Tests for cancelling and deleting invoices."""

    def test_cancel_reverses_posting(
        self, invoice_service, journal_service, account_service, customer, seeded_accounts
    ):
        invoice_id = invoice_service.create_invoice(_sale(customer.id))

        invoice_service.cancel_invoice(invoice_id, "Ordered by mistake", date(2024, 3, 2))

        invoice = invoice_service.get_invoice(invoice_id)
        assert invoice.status == InvoiceStatus.CANCELLED
        assert journal_service.get_entry(invoice.journal_entry_id).is_reversed
        assert account_service.get_account_by_code("1-301").balance == Decimal("0.00")
        assert account_service.get_account_by_code("4-101").balance == Decimal("0.00")

        with pytest.raises(ConflictError, match="already cancelled"):
            invoice_service.cancel_invoice(invoice_id)
        with pytest.raises(ConflictError, match="cannot be paid"):
            invoice_service.record_payment(invoice_id, "10", payment_date=date(2024, 3, 5))

    def test_cancel_paid_invoice(self, invoice_service, customer, seeded_accounts):
        invoice_id = invoice_service.create_invoice(_sale(customer.id))
        invoice_service.record_payment(invoice_id, "10", payment_date=date(2024, 3, 5))

        with pytest.raises(HasPaymentsError):
            invoice_service.cancel_invoice(invoice_id)
        assert invoice_service.get_invoice(invoice_id).status == InvoiceStatus.PARTIALLY_PAID

    def test_delete_issued_invoice(
        self, invoice_service, journal_service, account_service, customer, seeded_accounts
    ):
        """Test that deleting reverses the posting and keeps the journal intact."""
        invoice_id = invoice_service.create_invoice(_sale(customer.id))

        invoice_service.delete_invoice(invoice_id)

        assert invoice_service.get_invoice(invoice_id) is None
        entries = journal_service.find_by_reference(f"invoice-{invoice_id}")
        assert len(entries) == 2
        assert entries[0].is_reversed
        assert entries[1].reversal_of == entries[0].id
        assert account_service.get_account_by_code("1-301").balance == Decimal("0.00")

    def test_delete_draft(self, invoice_service, journal_service, customer, seeded_accounts):
        invoice_id = invoice_service.create_invoice(_sale(customer.id, issue=False))

        invoice_service.delete_invoice(invoice_id)

        assert invoice_service.list_invoices() == []
        assert journal_service.list_entries() == []

    def test_delete_paid_invoice(self, invoice_service, customer, seeded_accounts):
        invoice_id = invoice_service.create_invoice(_sale(customer.id))
        invoice_service.record_payment(invoice_id, "1000", payment_date=date(2024, 3, 5))

        with pytest.raises(HasPaymentsError):
            invoice_service.delete_invoice(invoice_id)

    def test_delete_missing(self, invoice_service):
        with pytest.raises(InvoiceNotFoundError):
            invoice_service.delete_invoice(3)


class TestAging:
    """Tests for InvoiceService.aging_report."""

    AS_OF = date(2024, 6, 30)

    def test_buckets(self, invoice_service, customer, seeded_accounts):
        """Test bucket boundaries relative to the due date."""
        due_tomorrow = invoice_service.create_invoice(
            _sale(customer.id, "100", date(2024, 6, 1), due_date=self.AS_OF + timedelta(days=1))
        )
        due_today = invoice_service.create_invoice(
            _sale(customer.id, "200", date(2024, 6, 1), due_date=self.AS_OF)
        )
        days_45 = invoice_service.create_invoice(
            _sale(customer.id, "300", date(2024, 4, 1), due_date=self.AS_OF - timedelta(days=45))
        )
        days_91 = invoice_service.create_invoice(
            _sale(customer.id, "400", date(2024, 2, 1), due_date=self.AS_OF - timedelta(days=91))
        )

        report = invoice_service.aging_report(AgingKind.RECEIVABLE, self.AS_OF)

        assert report.current.amount == Decimal("200.00")
        assert report.current.count == 1
        assert report.days_31_to_60.amount == Decimal("300.00")
        assert report.days_61_to_90.amount == Decimal("0.00")
        assert report.days_61_to_90.count == 0
        assert report.over_90.amount == Decimal("400.00")
        assert report.over_90.count == 1
        assert report.total == Decimal("900.00")
        assert [d.invoice_id for d in report.details] == [days_91, days_45, due_today]
        assert due_tomorrow not in {d.invoice_id for d in report.details}
        assert report.details[0].days_overdue == 91
        assert report.details[0].name == "Acme Corp"

    def test_partial_payment_reduces_bucket(self, invoice_service, customer, seeded_accounts):
        invoice_id = invoice_service.create_invoice(
            _sale(customer.id, "1000", date(2024, 5, 1), due_date=date(2024, 5, 31))
        )
        invoice_service.record_payment(invoice_id, "400", payment_date=date(2024, 6, 1))
        invoice_service.record_payment(invoice_id, "100", payment_date=date(2024, 7, 15))

        report = invoice_service.aging_report(AgingKind.RECEIVABLE, self.AS_OF)

        assert report.current.amount == Decimal("600.00")
        assert report.total == Decimal("600.00")

    def test_excludes_drafts_cancelled_and_future(self, invoice_service, customer, seeded_accounts):
        invoice_service.create_invoice(
            _sale(customer.id, "10", date(2024, 1, 1), due_date=date(2024, 1, 31), issue=False)
        )
        cancelled = invoice_service.create_invoice(
            _sale(customer.id, "20", date(2024, 1, 1), due_date=date(2024, 1, 31))
        )
        invoice_service.cancel_invoice(cancelled, cancel_date=date(2024, 1, 2))
        invoice_service.create_invoice(
            _sale(customer.id, "30", date(2024, 7, 1), due_date=date(2024, 7, 1))
        )

        report = invoice_service.aging_report(AgingKind.RECEIVABLE, self.AS_OF)

        assert report.total == Decimal("0.00")
        assert report.details == ()

    def test_payables(self, invoice_service, vendor, customer, seeded_accounts):
        invoice_service.create_invoice(_sale(customer.id, "999", date(2024, 1, 1)))
        invoice_service.create_invoice(_bill(vendor.id, "500", date(2024, 6, 1)))

        report = invoice_service.aging_report(AgingKind.PAYABLE, self.AS_OF)

        assert report.kind == AgingKind.PAYABLE
        assert report.total == Decimal("500.00")
        assert report.details[0].name == "Supply Co"
        assert report.details[0].days_overdue == 14


def test_invoice_create_and_pay_commands(cli_runner, temp_db, customer, seeded_accounts):
    """Test the invoice lifecycle from the CLI."""
    base = ["--db-path", temp_db.database_path, "invoice"]

    result = cli_runner.invoke(
        cli, base + ["create", "1000", "--customer", str(customer.id), "--date", "2024-03-01"]
    )
    assert result.exit_code == 0
    assert "Created invoice INV-00001 (ID: 1) for 1,000.00, due 2024-03-31" in result.output

    result = cli_runner.invoke(cli, base + ["pay", "1", "400", "--date", "2024-03-10"])
    assert result.exit_code == 0
    assert "partially_paid" in result.output
    assert "600.00 outstanding" in result.output

    result = cli_runner.invoke(cli, base + ["pay", "1", "700", "--date", "2024-03-11"])
    assert result.exit_code == 1
    assert "exceeds outstanding amount" in result.output

    result = cli_runner.invoke(cli, base + ["aging", "receivable", "--as-of", "2024-06-30"])
    assert result.exit_code == 0
    assert ">90" in result.output
    assert "INV-00001" in result.output


def test_invoice_create_needs_one_counterparty(cli_runner, temp_db, seeded_accounts):
    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "invoice", "create", "100"])

    assert result.exit_code == 1
    assert "exactly one of --customer or --vendor" in result.output
