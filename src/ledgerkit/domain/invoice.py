"""Invoice and payment domain service (receivables/payables subledger)."""

import logging
from collections import defaultdict
from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from ledgerkit.database.base import Database
from ledgerkit.domain.account import PAYABLE_CODE, RECEIVABLE_CODE
from ledgerkit.domain.entities import (
    AgingBucket,
    AgingDetail,
    AgingKind,
    AgingReport,
    Invoice as InvoiceEntity,
    InvoiceDraft,
    InvoiceStatus,
    InvoiceType,
    JournalEntryDraft,
    JournalLineDraft,
    Payment as PaymentEntity,
    PaymentMethod,
    ReferenceType,
    TOLERANCE,
    ZERO,
)
from ledgerkit.domain.errors import (
    ConflictError,
    HasPaymentsError,
    InvoiceNotFoundError,
    NotFoundError,
    OverpaymentError,
    ValidationError,
    customer_not_found,
    vendor_not_found,
)
from ledgerkit.domain.journal import JournalService
from ledgerkit.domain.posting import PostingService
from ledgerkit.utils.amount_parser import to_amount

logger = logging.getLogger(__name__)

DEFAULT_PAYMENT_TERMS = 30

INVOICE_NUMBER_PREFIXES = {
    InvoiceType.SALE: "INV",
    InvoiceType.PURCHASE: "BILL",
}

# (label, last day overdue included); None means open-ended
AGING_BUCKETS = (
    ("0-30", 30),
    ("31-60", 60),
    ("61-90", 90),
    (">90", None),
)


def invoice_reference(invoice_id: int) -> str:
    return f"invoice-{invoice_id}"


def payment_reference(payment_id: int) -> str:
    return f"payment-{payment_id}"


def status_for(paid_amount: Decimal, total_amount: Decimal) -> InvoiceStatus:
    """Status of an issued invoice given how much has been paid."""
    if paid_amount <= ZERO:
        return InvoiceStatus.ISSUED
    if total_amount - paid_amount < TOLERANCE:
        return InvoiceStatus.PAID
    return InvoiceStatus.PARTIALLY_PAID


def bucket_label(days_overdue: int) -> str:
    """Aging bucket for a non-negative number of days past due."""
    for label, last_day in AGING_BUCKETS:
        if last_day is None or days_overdue <= last_day:
            return label
    raise ValueError(f"No aging bucket for {days_overdue} days")


class InvoiceService:
    """Service for invoices, payments and aging."""

    def __init__(self, db: Database):
        """Initialize invoice service.

        Args:
            db: Database instance
        """
        self.db = db
        self.journal = JournalService(db)
        self.posting = PostingService(db)

    def get_invoice(self, invoice_id: int) -> Optional[InvoiceEntity]:
        return self.db.get_invoice(invoice_id)

    def get_invoice_by_number(self, invoice_number: str) -> Optional[InvoiceEntity]:
        return self.db.get_invoice_by_number(invoice_number.strip())

    def require_invoice(self, invoice_id: int) -> InvoiceEntity:
        """Get invoice by ID.

        Raises:
            InvoiceNotFoundError: If invoice not found
        """
        invoice = self.db.get_invoice(invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(invoice_id)
        return invoice

    def list_invoices(
        self,
        invoice_type: Optional[InvoiceType] = None,
        customer_id: Optional[int] = None,
        vendor_id: Optional[int] = None,
        status: Optional[InvoiceStatus] = None,
    ) -> list[InvoiceEntity]:
        """List invoices ordered by issue date."""
        return self.db.list_invoices(
            invoice_type=invoice_type,
            customer_id=customer_id,
            vendor_id=vendor_id,
            status=status,
        )

    def list_payments(self, invoice_id: Optional[int] = None) -> list[PaymentEntity]:
        return self.db.list_payments(invoice_id=invoice_id)

    def _next_invoice_number(self, invoice_type: InvoiceType) -> str:
        prefix = INVOICE_NUMBER_PREFIXES[invoice_type]
        sequence = len(self.db.list_invoices(invoice_type=invoice_type)) + 1
        while True:
            number = f"{prefix}-{sequence:05d}"
            if self.db.get_invoice_by_number(number) is None:
                return number
            sequence += 1

    def _payment_terms(self, draft: InvoiceDraft) -> int:
        if draft.invoice_type == InvoiceType.SALE:
            counterparty = self.db.get_customer(draft.customer_id)
        else:
            counterparty = self.db.get_vendor(draft.vendor_id)
        if counterparty is None or counterparty.payment_terms is None:
            return DEFAULT_PAYMENT_TERMS
        return counterparty.payment_terms

    def _validate_counterparty(self, draft: InvoiceDraft) -> None:
        if draft.invoice_type == InvoiceType.SALE:
            if draft.customer_id is None:
                raise ValidationError("Sale invoice requires a customer")
            if draft.vendor_id is not None:
                raise ValidationError("Sale invoice cannot have a vendor")
            if self.db.get_customer(draft.customer_id) is None:
                raise NotFoundError(customer_not_found(draft.customer_id))
        else:
            if draft.vendor_id is None:
                raise ValidationError("Purchase invoice requires a vendor")
            if draft.customer_id is not None:
                raise ValidationError("Purchase invoice cannot have a customer")
            if self.db.get_vendor(draft.vendor_id) is None:
                raise NotFoundError(vendor_not_found(draft.vendor_id))

    def create_invoice(self, draft: InvoiceDraft) -> int:
        """Create an invoice and, unless it is kept as a draft, post it.

        Posting is the only way an invoice reaches the journal:
        sales debit receivables against revenue and tax payable, purchases
        credit payables against inventory/expense and recoverable tax.

        Args:
            draft: Invoice to create

        Returns:
            Invoice ID

        Raises:
            ValidationError: If amounts, dates, accounts or the counterparty
                are inconsistent, or the invoice number is taken
            NotFoundError: If the customer, vendor, account or tax rate is missing
        """
        try:
            invoice_type = InvoiceType(draft.invoice_type)
        except ValueError:
            raise ValidationError(f"Invalid invoice type: {draft.invoice_type}")
        draft = replace(draft, invoice_type=invoice_type)
        self._validate_counterparty(draft)

        try:
            subtotal = to_amount(draft.subtotal)
        except ValueError as e:
            raise ValidationError(str(e))
        if subtotal <= ZERO:
            raise ValidationError("Invoice subtotal must be positive")

        if draft.tax_amount is not None:
            try:
                tax_amount = to_amount(draft.tax_amount)
            except ValueError as e:
                raise ValidationError(str(e))
            if tax_amount < ZERO:
                raise ValidationError("Tax amount cannot be negative")
        elif draft.tax_rate_id is not None:
            breakdown = self.posting.tax.calculate_tax(
                subtotal, draft.tax_rate_id, include_tax_in_price=False
            )
            tax_amount = breakdown.tax
        else:
            tax_amount = ZERO

        if draft.tax_rate_id is not None:
            self.posting.tax.require_tax_rate(draft.tax_rate_id)
        if draft.account_id is not None:
            if invoice_type == InvoiceType.SALE:
                self.posting.revenue_account(draft.account_id)
            else:
                self.posting.purchase_account(draft.account_id)

        due_date = draft.due_date or draft.issue_date + timedelta(
            days=self._payment_terms(draft)
        )
        if due_date < draft.issue_date:
            raise ValidationError("Due date cannot be before the issue date")

        with self.db.transaction():
            if draft.invoice_number and draft.invoice_number.strip():
                invoice_number = draft.invoice_number.strip()
                if self.db.get_invoice_by_number(invoice_number) is not None:
                    raise ValidationError(f"Invoice number '{invoice_number}' already exists")
            else:
                invoice_number = self._next_invoice_number(invoice_type)

            invoice_id = self.db.create_invoice(
                invoice_number=invoice_number,
                invoice_type=invoice_type,
                issue_date=draft.issue_date,
                due_date=due_date,
                subtotal=subtotal,
                tax_amount=tax_amount,
                total_amount=subtotal + tax_amount,
                status=InvoiceStatus.DRAFT,
                customer_id=draft.customer_id,
                vendor_id=draft.vendor_id,
                tax_rate_id=draft.tax_rate_id,
                account_id=draft.account_id,
                notes=draft.notes,
                reference=draft.reference,
            )
            if draft.issue:
                self._post_invoice(self.require_invoice(invoice_id))

        logger.info(
            "Created %s invoice %s (%s) for %s",
            invoice_type.value,
            invoice_number,
            "issued" if draft.issue else "draft",
            subtotal + tax_amount,
        )
        return invoice_id

    def issue_invoice(self, invoice_id: int) -> int:
        """Issue a draft invoice, posting its journal entry.

        Returns:
            Journal entry ID

        Raises:
            InvoiceNotFoundError: If invoice not found
            ConflictError: If the invoice is not a draft
        """
        with self.db.transaction():
            invoice = self.require_invoice(invoice_id)
            if invoice.status != InvoiceStatus.DRAFT:
                raise ConflictError(
                    f"Invoice {invoice.invoice_number} is {invoice.status.value}, not draft"
                )
            entry_id = self._post_invoice(invoice)
        logger.info("Issued invoice %s", invoice.invoice_number)
        return entry_id

    def _post_invoice(self, invoice: InvoiceEntity) -> int:
        tax = invoice.tax_amount
        if invoice.invoice_type == InvoiceType.SALE:
            receivable = self.posting.accounts.require_account_by_code(RECEIVABLE_CODE)
            revenue = self.posting.revenue_account(invoice.account_id)
            lines = [
                JournalLineDraft(account_id=receivable.id, debit=invoice.total_amount),
                JournalLineDraft(account_id=revenue.id, credit=invoice.subtotal),
            ]
            if tax > ZERO:
                lines.append(
                    JournalLineDraft(
                        account_id=self.posting.tax_account(invoice.tax_rate_id).id,
                        credit=tax,
                    )
                )
            description = f"Invoice {invoice.invoice_number}"
            reference_type = ReferenceType.SALE
        else:
            payable = self.posting.accounts.require_account_by_code(PAYABLE_CODE)
            debit_account = self.posting.purchase_account(invoice.account_id)
            lines = [JournalLineDraft(account_id=debit_account.id, debit=invoice.subtotal)]
            if tax > ZERO:
                lines.append(
                    JournalLineDraft(
                        account_id=self.posting.tax_account(invoice.tax_rate_id).id,
                        debit=tax,
                    )
                )
            lines.append(JournalLineDraft(account_id=payable.id, credit=invoice.total_amount))
            description = f"Bill {invoice.invoice_number}"
            reference_type = ReferenceType.PURCHASE

        entry_id = self.journal.post_entry(
            JournalEntryDraft(
                date=invoice.issue_date,
                description=description,
                lines=tuple(lines),
                reference=invoice_reference(invoice.id),
                reference_type=reference_type,
                is_automatic=True,
            )
        )
        self.db.update_invoice(
            invoice.id, status=InvoiceStatus.ISSUED, journal_entry_id=entry_id
        )
        return entry_id

    def record_payment(
        self,
        invoice_id: int,
        amount: Decimal | str | int,
        payment_method: PaymentMethod = PaymentMethod.CASH,
        payment_date: Optional[date] = None,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> int:
        """Record a payment against an invoice.

        Sales move cash/bank against receivables; purchases move payables
        against cash/bank. The invoice status follows the paid amount.

        Args:
            invoice_id: Invoice being paid
            amount: Amount paid, at most the outstanding amount
            payment_method: Cash, card or transfer
            payment_date: Business date (defaults to today)

        Returns:
            Payment ID

        Raises:
            InvoiceNotFoundError: If invoice not found
            ValidationError: If the amount is not positive or predates the invoice
            OverpaymentError: If the amount exceeds what is outstanding
            ConflictError: If the invoice is a draft or cancelled
        """
        try:
            amount = to_amount(amount)
        except ValueError as e:
            raise ValidationError(str(e))
        if amount <= ZERO:
            raise ValidationError("Payment amount must be positive")
        try:
            payment_method = PaymentMethod(payment_method)
        except ValueError:
            raise ValidationError(f"Invalid payment method: {payment_method}")
        payment_date = payment_date or date.today()

        with self.db.transaction():
            invoice = self.require_invoice(invoice_id)
            if invoice.status in (InvoiceStatus.DRAFT, InvoiceStatus.CANCELLED):
                raise ConflictError(
                    f"Invoice {invoice.invoice_number} is {invoice.status.value} "
                    "and cannot be paid"
                )
            if amount > invoice.outstanding:
                raise OverpaymentError(invoice_id, amount, invoice.outstanding)
            if payment_date < invoice.issue_date:
                raise ValidationError("Payment date cannot be before the invoice issue date")

            money = self.posting.payment_account(payment_method)
            if invoice.invoice_type == InvoiceType.SALE:
                control = self.posting.accounts.require_account_by_code(RECEIVABLE_CODE)
                lines = (
                    JournalLineDraft(account_id=money.id, debit=amount),
                    JournalLineDraft(account_id=control.id, credit=amount),
                )
            else:
                control = self.posting.accounts.require_account_by_code(PAYABLE_CODE)
                lines = (
                    JournalLineDraft(account_id=control.id, debit=amount),
                    JournalLineDraft(account_id=money.id, credit=amount),
                )

            payment_id = self.db.create_payment(
                invoice_id=invoice_id,
                amount=amount,
                payment_date=payment_date,
                payment_method=payment_method,
                reference=reference,
                notes=notes,
            )
            entry_id = self.journal.post_entry(
                JournalEntryDraft(
                    date=payment_date,
                    description=f"Payment for {invoice.invoice_number}",
                    lines=lines,
                    reference=payment_reference(payment_id),
                    reference_type=ReferenceType.PAYMENT,
                    is_automatic=True,
                )
            )
            self.db.set_payment_journal_entry(payment_id, entry_id)

            paid_amount = invoice.paid_amount + amount
            status = status_for(paid_amount, invoice.total_amount)
            self.db.update_invoice(invoice_id, status=status, paid_amount=paid_amount)

        logger.info(
            "Recorded payment %s of %s on invoice %s (%s)",
            payment_id,
            amount,
            invoice.invoice_number,
            status.value,
        )
        return payment_id

    def cancel_invoice(
        self, invoice_id: int, reason: str = "", cancel_date: Optional[date] = None
    ) -> None:
        """Cancel an unpaid invoice, reversing its journal entry.

        Raises:
            InvoiceNotFoundError: If invoice not found
            ConflictError: If the invoice is already cancelled
            HasPaymentsError: If anything has been paid
        """
        with self.db.transaction():
            invoice = self.require_invoice(invoice_id)
            if invoice.status == InvoiceStatus.CANCELLED:
                raise ConflictError(f"Invoice {invoice.invoice_number} is already cancelled")
            if invoice.paid_amount > ZERO:
                raise HasPaymentsError(invoice_id, invoice.paid_amount)
            self._reverse_posting(invoice, reason or "invoice cancelled", cancel_date)
            self.db.update_invoice(invoice_id, status=InvoiceStatus.CANCELLED)
        logger.info("Cancelled invoice %s", invoice.invoice_number)

    def delete_invoice(self, invoice_id: int) -> None:
        """Delete an invoice that has no payments.

        A posted invoice has its journal entry reversed first; the journal
        itself is never edited.

        Raises:
            InvoiceNotFoundError: If invoice not found
            HasPaymentsError: If anything has been paid
        """
        with self.db.transaction():
            invoice = self.require_invoice(invoice_id)
            if invoice.paid_amount > ZERO or self.db.list_payments(invoice_id=invoice_id):
                raise HasPaymentsError(invoice_id, invoice.paid_amount)
            self._reverse_posting(invoice, "invoice deleted", None)
            self.db.delete_invoice(invoice_id)
        logger.info("Deleted invoice %s", invoice.invoice_number)

    def _reverse_posting(
        self, invoice: InvoiceEntity, reason: str, on: Optional[date]
    ) -> None:
        if invoice.journal_entry_id is None:
            return
        entry = self.journal.get_entry(invoice.journal_entry_id)
        if entry is not None and not entry.is_reversed:
            self.journal.reverse_entry(
                entry.id, f"{invoice.invoice_number} {reason}", on or date.today()
            )

    def aging_report(self, kind: AgingKind, as_of: Optional[date] = None) -> AgingReport:
        """Bucket unpaid amounts by days past due.

        Invoices not yet due on ``as_of`` are left out of every bucket and
        of the total. Outstanding amounts only count payments dated on or
        before ``as_of``.

        Args:
            kind: Receivables (sales) or payables (purchases)
            as_of: Reporting date (defaults to today)

        Returns:
            Aging report with per-invoice detail, most overdue first
        """
        kind = AgingKind(kind)
        as_of = as_of or date.today()

        with self.db.locked():
            invoices = self.db.list_invoices(invoice_type=kind.invoice_type)
            payments = self.db.list_payments()
            if kind == AgingKind.RECEIVABLE:
                names = {c.id: c.name for c in self.db.list_customers(include_inactive=True)}
            else:
                names = {v.id: v.name for v in self.db.list_vendors(include_inactive=True)}

        paid_by_invoice: dict[int, Decimal] = defaultdict(lambda: ZERO)
        for payment in payments:
            if payment.payment_date <= as_of:
                paid_by_invoice[payment.invoice_id] += payment.amount

        amounts: dict[str, Decimal] = {label: ZERO for label, _ in AGING_BUCKETS}
        counts: dict[str, int] = {label: 0 for label, _ in AGING_BUCKETS}
        details = []
        for invoice in invoices:
            if invoice.status in (InvoiceStatus.DRAFT, InvoiceStatus.CANCELLED):
                continue
            if invoice.issue_date > as_of:
                continue
            outstanding = invoice.total_amount - paid_by_invoice[invoice.id]
            if outstanding < TOLERANCE:
                continue
            days_overdue = (as_of - invoice.due_date).days
            if days_overdue < 0:
                continue

            label = bucket_label(days_overdue)
            amounts[label] += outstanding
            counts[label] += 1
            counterparty_id = (
                invoice.customer_id if kind == AgingKind.RECEIVABLE else invoice.vendor_id
            )
            details.append(
                AgingDetail(
                    invoice_id=invoice.id,
                    name=names.get(counterparty_id, ""),
                    invoice_number=invoice.invoice_number,
                    issue_date=invoice.issue_date,
                    due_date=invoice.due_date,
                    amount=outstanding,
                    days_overdue=days_overdue,
                )
            )

        details.sort(key=lambda d: (-d.days_overdue, d.invoice_id))
        buckets = [
            AgingBucket(period=label, amount=amounts[label], count=counts[label])
            for label, _ in AGING_BUCKETS
        ]
        return AgingReport(
            kind=kind,
            as_of=as_of,
            current=buckets[0],
            days_31_to_60=buckets[1],
            days_61_to_90=buckets[2],
            over_90=buckets[3],
            total=sum(amounts.values(), ZERO),
            details=tuple(details),
        )

