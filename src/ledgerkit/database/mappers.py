"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so the journal and subledger
services never see ORM rows and the snapshot format never sees columns.
"""

from decimal import Decimal
from typing import Optional

from ledgerkit.domain import entities as domain
from ledgerkit.database.models import (
    Account as ORMAccount,
    JournalEntry as ORMJournalEntry,
    JournalLine as ORMJournalLine,
    Customer as ORMCustomer,
    Vendor as ORMVendor,
    Invoice as ORMInvoice,
    Payment as ORMPayment,
    TaxRate as ORMTaxRate,
    TaxSettings as ORMTaxSettings,
)


def _money(value) -> Decimal:
    return Decimal(value if value is not None else 0).quantize(domain.TOLERANCE)


def _optional_money(value) -> Optional[Decimal]:
    return None if value is None else _money(value)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        code=orm_account.code,
        name=orm_account.name,
        account_type=domain.AccountType(orm_account.account_type),
        balance=_money(orm_account.balance),
        is_active=orm_account.is_active,
        is_current=orm_account.is_current,
        is_cash=orm_account.is_cash,
        created_at=orm_account.created_at,
        name_en=orm_account.name_en,
        description=orm_account.description,
        parent_id=orm_account.parent_id,
    )


def journal_line_to_domain(orm_line: ORMJournalLine) -> domain.JournalLine:
    """Convert SQLAlchemy JournalLine model to domain JournalLine entity."""
    return domain.JournalLine(
        account_id=orm_line.account_id,
        debit=_money(orm_line.debit),
        credit=_money(orm_line.credit),
        description=orm_line.description,
    )


def journal_entry_to_domain(orm_entry: ORMJournalEntry) -> domain.JournalEntry:
    """Convert SQLAlchemy JournalEntry model (with lines) to domain entity."""
    return domain.JournalEntry(
        id=orm_entry.id,
        date=orm_entry.date,
        description=orm_entry.description,
        lines=tuple(journal_line_to_domain(line) for line in orm_entry.lines),
        is_automatic=orm_entry.is_automatic,
        is_reversed=orm_entry.is_reversed,
        created_at=orm_entry.created_at,
        reference=orm_entry.reference,
        reference_type=(
            domain.ReferenceType(orm_entry.reference_type)
            if orm_entry.reference_type is not None
            else None
        ),
        reversal_of=orm_entry.reversal_of,
        created_by=orm_entry.created_by,
    )


def customer_to_domain(orm_customer: ORMCustomer) -> domain.Customer:
    """Convert SQLAlchemy Customer model to domain Customer entity."""
    return domain.Customer(
        id=orm_customer.id,
        name=orm_customer.name,
        is_active=orm_customer.is_active,
        created_at=orm_customer.created_at,
        email=orm_customer.email,
        phone=orm_customer.phone,
        address=orm_customer.address,
        tax_id=orm_customer.tax_id,
        credit_limit=_optional_money(orm_customer.credit_limit),
        payment_terms=orm_customer.payment_terms,
        notes=orm_customer.notes,
    )


def vendor_to_domain(orm_vendor: ORMVendor) -> domain.Vendor:
    """Convert SQLAlchemy Vendor model to domain Vendor entity."""
    return domain.Vendor(
        id=orm_vendor.id,
        name=orm_vendor.name,
        is_active=orm_vendor.is_active,
        created_at=orm_vendor.created_at,
        email=orm_vendor.email,
        phone=orm_vendor.phone,
        address=orm_vendor.address,
        tax_id=orm_vendor.tax_id,
        credit_limit=_optional_money(orm_vendor.credit_limit),
        payment_terms=orm_vendor.payment_terms,
        notes=orm_vendor.notes,
    )


def invoice_to_domain(orm_invoice: ORMInvoice) -> domain.Invoice:
    """Convert SQLAlchemy Invoice model to domain Invoice entity."""
    return domain.Invoice(
        id=orm_invoice.id,
        invoice_number=orm_invoice.invoice_number,
        invoice_type=domain.InvoiceType(orm_invoice.invoice_type),
        issue_date=orm_invoice.issue_date,
        due_date=orm_invoice.due_date,
        subtotal=_money(orm_invoice.subtotal),
        tax_amount=_money(orm_invoice.tax_amount),
        total_amount=_money(orm_invoice.total_amount),
        paid_amount=_money(orm_invoice.paid_amount),
        status=domain.InvoiceStatus(orm_invoice.status),
        created_at=orm_invoice.created_at,
        updated_at=orm_invoice.updated_at,
        customer_id=orm_invoice.customer_id,
        vendor_id=orm_invoice.vendor_id,
        tax_rate_id=orm_invoice.tax_rate_id,
        account_id=orm_invoice.account_id,
        journal_entry_id=orm_invoice.journal_entry_id,
        notes=orm_invoice.notes,
        reference=orm_invoice.reference,
    )


def payment_to_domain(orm_payment: ORMPayment) -> domain.Payment:
    """Convert SQLAlchemy Payment model to domain Payment entity."""
    return domain.Payment(
        id=orm_payment.id,
        invoice_id=orm_payment.invoice_id,
        amount=_money(orm_payment.amount),
        payment_date=orm_payment.payment_date,
        payment_method=domain.PaymentMethod(orm_payment.payment_method),
        created_at=orm_payment.created_at,
        journal_entry_id=orm_payment.journal_entry_id,
        reference=orm_payment.reference,
        notes=orm_payment.notes,
    )


def tax_rate_to_domain(orm_rate: ORMTaxRate) -> domain.TaxRate:
    """Convert SQLAlchemy TaxRate model to domain TaxRate entity."""
    return domain.TaxRate(
        id=orm_rate.id,
        name=orm_rate.name,
        rate=Decimal(orm_rate.rate),
        is_active=orm_rate.is_active,
        account_id=orm_rate.account_id,
        created_at=orm_rate.created_at,
        name_en=orm_rate.name_en,
        description=orm_rate.description,
    )


def tax_settings_to_domain(orm_settings: Optional[ORMTaxSettings]) -> domain.TaxSettings:
    """Convert the settings row, or its absence, to domain TaxSettings."""
    if orm_settings is None:
        return domain.TaxSettings()
    return domain.TaxSettings(
        enabled=orm_settings.enabled,
        default_tax_rate_id=orm_settings.default_tax_rate_id,
        include_tax_in_price=orm_settings.include_tax_in_price,
        show_tax_on_receipts=orm_settings.show_tax_on_receipts,
    )


def account_to_orm(account: domain.Account) -> ORMAccount:
    """Build an Account row from a domain entity, keeping its id."""
    return ORMAccount(
        id=account.id,
        code=account.code,
        name=account.name,
        name_en=account.name_en,
        account_type=account.account_type.value,
        parent_id=account.parent_id,
        description=account.description,
        balance=account.balance,
        is_active=account.is_active,
        is_current=account.is_current,
        is_cash=account.is_cash,
        created_at=account.created_at,
    )


def journal_entry_to_orm(entry: domain.JournalEntry) -> ORMJournalEntry:
    """Build a JournalEntry row with its lines from a domain entity."""
    return ORMJournalEntry(
        id=entry.id,
        date=entry.date,
        description=entry.description,
        reference=entry.reference,
        reference_type=entry.reference_type.value if entry.reference_type else None,
        is_automatic=entry.is_automatic,
        is_reversed=entry.is_reversed,
        reversal_of=entry.reversal_of,
        created_by=entry.created_by,
        created_at=entry.created_at,
        lines=[
            ORMJournalLine(
                position=position,
                account_id=line.account_id,
                debit=line.debit,
                credit=line.credit,
                description=line.description,
            )
            for position, line in enumerate(entry.lines)
        ],
    )


def counterparty_to_orm(
    counterparty: domain.Customer | domain.Vendor, model: type[ORMCustomer] | type[ORMVendor]
) -> ORMCustomer | ORMVendor:
    """Build a Customer or Vendor row from a domain entity."""
    return model(
        id=counterparty.id,
        name=counterparty.name,
        email=counterparty.email,
        phone=counterparty.phone,
        address=counterparty.address,
        tax_id=counterparty.tax_id,
        credit_limit=counterparty.credit_limit,
        payment_terms=counterparty.payment_terms,
        is_active=counterparty.is_active,
        notes=counterparty.notes,
        created_at=counterparty.created_at,
    )


def invoice_to_orm(invoice: domain.Invoice) -> ORMInvoice:
    """Build an Invoice row from a domain entity."""
    return ORMInvoice(
        id=invoice.id,
        invoice_number=invoice.invoice_number,
        invoice_type=invoice.invoice_type.value,
        customer_id=invoice.customer_id,
        vendor_id=invoice.vendor_id,
        issue_date=invoice.issue_date,
        due_date=invoice.due_date,
        subtotal=invoice.subtotal,
        tax_amount=invoice.tax_amount,
        total_amount=invoice.total_amount,
        paid_amount=invoice.paid_amount,
        status=invoice.status.value,
        tax_rate_id=invoice.tax_rate_id,
        account_id=invoice.account_id,
        journal_entry_id=invoice.journal_entry_id,
        notes=invoice.notes,
        reference=invoice.reference,
        created_at=invoice.created_at,
        updated_at=invoice.updated_at,
    )


def payment_to_orm(payment: domain.Payment) -> ORMPayment:
    """Build a Payment row from a domain entity."""
    return ORMPayment(
        id=payment.id,
        invoice_id=payment.invoice_id,
        amount=payment.amount,
        payment_date=payment.payment_date,
        payment_method=payment.payment_method.value,
        reference=payment.reference,
        notes=payment.notes,
        journal_entry_id=payment.journal_entry_id,
        created_at=payment.created_at,
    )


def tax_rate_to_orm(rate: domain.TaxRate) -> ORMTaxRate:
    """Build a TaxRate row from a domain entity."""
    return ORMTaxRate(
        id=rate.id,
        name=rate.name,
        name_en=rate.name_en,
        rate=rate.rate,
        is_active=rate.is_active,
        account_id=rate.account_id,
        description=rate.description,
        created_at=rate.created_at,
    )
