"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional
from datetime import date
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from ledgerkit.domain.entities import (
    Account,
    AccountType,
    Customer,
    Invoice,
    InvoiceStatus,
    InvoiceType,
    JournalEntry,
    JournalLineDraft,
    LedgerState,
    Payment,
    PaymentMethod,
    ReferenceType,
    TaxRate,
    TaxSettings,
    Vendor,
)


class Database(ABC):
    """Abstract database interface for ledgerkit."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """Group writes into one atomic unit of work.

        Re-entrant: nested blocks join the outermost one. Changes are
        committed when the outermost block exits and rolled back if any
        exception escapes it.
        """
        pass

    @abstractmethod
    def locked(self) -> AbstractContextManager[None]:
        """Hold the database lock so several reads see one consistent state."""
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self,
        code: str,
        name: str,
        account_type: AccountType,
        is_current: bool = True,
        is_cash: bool = False,
        name_en: Optional[str] = None,
        description: Optional[str] = None,
        parent_id: Optional[int] = None,
    ) -> int:
        """Create a new account with zero balance. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def get_account_by_code(self, code: str) -> Optional[Account]:
        """Get account by its business code."""
        pass

    @abstractmethod
    def list_accounts(
        self, account_type: Optional[AccountType] = None, include_inactive: bool = True
    ) -> list[Account]:
        """List accounts ordered by code."""
        pass

    @abstractmethod
    def update_account_active(self, account_id: int, is_active: bool) -> None:
        """Set the account's active flag."""
        pass

    @abstractmethod
    def delete_account(self, account_id: int) -> None:
        """Hard-delete an account row."""
        pass

    @abstractmethod
    def get_account_line_count(self, account_id: int) -> int:
        """Count journal lines referencing an account."""
        pass

    @abstractmethod
    def get_account_dependents(self, account_id: int) -> dict[str, int]:
        """Count tax rates, invoices and child accounts pointing at an account."""
        pass

    @abstractmethod
    def adjust_account_balances(self, deltas: dict[int, Decimal]) -> None:
        """Add each delta to the account's cached balance."""
        pass

    @abstractmethod
    def set_account_balances(self, balances: dict[int, Decimal]) -> None:
        """Overwrite cached balances."""
        pass

    # Journal operations
    @abstractmethod
    def create_journal_entry(
        self,
        date: date,
        description: str,
        lines: tuple[JournalLineDraft, ...],
        reference: Optional[str] = None,
        reference_type: Optional[ReferenceType] = None,
        is_automatic: bool = False,
        reversal_of: Optional[int] = None,
        created_by: Optional[str] = None,
    ) -> int:
        """Append a journal entry with its lines. Returns entry ID."""
        pass

    @abstractmethod
    def get_journal_entry(self, entry_id: int) -> Optional[JournalEntry]:
        """Get journal entry by ID."""
        pass

    @abstractmethod
    def mark_journal_entry_reversed(self, entry_id: int) -> None:
        """Flag a journal entry as reversed."""
        pass

    @abstractmethod
    def list_journal_entries(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_id: Optional[int] = None,
        reference: Optional[str] = None,
        reference_type: Optional[ReferenceType] = None,
    ) -> list[JournalEntry]:
        """List journal entries ordered by date, then creation.

        Args:
            start_date: Optional inclusive start date
            end_date: Optional inclusive end date
            account_id: Only entries with a line on this account
            reference: Only entries tagged with this business-event id
            reference_type: Only entries of this kind
        """
        pass

    # Customer operations
    @abstractmethod
    def create_customer(self, name: str, **details) -> int:
        """Create a customer. Returns customer ID."""
        pass

    @abstractmethod
    def get_customer(self, customer_id: int) -> Optional[Customer]:
        """Get customer by ID."""
        pass

    @abstractmethod
    def list_customers(self, include_inactive: bool = False) -> list[Customer]:
        """List customers ordered by name."""
        pass

    @abstractmethod
    def update_customer(self, customer_id: int, **fields) -> None:
        """Update customer fields."""
        pass

    @abstractmethod
    def delete_customer(self, customer_id: int) -> None:
        """Delete a customer row."""
        pass

    # Vendor operations
    @abstractmethod
    def create_vendor(self, name: str, **details) -> int:
        """Create a vendor. Returns vendor ID."""
        pass

    @abstractmethod
    def get_vendor(self, vendor_id: int) -> Optional[Vendor]:
        """Get vendor by ID."""
        pass

    @abstractmethod
    def list_vendors(self, include_inactive: bool = False) -> list[Vendor]:
        """List vendors ordered by name."""
        pass

    @abstractmethod
    def update_vendor(self, vendor_id: int, **fields) -> None:
        """Update vendor fields."""
        pass

    @abstractmethod
    def delete_vendor(self, vendor_id: int) -> None:
        """Delete a vendor row."""
        pass

    # Invoice operations
    @abstractmethod
    def create_invoice(
        self,
        invoice_number: str,
        invoice_type: InvoiceType,
        issue_date: date,
        due_date: date,
        subtotal: Decimal,
        tax_amount: Decimal,
        total_amount: Decimal,
        status: InvoiceStatus,
        customer_id: Optional[int] = None,
        vendor_id: Optional[int] = None,
        tax_rate_id: Optional[int] = None,
        account_id: Optional[int] = None,
        notes: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> int:
        """Create an invoice with nothing paid. Returns invoice ID."""
        pass

    @abstractmethod
    def get_invoice(self, invoice_id: int) -> Optional[Invoice]:
        """Get invoice by ID."""
        pass

    @abstractmethod
    def get_invoice_by_number(self, invoice_number: str) -> Optional[Invoice]:
        """Get invoice by invoice number."""
        pass

    @abstractmethod
    def list_invoices(
        self,
        invoice_type: Optional[InvoiceType] = None,
        customer_id: Optional[int] = None,
        vendor_id: Optional[int] = None,
        status: Optional[InvoiceStatus] = None,
    ) -> list[Invoice]:
        """List invoices ordered by issue date, then ID."""
        pass

    @abstractmethod
    def update_invoice(
        self,
        invoice_id: int,
        status: Optional[InvoiceStatus] = None,
        paid_amount: Optional[Decimal] = None,
        journal_entry_id: Optional[int] = None,
    ) -> None:
        """Update invoice state after posting or payment."""
        pass

    @abstractmethod
    def delete_invoice(self, invoice_id: int) -> None:
        """Delete an invoice row."""
        pass

    # Payment operations
    @abstractmethod
    def create_payment(
        self,
        invoice_id: int,
        amount: Decimal,
        payment_date: date,
        payment_method: PaymentMethod,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> int:
        """Record a payment row. Returns payment ID."""
        pass

    @abstractmethod
    def set_payment_journal_entry(self, payment_id: int, entry_id: int) -> None:
        """Link a payment to the journal entry it produced."""
        pass

    @abstractmethod
    def list_payments(self, invoice_id: Optional[int] = None) -> list[Payment]:
        """List payments ordered by payment date, then ID."""
        pass

    # Tax operations
    @abstractmethod
    def create_tax_rate(
        self,
        name: str,
        rate: Decimal,
        account_id: int,
        name_en: Optional[str] = None,
        description: Optional[str] = None,
    ) -> int:
        """Create a tax rate. Returns tax rate ID."""
        pass

    @abstractmethod
    def get_tax_rate(self, tax_rate_id: int) -> Optional[TaxRate]:
        """Get tax rate by ID."""
        pass

    @abstractmethod
    def list_tax_rates(self, include_inactive: bool = False) -> list[TaxRate]:
        """List tax rates."""
        pass

    @abstractmethod
    def update_tax_rate_active(self, tax_rate_id: int, is_active: bool) -> None:
        """Set the tax rate's active flag."""
        pass

    @abstractmethod
    def get_tax_settings(self) -> TaxSettings:
        """Get tax settings (defaults when never saved)."""
        pass

    @abstractmethod
    def save_tax_settings(self, settings: TaxSettings) -> None:
        """Store tax settings."""
        pass

    # Full-state operations
    @abstractmethod
    def dump_state(self) -> LedgerState:
        """Read the complete ledger state."""
        pass

    @abstractmethod
    def replace_state(self, state: LedgerState) -> None:
        """Replace the complete ledger state, keeping entity ids."""
        pass
