"""Shared domain error messages and error types."""

from decimal import Decimal


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic.

    Always safe to retry once the input is corrected; nothing was applied.
    """


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Operation conflicts with recorded history."""


class UnbalancedEntryError(ValidationError):
    """Journal entry debits and credits do not match."""

    def __init__(self, debit_total: Decimal, credit_total: Decimal):
        self.debit_total = debit_total
        self.credit_total = credit_total
        super().__init__(
            f"Journal entry is unbalanced: debits {debit_total} != credits {credit_total}"
        )


class DuplicateCodeError(ValidationError):
    """Account code already used by another account."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Account with code '{code}' already exists")


class OverpaymentError(ValidationError):
    """Payment would push an invoice's paid amount past its total."""

    def __init__(self, invoice_id: int, amount: Decimal, outstanding: Decimal):
        self.invoice_id = invoice_id
        self.amount = amount
        self.outstanding = outstanding
        super().__init__(
            f"Payment of {amount} exceeds outstanding amount {outstanding} on invoice {invoice_id}"
        )


class InvoiceNotFoundError(NotFoundError):
    """Invoice id does not exist."""

    def __init__(self, invoice_id: int):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice {invoice_id} not found")


class AccountHasHistoryError(ConflictError):
    """Account is referenced by journal lines and cannot be deleted."""

    def __init__(self, account_id: int, line_count: int):
        self.account_id = account_id
        self.line_count = line_count
        super().__init__(
            f"Cannot delete account {account_id}: it has {line_count} "
            f"journal line{'s' if line_count != 1 else ''}. Deactivate it instead."
        )


class AccountInUseError(ConflictError):
    """Tax rates, invoices or child accounts still point at the account."""

    def __init__(self, account_id: int, dependents: dict[str, int]):
        self.account_id = account_id
        self.dependents = dependents
        used_by = ", ".join(
            f"{count} {kind}{'s' if count != 1 else ''}"
            for kind, count in dependents.items()
            if count
        )
        super().__init__(
            f"Cannot delete account {account_id}: it is used by {used_by}. Deactivate it instead."
        )


class AlreadyReversedError(ConflictError):
    """Journal entry has already been reversed."""

    def __init__(self, entry_id: int):
        self.entry_id = entry_id
        super().__init__(f"Journal entry {entry_id} is already reversed")


class HasPaymentsError(ConflictError):
    """Invoice has recorded payments."""

    def __init__(self, invoice_id: int, paid_amount: Decimal):
        self.invoice_id = invoice_id
        self.paid_amount = paid_amount
        super().__init__(
            f"Cannot delete invoice {invoice_id}: {paid_amount} has already been paid"
        )


class HasOpenInvoicesError(ConflictError):
    """Customer or vendor is referenced by invoices."""

    def __init__(self, kind: str, counterparty_id: int, invoice_count: int):
        self.kind = kind
        self.counterparty_id = counterparty_id
        self.invoice_count = invoice_count
        super().__init__(
            f"Cannot delete {kind} {counterparty_id}: it has {invoice_count} "
            f"invoice{'s' if invoice_count != 1 else ''}"
        )


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def account_code_not_found(code: str) -> str:
    """Return message for missing account by code."""
    return f"Account with code '{code}' not found"


def entry_not_found(entry_id: int) -> str:
    """Return message for missing journal entry."""
    return f"Journal entry {entry_id} not found"


def customer_not_found(customer_id: int) -> str:
    """Return message for missing customer."""
    return f"Customer {customer_id} not found"


def vendor_not_found(vendor_id: int) -> str:
    """Return message for missing vendor."""
    return f"Vendor {vendor_id} not found"


def tax_rate_not_found(tax_rate_id: int) -> str:
    """Return message for missing tax rate."""
    return f"Tax rate {tax_rate_id} not found"
