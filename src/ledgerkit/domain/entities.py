"""Domain model entities for ledgerkit.

These are pure data classes representing accounting concepts, independent of
database schema. Report results are plain frozen data as well, so callers can
render or export them without touching the services that built them.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional

ZERO = Decimal("0.00")

# Two amounts closer than one minor currency unit are considered equal.
TOLERANCE = Decimal("0.01")


class AccountType(str, Enum):
    """Account classification; decides the account's normal side."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    COGS = "cogs"
    EXPENSE = "expense"

    @property
    def is_debit_normal(self) -> bool:
        return self in (AccountType.ASSET, AccountType.EXPENSE, AccountType.COGS)


class ReferenceType(str, Enum):
    """Kind of business event that produced a journal entry."""

    SALE = "sale"
    PURCHASE = "purchase"
    PAYMENT = "payment"
    ADJUSTMENT = "adjustment"
    OPENING = "opening"
    MANUAL = "manual"


class InvoiceType(str, Enum):
    SALE = "sale"
    PURCHASE = "purchase"


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    ISSUED = "issued"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    TRANSFER = "transfer"


class AgingKind(str, Enum):
    RECEIVABLE = "receivable"
    PAYABLE = "payable"

    @property
    def invoice_type(self) -> InvoiceType:
        return InvoiceType.SALE if self is AgingKind.RECEIVABLE else InvoiceType.PURCHASE


@dataclass(frozen=True)
class Account:
    """Chart of accounts entry.

    ``balance`` is a cached running total as of now; historical queries go
    through the balance resolver instead.
    """

    id: int
    code: str
    name: str
    account_type: AccountType
    balance: Decimal
    is_active: bool
    is_current: bool
    is_cash: bool
    created_at: datetime
    name_en: Optional[str] = None
    description: Optional[str] = None
    parent_id: Optional[int] = None


@dataclass(frozen=True)
class JournalLine:
    """One debit/credit line of a posted journal entry."""

    account_id: int
    debit: Decimal
    credit: Decimal
    description: Optional[str] = None


@dataclass(frozen=True)
class JournalEntry:
    """Posted journal entry; immutable apart from the reversal flag."""

    id: int
    date: date
    description: str
    lines: tuple[JournalLine, ...]
    is_automatic: bool
    is_reversed: bool
    created_at: datetime
    reference: Optional[str] = None
    reference_type: Optional[ReferenceType] = None
    reversal_of: Optional[int] = None
    created_by: Optional[str] = None

    @property
    def debit_total(self) -> Decimal:
        return sum((line.debit for line in self.lines), ZERO)

    @property
    def credit_total(self) -> Decimal:
        return sum((line.credit for line in self.lines), ZERO)


@dataclass(frozen=True)
class JournalLineDraft:
    account_id: int
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    description: Optional[str] = None


@dataclass(frozen=True)
class JournalEntryDraft:
    """Unposted journal entry as submitted by a caller."""

    date: date
    description: str
    lines: tuple[JournalLineDraft, ...]
    reference: Optional[str] = None
    reference_type: Optional[ReferenceType] = None
    is_automatic: bool = False
    created_by: Optional[str] = None


@dataclass(frozen=True)
class Customer:
    """Customer (receivables counterparty). ``balance`` is derived."""

    id: int
    name: str
    is_active: bool
    created_at: datetime
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    tax_id: Optional[str] = None
    credit_limit: Optional[Decimal] = None
    payment_terms: Optional[int] = None
    notes: Optional[str] = None
    balance: Decimal = ZERO


@dataclass(frozen=True)
class Vendor:
    """Vendor (payables counterparty). ``balance`` is derived."""

    id: int
    name: str
    is_active: bool
    created_at: datetime
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    tax_id: Optional[str] = None
    credit_limit: Optional[Decimal] = None
    payment_terms: Optional[int] = None
    notes: Optional[str] = None
    balance: Decimal = ZERO


@dataclass(frozen=True)
class Invoice:
    id: int
    invoice_number: str
    invoice_type: InvoiceType
    issue_date: date
    due_date: date
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    status: InvoiceStatus
    created_at: datetime
    updated_at: datetime
    customer_id: Optional[int] = None
    vendor_id: Optional[int] = None
    tax_rate_id: Optional[int] = None
    account_id: Optional[int] = None
    journal_entry_id: Optional[int] = None
    notes: Optional[str] = None
    reference: Optional[str] = None

    @property
    def outstanding(self) -> Decimal:
        return self.total_amount - self.paid_amount


@dataclass(frozen=True)
class InvoiceDraft:
    """Invoice as submitted by a caller.

    ``tax_amount`` left as None is computed from ``tax_rate_id``; with
    ``issue`` False the invoice stays a draft and posts nothing.
    """

    invoice_type: InvoiceType
    issue_date: date
    subtotal: Decimal
    tax_amount: Optional[Decimal] = None
    due_date: Optional[date] = None
    customer_id: Optional[int] = None
    vendor_id: Optional[int] = None
    tax_rate_id: Optional[int] = None
    account_id: Optional[int] = None
    invoice_number: Optional[str] = None
    issue: bool = True
    notes: Optional[str] = None
    reference: Optional[str] = None


@dataclass(frozen=True)
class Payment:
    id: int
    invoice_id: int
    amount: Decimal
    payment_date: date
    payment_method: PaymentMethod
    created_at: datetime
    journal_entry_id: Optional[int] = None
    reference: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class TaxRate:
    id: int
    name: str
    rate: Decimal
    is_active: bool
    account_id: int
    created_at: datetime
    name_en: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class TaxSettings:
    enabled: bool = True
    default_tax_rate_id: Optional[int] = None
    include_tax_in_price: bool = False
    show_tax_on_receipts: bool = True


@dataclass(frozen=True)
class TaxBreakdown:
    """Split of a gross or net amount into subtotal and tax."""

    subtotal: Decimal
    tax: Decimal
    total: Decimal
    rate: Decimal
    tax_rate_id: Optional[int] = None


@dataclass(frozen=True)
class ConsistencyWarning:
    """A reconciliation that did not hold.

    Not a rejection: the books were accepted, but the mismatch points at a
    latent bug and is surfaced alongside the report that found it.
    """

    check: str
    message: str
    expected: Decimal
    actual: Decimal
    account_id: Optional[int] = None

    @property
    def difference(self) -> Decimal:
        return self.actual - self.expected


@dataclass(frozen=True)
class LedgerState:
    """Full ledger state, as loaded from or saved to a snapshot."""

    accounts: tuple[Account, ...] = ()
    journal_entries: tuple[JournalEntry, ...] = ()
    customers: tuple[Customer, ...] = ()
    vendors: tuple[Vendor, ...] = ()
    invoices: tuple[Invoice, ...] = ()
    payments: tuple[Payment, ...] = ()
    tax_rates: tuple[TaxRate, ...] = ()
    tax_settings: TaxSettings = field(default_factory=TaxSettings)


# Report structures


@dataclass(frozen=True)
class LedgerLine:
    entry_id: int
    date: date
    description: str
    debit: Decimal
    credit: Decimal
    balance: Decimal
    reference: Optional[str] = None


@dataclass(frozen=True)
class AccountLedgerView:
    account: Account
    opening_balance: Decimal
    lines: tuple[LedgerLine, ...]
    closing_balance: Decimal


@dataclass(frozen=True)
class TrialBalanceRow:
    account: Account
    debit: Decimal
    credit: Decimal
    balance: Decimal


@dataclass(frozen=True)
class TrialBalance:
    as_of: Optional[date]
    rows: tuple[TrialBalanceRow, ...]
    total_debit: Decimal
    total_credit: Decimal
    balanced: bool


@dataclass(frozen=True)
class StatementLine:
    account: Account
    amount: Decimal


@dataclass(frozen=True)
class BalanceSheetSection:
    current: tuple[StatementLine, ...]
    non_current: tuple[StatementLine, ...]
    total: Decimal


@dataclass(frozen=True)
class EquitySection:
    accounts: tuple[StatementLine, ...]
    current_earnings: Decimal
    total: Decimal


@dataclass(frozen=True)
class BalanceSheet:
    as_of: Optional[date]
    assets: BalanceSheetSection
    liabilities: BalanceSheetSection
    equity: EquitySection
    balanced: bool
    warnings: tuple[ConsistencyWarning, ...] = ()


@dataclass(frozen=True)
class StatementSection:
    accounts: tuple[StatementLine, ...]
    total: Decimal


@dataclass(frozen=True)
class IncomeStatement:
    start_date: date
    end_date: date
    revenue: StatementSection
    cogs: StatementSection
    expenses: StatementSection
    gross_profit: Decimal
    gross_margin: Decimal
    net_income: Decimal
    net_margin: Decimal


@dataclass(frozen=True)
class CashFlowItem:
    description: str
    amount: Decimal
    account_id: Optional[int] = None


@dataclass(frozen=True)
class CashFlowSection:
    items: tuple[CashFlowItem, ...]
    total: Decimal


@dataclass(frozen=True)
class CashFlowStatement:
    start_date: date
    end_date: date
    net_income: Decimal
    operating: CashFlowSection
    investing: CashFlowSection
    financing: CashFlowSection
    net_cash_flow: Decimal
    beginning_cash: Decimal
    ending_cash: Decimal
    reconciliation_difference: Decimal
    warnings: tuple[ConsistencyWarning, ...] = ()

    @property
    def operating_total(self) -> Decimal:
        return self.net_income + self.operating.total

    @property
    def reconciled(self) -> bool:
        return abs(self.reconciliation_difference) < TOLERANCE


@dataclass(frozen=True)
class TaxTransaction:
    entry_id: int
    date: date
    amount: Decimal
    tax_amount: Decimal
    tax_rate: Decimal
    reference: Optional[str] = None


@dataclass(frozen=True)
class TaxReport:
    start_date: date
    end_date: date
    taxable_revenue: Decimal
    non_taxable_revenue: Decimal
    total_revenue: Decimal
    tax_collected: Decimal
    tax_rate: Decimal
    transactions: tuple[TaxTransaction, ...]


@dataclass(frozen=True)
class AgingBucket:
    period: str
    amount: Decimal
    count: int


@dataclass(frozen=True)
class AgingDetail:
    invoice_id: int
    name: str
    invoice_number: str
    issue_date: date
    due_date: date
    amount: Decimal
    days_overdue: int


@dataclass(frozen=True)
class AgingReport:
    kind: AgingKind
    as_of: date
    current: AgingBucket
    days_31_to_60: AgingBucket
    days_61_to_90: AgingBucket
    over_90: AgingBucket
    total: Decimal
    details: tuple[AgingDetail, ...]

    @property
    def buckets(self) -> tuple[AgingBucket, ...]:
        return (self.current, self.days_31_to_60, self.days_61_to_90, self.over_90)
