"""Posting rules that turn business events into journal entries."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from ledgerkit.database.base import Database
from ledgerkit.domain.account import (
    BANK_CODE,
    CASH_CODE,
    COGS_CODE,
    INVENTORY_CODE,
    PAYABLE_CODE,
    SALES_REVENUE_CODE,
    TAX_PAYABLE_CODE,
    AccountService,
)
from ledgerkit.domain.entities import (
    Account,
    AccountType,
    JournalEntryDraft,
    JournalLineDraft,
    PaymentMethod,
    ReferenceType,
    ZERO,
)
from ledgerkit.domain.errors import ValidationError
from ledgerkit.domain.journal import JournalService
from ledgerkit.domain.tax import TaxService
from ledgerkit.utils.amount_parser import to_amount

logger = logging.getLogger(__name__)

# Where money lands for each payment method
PAYMENT_ACCOUNT_CODES = {
    PaymentMethod.CASH: CASH_CODE,
    PaymentMethod.CARD: BANK_CODE,
    PaymentMethod.TRANSFER: BANK_CODE,
}

PURCHASE_ACCOUNT_TYPES = (AccountType.ASSET, AccountType.EXPENSE, AccountType.COGS)


def _positive(value, label: str) -> Decimal:
    try:
        amount = to_amount(value)
    except ValueError as e:
        raise ValidationError(str(e))
    if amount <= ZERO:
        raise ValidationError(f"{label} must be positive")
    return amount


def _non_negative(value, label: str) -> Decimal:
    try:
        amount = to_amount(value)
    except ValueError as e:
        raise ValidationError(str(e))
    if amount < ZERO:
        raise ValidationError(f"{label} cannot be negative")
    return amount


class PostingService:
    """Service for recording sales and purchases straight to the journal.

    Each call produces exactly one automatic journal entry.
    """

    def __init__(self, db: Database):
        """Initialize posting service.

        Args:
            db: Database instance
        """
        self.db = db
        self.accounts = AccountService(db)
        self.journal = JournalService(db)
        self.tax = TaxService(db)

    def payment_account(self, payment_method: PaymentMethod) -> Account:
        """Cash or bank account that receives or pays out for a payment method."""
        return self.accounts.require_account_by_code(
            PAYMENT_ACCOUNT_CODES[PaymentMethod(payment_method)]
        )

    def revenue_account(self, account_id: Optional[int] = None) -> Account:
        """Given revenue account, or the default sales revenue account."""
        if account_id is None:
            return self.accounts.require_account_by_code(SALES_REVENUE_CODE)
        account = self.accounts.require_account(account_id)
        if account.account_type != AccountType.REVENUE:
            raise ValidationError(f"Account {account.code} is not a revenue account")
        return account

    def purchase_account(self, account_id: Optional[int] = None) -> Account:
        """Given inventory/expense account, or the default inventory account."""
        if account_id is None:
            return self.accounts.require_account_by_code(INVENTORY_CODE)
        account = self.accounts.require_account(account_id)
        if account.account_type not in PURCHASE_ACCOUNT_TYPES:
            raise ValidationError(
                f"Account {account.code} cannot be debited for a purchase "
                f"({account.account_type.value})"
            )
        return account

    def tax_account(self, tax_rate_id: Optional[int] = None) -> Account:
        """Liability account collected tax is credited to."""
        tax_rate = self.tax.resolve_rate(tax_rate_id)
        if tax_rate is not None:
            return self.accounts.require_account(tax_rate.account_id)
        return self.accounts.require_account_by_code(TAX_PAYABLE_CODE)

    def split_tax(
        self,
        amount: Decimal,
        tax_rate_id: Optional[int],
        tax_amount: Optional[Decimal | str],
    ) -> tuple[Decimal, Decimal]:
        """Return (subtotal, tax) for an amount.

        An explicit tax amount is added on top of the amount; otherwise the
        tax rate (if any) is applied according to the tax settings.
        """
        if tax_amount is not None:
            return amount, _non_negative(tax_amount, "Tax amount")
        if tax_rate_id is None:
            return amount, ZERO
        breakdown = self.tax.calculate_tax(amount, tax_rate_id)
        return breakdown.subtotal, breakdown.tax

    def record_sale(
        self,
        sale_date: date,
        amount: Decimal | str | int,
        payment_method: PaymentMethod = PaymentMethod.CASH,
        tax_rate_id: Optional[int] = None,
        tax_amount: Optional[Decimal | str] = None,
        cost_of_goods: Decimal | str | int = 0,
        account_id: Optional[int] = None,
        reference: Optional[str] = None,
        description: Optional[str] = None,
    ) -> int:
        """Record a paid sale.

        Posts Dr cash/bank total, Cr revenue subtotal, Cr tax payable tax,
        and, when a cost is given, Dr COGS / Cr inventory.

        Args:
            sale_date: Business date of the sale
            amount: Sale amount (gross or net depending on tax settings)
            payment_method: How the customer paid
            tax_rate_id: Tax rate to apply
            tax_amount: Explicit tax on top of the amount (overrides the rate)
            cost_of_goods: Inventory cost of the goods sold
            account_id: Revenue account (defaults to sales revenue)
            reference: Business-event id to tag the entry with

        Returns:
            Journal entry ID
        """
        amount = _positive(amount, "Sale amount")
        cost = _non_negative(cost_of_goods, "Cost of goods")
        subtotal, tax = self.split_tax(amount, tax_rate_id, tax_amount)

        with self.db.transaction():
            lines = [
                JournalLineDraft(
                    account_id=self.payment_account(payment_method).id,
                    debit=subtotal + tax,
                ),
                JournalLineDraft(account_id=self.revenue_account(account_id).id, credit=subtotal),
            ]
            if tax > ZERO:
                lines.append(
                    JournalLineDraft(account_id=self.tax_account(tax_rate_id).id, credit=tax)
                )
            if cost > ZERO:
                lines.append(
                    JournalLineDraft(
                        account_id=self.accounts.require_account_by_code(COGS_CODE).id,
                        debit=cost,
                    )
                )
                lines.append(
                    JournalLineDraft(
                        account_id=self.accounts.require_account_by_code(INVENTORY_CODE).id,
                        credit=cost,
                    )
                )

            entry_id = self.journal.post_entry(
                JournalEntryDraft(
                    date=sale_date,
                    description=description or f"Sale of {subtotal + tax}",
                    lines=tuple(lines),
                    reference=reference,
                    reference_type=ReferenceType.SALE,
                    is_automatic=True,
                )
            )
        logger.info("Recorded sale %s (tax %s, cost %s)", subtotal + tax, tax, cost)
        return entry_id

    def record_purchase(
        self,
        purchase_date: date,
        amount: Decimal | str | int,
        paid: bool = True,
        payment_method: PaymentMethod = PaymentMethod.CASH,
        account_id: Optional[int] = None,
        reference: Optional[str] = None,
        description: Optional[str] = None,
    ) -> int:
        """Record a purchase, paid now or owed to the supplier.

        Posts Dr inventory/expense, Cr cash/bank when paid or Cr accounts
        payable when due.

        Returns:
            Journal entry ID
        """
        amount = _positive(amount, "Purchase amount")

        with self.db.transaction():
            debit_account = self.purchase_account(account_id)
            if paid:
                credit_account = self.payment_account(payment_method)
            else:
                credit_account = self.accounts.require_account_by_code(PAYABLE_CODE)

            entry_id = self.journal.post_entry(
                JournalEntryDraft(
                    date=purchase_date,
                    description=description or f"Purchase of {amount}",
                    lines=(
                        JournalLineDraft(account_id=debit_account.id, debit=amount),
                        JournalLineDraft(account_id=credit_account.id, credit=amount),
                    ),
                    reference=reference,
                    reference_type=ReferenceType.PURCHASE,
                    is_automatic=True,
                )
            )
        logger.info("Recorded %s purchase %s", "paid" if paid else "due", amount)
        return entry_id
