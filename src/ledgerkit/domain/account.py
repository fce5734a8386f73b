"""Account registry domain service."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from ledgerkit.database.base import Database
from ledgerkit.domain.entities import (
    Account as AccountEntity,
    AccountType,
    JournalEntryDraft,
    JournalLineDraft,
    ReferenceType,
    ZERO,
)
from ledgerkit.domain.errors import (
    AccountHasHistoryError,
    AccountInUseError,
    DuplicateCodeError,
    NotFoundError,
    ValidationError,
    account_code_not_found,
    account_not_found,
)
from ledgerkit.domain.journal import JournalService
from ledgerkit.utils.amount_parser import to_amount

logger = logging.getLogger(__name__)

CASH_CODE = "1-101"
BANK_CODE = "1-102"
INVENTORY_CODE = "1-201"
RECEIVABLE_CODE = "1-301"
PAYABLE_CODE = "2-101"
TAX_PAYABLE_CODE = "2-201"
CAPITAL_CODE = "3-101"
RETAINED_EARNINGS_CODE = "3-201"
SALES_REVENUE_CODE = "4-101"
COGS_CODE = "5-101"

# Opening balances are offset against retained earnings
OPENING_BALANCE_OFFSET_CODE = RETAINED_EARNINGS_CODE

# (code, name, type, is_current, is_cash, description)
DEFAULT_CHART_OF_ACCOUNTS = (
    (CASH_CODE, "Cash", AccountType.ASSET, True, True, "Cash on hand"),
    (BANK_CODE, "Bank", AccountType.ASSET, True, True, "Bank account"),
    (INVENTORY_CODE, "Inventory", AccountType.ASSET, True, False, "Goods and raw materials"),
    (RECEIVABLE_CODE, "Accounts Receivable", AccountType.ASSET, True, False, "Owed by customers"),
    (PAYABLE_CODE, "Accounts Payable", AccountType.LIABILITY, True, False, "Owed to vendors"),
    (TAX_PAYABLE_CODE, "Tax Payable", AccountType.LIABILITY, True, False, "Tax collected, not yet remitted"),
    (CAPITAL_CODE, "Capital", AccountType.EQUITY, False, False, "Owner's contributed capital"),
    (RETAINED_EARNINGS_CODE, "Retained Earnings", AccountType.EQUITY, False, False, "Accumulated profit or loss"),
    (SALES_REVENUE_CODE, "Sales Revenue", AccountType.REVENUE, False, False, "Revenue from sales"),
    (COGS_CODE, "Cost of Goods Sold", AccountType.COGS, False, False, "Cost of goods sold"),
    ("6-101", "Payroll Expense", AccountType.EXPENSE, False, False, "Salaries and benefits"),
    ("6-201", "Rent Expense", AccountType.EXPENSE, False, False, "Premises rent"),
    ("6-301", "Utilities Expense", AccountType.EXPENSE, False, False, "Electricity, water and gas"),
)


class AccountService:
    """Service for managing the chart of accounts."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def add_account(
        self,
        code: str,
        name: str,
        account_type: AccountType,
        opening_balance: Decimal | int | str = 0,
        opening_date: Optional[date] = None,
        is_current: bool = True,
        is_cash: bool = False,
        name_en: Optional[str] = None,
        description: Optional[str] = None,
        parent_id: Optional[int] = None,
    ) -> int:
        """Create a new account.

        A non-zero opening balance is recorded as an automatic journal entry
        against retained earnings, never written to the cached balance
        directly.

        Args:
            code: Unique business code, e.g. "1-101"
            name: Display name
            account_type: Account type
            opening_balance: Signed opening balance on the account's normal side
            opening_date: Business date of the opening entry (defaults to today)
            is_current: Current (True) or non-current asset/liability
            is_cash: Whether the account holds cash or bank funds
            name_en: Optional English name
            description: Optional description
            parent_id: Optional parent account ID

        Returns:
            Account ID

        Raises:
            DuplicateCodeError: If the code is already used
            ValidationError: If code or name is empty, or type or opening balance is invalid
            NotFoundError: If the parent or opening-balance offset account is missing
        """
        code = code.strip()
        name = name.strip()
        if not code:
            raise ValidationError("Account code cannot be empty")
        if not name:
            raise ValidationError("Account name cannot be empty")
        try:
            account_type = AccountType(account_type)
        except ValueError as e:
            raise ValidationError(f"Invalid account type: {account_type}")
        try:
            opening = to_amount(opening_balance)
        except ValueError as e:
            raise ValidationError(str(e))

        if self.db.get_account_by_code(code) is not None:
            raise DuplicateCodeError(code)
        if parent_id is not None and self.db.get_account(parent_id) is None:
            raise NotFoundError(account_not_found(parent_id))

        offset = None
        if opening != ZERO:
            offset = self.db.get_account_by_code(OPENING_BALANCE_OFFSET_CODE)
            if offset is None:
                raise NotFoundError(
                    f"Opening balance needs the offset account '{OPENING_BALANCE_OFFSET_CODE}'"
                )

        with self.db.transaction():
            account_id = self.db.create_account(
                code=code,
                name=name,
                account_type=account_type,
                is_current=is_current,
                is_cash=is_cash,
                name_en=name_en,
                description=description,
                parent_id=parent_id,
            )
            if offset is not None:
                # Positive opening balances sit on the account's normal side
                increases_with_debit = account_type.is_debit_normal == (opening > ZERO)
                amount = abs(opening)
                own = JournalLineDraft(
                    account_id=account_id,
                    debit=amount if increases_with_debit else ZERO,
                    credit=ZERO if increases_with_debit else amount,
                )
                contra = JournalLineDraft(
                    account_id=offset.id,
                    debit=own.credit,
                    credit=own.debit,
                )
                JournalService(self.db).post_entry(
                    JournalEntryDraft(
                        date=opening_date or date.today(),
                        description=f"Opening balance: {name}",
                        lines=(own, contra),
                        reference=f"opening-{code}",
                        reference_type=ReferenceType.OPENING,
                        is_automatic=True,
                    )
                )

        logger.info("Created account %s '%s' (%s)", code, name, account_type.value)
        return account_id

    def get_account(self, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID.

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def get_account_by_code(self, code: str) -> Optional[AccountEntity]:
        """Get account by business code.

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account_by_code(code.strip())

    def require_account(self, account_id: int) -> AccountEntity:
        """Get account by ID, raising NotFoundError when missing."""
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account

    def require_account_by_code(self, code: str) -> AccountEntity:
        """Get account by code, raising NotFoundError when missing."""
        account = self.get_account_by_code(code)
        if account is None:
            raise NotFoundError(account_code_not_found(code))
        return account

    def list_accounts(
        self, account_type: Optional[AccountType] = None, include_inactive: bool = False
    ) -> list[AccountEntity]:
        """List accounts ordered by code.

        Args:
            account_type: Only accounts of this type
            include_inactive: Include deactivated accounts

        Returns:
            List of account entities
        """
        return self.db.list_accounts(account_type=account_type, include_inactive=include_inactive)

    def list_by_type(self, account_type: AccountType) -> list[AccountEntity]:
        """List active accounts of one type."""
        return self.list_accounts(account_type=account_type)

    def deactivate_account(self, account_id: int) -> None:
        """Deactivate an account. Always allowed; history is kept."""
        self.require_account(account_id)
        self.db.update_account_active(account_id, False)
        logger.info("Deactivated account %s", account_id)

    def activate_account(self, account_id: int) -> None:
        """Re-activate a deactivated account."""
        self.require_account(account_id)
        self.db.update_account_active(account_id, True)

    def delete_account(self, account_id: int) -> None:
        """Hard-delete an account that no journal line references.

        Raises:
            NotFoundError: If account not found
            AccountHasHistoryError: If any journal line references the account
            AccountInUseError: If a tax rate, invoice or child account references it
        """
        self.require_account(account_id)
        with self.db.transaction():
            line_count = self.db.get_account_line_count(account_id)
            if line_count > 0:
                raise AccountHasHistoryError(account_id, line_count)
            dependents = self.db.get_account_dependents(account_id)
            if any(dependents.values()):
                raise AccountInUseError(account_id, dependents)
            self.db.delete_account(account_id)
        logger.info("Deleted account %s", account_id)

    def seed_chart_of_accounts(self) -> list[int]:
        """Create the default chart of accounts.

        Codes that already exist are left untouched, so seeding twice is
        harmless.

        Returns:
            IDs of the accounts created by this call
        """
        created = []
        with self.db.transaction():
            for code, name, account_type, is_current, is_cash, description in DEFAULT_CHART_OF_ACCOUNTS:
                if self.db.get_account_by_code(code) is not None:
                    continue
                created.append(
                    self.db.create_account(
                        code=code,
                        name=name,
                        account_type=account_type,
                        is_current=is_current,
                        is_cash=is_cash,
                        description=description,
                    )
                )
        logger.info("Seeded %d accounts", len(created))
        return created
