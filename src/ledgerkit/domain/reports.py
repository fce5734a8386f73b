"""Ledger reporter: trial balance, financial statements and tax report.

Every figure is derived from the journal through the balance resolver;
cached account balances are never read here.
"""

import logging
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from ledgerkit.database.base import Database
from ledgerkit.domain.account import TAX_PAYABLE_CODE
from ledgerkit.domain.balance import BalanceService, effective_entries, signed_amount
from ledgerkit.domain.entities import (
    Account,
    AccountLedgerView,
    AccountType,
    BalanceSheet,
    BalanceSheetSection,
    CashFlowItem,
    CashFlowSection,
    CashFlowStatement,
    ConsistencyWarning,
    EquitySection,
    IncomeStatement,
    LedgerLine,
    ReferenceType,
    StatementLine,
    StatementSection,
    TaxReport,
    TaxTransaction,
    TOLERANCE,
    TrialBalance,
    TrialBalanceRow,
    ZERO,
)
from ledgerkit.domain.errors import NotFoundError, ValidationError, account_not_found

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")
PERCENT_PLACES = Decimal("0.01")
RATE_PLACES = Decimal("0.0001")


def percentage(part: Decimal, whole: Decimal) -> Decimal:
    """``part`` as a percentage of ``whole``; zero when ``whole`` is zero."""
    if whole == ZERO:
        return ZERO
    return (part / whole * HUNDRED).quantize(PERCENT_PLACES, rounding=ROUND_HALF_UP)


def earnings(accounts: list[Account], balances: dict[int, Decimal]) -> Decimal:
    """Revenue minus COGS minus expenses over the given balances."""
    total = ZERO
    for account in accounts:
        amount = balances.get(account.id, ZERO)
        if account.account_type == AccountType.REVENUE:
            total += amount
        elif account.account_type in (AccountType.COGS, AccountType.EXPENSE):
            total -= amount
    return total


def _check_period(start_date: date, end_date: date) -> None:
    if start_date > end_date:
        raise ValidationError(f"Start date {start_date} is after end date {end_date}")


def _lines(accounts: list[Account], amounts: dict[int, Decimal]) -> tuple[StatementLine, ...]:
    return tuple(
        StatementLine(account=account, amount=amounts.get(account.id, ZERO))
        for account in accounts
        if amounts.get(account.id, ZERO) != ZERO
    )


def _total(lines: tuple[StatementLine, ...]) -> Decimal:
    return sum((line.amount for line in lines), ZERO)


class ReportService:
    """Service for building ledger reports."""

    def __init__(self, db: Database):
        """Initialize report service.

        Args:
            db: Database instance
        """
        self.db = db
        self.balances = BalanceService(db)

    def _accounts(self) -> list[Account]:
        return self.db.list_accounts(include_inactive=True)

    def general_ledger(
        self,
        account_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[AccountLedgerView]:
        """Running-balance ledger per account.

        Args:
            account_id: Single account (None for every active account)
            start_date: First date shown; earlier history folds into the opening balance
            end_date: Last date shown

        Returns:
            One view per selected account, ordered by code
        """
        if start_date and end_date:
            _check_period(start_date, end_date)

        with self.db.locked():
            if account_id is not None:
                account = self.db.get_account(account_id)
                if account is None:
                    raise NotFoundError(account_not_found(account_id))
                accounts = [account]
            else:
                accounts = self.db.list_accounts(include_inactive=False)

            if start_date is not None:
                opening = self.balances.balances_as_of(start_date - timedelta(days=1))
            else:
                opening = {}
            entries = effective_entries(
                self.db.list_journal_entries(
                    start_date=start_date, end_date=end_date, account_id=account_id
                )
            )

        views = []
        for account in accounts:
            opening_balance = opening.get(account.id, ZERO)
            running = opening_balance
            lines = []
            for entry in entries:
                for line in entry.lines:
                    if line.account_id != account.id:
                        continue
                    running += signed_amount(account.account_type, line.debit, line.credit)
                    lines.append(
                        LedgerLine(
                            entry_id=entry.id,
                            date=entry.date,
                            description=line.description or entry.description,
                            debit=line.debit,
                            credit=line.credit,
                            balance=running,
                            reference=entry.reference,
                        )
                    )
            views.append(
                AccountLedgerView(
                    account=account,
                    opening_balance=opening_balance,
                    lines=tuple(lines),
                    closing_balance=running,
                )
            )
        return views

    def trial_balance(self, as_of: Optional[date] = None) -> TrialBalance:
        """List every non-zero balance in its debit or credit column.

        A balance with the account's normal sign goes in the normal-side
        column. A flipped balance goes in the opposite column, so the two
        totals always agree with the journal's own debit/credit totals.
        Deactivated accounts are listed too while they carry a balance,
        since their history still counts toward both totals.
        """
        with self.db.locked():
            accounts = self._accounts()
            balances = self.balances.balances_as_of(as_of)

        rows = []
        for account in accounts:
            balance = balances.get(account.id, ZERO)
            if balance == ZERO:
                continue
            on_debit_side = account.account_type.is_debit_normal == (balance > ZERO)
            rows.append(
                TrialBalanceRow(
                    account=account,
                    debit=abs(balance) if on_debit_side else ZERO,
                    credit=ZERO if on_debit_side else abs(balance),
                    balance=balance,
                )
            )

        total_debit = sum((row.debit for row in rows), ZERO)
        total_credit = sum((row.credit for row in rows), ZERO)
        balanced = abs(total_debit - total_credit) < TOLERANCE
        if not balanced:
            logger.warning(
                "Trial balance as of %s does not balance: debits %s, credits %s",
                as_of or "now",
                total_debit,
                total_credit,
            )
        return TrialBalance(
            as_of=as_of,
            rows=tuple(rows),
            total_debit=total_debit,
            total_credit=total_credit,
            balanced=balanced,
        )

    def balance_sheet(self, as_of: Optional[date] = None) -> BalanceSheet:
        """Assets against liabilities and equity at a date.

        Equity carries a derived current earnings line (cumulative revenue
        less COGS and expenses), since profit is never closed into retained
        earnings. An imbalance is reported, not corrected.
        Deactivated accounts with a balance still appear.
        """
        with self.db.locked():
            accounts = self._accounts()
            balances = self.balances.balances_as_of(as_of)

        def by_type(account_type, current=None):
            return [
                a
                for a in accounts
                if a.account_type == account_type and (current is None or a.is_current == current)
            ]

        current_assets = _lines(by_type(AccountType.ASSET, True), balances)
        fixed_assets = _lines(by_type(AccountType.ASSET, False), balances)
        current_liabilities = _lines(by_type(AccountType.LIABILITY, True), balances)
        long_term_liabilities = _lines(by_type(AccountType.LIABILITY, False), balances)
        equity_lines = _lines(by_type(AccountType.EQUITY), balances)
        current_earnings = earnings(accounts, balances)

        assets = BalanceSheetSection(
            current=current_assets,
            non_current=fixed_assets,
            total=_total(current_assets) + _total(fixed_assets),
        )
        liabilities = BalanceSheetSection(
            current=current_liabilities,
            non_current=long_term_liabilities,
            total=_total(current_liabilities) + _total(long_term_liabilities),
        )
        equity = EquitySection(
            accounts=equity_lines,
            current_earnings=current_earnings,
            total=_total(equity_lines) + current_earnings,
        )

        liabilities_and_equity = liabilities.total + equity.total
        balanced = abs(assets.total - liabilities_and_equity) < TOLERANCE
        warnings = ()
        if not balanced:
            warning = ConsistencyWarning(
                check="balance_sheet",
                message=(
                    f"Balance sheet as of {as_of or 'now'} does not balance: assets "
                    f"{assets.total}, liabilities and equity {liabilities_and_equity}"
                ),
                expected=assets.total,
                actual=liabilities_and_equity,
            )
            logger.warning(warning.message)
            warnings = (warning,)

        return BalanceSheet(
            as_of=as_of,
            assets=assets,
            liabilities=liabilities,
            equity=equity,
            balanced=balanced,
            warnings=warnings,
        )

    def income_statement(self, start_date: date, end_date: date) -> IncomeStatement:
        """Revenue, COGS and expenses as movements within [start, end].

        Accounts without movement are left out of the listing.
        """
        _check_period(start_date, end_date)
        with self.db.locked():
            accounts = self._accounts()
            activity = self.balances.period_activity(start_date, end_date)

        def section(account_type):
            lines = _lines([a for a in accounts if a.account_type == account_type], activity)
            return StatementSection(accounts=lines, total=_total(lines))

        revenue = section(AccountType.REVENUE)
        cogs = section(AccountType.COGS)
        expenses = section(AccountType.EXPENSE)
        gross_profit = revenue.total - cogs.total
        net_income = gross_profit - expenses.total

        return IncomeStatement(
            start_date=start_date,
            end_date=end_date,
            revenue=revenue,
            cogs=cogs,
            expenses=expenses,
            gross_profit=gross_profit,
            gross_margin=percentage(gross_profit, revenue.total),
            net_income=net_income,
            net_margin=percentage(net_income, revenue.total),
        )

    def cash_flow_statement(self, start_date: date, end_date: date) -> CashFlowStatement:
        """Indirect-method cash flow for [start, end].

        Starts from net income and adjusts for balance changes outside the
        cash accounts: current assets and liabilities (operating),
        non-current assets (investing), non-current liabilities and equity
        (financing). The result is reconciled with the actual change in
        cash; any gap is returned in ``reconciliation_difference``.
        """
        _check_period(start_date, end_date)
        with self.db.locked():
            accounts = self._accounts()
            activity = self.balances.period_activity(start_date, end_date)
            opening = self.balances.balances_as_of(start_date - timedelta(days=1))
            closing = self.balances.balances_as_of(end_date)

        net_income = earnings(accounts, activity)
        operating, investing, financing = [], [], []
        for account in accounts:
            change = activity.get(account.id, ZERO)
            if change == ZERO or account.is_cash:
                continue
            if account.account_type == AccountType.ASSET:
                # More non-cash assets means cash was spent on them
                item = CashFlowItem(f"Change in {account.name}", -change, account.id)
                (operating if account.is_current else investing).append(item)
            elif account.account_type == AccountType.LIABILITY:
                item = CashFlowItem(f"Change in {account.name}", change, account.id)
                (operating if account.is_current else financing).append(item)
            elif account.account_type == AccountType.EQUITY:
                financing.append(CashFlowItem(f"Change in {account.name}", change, account.id))

        def section(items):
            return CashFlowSection(
                items=tuple(items), total=sum((i.amount for i in items), ZERO)
            )

        operating_section = section(operating)
        investing_section = section(investing)
        financing_section = section(financing)
        net_cash_flow = (
            net_income + operating_section.total + investing_section.total + financing_section.total
        )

        cash_accounts = [a for a in accounts if a.is_cash]
        beginning_cash = sum((opening.get(a.id, ZERO) for a in cash_accounts), ZERO)
        ending_cash = sum((closing.get(a.id, ZERO) for a in cash_accounts), ZERO)
        difference = net_cash_flow - (ending_cash - beginning_cash)

        warnings = ()
        if abs(difference) >= TOLERANCE:
            warning = ConsistencyWarning(
                check="cash_flow",
                message=(
                    f"Cash flow for {start_date} to {end_date} gives {net_cash_flow}, "
                    f"cash accounts moved by {ending_cash - beginning_cash}"
                ),
                expected=ending_cash - beginning_cash,
                actual=net_cash_flow,
            )
            logger.warning(warning.message)
            warnings = (warning,)

        return CashFlowStatement(
            start_date=start_date,
            end_date=end_date,
            net_income=net_income,
            operating=operating_section,
            investing=investing_section,
            financing=financing_section,
            net_cash_flow=net_cash_flow,
            beginning_cash=beginning_cash,
            ending_cash=ending_cash,
            reconciliation_difference=difference,
            warnings=warnings,
        )

    def tax_report(self, start_date: date, end_date: date) -> TaxReport:
        """Taxable and non-taxable sales with the tax collected on them.

        Each sale entry contributes its credit movement on revenue accounts
        as revenue and on tax accounts as tax; an entry with tax is taxable.
        """
        _check_period(start_date, end_date)
        with self.db.locked():
            accounts = self._accounts()
            tax_rates = self.db.list_tax_rates(include_inactive=True)
            entries = effective_entries(
                self.db.list_journal_entries(
                    start_date=start_date,
                    end_date=end_date,
                    reference_type=ReferenceType.SALE,
                )
            )

        revenue_ids = {a.id for a in accounts if a.account_type == AccountType.REVENUE}
        tax_ids = {rate.account_id for rate in tax_rates}
        tax_ids.update(a.id for a in accounts if a.code == TAX_PAYABLE_CODE)

        taxable = non_taxable = collected = ZERO
        transactions = []
        for entry in entries:
            revenue = tax = ZERO
            for line in entry.lines:
                if line.account_id in revenue_ids:
                    revenue += line.credit - line.debit
                elif line.account_id in tax_ids:
                    tax += line.credit - line.debit
            if revenue == ZERO and tax == ZERO:
                continue
            if tax != ZERO:
                taxable += revenue
                collected += tax
            else:
                non_taxable += revenue
            rate = (tax / revenue).quantize(RATE_PLACES) if revenue != ZERO else Decimal("0")
            transactions.append(
                TaxTransaction(
                    entry_id=entry.id,
                    date=entry.date,
                    amount=revenue,
                    tax_amount=tax,
                    tax_rate=rate,
                    reference=entry.reference,
                )
            )

        overall = (collected / taxable).quantize(RATE_PLACES) if taxable != ZERO else Decimal("0")
        return TaxReport(
            start_date=start_date,
            end_date=end_date,
            taxable_revenue=taxable,
            non_taxable_revenue=non_taxable,
            total_revenue=taxable + non_taxable,
            tax_collected=collected,
            tax_rate=overall,
            transactions=tuple(transactions),
        )
