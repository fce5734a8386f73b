"""Balance resolver: point-in-time balances replayed from the journal."""

import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from itertools import groupby
from typing import Iterable, Optional

from ledgerkit.database.base import Database
from ledgerkit.domain.entities import (
    AccountType,
    ConsistencyWarning,
    JournalEntry,
    TOLERANCE,
    ZERO,
)
from ledgerkit.domain.errors import NotFoundError, account_not_found

logger = logging.getLogger(__name__)


def signed_amount(account_type: AccountType, debit: Decimal, credit: Decimal) -> Decimal:
    """Return the change a debit/credit pair makes on an account's normal side."""
    if account_type.is_debit_normal:
        return debit - credit
    return credit - debit


def is_effective(entry: JournalEntry) -> bool:
    """Whether an entry counts towards replayed balances.

    A reversed entry and the reversal that cancelled it are skipped as a
    pair; together they contribute nothing.
    """
    return not entry.is_reversed and entry.reversal_of is None


def effective_entries(entries: Iterable[JournalEntry]) -> list[JournalEntry]:
    """Filter entries down to the ones that count towards balances."""
    return [entry for entry in entries if is_effective(entry)]


def fold_balances(
    entries: Iterable[JournalEntry], account_types: dict[int, AccountType]
) -> dict[int, Decimal]:
    """Sum normal-side deltas per account over date-sorted entries.

    Entries sharing a date are totalled as one group. Decimal addition is
    exact, so the result does not depend on the order entries arrive in.
    """
    totals: dict[int, Decimal] = defaultdict(lambda: ZERO)
    ordered = sorted(entries, key=lambda entry: entry.date)
    for _, same_day in groupby(ordered, key=lambda entry: entry.date):
        day_totals: dict[int, Decimal] = defaultdict(lambda: ZERO)
        for entry in same_day:
            for line in entry.lines:
                account_type = account_types.get(line.account_id)
                if account_type is None:
                    continue
                day_totals[line.account_id] += signed_amount(
                    account_type, line.debit, line.credit
                )
        for account_id, delta in day_totals.items():
            totals[account_id] += delta
    return dict(totals)


class BalanceService:
    """Service for resolving balances from journal history."""

    def __init__(self, db: Database):
        """Initialize balance service.

        Args:
            db: Database instance
        """
        self.db = db

    def _account_types(self) -> dict[int, AccountType]:
        return {acc.id: acc.account_type for acc in self.db.list_accounts(include_inactive=True)}

    def balance_as_of(self, account_id: int, cutoff: Optional[date] = None) -> Decimal:
        """Replay the journal to get an account's balance at the end of a date.

        Starts from zero, never from the cached balance.

        Args:
            account_id: Account ID
            cutoff: Last business date to include (None for the whole history)

        Returns:
            Signed balance on the account's normal side

        Raises:
            NotFoundError: If account not found
        """
        with self.db.locked():
            account = self.db.get_account(account_id)
            if account is None:
                raise NotFoundError(account_not_found(account_id))
            entries = self.db.list_journal_entries(end_date=cutoff, account_id=account_id)
        balances = fold_balances(effective_entries(entries), {account.id: account.account_type})
        return balances.get(account_id, ZERO)

    def balances_as_of(self, cutoff: Optional[date] = None) -> dict[int, Decimal]:
        """Replay the journal once for every account.

        Returns:
            Mapping of account ID to balance; accounts without history map to zero
        """
        with self.db.locked():
            account_types = self._account_types()
            entries = self.db.list_journal_entries(end_date=cutoff)
        balances = fold_balances(effective_entries(entries), account_types)
        logger.debug("Replayed %d entries up to %s", len(entries), cutoff or "now")
        return {account_id: balances.get(account_id, ZERO) for account_id in account_types}

    def period_activity(self, start_date: date, end_date: date) -> dict[int, Decimal]:
        """Net normal-side movement per account for entries dated in [start, end]."""
        with self.db.locked():
            account_types = self._account_types()
            entries = self.db.list_journal_entries(start_date=start_date, end_date=end_date)
        activity = fold_balances(effective_entries(entries), account_types)
        return {account_id: activity.get(account_id, ZERO) for account_id in account_types}

    def current_balance(self, account_id: int) -> Decimal:
        """Return the cached balance (fast path for "now" queries)."""
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account.balance

    def verify_cached_balances(self) -> list[ConsistencyWarning]:
        """Compare every cached balance with its replayed value.

        Returns:
            One warning per account whose cache disagrees with the journal
        """
        with self.db.locked():
            accounts = self.db.list_accounts(include_inactive=True)
            replayed = self.balances_as_of(None)
        warnings = []
        for account in accounts:
            expected = replayed.get(account.id, ZERO)
            if abs(account.balance - expected) >= TOLERANCE:
                warnings.append(
                    ConsistencyWarning(
                        check="cached_balance",
                        message=(
                            f"Cached balance of account {account.code} is {account.balance}, "
                            f"journal replay gives {expected}"
                        ),
                        expected=expected,
                        actual=account.balance,
                        account_id=account.id,
                    )
                )
        for warning in warnings:
            logger.warning(warning.message)
        return warnings

    def rebuild_cached_balances(self) -> dict[int, Decimal]:
        """Overwrite every cached balance with its replayed value.

        Returns:
            The balances that were written
        """
        with self.db.transaction():
            balances = self.balances_as_of(None)
            self.db.set_account_balances(balances)
        return balances
