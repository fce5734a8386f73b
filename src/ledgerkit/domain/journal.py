"""Journal engine domain service."""

import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Optional

from ledgerkit.database.base import Database
from ledgerkit.domain.balance import signed_amount
from ledgerkit.domain.entities import (
    JournalEntry as JournalEntryEntity,
    JournalEntryDraft,
    JournalLineDraft,
    ReferenceType,
    TOLERANCE,
    ZERO,
)
from ledgerkit.domain.errors import (
    AlreadyReversedError,
    ConflictError,
    NotFoundError,
    UnbalancedEntryError,
    ValidationError,
    account_not_found,
    entry_not_found,
)
from ledgerkit.utils.amount_parser import to_amount

logger = logging.getLogger(__name__)


class JournalService:
    """Service for posting and reversing journal entries."""

    def __init__(self, db: Database):
        """Initialize journal service.

        Args:
            db: Database instance
        """
        self.db = db

    def _normalize_lines(self, draft: JournalEntryDraft) -> tuple[JournalLineDraft, ...]:
        if not draft.lines:
            raise ValidationError("Journal entry must have at least one line")

        lines = []
        for position, line in enumerate(draft.lines, start=1):
            try:
                debit = to_amount(line.debit)
                credit = to_amount(line.credit)
            except ValueError as e:
                raise ValidationError(f"Line {position}: {e}")
            if debit < ZERO or credit < ZERO:
                raise ValidationError(f"Line {position}: debit and credit cannot be negative")
            if debit == ZERO and credit == ZERO:
                raise ValidationError(f"Line {position}: debit or credit must be non-zero")
            lines.append(
                JournalLineDraft(
                    account_id=line.account_id,
                    debit=debit,
                    credit=credit,
                    description=line.description,
                )
            )
        return tuple(lines)

    def _validate(self, draft: JournalEntryDraft) -> tuple[str, tuple[JournalLineDraft, ...]]:
        description = (draft.description or "").strip()
        if not description:
            raise ValidationError("Journal entry description cannot be empty")
        return description, self._normalize_lines(draft)

    def _append(
        self,
        draft: JournalEntryDraft,
        description: str,
        lines: tuple[JournalLineDraft, ...],
        reversal_of: Optional[int] = None,
    ) -> int:
        """Check accounts and balance, then append and apply in one transaction."""
        with self.db.transaction():
            account_types = {}
            for line in lines:
                account = self.db.get_account(line.account_id)
                if account is None:
                    raise NotFoundError(account_not_found(line.account_id))
                account_types[account.id] = account.account_type

            debit_total = sum((line.debit for line in lines), ZERO)
            credit_total = sum((line.credit for line in lines), ZERO)
            if abs(debit_total - credit_total) >= TOLERANCE:
                raise UnbalancedEntryError(debit_total, credit_total)

            entry_id = self.db.create_journal_entry(
                date=draft.date,
                description=description,
                lines=lines,
                reference=draft.reference,
                reference_type=draft.reference_type,
                is_automatic=draft.is_automatic,
                reversal_of=reversal_of,
                created_by=draft.created_by,
            )

            deltas: dict[int, Decimal] = defaultdict(lambda: ZERO)
            for line in lines:
                deltas[line.account_id] += signed_amount(
                    account_types[line.account_id], line.debit, line.credit
                )
            self.db.adjust_account_balances(dict(deltas))
        return entry_id

    def post_entry(self, draft: JournalEntryDraft) -> int:
        """Validate and append a journal entry, updating cached balances.

        Nothing is written unless every check passes; the append and the
        balance updates then commit together.

        Args:
            draft: Entry to post

        Returns:
            Journal entry ID

        Raises:
            ValidationError: If a line is malformed or the description is empty
            NotFoundError: If a line references an unknown account
            UnbalancedEntryError: If total debits differ from total credits
        """
        description, lines = self._validate(draft)
        entry_id = self._append(draft, description, lines)

        logger.info(
            "Posted journal entry %s on %s for %s (%s)",
            entry_id,
            draft.date,
            sum((line.debit for line in lines), ZERO),
            description,
        )
        return entry_id

    def reverse_entry(
        self, entry_id: int, reason: str, reversal_date: Optional[date] = None
    ) -> int:
        """Reverse a posted entry with a new, mirror-image entry.

        The original is flagged as reversed and otherwise left untouched.
        The mirror entry passes the same checks as any posted entry.

        Args:
            entry_id: Entry to reverse
            reason: Why it is being reversed (added to the description)
            reversal_date: Business date of the reversal (defaults to today)

        Returns:
            ID of the reversal entry

        Raises:
            NotFoundError: If entry not found
            AlreadyReversedError: If entry was reversed before
            ConflictError: If entry is itself a reversal
        """
        with self.db.transaction():
            original = self.db.get_journal_entry(entry_id)
            if original is None:
                raise NotFoundError(entry_not_found(entry_id))
            if original.is_reversed:
                raise AlreadyReversedError(entry_id)
            if original.reversal_of is not None:
                raise ConflictError(
                    f"Journal entry {entry_id} is a reversal and cannot be reversed; "
                    "post a new entry instead"
                )

            draft = self._reversal_draft(original, reason, reversal_date or date.today())
            description, lines = self._validate(draft)
            self.db.mark_journal_entry_reversed(entry_id)
            reversal_id = self._append(draft, description, lines, reversal_of=original.id)

        logger.info("Reversed journal entry %s with %s: %s", entry_id, reversal_id, reason)
        return reversal_id

    def _reversal_draft(
        self, original: JournalEntryEntity, reason: str, on: date
    ) -> JournalEntryDraft:
        description = f"Reversal of #{original.id}"
        if reason and reason.strip():
            description = f"{description}: {reason.strip()}"
        return JournalEntryDraft(
            date=on,
            description=description,
            lines=tuple(
                JournalLineDraft(
                    account_id=line.account_id,
                    debit=line.credit,
                    credit=line.debit,
                    description=line.description,
                )
                for line in original.lines
            ),
            reference=original.reference,
            reference_type=original.reference_type or ReferenceType.ADJUSTMENT,
            is_automatic=original.is_automatic,
        )

    def get_entry(self, entry_id: int) -> Optional[JournalEntryEntity]:
        """Get journal entry by ID.

        Returns:
            Journal entry or None if not found
        """
        return self.db.get_journal_entry(entry_id)

    def find_by_reference(self, reference: str) -> list[JournalEntryEntity]:
        """All entries tagged with a business-event id, in creation order."""
        entries = self.db.list_journal_entries(reference=reference)
        return sorted(entries, key=lambda entry: entry.id)

    def list_entries(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_id: Optional[int] = None,
        reference_type: Optional[ReferenceType] = None,
    ) -> list[JournalEntryEntity]:
        """List journal entries ordered by date, then creation.

        Reversed entries and reversals are included; callers that need
        balances should go through the balance resolver.
        """
        return self.db.list_journal_entries(
            start_date=start_date,
            end_date=end_date,
            account_id=account_id,
            reference_type=reference_type,
        )
