"""Double-entry posting engine.

Every journal entry, whether it comes from an approved bank row, a manual
entry, a payment or a recurring template, has its lines validated here
before anything is written. Entries are written as one unit by the record
API, and the store-side guard checks the balance again at flush time.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, UTC
from decimal import Decimal
from typing import Iterable, Optional

from ledgerflow.config import Settings
from ledgerflow.database.base import Database
from ledgerflow.domain.account import AccountService
from ledgerflow.domain.entities import (
    Account,
    AccountType,
    ImportedTransaction,
    JournalEntry,
    JournalEntryStatus,
    TransactionStatus,
)
from ledgerflow.domain.errors import (
    AlreadyPostedError,
    DomainError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
    already_posted,
    journal_entry_not_found,
    transaction_not_found,
)
from ledgerflow.domain.journal import EntryDraft, LineSpec, validate_lines
from ledgerflow.domain.money import ZERO, to_money
from ledgerflow.domain.source_account import SourceAccountService
from ledgerflow.domain.status import check_journal_transition, check_transition
from ledgerflow.logging_config import get_logger

logger = get_logger(__name__)

DEBIT_NORMAL = (AccountType.ASSET, AccountType.EXPENSE)


def bank_reference(transaction_id: int) -> str:
    return f"Bank Txn {transaction_id}"


@dataclass(frozen=True)
class AccountBalance:
    account: Account
    total_debit: Decimal
    total_credit: Decimal

    @property
    def balance(self) -> Decimal:
        """Balance on the account's normal side."""
        if self.account.account_type in DEBIT_NORMAL:
            return self.total_debit - self.total_credit
        return self.total_credit - self.total_debit


@dataclass
class PostingSummary:
    posted: list[tuple[int, int]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class PostingEngine:
    """Creates journal entries."""

    def __init__(self, db: Database, settings: Optional[Settings] = None):
        """Initialize posting engine.

        Args:
            db: Database instance
            settings: Provides the owner's draw and contribution account codes
        """
        self.db = db
        self.settings = settings or Settings()
        self.account_service = AccountService(db)
        self.source_service = SourceAccountService(db)

    def prepare_lines(self, lines: Iterable[LineSpec], reference: Optional[str] = None) -> list[LineSpec]:
        """Validate lines for a durable write.

        Checks the one-sided rule, two-place amounts, exact balance, and
        that every account exists and is active.

        Raises:
            ValidationError: For malformed lines or inactive accounts
            UnbalancedEntryError: If debits and credits differ
            NotFoundError: If an account does not exist
        """
        normalized = validate_lines(lines, reference)
        for line in normalized:
            self.account_service.require_postable(line.account_id)
        return normalized

    # Bank rows
    def _equity_account(self, code: str, label: str) -> int:
        account = self.account_service.get_account_by_code(code)
        if account is None:
            raise ValidationError(
                f"{label} account with code '{code}' is not in the chart of accounts",
                code="missing_equity_account",
            )
        return account.id

    def build_bank_lines(self, txn: ImportedTransaction) -> list[LineSpec]:
        """Two lines for a bank row against its source account.

        Outflows debit the target and credit the source ledger account;
        inflows debit the source and credit the target. Personal rows use the
        owner's draw (outflow) or owner's contribution (inflow) account.

        Raises:
            ValidationError: If the row has no target account or a zero amount
        """
        source_ledger = self.source_service.ledger_account_for(txn.source_account_id)
        amount = abs(to_money(txn.amount))
        if amount == ZERO:
            raise ValidationError(
                f"Transaction {txn.id} has a zero amount and cannot be posted", code="zero_amount"
            )

        outflow = txn.amount < 0
        if txn.is_personal:
            if outflow:
                target = self._equity_account(self.settings.owner_draw_code, "Owner's draw")
            else:
                target = self._equity_account(self.settings.owner_contribution_code, "Owner's contribution")
        else:
            target = txn.target_account_id
            if target is None:
                raise ValidationError(
                    f"Transaction {txn.id} has no account to post against",
                    code="missing_categorization",
                )

        memo = txn.approved_memo or txn.description
        if outflow:
            return [LineSpec.debit_line(target, amount, memo), LineSpec.credit_line(source_ledger, amount, memo)]
        return [LineSpec.debit_line(source_ledger, amount, memo), LineSpec.credit_line(target, amount, memo)]

    def post_imported_transaction(self, transaction_id: int, created_by: Optional[str] = None) -> int:
        """Post an Approved bank row.

        The status move to Posted, the entry and its lines, and the
        back-reference are written in one transaction guarded on the row
        still being Approved, so concurrent requests create one entry.

        Returns:
            Journal entry ID

        Raises:
            NotFoundError: If the row does not exist
            AlreadyPostedError: If the row is already posted
            InvalidTransitionError: If the row is not Approved
            ValidationError: If the row was approved as a link to an existing record
        """
        txn = self.db.get_imported_transaction(transaction_id)
        if txn is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        if txn.is_linked:
            raise ValidationError(
                f"Transaction {transaction_id} is linked to {txn.matched_entity_type.value} "
                f"{txn.matched_entity_id} and is not posted separately",
                code="linked_match",
            )
        check_transition(txn.status, TransactionStatus.POSTED, transaction_id)

        reference = bank_reference(transaction_id)
        lines = self.prepare_lines(self.build_bank_lines(txn), reference)
        entry_id = self.db.post_imported_transaction(
            transaction_id,
            reference=reference,
            transaction_date=txn.transaction_date,
            description=txn.approved_memo or txn.description,
            lines=lines,
            created_by=created_by,
        )
        if entry_id is None:
            current = self.db.get_imported_transaction(transaction_id)
            if current is not None and current.status == TransactionStatus.POSTED:
                logger.warning("post_refused_already_posted", transaction_id=transaction_id)
                raise AlreadyPostedError(already_posted(transaction_id))
            raise InvalidTransitionError(
                f"Transaction {transaction_id} is no longer Approved", code="invalid_transition"
            )

        logger.info(
            "entry_posted",
            entry_id=entry_id,
            transaction_id=transaction_id,
            amount=str(txn.amount),
            created_by=created_by,
        )
        return entry_id

    def post_approved(self, batch_id: Optional[int] = None, created_by: Optional[str] = None) -> PostingSummary:
        """Post every Approved, unlinked row. Failures are reported per row."""
        summary = PostingSummary()
        approved = self.db.list_imported_transactions(status=TransactionStatus.APPROVED, batch_id=batch_id)
        for txn in approved:
            if txn.is_linked:
                continue
            try:
                entry_id = self.post_imported_transaction(txn.id, created_by=created_by)
            except DomainError as e:
                summary.errors.append(f"Transaction {txn.id}: {e}")
                continue
            summary.posted.append((txn.id, entry_id))
        return summary

    # Manual entries
    def post_entry(self, draft: EntryDraft) -> int:
        """Post a manually authored entry immediately.

        Raises:
            UnbalancedEntryError: If the draft does not balance exactly
            ValidationError: For malformed lines or inactive accounts
        """
        lines = self.prepare_lines(draft.lines, draft.reference)
        entry_id = self.db.create_journal_entry(
            reference=draft.reference,
            transaction_date=draft.transaction_date,
            description=draft.description,
            lines=lines,
            status=JournalEntryStatus.POSTED,
            created_by=draft.created_by,
        )
        logger.info("entry_posted", entry_id=entry_id, reference=draft.reference, lines=len(lines))
        return entry_id

    def save_draft(self, draft: EntryDraft) -> int:
        """Persist a balanced entry as Draft for later posting."""
        lines = self.prepare_lines(draft.lines, draft.reference)
        entry_id = self.db.create_journal_entry(
            reference=draft.reference,
            transaction_date=draft.transaction_date,
            description=draft.description,
            lines=lines,
            status=JournalEntryStatus.DRAFT,
            created_by=draft.created_by,
        )
        logger.info("draft_saved", entry_id=entry_id, reference=draft.reference)
        return entry_id

    def post_draft(self, entry_id: int) -> None:
        """Move a Draft entry to Posted.

        Raises:
            NotFoundError: If the entry does not exist
            AlreadyPostedError: If it is already posted
        """
        entry = self.require_entry(entry_id)
        check_journal_transition(entry.status, JournalEntryStatus.POSTED, entry_id)
        for line in entry.lines:
            self.account_service.require_postable(line.account_id)
        if not self.db.post_draft_entry(entry_id, datetime.now(UTC)):
            raise AlreadyPostedError(f"Journal entry {entry_id} is already posted")
        logger.info("draft_posted", entry_id=entry_id)

    def reverse_entry(
        self,
        entry_id: int,
        reversal_date: Optional[date] = None,
        description: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> int:
        """Offset a Posted entry with a new entry that swaps every line.

        The original entry and its lines are never modified. An entry can be
        reversed once.

        Returns:
            ID of the reversing entry

        Raises:
            NotFoundError: If the entry does not exist
            InvalidTransitionError: If the entry is not Posted
            ConflictError: If the entry was already reversed
        """
        entry = self.require_entry(entry_id)
        if entry.status != JournalEntryStatus.POSTED:
            raise InvalidTransitionError(
                f"Journal entry {entry_id} is not posted and cannot be reversed", code="not_posted"
            )
        reversal_id = self.db.create_reversal(
            entry_id,
            reference=f"REV-{entry.reference}",
            transaction_date=reversal_date or date.today(),
            description=description or f"Reversal of {entry.reference}",
            created_by=created_by,
        )
        logger.info("entry_reversed", entry_id=entry_id, reversal_id=reversal_id, created_by=created_by)
        return reversal_id

    # Queries
    def require_entry(self, entry_id: int) -> JournalEntry:
        entry = self.db.get_journal_entry(entry_id)
        if entry is None:
            raise NotFoundError(journal_entry_not_found(entry_id))
        return entry

    def list_entries(self, status: Optional[JournalEntryStatus] = None) -> list[JournalEntry]:
        return self.db.list_journal_entries(status=status)

    def account_balances(self) -> list[AccountBalance]:
        """Posted totals per account, ordered by account code."""
        totals = self.db.account_balances()
        balances = []
        for account in self.account_service.list_accounts(include_inactive=True):
            debit, credit = totals.get(account.id, (ZERO, ZERO))
            balances.append(AccountBalance(account=account, total_debit=debit, total_credit=credit))
        return balances
