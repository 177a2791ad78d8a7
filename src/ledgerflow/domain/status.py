"""Status transition tables for imported rows and journal entries."""

from typing import Optional

from ledgerflow.domain.entities import JournalEntryStatus, TransactionStatus
from ledgerflow.domain.errors import (
    AlreadyPostedError,
    InvalidTransitionError,
    already_posted,
    invalid_transition,
)

IMPORTED_TRANSITIONS: dict[TransactionStatus, frozenset[TransactionStatus]] = {
    TransactionStatus.PENDING: frozenset({TransactionStatus.APPROVED, TransactionStatus.REJECTED}),
    TransactionStatus.APPROVED: frozenset({TransactionStatus.POSTED}),
    TransactionStatus.REJECTED: frozenset(),
    TransactionStatus.POSTED: frozenset(),
}

JOURNAL_TRANSITIONS: dict[JournalEntryStatus, frozenset[JournalEntryStatus]] = {
    JournalEntryStatus.DRAFT: frozenset({JournalEntryStatus.POSTED}),
    JournalEntryStatus.POSTED: frozenset(),
}


def can_transition(current: TransactionStatus, target: TransactionStatus) -> bool:
    return target in IMPORTED_TRANSITIONS[current]


def check_transition(
    current: TransactionStatus,
    target: TransactionStatus,
    transaction_id: Optional[int] = None,
) -> None:
    """Refuse any imported-row transition missing from the table.

    Raises:
        AlreadyPostedError: If the row is already Posted
        InvalidTransitionError: For any other transition not in the table
    """
    if can_transition(current, target):
        return
    if current == TransactionStatus.POSTED:
        raise AlreadyPostedError(already_posted(transaction_id) if transaction_id else "Already posted")
    raise InvalidTransitionError(
        invalid_transition("imported transaction", transaction_id, current.value, target.value)
    )


def check_journal_transition(
    current: JournalEntryStatus,
    target: JournalEntryStatus,
    entry_id: Optional[int] = None,
) -> None:
    """Refuse any journal entry transition missing from the table."""
    if target in JOURNAL_TRANSITIONS[current]:
        return
    if current == JournalEntryStatus.POSTED:
        raise AlreadyPostedError(f"Journal entry {entry_id} is already posted")
    raise InvalidTransitionError(
        invalid_transition("journal entry", entry_id, current.value, target.value)
    )
