"""Flush-time backstop for journal integrity.

Registered on the session factory, the listener inspects every flush and
refuses to persist:

- an entry (new or touched) whose lines do not balance or number fewer than two
- a line with both or neither side set, or a negative side
- any change to, or deletion of, a Posted entry or one of its lines
- a line added to an entry that was already Posted

Conditional ``UPDATE`` statements bypass the unit of work, so code that
posts through them calls :func:`verify_entry_balanced` in the same
transaction.
"""

from decimal import Decimal

from sqlalchemy import event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.attributes import get_history

from ledgerflow.database.models import JournalEntry, JournalEntryLine
from ledgerflow.domain.errors import (
    ImmutableEntryError,
    UnbalancedEntryError,
    ValidationError,
)
from ledgerflow.logging_config import get_logger

logger = get_logger(__name__)

POSTED = "Posted"
ZERO = Decimal("0")


def _persisted_status(entry: JournalEntry):
    """Status as last loaded from the database, or None for a new entry."""
    history = get_history(entry, "status")
    if history.deleted:
        return history.deleted[0]
    if history.unchanged:
        return history.unchanged[0]
    return None


def _check_line(line: JournalEntryLine) -> None:
    debit = Decimal(line.debit or 0)
    credit = Decimal(line.credit or 0)
    if debit < ZERO or credit < ZERO or (debit > ZERO) == (credit > ZERO):
        raise ValidationError(
            f"Journal line for account {line.account_id} must have exactly one positive side",
            code="invalid_line",
        )


def _check_balanced(session: Session, entry: JournalEntry) -> None:
    lines = [line for line in entry.lines if line not in session.deleted]
    total_debit = sum((Decimal(line.debit or 0) for line in lines), ZERO)
    total_credit = sum((Decimal(line.credit or 0) for line in lines), ZERO)
    if len(lines) < 2 or total_debit != total_credit:
        logger.error(
            "commit_refused_unbalanced",
            entry_id=entry.id,
            reference=entry.reference,
            total_debit=str(total_debit),
            total_credit=str(total_credit),
            line_count=len(lines),
        )
        if len(lines) < 2 and total_debit == total_credit:
            raise ValidationError(
                f"Journal entry '{entry.reference}' needs at least two lines", code="too_few_lines"
            )
        raise UnbalancedEntryError(total_debit, total_credit, entry.reference)


def _refuse_immutable(entry: JournalEntry, operation: str) -> None:
    logger.error("commit_refused_immutable", entry_id=entry.id, operation=operation)
    raise ImmutableEntryError(
        f"Journal entry {entry.id} is posted and cannot be {operation}; post a reversal instead"
    )


def _before_flush(session: Session, flush_context, instances) -> None:
    touched: dict[int, JournalEntry] = {}

    with session.no_autoflush:
        for obj in list(session.deleted):
            if isinstance(obj, JournalEntry) and _persisted_status(obj) == POSTED:
                _refuse_immutable(obj, "deleted")
            if isinstance(obj, JournalEntryLine):
                entry = obj.entry
                if entry is not None and _persisted_status(entry) == POSTED:
                    _refuse_immutable(entry, "modified")
                if entry is not None and entry not in session.deleted:
                    touched[id(entry)] = entry

        for obj in list(session.dirty):
            if isinstance(obj, JournalEntry) and session.is_modified(obj):
                if _persisted_status(obj) == POSTED:
                    _refuse_immutable(obj, "modified")
                touched[id(obj)] = obj
            elif isinstance(obj, JournalEntryLine) and session.is_modified(obj):
                entry = obj.entry
                if entry is not None and _persisted_status(entry) == POSTED:
                    _refuse_immutable(entry, "modified")
                _check_line(obj)
                if entry is not None:
                    touched[id(entry)] = entry

        for obj in list(session.new):
            if isinstance(obj, JournalEntry):
                touched[id(obj)] = obj
            elif isinstance(obj, JournalEntryLine):
                entry = obj.entry
                if entry is None:
                    raise ValidationError(
                        "Journal lines cannot be persisted without their entry", code="orphan_line"
                    )
                if entry not in session.new and _persisted_status(entry) == POSTED:
                    _refuse_immutable(entry, "extended")
                _check_line(obj)
                touched[id(entry)] = entry

        for entry in touched.values():
            _check_balanced(session, entry)


def verify_entry_balanced(session: Session, entry_id: int) -> None:
    """Check a stored entry inside the caller's transaction.

    Raises:
        UnbalancedEntryError: If the entry's stored lines do not balance
    """
    with session.no_autoflush:
        entry = session.get(JournalEntry, entry_id)
        if entry is None:
            return
        for line in entry.lines:
            _check_line(line)
        _check_balanced(session, entry)


def register_guards(session_factory: sessionmaker) -> None:
    """Attach the flush listener to every session the factory creates."""
    if not event.contains(session_factory, "before_flush", _before_flush):
        event.listen(session_factory, "before_flush", _before_flush)
