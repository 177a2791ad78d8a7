"""Tests for the flush-time journal guards."""

from datetime import date
from decimal import Decimal

import pytest

from ledgerflow.database.models import JournalEntry, JournalEntryLine
from ledgerflow.domain.entities import JournalEntryStatus
from ledgerflow.domain.errors import ImmutableEntryError, UnbalancedEntryError, ValidationError
from ledgerflow.domain.journal import EntryDraft


@pytest.fixture
def posted_entry_id(posting_engine, chart):
    draft = EntryDraft(reference="RENT-1", transaction_date=date(2024, 3, 1))
    draft.add_debit(chart["6200"], "2500.00").add_credit(chart["1000"], "2500.00")
    return posting_engine.post_entry(draft)


@pytest.fixture
def draft_entry_id(posting_engine, chart):
    draft = EntryDraft(reference="RENT-2", transaction_date=date(2024, 4, 1))
    draft.add_debit(chart["6200"], "2500.00").add_credit(chart["1000"], "2500.00")
    return posting_engine.save_draft(draft)


def test_posted_line_cannot_change(temp_db, posting_engine, posted_entry_id):
    """Test that editing a posted line is refused and rolled back."""
    with pytest.raises(ImmutableEntryError):
        with temp_db.session_scope() as session:
            line = session.query(JournalEntryLine).filter_by(entry_id=posted_entry_id).first()
            line.debit = Decimal("2400.00")

    entry = posting_engine.require_entry(posted_entry_id)
    assert entry.lines[0].debit == Decimal("2500.00")


def test_posted_entry_cannot_be_deleted(temp_db, posting_engine, posted_entry_id):
    """Test that deleting a posted entry is refused."""
    with pytest.raises(ImmutableEntryError):
        with temp_db.session_scope() as session:
            session.delete(session.get(JournalEntry, posted_entry_id))

    assert posting_engine.require_entry(posted_entry_id).status == JournalEntryStatus.POSTED


def test_posted_entry_header_cannot_change(temp_db, posted_entry_id):
    """Test that the entry itself is frozen once posted."""
    with pytest.raises(ImmutableEntryError):
        with temp_db.session_scope() as session:
            session.get(JournalEntry, posted_entry_id).description = "edited"


def test_posted_entry_cannot_gain_lines(temp_db, chart, posted_entry_id):
    """Test that lines cannot be appended to a posted entry."""
    with pytest.raises(ImmutableEntryError):
        with temp_db.session_scope() as session:
            entry = session.get(JournalEntry, posted_entry_id)
            entry.lines.append(
                JournalEntryLine(line_number=3, account_id=chart["6300"], debit=Decimal("1.00"), credit=Decimal("0"))
            )


def test_unbalanced_insert_refused(temp_db, posting_engine, chart):
    """Test that a direct insert bypassing the engine still balances."""
    with pytest.raises(UnbalancedEntryError):
        with temp_db.session_scope() as session:
            entry = JournalEntry(reference="RAW-1", transaction_date=date(2024, 3, 1), status="Draft")
            entry.lines.append(
                JournalEntryLine(line_number=1, account_id=chart["6200"], debit=Decimal("100.00"), credit=Decimal("0"))
            )
            entry.lines.append(
                JournalEntryLine(line_number=2, account_id=chart["1000"], debit=Decimal("0"), credit=Decimal("99.99"))
            )
            session.add(entry)

    assert posting_engine.list_entries() == []


def test_two_sided_line_refused(temp_db, chart):
    """Test that a line carrying both sides is refused."""
    with pytest.raises(ValidationError) as exc:
        with temp_db.session_scope() as session:
            entry = JournalEntry(reference="RAW-2", transaction_date=date(2024, 3, 1), status="Draft")
            entry.lines.append(
                JournalEntryLine(line_number=1, account_id=chart["6200"], debit=Decimal("5.00"), credit=Decimal("5.00"))
            )
            entry.lines.append(
                JournalEntryLine(line_number=2, account_id=chart["1000"], debit=Decimal("0"), credit=Decimal("0.00"))
            )
            session.add(entry)
    assert exc.value.code == "invalid_line"


def test_draft_may_be_edited_while_balanced(temp_db, posting_engine, draft_entry_id):
    """Test that drafts stay editable as long as they balance."""
    with temp_db.session_scope() as session:
        for line in session.get(JournalEntry, draft_entry_id).lines:
            if line.debit > 0:
                line.debit = Decimal("2600.00")
            else:
                line.credit = Decimal("2600.00")

    assert posting_engine.require_entry(draft_entry_id).total_debit == Decimal("2600.00")

    with pytest.raises(UnbalancedEntryError):
        with temp_db.session_scope() as session:
            session.get(JournalEntry, draft_entry_id).lines[0].debit = Decimal("1.00")
