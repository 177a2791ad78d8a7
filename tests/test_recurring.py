"""Tests for recurring templates."""

from datetime import date
from decimal import Decimal

import pytest

from ledgerflow.domain.entities import (
    Frequency,
    JournalEntryStatus,
    TemplateLine,
    TemplateStatus,
    TemplateTransactionType,
)
from ledgerflow.domain.errors import InvalidTransitionError, NotFoundError, UnbalancedEntryError, ValidationError

ZERO = Decimal("0.00")


@pytest.fixture
def rent_template(template_service, chart):
    return template_service.create_template(
        "Office rent",
        TemplateTransactionType.JOURNAL_ENTRY,
        Frequency.MONTHLY,
        next_run_date=date(2024, 4, 1),
        lines=[
            TemplateLine(chart["6200"], Decimal("2500.00"), ZERO, "Rent"),
            TemplateLine(chart["1000"], ZERO, Decimal("2500.00")),
        ],
        day_of_month=1,
    )


def test_create_template(rent_template):
    """Test that a template is stored Active with normalized lines."""
    assert rent_template.status == TemplateStatus.ACTIVE
    assert rent_template.frequency == Frequency.MONTHLY
    assert rent_template.next_run_date == date(2024, 4, 1)
    assert rent_template.last_run_date is None
    assert [line.debit for line in rent_template.lines] == [Decimal("2500.00"), ZERO]


def test_unbalanced_template_refused(template_service, chart):
    """Test that template lines must balance at creation."""
    with pytest.raises(UnbalancedEntryError):
        template_service.create_template(
            "Broken",
            TemplateTransactionType.JOURNAL_ENTRY,
            Frequency.MONTHLY,
            date(2024, 4, 1),
            [TemplateLine(chart["6200"], Decimal("10.00"), ZERO), TemplateLine(chart["1000"], ZERO, Decimal("9.00"))],
        )
    assert template_service.list_templates() == []


@pytest.mark.parametrize(
    "kwargs",
    [{"interval": 0}, {"day_of_month": 32}, {"day_of_week": 7}],
)
def test_schedule_fields_validated(template_service, chart, kwargs):
    """Test the range checks on schedule fields."""
    with pytest.raises(ValidationError):
        template_service.create_template(
            "Bad schedule",
            TemplateTransactionType.JOURNAL_ENTRY,
            Frequency.WEEKLY,
            date(2024, 4, 1),
            [TemplateLine(chart["6200"], Decimal("1.00"), ZERO), TemplateLine(chart["1000"], ZERO, Decimal("1.00"))],
            **kwargs,
        )


def test_materialize_posts_and_advances(template_service, posting_engine, rent_template):
    """Test one run: posted entry, template moved to the next date."""
    entry_id = template_service.materialize(rent_template.id, date(2024, 4, 1), date(2024, 5, 1), created_by="cron")

    entry = posting_engine.require_entry(entry_id)
    assert entry.status == JournalEntryStatus.POSTED
    assert entry.reference == "Office rent 2024-04-01"
    assert entry.recurring_template_id == rent_template.id
    assert entry.transaction_date == date(2024, 4, 1)

    template = template_service.get_template(rent_template.id)
    assert template.next_run_date == date(2024, 5, 1)
    assert template.last_run_date == date(2024, 4, 1)


def test_materialize_twice_refused(template_service, posting_engine, rent_template):
    """Test that the same run cannot be materialized again."""
    template_service.materialize(rent_template.id, date(2024, 4, 1), date(2024, 5, 1))
    with pytest.raises(ValidationError) as exc:
        template_service.materialize(rent_template.id, date(2024, 4, 1), date(2024, 5, 1))
    assert exc.value.code == "not_due"
    assert len(posting_engine.list_entries()) == 1


def test_materialize_as_draft(template_service, posting_engine, rent_template):
    """Test saving a run for review instead of posting."""
    entry_id = template_service.materialize(rent_template.id, date(2024, 4, 1), date(2024, 5, 1), as_draft=True)
    assert posting_engine.require_entry(entry_id).status == JournalEntryStatus.DRAFT


def test_invalid_next_run_refused(template_service, rent_template):
    """Test that the schedule must move forward."""
    with pytest.raises(ValidationError) as exc:
        template_service.materialize(rent_template.id, date(2024, 4, 1), date(2024, 4, 1))
    assert exc.value.code == "invalid_schedule"


def test_paused_template(template_service, rent_template):
    """Test pausing, refusing to run, and resuming."""
    assert template_service.pause(rent_template.id).status == TemplateStatus.PAUSED
    with pytest.raises(InvalidTransitionError) as exc:
        template_service.materialize(rent_template.id, date(2024, 4, 1), date(2024, 5, 1))
    assert exc.value.code == "template_paused"
    with pytest.raises(InvalidTransitionError):
        template_service.pause(rent_template.id)

    assert template_service.resume(rent_template.id).status == TemplateStatus.ACTIVE


def test_inactive_account_blocks_run(template_service, account_service, chart, rent_template):
    """Test that lines are validated again at run time."""
    account_service.deactivate_account(chart["6200"])
    with pytest.raises(ValidationError):
        template_service.materialize(rent_template.id, date(2024, 4, 1), date(2024, 5, 1))
    assert template_service.get_template(rent_template.id).next_run_date == date(2024, 4, 1)


def test_missing_template(template_service):
    """Test looking up an unknown template."""
    with pytest.raises(NotFoundError):
        template_service.get_template(42)
