"""Recurring transaction templates.

The schedule itself is computed by an external scheduler: it decides when a
template is due and supplies the following run date. This service only
stores templates and turns a due run into a journal entry.
"""

from datetime import date
from typing import Optional, Sequence

from ledgerflow.database.base import Database
from ledgerflow.domain.entities import (
    Frequency,
    JournalEntryStatus,
    RecurringTemplate,
    TemplateLine,
    TemplateStatus,
    TemplateTransactionType,
)
from ledgerflow.domain.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
    invalid_transition,
)
from ledgerflow.domain.journal import LineSpec
from ledgerflow.domain.posting import PostingEngine
from ledgerflow.logging_config import get_logger

logger = get_logger(__name__)


def _line_specs(lines: Sequence[TemplateLine]) -> list[LineSpec]:
    return [
        LineSpec(account_id=line.account_id, debit=line.debit, credit=line.credit, description=line.description)
        for line in lines
    ]


class RecurringTemplateService:
    """Service for managing recurring templates."""

    def __init__(self, db: Database, posting: Optional[PostingEngine] = None):
        self.db = db
        self.posting = posting or PostingEngine(db)

    def create_template(
        self,
        name: str,
        transaction_type: TemplateTransactionType,
        frequency: Frequency,
        next_run_date: date,
        lines: Sequence[TemplateLine],
        interval: int = 1,
        day_of_month: Optional[int] = None,
        day_of_week: Optional[int] = None,
        description: Optional[str] = None,
    ) -> RecurringTemplate:
        """Create an Active template.

        Raises:
            ValidationError: If the interval fields are out of range or the
                lines do not form a valid balanced entry
            ConflictError: If a template with the same name exists
        """
        if not name or not name.strip():
            raise ValidationError("Template name is required")
        if interval < 1:
            raise ValidationError("Interval must be at least 1")
        if day_of_month is not None and not 1 <= day_of_month <= 31:
            raise ValidationError("Day of month must be between 1 and 31")
        if day_of_week is not None and not 0 <= day_of_week <= 6:
            raise ValidationError("Day of week must be between 0 (Monday) and 6 (Sunday)")

        normalized = self.posting.prepare_lines(_line_specs(lines), name)
        template_id = self.db.create_recurring_template(
            name=name.strip(),
            transaction_type=transaction_type,
            frequency=frequency,
            next_run_date=next_run_date,
            lines=[
                TemplateLine(account_id=s.account_id, debit=s.debit, credit=s.credit, description=s.description)
                for s in normalized
            ],
            interval=interval,
            day_of_month=day_of_month,
            day_of_week=day_of_week,
            description=description,
        )
        logger.info("template_created", template_id=template_id, name=name, frequency=frequency.value)
        return self.get_template(template_id)

    def get_template(self, template_id: int) -> RecurringTemplate:
        template = self.db.get_recurring_template(template_id)
        if template is None:
            raise NotFoundError(f"Recurring template {template_id} not found")
        return template

    def list_templates(self) -> list[RecurringTemplate]:
        return self.db.list_recurring_templates()

    def _set_status(self, template_id: int, expected: TemplateStatus, status: TemplateStatus) -> RecurringTemplate:
        template = self.get_template(template_id)
        if not self.db.set_template_status(template_id, expected, status):
            raise InvalidTransitionError(
                invalid_transition("recurring template", template_id, template.status.value, status.value)
            )
        logger.info("template_status_changed", template_id=template_id, status=status.value)
        return self.get_template(template_id)

    def pause(self, template_id: int) -> RecurringTemplate:
        return self._set_status(template_id, TemplateStatus.ACTIVE, TemplateStatus.PAUSED)

    def resume(self, template_id: int) -> RecurringTemplate:
        return self._set_status(template_id, TemplateStatus.PAUSED, TemplateStatus.ACTIVE)

    def materialize(
        self,
        template_id: int,
        run_date: date,
        next_run_date: date,
        as_draft: bool = False,
        created_by: Optional[str] = None,
    ) -> int:
        """Write the journal entry for one due run of a template.

        The template advances to ``next_run_date`` in the same transaction as
        the entry is written, and only if it is still Active and still due on
        ``run_date``, so a run cannot be materialized twice.

        Args:
            template_id: Template to run
            run_date: Date the scheduler says the template is due
            next_run_date: Following due date computed by the scheduler
            as_draft: Save the entry as Draft instead of posting it

        Returns:
            Journal entry ID

        Raises:
            InvalidTransitionError: If the template is paused
            ValidationError: If the template is not due on ``run_date``
            ConflictError: If the run was materialized concurrently
        """
        template = self.get_template(template_id)
        if template.status != TemplateStatus.ACTIVE:
            raise InvalidTransitionError(
                f"Recurring template {template_id} is paused", code="template_paused"
            )
        if run_date != template.next_run_date:
            raise ValidationError(
                f"Recurring template {template_id} is due on {template.next_run_date.isoformat()}, "
                f"not {run_date.isoformat()}",
                code="not_due",
            )
        if next_run_date <= run_date:
            raise ValidationError("Next run date must be after the run date", code="invalid_schedule")

        reference = f"{template.name} {run_date.isoformat()}"
        lines = self.posting.prepare_lines(_line_specs(template.lines), reference)
        status = JournalEntryStatus.DRAFT if as_draft else JournalEntryStatus.POSTED
        entry_id = self.db.run_recurring_template(
            template_id,
            run_date=run_date,
            next_run_date=next_run_date,
            reference=reference,
            description=template.description or template.name,
            lines=lines,
            status=status,
            created_by=created_by,
        )
        if entry_id is None:
            raise ConflictError(
                f"Recurring template {template_id} was already run for {run_date.isoformat()}",
                code="already_run",
            )
        logger.info(
            "template_materialized",
            template_id=template_id,
            entry_id=entry_id,
            run_date=run_date.isoformat(),
            status=status.value,
        )
        return entry_id

