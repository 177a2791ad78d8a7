"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic. Enum columns are stored as their
text values and converted back to domain enums here.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional, TypeVar

from ledgerflow.domain import entities as domain
from ledgerflow.database.models import (
    Account as ORMAccount,
    SourceAccount as ORMSourceAccount,
    ImportBatch as ORMImportBatch,
    ImportedTransaction as ORMImportedTransaction,
    JournalEntry as ORMJournalEntry,
    JournalEntryLine as ORMJournalEntryLine,
    BankRule as ORMBankRule,
    Payment as ORMPayment,
    RecurringTemplate as ORMRecurringTemplate,
    TemplateLine as ORMTemplateLine,
)

E = TypeVar("E", bound=Enum)


def _enum(enum_cls: type[E], value: Optional[str]) -> Optional[E]:
    if value is None:
        return None
    return enum_cls(value)


def _money(value) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(value).quantize(Decimal("0.01"))


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        code=orm_account.code,
        name=orm_account.name,
        account_type=domain.AccountType(orm_account.account_type),
        subtype=orm_account.subtype,
        parent_id=orm_account.parent_id,
        status=domain.AccountStatus(orm_account.status),
        created_at=orm_account.created_at,
    )


def source_account_to_domain(orm_source: ORMSourceAccount) -> domain.SourceAccount:
    """Convert SQLAlchemy SourceAccount model to domain SourceAccount entity."""
    return domain.SourceAccount(
        id=orm_source.id,
        institution=orm_source.institution,
        account_identifier=orm_source.account_identifier,
        currency=orm_source.currency,
        name=orm_source.name,
        ledger_account_id=orm_source.ledger_account_id,
        created_at=orm_source.created_at,
    )


def import_batch_to_domain(orm_batch: ORMImportBatch) -> domain.ImportBatch:
    return domain.ImportBatch(
        id=orm_batch.id,
        file_name=orm_batch.file_name,
        dialect=orm_batch.dialect,
        imported_count=orm_batch.imported_count,
        skipped_count=orm_batch.skipped_count,
        error_count=orm_batch.error_count,
        created_at=orm_batch.created_at,
    )


def imported_transaction_to_domain(orm_txn: ORMImportedTransaction) -> domain.ImportedTransaction:
    """Convert SQLAlchemy ImportedTransaction model to domain entity."""
    return domain.ImportedTransaction(
        id=orm_txn.id,
        batch_id=orm_txn.batch_id,
        source_account_id=orm_txn.source_account_id,
        unique_id=orm_txn.unique_id,
        transaction_date=orm_txn.transaction_date,
        post_date=orm_txn.post_date,
        description=orm_txn.description,
        merchant=orm_txn.merchant,
        raw_category=orm_txn.raw_category,
        amount=_money(orm_txn.amount),
        reference_number=orm_txn.reference_number,
        check_number=orm_txn.check_number,
        is_personal=bool(orm_txn.is_personal),
        status=domain.TransactionStatus(orm_txn.status),
        suggested_account_id=orm_txn.suggested_account_id,
        suggested_memo=orm_txn.suggested_memo,
        categorization_source=_enum(domain.CategorizationSource, orm_txn.categorization_source),
        matched_entity_type=_enum(domain.MatchedEntityType, orm_txn.matched_entity_type),
        matched_entity_id=orm_txn.matched_entity_id,
        confidence=_enum(domain.Confidence, orm_txn.confidence),
        match_reason=orm_txn.match_reason,
        approved_account_id=orm_txn.approved_account_id,
        approved_memo=orm_txn.approved_memo,
        reviewed_by=orm_txn.reviewed_by,
        reviewed_at=orm_txn.reviewed_at,
        linked_at=orm_txn.linked_at,
        claimed_by_id=orm_txn.claimed_by_id,
        journal_entry_id=orm_txn.journal_entry_id,
        imported_at=orm_txn.imported_at,
    )


def journal_line_to_domain(orm_line: ORMJournalEntryLine) -> domain.JournalEntryLine:
    return domain.JournalEntryLine(
        id=orm_line.id,
        entry_id=orm_line.entry_id,
        line_number=orm_line.line_number,
        account_id=orm_line.account_id,
        description=orm_line.description,
        debit=_money(orm_line.debit),
        credit=_money(orm_line.credit),
    )


def journal_entry_to_domain(orm_entry: ORMJournalEntry) -> domain.JournalEntry:
    """Convert SQLAlchemy JournalEntry model, with its lines, to a domain entity."""
    return domain.JournalEntry(
        id=orm_entry.id,
        reference=orm_entry.reference,
        transaction_date=orm_entry.transaction_date,
        description=orm_entry.description,
        status=domain.JournalEntryStatus(orm_entry.status),
        created_by=orm_entry.created_by,
        created_at=orm_entry.created_at,
        posted_at=orm_entry.posted_at,
        reversal_of_id=orm_entry.reversal_of_id,
        source_transaction_id=orm_entry.source_transaction_id,
        recurring_template_id=orm_entry.recurring_template_id,
        lines=tuple(journal_line_to_domain(line) for line in orm_entry.lines),
    )


def bank_rule_to_domain(orm_rule: ORMBankRule) -> domain.BankRule:
    """Convert SQLAlchemy BankRule model to domain BankRule entity."""
    return domain.BankRule(
        id=orm_rule.id,
        name=orm_rule.name,
        match_field=domain.MatchField(orm_rule.match_field),
        match_type=domain.MatchType(orm_rule.match_type),
        match_value=orm_rule.match_value,
        assign_account_id=orm_rule.assign_account_id,
        priority=orm_rule.priority,
        source_account_id=orm_rule.source_account_id,
        transaction_type=_enum(domain.RuleTransactionType, orm_rule.transaction_type),
        min_amount=_money(orm_rule.min_amount),
        max_amount=_money(orm_rule.max_amount),
        assign_memo=orm_rule.assign_memo,
        is_enabled=bool(orm_rule.is_enabled),
    )


def payment_to_domain(orm_payment: ORMPayment) -> domain.Payment:
    return domain.Payment(
        id=orm_payment.id,
        kind=domain.PaymentKind(orm_payment.kind),
        payment_date=orm_payment.payment_date,
        amount=_money(orm_payment.amount),
        ledger_account_id=orm_payment.ledger_account_id,
        counterparty=orm_payment.counterparty,
        reference_number=orm_payment.reference_number,
        document_number=orm_payment.document_number,
        journal_entry_id=orm_payment.journal_entry_id,
        reconciled_transaction_id=orm_payment.reconciled_transaction_id,
        created_at=orm_payment.created_at,
    )


def template_line_to_domain(orm_line: ORMTemplateLine) -> domain.TemplateLine:
    return domain.TemplateLine(
        account_id=orm_line.account_id,
        debit=_money(orm_line.debit),
        credit=_money(orm_line.credit),
        description=orm_line.description,
    )


def recurring_template_to_domain(orm_template: ORMRecurringTemplate) -> domain.RecurringTemplate:
    """Convert SQLAlchemy RecurringTemplate model, with its lines, to a domain entity."""
    return domain.RecurringTemplate(
        id=orm_template.id,
        name=orm_template.name,
        transaction_type=domain.TemplateTransactionType(orm_template.transaction_type),
        frequency=domain.Frequency(orm_template.frequency),
        interval=orm_template.interval,
        day_of_month=orm_template.day_of_month,
        day_of_week=orm_template.day_of_week,
        status=domain.TemplateStatus(orm_template.status),
        next_run_date=orm_template.next_run_date,
        description=orm_template.description,
        last_run_date=orm_template.last_run_date,
        created_at=orm_template.created_at,
        lines=tuple(template_line_to_domain(line) for line in orm_template.lines),
    )
