"""Abstract database interface."""

from abc import ABC, abstractmethod
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Sequence

# Import entities directly to avoid circular import through domain/__init__.py
from ledgerflow.domain.entities import (
    Account,
    AccountStatus,
    AccountType,
    BankRule,
    CategorizationSource,
    Confidence,
    Frequency,
    ImportBatch,
    ImportedTransaction,
    JournalEntry,
    JournalEntryStatus,
    MatchField,
    MatchType,
    MatchedEntityType,
    Payment,
    PaymentKind,
    RecurringTemplate,
    RuleTransactionType,
    SourceAccount,
    TemplateLine,
    TemplateStatus,
    TemplateTransactionType,
    TransactionStatus,
)
from ledgerflow.domain.journal import LineSpec


class Database(ABC):
    """Abstract record API for ledgerflow.

    Methods whose name starts with a state verb (approve, link, reject, post,
    run) are status-guarded: they only take effect when the row is still in
    the expected prior state and report a lost race as ``False`` or ``None``.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Chart of accounts
    @abstractmethod
    def create_account(
        self,
        code: str,
        name: str,
        account_type: AccountType,
        subtype: Optional[str] = None,
        parent_id: Optional[int] = None,
    ) -> int:
        """Create a ledger account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def get_account_by_code(self, code: str) -> Optional[Account]:
        """Get account by code."""
        pass

    @abstractmethod
    def list_accounts(self, include_inactive: bool = False) -> list[Account]:
        """List accounts ordered by code."""
        pass

    @abstractmethod
    def update_account(
        self,
        account_id: int,
        name: Optional[str] = None,
        account_type: Optional[AccountType] = None,
        subtype: Optional[str] = None,
        parent_id: Optional[int] = None,
        update_parent: bool = False,
        status: Optional[AccountStatus] = None,
    ) -> None:
        """Update account fields.

        Args:
            update_parent: If True, set parent_id even when it is None
        """
        pass

    @abstractmethod
    def count_account_lines(self, account_id: int) -> int:
        """Count journal lines that reference an account."""
        pass

    # Source accounts
    @abstractmethod
    def create_source_account(
        self,
        institution: str,
        account_identifier: str,
        name: str,
        currency: str = "USD",
        ledger_account_id: Optional[int] = None,
    ) -> int:
        """Create a source account. Returns source account ID."""
        pass

    @abstractmethod
    def get_source_account(self, source_account_id: int) -> Optional[SourceAccount]:
        pass

    @abstractmethod
    def find_source_account(self, institution: str, account_identifier: str) -> Optional[SourceAccount]:
        """Get source account by institution and identifier."""
        pass

    @abstractmethod
    def list_source_accounts(self) -> list[SourceAccount]:
        pass

    @abstractmethod
    def set_source_ledger_account(self, source_account_id: int, ledger_account_id: int) -> None:
        """Map a source account to a ledger account."""
        pass

    # Import batches
    @abstractmethod
    def create_import_batch(self, dialect: str, file_name: Optional[str] = None) -> int:
        pass

    @abstractmethod
    def finish_import_batch(self, batch_id: int, imported: int, skipped: int, errors: int) -> None:
        """Record the final counts of a batch."""
        pass

    @abstractmethod
    def get_import_batch(self, batch_id: int) -> Optional[ImportBatch]:
        pass

    # Imported transactions
    @abstractmethod
    def create_imported_transaction(
        self,
        source_account_id: int,
        unique_id: str,
        transaction_date: date,
        amount: Decimal,
        description: str,
        batch_id: Optional[int] = None,
        post_date: Optional[date] = None,
        merchant: Optional[str] = None,
        raw_category: Optional[str] = None,
        reference_number: Optional[str] = None,
        check_number: Optional[str] = None,
        is_personal: bool = False,
    ) -> int:
        """Create a Pending imported transaction. Returns its ID."""
        pass

    @abstractmethod
    def imported_transaction_exists(self, source_account_id: int, unique_id: str) -> bool:
        """Check if a row with the unique_id exists for the source account."""
        pass

    @abstractmethod
    def get_imported_transaction(self, transaction_id: int) -> Optional[ImportedTransaction]:
        pass

    @abstractmethod
    def list_imported_transactions(
        self,
        status: Optional[TransactionStatus] = None,
        batch_id: Optional[int] = None,
        source_account_id: Optional[int] = None,
    ) -> list[ImportedTransaction]:
        """List imported transactions ordered by ID."""
        pass

    @abstractmethod
    def record_reconciliation(
        self,
        transaction_id: int,
        suggested_account_id: Optional[int],
        suggested_memo: Optional[str],
        categorization_source: Optional[CategorizationSource],
        matched_entity_type: Optional[MatchedEntityType],
        matched_entity_id: Optional[int],
        confidence: Optional[Confidence],
        match_reason: Optional[str],
    ) -> bool:
        """Store match and suggestion results while the row is Pending."""
        pass

    @abstractmethod
    def approve_imported_transaction(
        self,
        transaction_id: int,
        approved_account_id: Optional[int],
        approved_memo: Optional[str],
        is_personal: bool,
        reviewed_by: Optional[str],
        reviewed_at: datetime,
    ) -> bool:
        """Move a Pending row to Approved with the chosen account."""
        pass

    @abstractmethod
    def link_imported_transaction(
        self,
        transaction_id: int,
        matched_entity_type: MatchedEntityType,
        matched_entity_id: int,
        approved_memo: Optional[str],
        reviewed_by: Optional[str],
        reviewed_at: datetime,
    ) -> bool:
        """Move a Pending row to Approved by linking it to its counterpart.

        The counterpart is claimed in the same transaction.

        Raises:
            ConflictError: If the counterpart is already reconciled
        """
        pass

    @abstractmethod
    def reject_imported_transaction(
        self, transaction_id: int, reviewed_by: Optional[str], reviewed_at: datetime
    ) -> bool:
        """Move a Pending row to Rejected."""
        pass

    @abstractmethod
    def post_imported_transaction(
        self,
        transaction_id: int,
        reference: str,
        transaction_date: date,
        description: Optional[str],
        lines: Sequence[LineSpec],
        created_by: Optional[str] = None,
    ) -> Optional[int]:
        """Atomically move an Approved, unlinked row to Posted and write its entry.

        Returns:
            New journal entry ID, or None if the row was not Approved
        """
        pass

    # Journal
    @abstractmethod
    def create_journal_entry(
        self,
        reference: str,
        transaction_date: date,
        description: Optional[str],
        lines: Sequence[LineSpec],
        status: JournalEntryStatus = JournalEntryStatus.POSTED,
        created_by: Optional[str] = None,
    ) -> int:
        """Write an entry and all its lines as one unit. Returns entry ID."""
        pass

    @abstractmethod
    def get_journal_entry(self, entry_id: int) -> Optional[JournalEntry]:
        pass

    @abstractmethod
    def list_journal_entries(self, status: Optional[JournalEntryStatus] = None) -> list[JournalEntry]:
        pass

    @abstractmethod
    def post_draft_entry(self, entry_id: int, posted_at: datetime) -> bool:
        """Move a Draft entry to Posted."""
        pass

    @abstractmethod
    def create_reversal(
        self,
        original_id: int,
        reference: str,
        transaction_date: date,
        description: Optional[str],
        created_by: Optional[str] = None,
    ) -> int:
        """Write a Posted entry with every line of the original swapped.

        Raises:
            ConflictError: If the original was already reversed
        """
        pass

    @abstractmethod
    def account_balances(self) -> dict[int, tuple[Decimal, Decimal]]:
        """Total (debit, credit) per account over Posted entries."""
        pass

    # Bank rules
    @abstractmethod
    def create_bank_rule(
        self,
        name: str,
        match_field: MatchField,
        match_type: MatchType,
        match_value: str,
        assign_account_id: int,
        priority: int,
        source_account_id: Optional[int] = None,
        transaction_type: Optional[RuleTransactionType] = None,
        min_amount: Optional[Decimal] = None,
        max_amount: Optional[Decimal] = None,
        assign_memo: Optional[str] = None,
    ) -> int:
        pass

    @abstractmethod
    def get_bank_rule(self, rule_id: int) -> Optional[BankRule]:
        pass

    @abstractmethod
    def list_bank_rules(self, include_disabled: bool = False) -> list[BankRule]:
        """List rules ordered by ascending priority, then ID."""
        pass

    @abstractmethod
    def set_bank_rule_enabled(self, rule_id: int, enabled: bool) -> None:
        pass

    # Payments
    @abstractmethod
    def create_payment(
        self,
        kind: PaymentKind,
        payment_date: date,
        amount: Decimal,
        ledger_account_id: int,
        entry_reference: str,
        entry_description: Optional[str],
        lines: Sequence[LineSpec],
        counterparty: Optional[str] = None,
        reference_number: Optional[str] = None,
        document_number: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> int:
        """Write a payment and its Posted journal entry together. Returns payment ID."""
        pass

    @abstractmethod
    def get_payment(self, payment_id: int) -> Optional[Payment]:
        pass

    @abstractmethod
    def list_payments(self, unreconciled_only: bool = False) -> list[Payment]:
        pass

    # Recurring templates
    @abstractmethod
    def create_recurring_template(
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
    ) -> int:
        pass

    @abstractmethod
    def get_recurring_template(self, template_id: int) -> Optional[RecurringTemplate]:
        pass

    @abstractmethod
    def list_recurring_templates(self) -> list[RecurringTemplate]:
        pass

    @abstractmethod
    def set_template_status(
        self, template_id: int, expected: TemplateStatus, status: TemplateStatus
    ) -> bool:
        pass

    @abstractmethod
    def run_recurring_template(
        self,
        template_id: int,
        run_date: date,
        next_run_date: date,
        reference: str,
        description: Optional[str],
        lines: Sequence[LineSpec],
        status: JournalEntryStatus,
        created_by: Optional[str] = None,
    ) -> Optional[int]:
        """Advance an Active template due on run_date and write its entry.

        Returns:
            New journal entry ID, or None if the template was not due or active
        """
        pass
