"""Domain model entities for ledgerflow.

These are pure data classes representing business concepts, independent of
database schema. Status and type fields are closed enums; the stored value
of each member is the text persisted by the database layer.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional


class AccountType(str, Enum):
    ASSET = "Asset"
    LIABILITY = "Liability"
    EQUITY = "Equity"
    REVENUE = "Revenue"
    EXPENSE = "Expense"


class AccountStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class TransactionStatus(str, Enum):
    """Lifecycle of an imported bank row."""

    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    POSTED = "Posted"


class JournalEntryStatus(str, Enum):
    DRAFT = "Draft"
    POSTED = "Posted"


class Confidence(str, Enum):
    """Match confidence tier, ordered from strongest to weakest."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @property
    def auto_links(self) -> bool:
        """High and Medium matches link on approval without a new entry."""
        return self in (Confidence.HIGH, Confidence.MEDIUM)


class MatchedEntityType(str, Enum):
    CUSTOMER_PAYMENT = "CustomerPayment"
    BILL_PAYMENT = "BillPayment"
    IMPORTED_TRANSACTION = "ImportedTransaction"


class MatchField(str, Enum):
    DESCRIPTION = "Description"
    MERCHANT = "Merchant"
    RAW_CATEGORY = "RawCategory"
    AMOUNT = "Amount"


class MatchType(str, Enum):
    CONTAINS = "Contains"
    EQUALS = "Equals"
    STARTS_WITH = "StartsWith"
    REGEX = "Regex"


class RuleTransactionType(str, Enum):
    """Direction filter on a bank rule: debit is an outflow, credit an inflow."""

    DEBIT = "Debit"
    CREDIT = "Credit"


class CategorizationSource(str, Enum):
    RULE = "Rule"
    AI = "AI"
    MANUAL = "Manual"


class PaymentKind(str, Enum):
    CUSTOMER = "Customer"
    BILL = "Bill"


class TemplateTransactionType(str, Enum):
    INVOICE = "Invoice"
    BILL = "Bill"
    JOURNAL_ENTRY = "JournalEntry"


class Frequency(str, Enum):
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"
    YEARLY = "Yearly"


class TemplateStatus(str, Enum):
    ACTIVE = "Active"
    PAUSED = "Paused"


@dataclass(frozen=True)
class Account:
    """Chart-of-accounts entry."""

    id: int
    code: str
    name: str
    account_type: AccountType
    subtype: Optional[str]
    parent_id: Optional[int]
    status: AccountStatus
    created_at: datetime

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE


@dataclass(frozen=True)
class SourceAccount:
    """Bank or card account external to the ledger."""

    id: int
    institution: str
    account_identifier: str
    currency: str
    name: str
    ledger_account_id: Optional[int]
    created_at: datetime


@dataclass(frozen=True)
class ImportBatch:
    """One file or feed payload handed to the importer."""

    id: int
    file_name: Optional[str]
    dialect: str
    imported_count: int
    skipped_count: int
    error_count: int
    created_at: datetime


@dataclass(frozen=True)
class ImportedTransaction:
    """Canonical bank row. Negative amounts leave the source account."""

    id: int
    batch_id: Optional[int]
    source_account_id: int
    unique_id: str
    transaction_date: date
    post_date: Optional[date]
    description: str
    merchant: Optional[str]
    raw_category: Optional[str]
    amount: Decimal
    reference_number: Optional[str]
    check_number: Optional[str]
    is_personal: bool
    status: TransactionStatus
    suggested_account_id: Optional[int]
    suggested_memo: Optional[str]
    categorization_source: Optional[CategorizationSource]
    matched_entity_type: Optional[MatchedEntityType]
    matched_entity_id: Optional[int]
    confidence: Optional[Confidence]
    match_reason: Optional[str]
    approved_account_id: Optional[int]
    approved_memo: Optional[str]
    reviewed_by: Optional[str]
    reviewed_at: Optional[datetime]
    linked_at: Optional[datetime]
    claimed_by_id: Optional[int]
    journal_entry_id: Optional[int]
    imported_at: datetime

    @property
    def has_match(self) -> bool:
        return self.matched_entity_type is not None and self.matched_entity_id is not None

    @property
    def has_resolved_match(self) -> bool:
        """True when the match is strong enough to link without review."""
        return self.has_match and self.confidence is not None and self.confidence.auto_links

    @property
    def is_linked(self) -> bool:
        """Approved by linking to an existing record; never posted on its own."""
        return self.linked_at is not None

    @property
    def target_account_id(self) -> Optional[int]:
        """Offsetting account: the approved choice, else the suggestion."""
        if self.approved_account_id is not None:
            return self.approved_account_id
        return self.suggested_account_id


@dataclass(frozen=True)
class JournalEntryLine:
    id: int
    entry_id: int
    line_number: int
    account_id: int
    description: Optional[str]
    debit: Decimal
    credit: Decimal


@dataclass(frozen=True)
class JournalEntry:
    """Journal entry with its ordered lines."""

    id: int
    reference: str
    transaction_date: date
    description: Optional[str]
    status: JournalEntryStatus
    created_by: Optional[str]
    created_at: datetime
    posted_at: Optional[datetime]
    reversal_of_id: Optional[int] = None
    source_transaction_id: Optional[int] = None
    recurring_template_id: Optional[int] = None
    lines: tuple[JournalEntryLine, ...] = field(default_factory=tuple)

    @property
    def total_debit(self) -> Decimal:
        return sum((line.debit for line in self.lines), Decimal("0.00"))

    @property
    def total_credit(self) -> Decimal:
        return sum((line.credit for line in self.lines), Decimal("0.00"))

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit


@dataclass(frozen=True)
class BankRule:
    """Deterministic categorization rule."""

    id: int
    name: str
    match_field: MatchField
    match_type: MatchType
    match_value: str
    assign_account_id: int
    priority: int
    source_account_id: Optional[int] = None
    transaction_type: Optional[RuleTransactionType] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    assign_memo: Optional[str] = None
    is_enabled: bool = True


@dataclass(frozen=True)
class Payment:
    """Customer receipt or bill payment entered outside the bank import."""

    id: int
    kind: PaymentKind
    payment_date: date
    amount: Decimal
    ledger_account_id: int
    counterparty: Optional[str]
    reference_number: Optional[str]
    document_number: Optional[str]
    journal_entry_id: Optional[int]
    reconciled_transaction_id: Optional[int]
    created_at: datetime

    @property
    def bank_amount(self) -> Decimal:
        """Amount as it would appear on the bank statement."""
        return self.amount if self.kind == PaymentKind.CUSTOMER else -self.amount

    @property
    def entity_type(self) -> MatchedEntityType:
        if self.kind == PaymentKind.CUSTOMER:
            return MatchedEntityType.CUSTOMER_PAYMENT
        return MatchedEntityType.BILL_PAYMENT


@dataclass(frozen=True)
class TemplateLine:
    account_id: int
    debit: Decimal
    credit: Decimal
    description: Optional[str] = None


@dataclass(frozen=True)
class RecurringTemplate:
    """Recurring transaction template. Calendar math lives outside the engine."""

    id: int
    name: str
    transaction_type: TemplateTransactionType
    frequency: Frequency
    interval: int
    day_of_month: Optional[int]
    day_of_week: Optional[int]
    status: TemplateStatus
    next_run_date: date
    description: Optional[str]
    last_run_date: Optional[date]
    created_at: datetime
    lines: tuple[TemplateLine, ...] = field(default_factory=tuple)
