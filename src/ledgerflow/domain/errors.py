"""Shared domain error messages and error types."""

from decimal import Decimal
from typing import Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling. Every error carries a
    machine-readable ``code`` so callers never have to parse messages.
    """

    default_code = "domain_error"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code or self.default_code


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""

    default_code = "validation_error"


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""

    default_code = "not_found"


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""

    default_code = "conflict"


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""

    default_code = "dependency"


class InvalidTransitionError(ValidationError):
    """A status transition that is not in the transition table."""

    default_code = "invalid_transition"


class AlreadyPostedError(ConflictError):
    """The record has already been posted to the ledger."""

    default_code = "already_posted"


class UnbalancedEntryError(ValidationError):
    """Total debits and total credits of an entry differ."""

    default_code = "unbalanced_entry"

    def __init__(self, total_debit: Decimal, total_credit: Decimal, reference: Optional[str] = None):
        self.total_debit = total_debit
        self.total_credit = total_credit
        self.reference = reference
        super().__init__(unbalanced_entry(total_debit, total_credit, reference))


class ImmutableEntryError(ConflictError):
    """Attempt to modify or delete a posted journal entry or its lines."""

    default_code = "immutable_entry"


class ImportFormatError(ValidationError):
    """The uploaded payload cannot be imported as a whole."""

    default_code = "import_format"


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def account_code_not_found(code: str) -> str:
    """Return message for missing account by code."""
    return f"Account with code '{code}' not found"


def account_inactive(account_id: int) -> str:
    """Return message for an account that cannot receive postings."""
    return f"Account {account_id} is inactive"


def source_account_not_found(source_account_id: int) -> str:
    """Return message for missing source account."""
    return f"Source account {source_account_id} not found"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing imported transaction."""
    return f"Imported transaction {transaction_id} not found"


def journal_entry_not_found(entry_id: int) -> str:
    """Return message for missing journal entry."""
    return f"Journal entry {entry_id} not found"


def unbalanced_entry(total_debit: Decimal, total_credit: Decimal, reference: Optional[str] = None) -> str:
    """Return message for an entry whose sides differ."""
    label = f"Journal entry '{reference}'" if reference else "Journal entry"
    return (
        f"{label} is not balanced: debits {total_debit:.2f} != credits {total_credit:.2f} "
        f"(difference {total_debit - total_credit:.2f})"
    )


def invalid_transition(kind: str, record_id: Optional[int], current: str, target: str) -> str:
    """Return message for a refused status transition."""
    label = f"{kind} {record_id}" if record_id is not None else kind
    return f"Cannot move {label} from {current} to {target}"


def already_posted(transaction_id: int) -> str:
    """Return message when a transaction was posted by an earlier request."""
    return f"Imported transaction {transaction_id} is already posted"
