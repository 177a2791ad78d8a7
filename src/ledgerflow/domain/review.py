"""Human review of reconciled bank rows."""

from datetime import datetime, UTC
from typing import Optional

from ledgerflow.config import Settings
from ledgerflow.database.base import Database
from ledgerflow.domain.account import AccountService
from ledgerflow.domain.entities import (
    Confidence,
    ImportedTransaction,
    TransactionStatus,
)
from ledgerflow.domain.errors import (
    AlreadyPostedError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
    already_posted,
    invalid_transition,
    transaction_not_found,
)
from ledgerflow.domain.posting import PostingEngine
from ledgerflow.domain.status import check_transition
from ledgerflow.logging_config import get_logger

logger = get_logger(__name__)


class ReviewService:
    """Moves rows out of Pending: approve, link to a match, or reject."""

    def __init__(self, db: Database, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or Settings()
        self.account_service = AccountService(db)
        self.posting = PostingEngine(db, self.settings)

    def require_transaction(self, transaction_id: int) -> ImportedTransaction:
        txn = self.db.get_imported_transaction(transaction_id)
        if txn is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        return txn

    def list_pending(self, batch_id: Optional[int] = None) -> list[ImportedTransaction]:
        return self.db.list_imported_transactions(status=TransactionStatus.PENDING, batch_id=batch_id)

    def _raise_lost_race(self, transaction_id: int, target: TransactionStatus) -> None:
        current = self.require_transaction(transaction_id)
        if current.status == TransactionStatus.POSTED:
            raise AlreadyPostedError(already_posted(transaction_id))
        raise InvalidTransitionError(
            invalid_transition("imported transaction", transaction_id, current.status.value, target.value)
        )

    def approve(
        self,
        transaction_id: int,
        account_id: Optional[int] = None,
        accept_match: bool = False,
        memo: Optional[str] = None,
        is_personal: Optional[bool] = None,
        reviewed_by: Optional[str] = None,
    ) -> ImportedTransaction:
        """Approve a Pending row.

        A row with a High or Medium match is linked to its counterpart unless
        an explicit account overrides it; a Low match is linked only with
        ``accept_match``. Linked rows are never posted again, since the
        counterpart already carries the journal entry. Any other row is
        approved against ``account_id`` or, failing that, the suggestion.

        Args:
            transaction_id: Row to approve
            account_id: Offsetting account chosen by the reviewer
            accept_match: Link to the stored match even when it is Low
            memo: Memo for the journal lines
            is_personal: Override the personal flag from the import
            reviewed_by: Reviewer name

        Returns:
            The approved row

        Raises:
            NotFoundError: If the row does not exist
            AlreadyPostedError: If the row was already posted
            InvalidTransitionError: If the row is not Pending
            ValidationError: If no account is available, or the account is inactive
            ConflictError: If the counterpart was reconciled by another row
        """
        txn = self.require_transaction(transaction_id)
        check_transition(txn.status, TransactionStatus.APPROVED, transaction_id)
        reviewed_at = datetime.now(UTC)
        log = logger.bind(transaction_id=transaction_id, reviewed_by=reviewed_by)

        link = txn.has_match and account_id is None and (
            txn.confidence in (Confidence.HIGH, Confidence.MEDIUM) or accept_match
        )
        if link:
            moved = self.db.link_imported_transaction(
                transaction_id,
                matched_entity_type=txn.matched_entity_type,
                matched_entity_id=txn.matched_entity_id,
                approved_memo=memo,
                reviewed_by=reviewed_by,
                reviewed_at=reviewed_at,
            )
            if not moved:
                self._raise_lost_race(transaction_id, TransactionStatus.APPROVED)
            log.info(
                "transaction_linked",
                entity_type=txn.matched_entity_type.value,
                entity_id=txn.matched_entity_id,
                confidence=txn.confidence.value if txn.confidence else None,
            )
            return self.require_transaction(transaction_id)

        personal = txn.is_personal if is_personal is None else is_personal
        target = account_id if account_id is not None else txn.suggested_account_id
        if target is None and not personal:
            raise ValidationError(
                f"Transaction {transaction_id} has no suggested account; choose one to approve",
                code="missing_categorization",
            )
        if target is not None:
            self.account_service.require_postable(target)

        moved = self.db.approve_imported_transaction(
            transaction_id,
            approved_account_id=target,
            approved_memo=memo or txn.suggested_memo,
            is_personal=personal,
            reviewed_by=reviewed_by,
            reviewed_at=reviewed_at,
        )
        if not moved:
            self._raise_lost_race(transaction_id, TransactionStatus.APPROVED)
        log.info("transaction_approved", account_id=target, is_personal=personal)
        return self.require_transaction(transaction_id)

    def approve_and_post(
        self,
        transaction_id: int,
        account_id: Optional[int] = None,
        memo: Optional[str] = None,
        reviewed_by: Optional[str] = None,
    ) -> Optional[int]:
        """Approve a row and post it in one step.

        Returns:
            The new journal entry ID, or None when the row was linked to an
            existing record instead
        """
        approved = self.approve(transaction_id, account_id=account_id, memo=memo, reviewed_by=reviewed_by)
        if approved.is_linked:
            return None
        return self.posting.post_imported_transaction(transaction_id, created_by=reviewed_by)

    def reject(self, transaction_id: int, reviewed_by: Optional[str] = None) -> ImportedTransaction:
        """Reject a Pending row. Rejected rows are never posted or matched."""
        txn = self.require_transaction(transaction_id)
        check_transition(txn.status, TransactionStatus.REJECTED, transaction_id)
        if not self.db.reject_imported_transaction(transaction_id, reviewed_by, datetime.now(UTC)):
            self._raise_lost_race(transaction_id, TransactionStatus.REJECTED)
        logger.info("transaction_rejected", transaction_id=transaction_id, reviewed_by=reviewed_by)
        return self.require_transaction(transaction_id)
