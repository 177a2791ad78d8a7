"""Tests for reviewing reconciled rows."""

from datetime import date

import pytest

from ledgerflow.domain.entities import Confidence, MatchedEntityType, TransactionStatus
from ledgerflow.domain.errors import ConflictError, InvalidTransitionError, NotFoundError, ValidationError


def _suggest(db, txn, account_id=None, memo=None, entity_type=None, entity_id=None, confidence=None):
    db.record_reconciliation(
        txn.id,
        suggested_account_id=account_id,
        suggested_memo=memo,
        categorization_source=None,
        matched_entity_type=entity_type,
        matched_entity_id=entity_id,
        confidence=confidence,
        match_reason=None,
    )


def test_approve_with_account(review_service, chart, make_txn):
    """Test approving against an explicit account."""
    txn = make_txn("-50.00", description="STAPLES")
    approved = review_service.approve(txn.id, account_id=chart["6100"], reviewed_by="alice")

    assert approved.status == TransactionStatus.APPROVED
    assert approved.approved_account_id == chart["6100"]
    assert approved.reviewed_by == "alice"
    assert approved.reviewed_at is not None
    assert not approved.is_linked


def test_approve_uses_suggestion(temp_db, review_service, chart, make_txn):
    """Test that the stored suggestion and memo are used by default."""
    txn = make_txn("-50.00")
    _suggest(temp_db, txn, account_id=chart["6100"], memo="Printer paper")

    approved = review_service.approve(txn.id)

    assert approved.approved_account_id == chart["6100"]
    assert approved.approved_memo == "Printer paper"


def test_approve_without_account_refused(review_service, chart, make_txn):
    """Test that a business row needs an account."""
    txn = make_txn("-50.00")
    with pytest.raises(ValidationError) as exc:
        review_service.approve(txn.id)
    assert exc.value.code == "missing_categorization"
    assert review_service.require_transaction(txn.id).status == TransactionStatus.PENDING


def test_approve_inactive_account_refused(review_service, account_service, chart, make_txn):
    """Test that approval checks the account can receive lines."""
    account_service.deactivate_account(chart["6300"])
    txn = make_txn("-20.00")
    with pytest.raises(ValidationError) as exc:
        review_service.approve(txn.id, account_id=chart["6300"])
    assert exc.value.code == "account_inactive"


def test_personal_row_needs_no_account(review_service, chart, make_txn):
    """Test approving a personal row without an account."""
    txn = make_txn("-80.00", description="GROCERY", is_personal=True)
    approved = review_service.approve(txn.id)
    assert approved.is_personal
    assert approved.approved_account_id is None

    other = make_txn("-15.00")
    assert review_service.approve(other.id, is_personal=True).is_personal


def test_high_match_is_linked(temp_db, review_service, payment_service, chart, make_txn):
    """Test that a resolved match links instead of creating an entry."""
    payment = payment_service.record_customer_payment(date(2024, 3, 1), "500.00", chart["1000"], chart["1200"])
    txn = make_txn("500.00")
    _suggest(
        temp_db, txn, entity_type=MatchedEntityType.CUSTOMER_PAYMENT, entity_id=payment.id, confidence=Confidence.HIGH
    )

    approved = review_service.approve(txn.id, reviewed_by="alice")

    assert approved.status == TransactionStatus.APPROVED
    assert approved.is_linked
    assert payment_service.get_payment(payment.id).reconciled_transaction_id == txn.id

    with pytest.raises(ValidationError) as exc:
        review_service.posting.post_imported_transaction(txn.id)
    assert exc.value.code == "linked_match"


def test_approve_and_post_linked_returns_none(temp_db, review_service, payment_service, chart, make_txn):
    """Test the one-step path for a Medium match."""
    payment = payment_service.record_bill_payment(date(2024, 3, 1), "120.00", chart["1000"], chart["2000"])
    txn = make_txn("-120.00")
    _suggest(
        temp_db, txn, entity_type=MatchedEntityType.BILL_PAYMENT, entity_id=payment.id, confidence=Confidence.MEDIUM
    )
    entries_before = len(review_service.posting.list_entries())

    assert review_service.approve_and_post(txn.id) is None
    assert len(review_service.posting.list_entries()) == entries_before


def test_low_match_needs_acceptance(temp_db, review_service, payment_service, chart, make_txn):
    """Test that Low matches are only linked on request."""
    payment = payment_service.record_customer_payment(date(2024, 3, 1), "500.00", chart["1000"], chart["1200"])
    txn = make_txn("499.90")
    _suggest(
        temp_db, txn, entity_type=MatchedEntityType.CUSTOMER_PAYMENT, entity_id=payment.id, confidence=Confidence.LOW
    )

    with pytest.raises(ValidationError):
        review_service.approve(txn.id)

    linked = review_service.approve(txn.id, accept_match=True)
    assert linked.is_linked


def test_explicit_account_overrides_match(temp_db, review_service, payment_service, chart, make_txn):
    """Test that choosing an account ignores the stored match."""
    payment = payment_service.record_customer_payment(date(2024, 3, 1), "500.00", chart["1000"], chart["1200"])
    txn = make_txn("500.00")
    _suggest(
        temp_db, txn, entity_type=MatchedEntityType.CUSTOMER_PAYMENT, entity_id=payment.id, confidence=Confidence.HIGH
    )

    approved = review_service.approve(txn.id, account_id=chart["4000"])

    assert not approved.is_linked
    assert payment_service.get_payment(payment.id).reconciled_transaction_id is None


def test_counterpart_claimed_once(temp_db, review_service, payment_service, chart, make_txn):
    """Test that two rows cannot both reconcile the same payment."""
    payment = payment_service.record_customer_payment(date(2024, 3, 1), "500.00", chart["1000"], chart["1200"])
    first = make_txn("500.00")
    second = make_txn("500.00")
    for txn in (first, second):
        _suggest(
            temp_db,
            txn,
            entity_type=MatchedEntityType.CUSTOMER_PAYMENT,
            entity_id=payment.id,
            confidence=Confidence.MEDIUM,
        )

    review_service.approve(first.id)
    with pytest.raises(ConflictError) as exc:
        review_service.approve(second.id)

    assert exc.value.code == "counterpart_claimed"
    assert review_service.require_transaction(second.id).status == TransactionStatus.PENDING
    assert payment_service.get_payment(payment.id).reconciled_transaction_id == first.id


def test_link_to_earlier_imported_row(temp_db, review_service, make_txn, chart):
    """Test that an imported counterpart is claimed by the linking row."""
    earlier = make_txn("-75.00")
    later = make_txn("-75.00")
    _suggest(
        temp_db,
        later,
        entity_type=MatchedEntityType.IMPORTED_TRANSACTION,
        entity_id=earlier.id,
        confidence=Confidence.MEDIUM,
    )

    review_service.approve(later.id)

    assert review_service.require_transaction(earlier.id).claimed_by_id == later.id


def test_reject_then_approve_refused(review_service, chart, make_txn):
    """Test that rejection is final."""
    txn = make_txn("-5.00")
    rejected = review_service.reject(txn.id, reviewed_by="bob")
    assert rejected.status == TransactionStatus.REJECTED
    assert rejected.reviewed_by == "bob"

    with pytest.raises(InvalidTransitionError):
        review_service.approve(txn.id, account_id=chart["6100"])
    with pytest.raises(InvalidTransitionError):
        review_service.reject(txn.id)


def test_list_pending_and_missing(review_service, chart, make_txn):
    """Test listing Pending rows and looking up unknown ones."""
    keep = make_txn("-5.00")
    gone = make_txn("-6.00")
    review_service.reject(gone.id)

    assert [t.id for t in review_service.list_pending()] == [keep.id]
    assert [t.id for t in review_service.list_pending(batch_id=gone.batch_id)] == []
    with pytest.raises(NotFoundError):
        review_service.approve(999, account_id=chart["6100"])
