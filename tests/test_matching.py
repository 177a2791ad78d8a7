"""Tests for the matching engine."""

from datetime import date, datetime, timedelta
from decimal import Decimal

from ledgerflow.config import MatchingPolicy
from ledgerflow.domain.entities import (
    Confidence,
    MatchedEntityType,
    Payment,
    PaymentKind,
    TransactionStatus,
)
from ledgerflow.domain.matching import MatchingEngine, OpenItem, is_open_imported

CHECKING = 10


def _payment(payment_id, amount, payment_date=date(2024, 3, 9), kind=PaymentKind.CUSTOMER, **kwargs):
    values = dict(
        id=payment_id,
        kind=kind,
        payment_date=payment_date,
        amount=Decimal(amount),
        ledger_account_id=CHECKING,
        counterparty="Acme",
        reference_number=None,
        document_number=None,
        journal_entry_id=None,
        reconciled_transaction_id=None,
        created_at=datetime(2024, 3, 9),
    )
    values.update(kwargs)
    return OpenItem.from_payment(Payment(**values))


def test_high_confidence_needs_reference(build_txn):
    """Test exact amount, tight window and a corroborating invoice number."""
    engine = MatchingEngine()
    txn = build_txn("500.00", description="ACH DEPOSIT ACME INV-1001")
    item = _payment(1, "500.00", document_number="INV-1001")

    result = engine.find_match(txn, [item], CHECKING)

    assert result.confidence == Confidence.HIGH
    assert result.entity_type == MatchedEntityType.CUSTOMER_PAYMENT
    assert result.entity_id == 1
    assert "INV-1001" in result.reason
    assert result.auto_links


def test_medium_confidence_without_reference(build_txn):
    """Test exact amount inside the date window."""
    engine = MatchingEngine()
    result = engine.find_match(build_txn("500.00"), [_payment(1, "500.00", date(2024, 3, 6))], CHECKING)
    assert result.confidence == Confidence.MEDIUM


def test_low_confidence_within_tolerance(build_txn):
    """Test an amount off by cents is only a suggestion."""
    engine = MatchingEngine()
    result = engine.find_match(build_txn("499.75"), [_payment(1, "500.00")], CHECKING)
    assert result.confidence == Confidence.LOW
    assert not result.auto_links


def test_outside_windows_is_no_match(build_txn):
    """Test tolerance and search window limits."""
    engine = MatchingEngine(MatchingPolicy(amount_tolerance=Decimal("0.50"), search_window_days=30))
    assert engine.find_match(build_txn("500.00"), [_payment(1, "501.00")], CHECKING) is None
    far = date(2024, 3, 10) - timedelta(days=31)
    assert engine.find_match(build_txn("500.00"), [_payment(1, "500.00", far)], CHECKING) is None


def test_tie_is_downgraded_to_low(build_txn):
    """Test that two equal candidates suggest the oldest at Low."""
    engine = MatchingEngine()
    older = _payment(2, "500.00", date(2024, 3, 8))
    newer = _payment(1, "500.00", date(2024, 3, 9))

    result = engine.find_match(build_txn("500.00"), [newer, older], CHECKING)

    assert result.confidence == Confidence.LOW
    assert result.entity_id == 2
    assert result.candidates_considered == 2
    assert "tied" in result.reason


def test_better_tier_beats_tie(build_txn):
    """Test that a unique High candidate wins over Medium ones."""
    engine = MatchingEngine()
    txn = build_txn("500.00", description="DEPOSIT INV-2002")
    high = _payment(3, "500.00", document_number="INV-2002")
    medium = _payment(4, "500.00")
    result = engine.find_match(txn, [medium, high], CHECKING)
    assert result.confidence == Confidence.HIGH
    assert result.entity_id == 3


def test_sign_must_agree(build_txn):
    """Test that a bill payment never matches a deposit."""
    engine = MatchingEngine()
    bill = _payment(1, "500.00", kind=PaymentKind.BILL)
    assert engine.find_match(build_txn("500.00"), [bill], CHECKING) is None
    result = engine.find_match(build_txn("-500.00"), [bill], CHECKING)
    assert result.entity_type == MatchedEntityType.BILL_PAYMENT


def test_payment_on_other_ledger_account_ignored(build_txn):
    """Test that payments are only matched against the row's own bank account."""
    engine = MatchingEngine()
    item = _payment(1, "500.00", ledger_account_id=99)
    assert engine.find_match(build_txn("500.00"), [item], CHECKING) is None
    assert engine.find_match(build_txn("500.00"), [_payment(1, "500.00")], None) is None


def test_imported_counterpart_rules(build_txn):
    """Test that earlier rows from other batches of the same account match."""
    engine = MatchingEngine()
    txn = build_txn("-75.00", txn_id=100, batch_id=5)

    same_batch = OpenItem.from_imported(build_txn("-75.00", txn_id=50, batch_id=5))
    later = OpenItem.from_imported(build_txn("-75.00", txn_id=150, batch_id=4))
    other_source = OpenItem.from_imported(build_txn("-75.00", txn_id=60, batch_id=4, source_account_id=2))
    assert engine.find_match(txn, [same_batch, later, other_source], CHECKING) is None

    earlier = OpenItem.from_imported(build_txn("-75.00", txn_id=60, batch_id=4))
    result = engine.find_match(txn, [earlier], CHECKING)
    assert result.entity_type == MatchedEntityType.IMPORTED_TRANSACTION
    assert result.entity_id == 60


def test_short_references_do_not_corroborate(build_txn):
    """Test that one- and two-character references are ignored."""
    engine = MatchingEngine()
    txn = build_txn("500.00", description="DEPOSIT 12")
    result = engine.find_match(txn, [_payment(1, "500.00", reference_number="12")], CHECKING)
    assert result.confidence == Confidence.MEDIUM


def test_is_open_imported(build_txn):
    """Test which imported rows may still be claimed."""
    assert is_open_imported(build_txn("1.00"))
    assert not is_open_imported(build_txn("1.00", status=TransactionStatus.REJECTED))
    assert not is_open_imported(build_txn("1.00", claimed_by_id=7))
    assert not is_open_imported(build_txn("1.00", linked_at=datetime(2024, 3, 11)))
