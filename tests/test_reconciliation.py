"""Tests for batch reconciliation."""

import threading
from datetime import date

from ledgerflow.config import Settings
from ledgerflow.domain.entities import CategorizationSource, Confidence, MatchedEntityType, TransactionStatus
from ledgerflow.domain.reconciliation import ReconciliationService, ReferenceSnapshot


class CountingAdvisor:
    def __init__(self, reply):
        self.reply = reply
        self.descriptions = []

    def suggest(self, description, amount, candidates):
        self.descriptions.append(description)
        return self.reply


def test_process_batch_summary(temp_db, chart, make_txn, rule_service, payment_service, reconciliation_service):
    """Test a mixed batch: one rule hit, one High match, one left for review."""
    rule_service.create_rule("Staples", "Description", "Contains", "STAPLES", chart["6100"])
    payment = payment_service.record_customer_payment(
        date(2024, 3, 1), "500.00", chart["1000"], chart["1200"], counterparty="Acme", invoice_number="INV-1001"
    )
    staples = make_txn("-50.00", date(2024, 3, 2), "STAPLES #123")
    deposit = make_txn("500.00", date(2024, 3, 2), "ACH DEPOSIT ACME INV-1001")
    mystery = make_txn("-10.00", date(2024, 3, 2), "MYSTERY")

    summary = reconciliation_service.process_batch()

    assert summary.processed == 3
    assert summary.matched[Confidence.HIGH] == 1
    assert summary.categorized == 1
    assert summary.needs_review == 1
    assert summary.errors == []
    assert [o.transaction_id for o in summary.outcomes] == [staples.id, deposit.id, mystery.id]

    stored = temp_db.get_imported_transaction(staples.id)
    assert stored.suggested_account_id == chart["6100"]
    assert stored.categorization_source == CategorizationSource.RULE
    assert stored.status == TransactionStatus.PENDING

    matched = temp_db.get_imported_transaction(deposit.id)
    assert matched.matched_entity_type == MatchedEntityType.CUSTOMER_PAYMENT
    assert matched.matched_entity_id == payment.id
    assert matched.confidence == Confidence.HIGH
    assert matched.suggested_account_id is None
    assert matched.has_resolved_match

    assert temp_db.get_imported_transaction(mystery.id).suggested_account_id is None


def test_process_single_batch(chart, make_txn, rule_service, reconciliation_service):
    """Test that a batch id limits the rows processed."""
    rule_service.create_rule("Rent", "Description", "Contains", "LANDLORD", chart["6200"])
    first = make_txn("-2500.00", description="LANDLORD")
    make_txn("-4.00", description="COFFEE")

    summary = reconciliation_service.process_batch(batch_id=first.batch_id)

    assert summary.processed == 1
    assert summary.categorized == 1


def test_empty_batch(reconciliation_service):
    """Test that nothing pending returns an empty summary."""
    summary = reconciliation_service.process_batch()
    assert summary.processed == 0
    assert summary.outcomes == []


def test_high_match_skips_advisor(temp_db, chart, make_txn, payment_service):
    """Test that categorization does not run for resolved matches."""
    payment_service.record_customer_payment(
        date(2024, 3, 1), "500.00", chart["1000"], chart["1200"], invoice_number="INV-7"
    )
    make_txn("500.00", date(2024, 3, 1), "DEPOSIT INV-7")
    advisor = CountingAdvisor(chart["4000"])
    service = ReconciliationService(temp_db, settings=Settings(), advisor=advisor)
    try:
        summary = service.process_batch()
    finally:
        service.close()

    assert summary.matched[Confidence.HIGH] == 1
    assert advisor.descriptions == []


def test_low_match_still_categorized(temp_db, chart, make_txn, payment_service):
    """Test that a Low match keeps the suggestion and asks the advisor."""
    payment_service.record_customer_payment(date(2024, 3, 1), "500.00", chart["1000"], chart["1200"])
    txn = make_txn("499.80", date(2024, 3, 1), "DEPOSIT")
    advisor = CountingAdvisor({"account_id": chart["4000"], "memo": "Sale"})
    service = ReconciliationService(temp_db, settings=Settings(), advisor=advisor)
    try:
        service.process_batch()
    finally:
        service.close()

    stored = temp_db.get_imported_transaction(txn.id)
    assert stored.confidence == Confidence.LOW
    assert stored.suggested_account_id == chart["4000"]
    assert stored.categorization_source == CategorizationSource.AI
    assert stored.suggested_memo == "Sale"
    assert not stored.has_resolved_match


def test_snapshot_excludes_reconciled_payments(temp_db, chart, make_txn, payment_service, review_service):
    """Test that claimed counterparts are no longer open items."""
    payment = payment_service.record_customer_payment(
        date(2024, 3, 1), "500.00", chart["1000"], chart["1200"]
    )
    assert len(ReferenceSnapshot.capture(temp_db).open_items) == 1

    txn = make_txn("500.00", date(2024, 3, 1))
    temp_db.record_reconciliation(
        txn.id, None, None, None, MatchedEntityType.CUSTOMER_PAYMENT, payment.id, Confidence.MEDIUM, "exact amount"
    )
    review_service.approve(txn.id)

    snapshot = ReferenceSnapshot.capture(temp_db)
    assert [item.entity_id for item in snapshot.open_items] == []
    assert snapshot.ledger_account_for(txn.source_account_id) == chart["1000"]


def test_rows_moved_on_are_not_overwritten(temp_db, chart, make_txn, reconciliation_service, review_service):
    """Test that reconciliation only writes to Pending rows."""
    txn = make_txn("-10.00")
    review_service.reject(txn.id)

    outcome = reconciliation_service.reconcile_row(txn, ReferenceSnapshot.capture(temp_db))

    assert not outcome.stored
    assert temp_db.get_imported_transaction(txn.id).status == TransactionStatus.REJECTED


class HangingAdvisor:
    """Blocks on descriptions starting with HANG until released."""

    def __init__(self, reply):
        self.reply = reply
        self.release = threading.Event()

    def suggest(self, description, amount, candidates):
        if description.startswith("HANG"):
            self.release.wait(5)
        return self.reply


def test_hung_advisor_call_does_not_starve_later_rows(temp_db, chart, make_txn):
    """Test that the AI pool is sized apart from the row workers."""
    batch_id = temp_db.create_import_batch(dialect="generic")
    hung = make_txn("-10.00", description="HANG", batch_id=batch_id)
    later = make_txn("-20.00", description="LATER", batch_id=batch_id)
    advisor = HangingAdvisor(chart["6300"])
    settings = Settings(worker_count=1, ai_workers=2, ai_timeout=0.3)
    service = ReconciliationService(temp_db, settings=settings, advisor=advisor)
    try:
        summary = service.process_batch(batch_id)
    finally:
        advisor.release.set()
        service.close()

    assert summary.categorized == 1
    assert temp_db.get_imported_transaction(hung.id).suggested_account_id is None
    assert temp_db.get_imported_transaction(later.id).suggested_account_id == chart["6300"]
