"""Batch reconciliation: match, then categorize, every Pending row."""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from ledgerflow.config import Settings
from ledgerflow.database.base import Database
from ledgerflow.domain.advisor import CategorizationAdvisor
from ledgerflow.domain.categorization import CategorizationEngine, CategorizationResult
from ledgerflow.domain.entities import (
    Account,
    BankRule,
    Confidence,
    ImportedTransaction,
    TransactionStatus,
)
from ledgerflow.domain.matching import MatchingEngine, MatchResult, OpenItem, is_open_imported
from ledgerflow.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ReferenceSnapshot:
    """Reference data frozen for the duration of one batch.

    Workers receive the snapshot explicitly and never read shared mutable
    state, so every row of a batch is judged against the same chart, rules
    and open items.
    """

    accounts: tuple[Account, ...]
    rules: tuple[BankRule, ...]
    open_items: tuple[OpenItem, ...]
    source_ledger_accounts: Mapping[int, Optional[int]]

    @classmethod
    def capture(cls, db: Database) -> "ReferenceSnapshot":
        payments = db.list_payments(unreconciled_only=True)
        imported = [t for t in db.list_imported_transactions() if is_open_imported(t)]
        open_items = [OpenItem.from_payment(p) for p in payments]
        open_items.extend(OpenItem.from_imported(t) for t in imported)
        return cls(
            accounts=tuple(db.list_accounts()),
            rules=tuple(db.list_bank_rules()),
            open_items=tuple(open_items),
            source_ledger_accounts=MappingProxyType(
                {s.id: s.ledger_account_id for s in db.list_source_accounts()}
            ),
        )

    def ledger_account_for(self, source_account_id: int) -> Optional[int]:
        return self.source_ledger_accounts.get(source_account_id)


@dataclass(frozen=True)
class RowOutcome:
    transaction_id: int
    match: Optional[MatchResult]
    categorization: Optional[CategorizationResult]
    stored: bool


@dataclass
class ReconciliationSummary:
    processed: int = 0
    matched: dict[Confidence, int] = field(default_factory=lambda: {c: 0 for c in Confidence})
    categorized: int = 0
    needs_review: int = 0
    errors: list[str] = field(default_factory=list)
    outcomes: list[RowOutcome] = field(default_factory=list)


class ReconciliationService:
    """Runs the matching and categorization engines over Pending rows."""

    def __init__(
        self,
        db: Database,
        settings: Optional[Settings] = None,
        advisor: Optional[CategorizationAdvisor] = None,
    ):
        """Initialize reconciliation service.

        Args:
            db: Database instance
            settings: Matching policy, worker counts and AI timeout
            advisor: AI categorization collaborator, or None for rules only
        """
        self.db = db
        self.settings = settings or Settings()
        self.matching = MatchingEngine(self.settings.matching)
        self.categorizer = CategorizationEngine(
            advisor=advisor,
            ai_timeout=self.settings.ai_timeout,
            max_ai_workers=self.settings.ai_workers,
        )

    def close(self) -> None:
        self.categorizer.close()

    def reconcile_row(self, txn: ImportedTransaction, snapshot: ReferenceSnapshot) -> RowOutcome:
        """Match and categorize one row, writing only to that row.

        A High or Medium match skips categorization. A Low match is kept as
        a suggestion for the reviewer and categorization still runs.
        """
        source_ledger = snapshot.ledger_account_for(txn.source_account_id)
        match = self.matching.find_match(txn, snapshot.open_items, source_ledger)
        log = logger.bind(transaction_id=txn.id)
        if match is not None:
            log.info(
                "match_found",
                entity_type=match.entity_type.value,
                entity_id=match.entity_id,
                confidence=match.confidence.value,
                candidates=match.candidates_considered,
            )

        categorization = None
        if match is None or not match.auto_links:
            categorization = self.categorizer.categorize(
                txn, snapshot.rules, snapshot.accounts, exclude_account_id=source_ledger
            )

        stored = self.db.record_reconciliation(
            txn.id,
            suggested_account_id=categorization.account_id if categorization else None,
            suggested_memo=categorization.memo if categorization else None,
            categorization_source=categorization.source if categorization else None,
            matched_entity_type=match.entity_type if match else None,
            matched_entity_id=match.entity_id if match else None,
            confidence=match.confidence if match else None,
            match_reason=match.reason if match else None,
        )
        if not stored:
            log.info("reconcile_skipped_not_pending")
        return RowOutcome(
            transaction_id=txn.id, match=match, categorization=categorization, stored=stored
        )

    def process_batch(self, batch_id: Optional[int] = None) -> ReconciliationSummary:
        """Reconcile every Pending row, optionally limited to one import batch.

        Rows run in parallel on a pool of ``settings.worker_count`` threads.
        A failure on one row is reported in the summary and does not stop
        the others.
        """
        pending = self.db.list_imported_transactions(status=TransactionStatus.PENDING, batch_id=batch_id)
        summary = ReconciliationSummary()
        if not pending:
            return summary

        snapshot = ReferenceSnapshot.capture(self.db)
        log = logger.bind(batch_id=batch_id)
        log.info("reconcile_started", rows=len(pending), open_items=len(snapshot.open_items))

        with ThreadPoolExecutor(
            max_workers=self.settings.worker_count, thread_name_prefix="reconcile"
        ) as pool:
            futures = {pool.submit(self.reconcile_row, txn, snapshot): txn for txn in pending}
            for future in as_completed(futures):
                txn = futures[future]
                try:
                    outcome = future.result()
                except Exception as e:
                    log.error("reconcile_row_failed", transaction_id=txn.id, error=str(e), exc_info=True)
                    summary.errors.append(f"Transaction {txn.id}: {e}")
                    continue
                summary.outcomes.append(outcome)
                if not outcome.stored:
                    continue
                summary.processed += 1
                if outcome.match is not None:
                    summary.matched[outcome.match.confidence] += 1
                if outcome.categorization is not None:
                    if outcome.categorization.needs_review:
                        summary.needs_review += 1
                    else:
                        summary.categorized += 1

        summary.outcomes.sort(key=lambda o: o.transaction_id)
        log.info(
            "reconcile_completed",
            processed=summary.processed,
            high=summary.matched[Confidence.HIGH],
            medium=summary.matched[Confidence.MEDIUM],
            low=summary.matched[Confidence.LOW],
            categorized=summary.categorized,
            needs_review=summary.needs_review,
            errors=len(summary.errors),
        )
        return summary
