"""Matching engine: pair a bank row with an already-known financial event."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from ledgerflow.config import MatchingPolicy
from ledgerflow.domain.entities import (
    Confidence,
    ImportedTransaction,
    MatchedEntityType,
    Payment,
    TransactionStatus,
)

_TIER_RANK = {Confidence.HIGH: 0, Confidence.MEDIUM: 1, Confidence.LOW: 2}
_TYPE_RANK = {
    MatchedEntityType.CUSTOMER_PAYMENT: 0,
    MatchedEntityType.BILL_PAYMENT: 1,
    MatchedEntityType.IMPORTED_TRANSACTION: 2,
}
MIN_REFERENCE_LENGTH = 3


@dataclass(frozen=True)
class OpenItem:
    """Candidate counterpart for a bank row.

    ``bank_amount`` is signed the way the item would appear on the bank
    statement: receipts positive, payments negative.
    """

    entity_type: MatchedEntityType
    entity_id: int
    item_date: date
    bank_amount: Decimal
    ledger_account_id: Optional[int] = None
    source_account_id: Optional[int] = None
    batch_id: Optional[int] = None
    references: tuple[str, ...] = ()
    counterparty: Optional[str] = None

    @classmethod
    def from_payment(cls, payment: Payment) -> "OpenItem":
        return cls(
            entity_type=payment.entity_type,
            entity_id=payment.id,
            item_date=payment.payment_date,
            bank_amount=payment.bank_amount,
            ledger_account_id=payment.ledger_account_id,
            references=tuple(r for r in (payment.reference_number, payment.document_number) if r),
            counterparty=payment.counterparty,
        )

    @classmethod
    def from_imported(cls, txn: ImportedTransaction) -> "OpenItem":
        return cls(
            entity_type=MatchedEntityType.IMPORTED_TRANSACTION,
            entity_id=txn.id,
            item_date=txn.transaction_date,
            bank_amount=txn.amount,
            source_account_id=txn.source_account_id,
            batch_id=txn.batch_id,
            references=tuple(r for r in (txn.reference_number, txn.check_number) if r),
        )


def is_open_imported(txn: ImportedTransaction) -> bool:
    """Imported rows that can still be another row's counterpart."""
    return (
        txn.status != TransactionStatus.REJECTED
        and txn.claimed_by_id is None
        and not txn.is_linked
    )


@dataclass(frozen=True)
class MatchResult:
    entity_type: MatchedEntityType
    entity_id: int
    confidence: Confidence
    reason: str
    candidates_considered: int

    @property
    def auto_links(self) -> bool:
        return self.confidence.auto_links


@dataclass(frozen=True)
class _Scored:
    item: OpenItem
    tier: Confidence
    amount_diff: Decimal
    days_apart: int
    reference: Optional[str]

    @property
    def score(self) -> tuple[int, Decimal]:
        return (_TIER_RANK[self.tier], self.amount_diff)

    @property
    def tie_break(self) -> tuple:
        # Oldest open item first, then nearest date.
        return (self.item.item_date, self.days_apart, _TYPE_RANK[self.item.entity_type], self.item.entity_id)


class MatchingEngine:
    """Grades open items against a bank row.

    Tiers:

    - High: exact amount, within the tight window, and a reference or
      document number of the item appears in the row
    - Medium: exact amount within the date window
    - Low: anything else within the amount tolerance and search window, or
      a tie between equally good candidates
    """

    def __init__(self, policy: Optional[MatchingPolicy] = None):
        self.policy = policy or MatchingPolicy()

    def is_candidate(
        self, txn: ImportedTransaction, item: OpenItem, source_ledger_account_id: Optional[int]
    ) -> bool:
        if item.entity_type == MatchedEntityType.IMPORTED_TRANSACTION:
            # Earlier rows of the same account from a different file or feed.
            if item.source_account_id != txn.source_account_id or item.entity_id >= txn.id:
                return False
            if item.batch_id is not None and item.batch_id == txn.batch_id:
                return False
        elif source_ledger_account_id is None or item.ledger_account_id != source_ledger_account_id:
            return False
        if (item.bank_amount > 0) != (txn.amount > 0):
            return False
        if abs(txn.amount - item.bank_amount) > self.policy.amount_tolerance:
            return False
        return abs((txn.transaction_date - item.item_date).days) <= self.policy.search_window_days

    def _corroborating_reference(self, txn: ImportedTransaction, item: OpenItem) -> Optional[str]:
        haystack = " ".join(
            part for part in (txn.description, txn.merchant, txn.reference_number, txn.check_number) if part
        ).upper()
        for reference in item.references:
            ref = reference.strip().upper()
            if len(ref) >= MIN_REFERENCE_LENGTH and ref in haystack:
                return reference
        return None

    def _score(self, txn: ImportedTransaction, item: OpenItem) -> _Scored:
        amount_diff = abs(txn.amount - item.bank_amount)
        days_apart = abs((txn.transaction_date - item.item_date).days)
        reference = self._corroborating_reference(txn, item)
        exact = amount_diff == 0
        if exact and days_apart <= self.policy.tight_window_days and reference is not None:
            tier = Confidence.HIGH
        elif exact and days_apart <= self.policy.date_window_days:
            tier = Confidence.MEDIUM
        else:
            tier = Confidence.LOW
        return _Scored(item=item, tier=tier, amount_diff=amount_diff, days_apart=days_apart, reference=reference)

    def find_match(
        self,
        txn: ImportedTransaction,
        open_items: Iterable[OpenItem],
        source_ledger_account_id: Optional[int] = None,
    ) -> Optional[MatchResult]:
        """Find the best counterpart for a bank row.

        Args:
            txn: Row being reconciled
            open_items: Unreconciled payments and earlier imported rows
            source_ledger_account_id: Ledger account the row's source account
                maps to; payments must have been made to or from it

        Returns:
            MatchResult, or None when nothing is within tolerance
        """
        scored = [
            self._score(txn, item)
            for item in open_items
            if self.is_candidate(txn, item, source_ledger_account_id)
        ]
        if not scored:
            return None

        best_score = min(s.score for s in scored)
        tied = sorted((s for s in scored if s.score == best_score), key=lambda s: s.tie_break)
        chosen = tied[0]

        if len(tied) > 1:
            confidence = Confidence.LOW
            reason = (
                f"{len(tied)} candidates tied at {chosen.tier.value}; "
                f"oldest open item {chosen.item.entity_type.value} {chosen.item.entity_id} suggested"
            )
        else:
            confidence = chosen.tier
            reason = self._describe(chosen)

        return MatchResult(
            entity_type=chosen.item.entity_type,
            entity_id=chosen.item.entity_id,
            confidence=confidence,
            reason=reason,
            candidates_considered=len(scored),
        )

    def _describe(self, scored: _Scored) -> str:
        parts = []
        if scored.amount_diff == 0:
            parts.append("exact amount")
        else:
            parts.append(f"amount within {scored.amount_diff:.2f}")
        parts.append(f"{scored.days_apart} day(s) apart")
        if scored.reference is not None:
            parts.append(f"reference '{scored.reference}' in description")
        return ", ".join(parts)
