"""Categorization engine: rules first, then the AI advisor."""

import re
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Sequence

from ledgerflow.domain.advisor import CategorizationAdvisor
from ledgerflow.domain.entities import (
    Account,
    BankRule,
    CategorizationSource,
    ImportedTransaction,
    MatchField,
    MatchType,
    RuleTransactionType,
)
from ledgerflow.logging_config import get_logger

logger = get_logger(__name__)

_ACCOUNT_KEYS = ("account_id", "accountId", "account", "account_code", "accountCode", "code")


@dataclass(frozen=True)
class CategorizationResult:
    account_id: Optional[int]
    source: Optional[CategorizationSource]
    reason: str
    memo: Optional[str] = None
    rule_id: Optional[int] = None

    @property
    def needs_review(self) -> bool:
        return self.account_id is None


def _field_text(rule: BankRule, txn: ImportedTransaction) -> Optional[str]:
    if rule.match_field == MatchField.DESCRIPTION:
        return txn.description
    if rule.match_field == MatchField.MERCHANT:
        return txn.merchant
    if rule.match_field == MatchField.RAW_CATEGORY:
        return txn.raw_category
    return f"{abs(txn.amount):.2f}"


def rule_matches(rule: BankRule, txn: ImportedTransaction) -> bool:
    """Test one rule against a row. Text comparisons ignore case."""
    if not rule.is_enabled:
        return False
    if rule.source_account_id is not None and rule.source_account_id != txn.source_account_id:
        return False
    if rule.transaction_type == RuleTransactionType.DEBIT and txn.amount >= 0:
        return False
    if rule.transaction_type == RuleTransactionType.CREDIT and txn.amount <= 0:
        return False
    magnitude = abs(txn.amount)
    if rule.min_amount is not None and magnitude < rule.min_amount:
        return False
    if rule.max_amount is not None and magnitude > rule.max_amount:
        return False

    if rule.match_field == MatchField.AMOUNT and rule.match_type == MatchType.EQUALS:
        try:
            return magnitude == abs(Decimal(rule.match_value.strip().replace("$", "").replace(",", "")))
        except InvalidOperation:
            return False

    text = _field_text(rule, txn)
    if not text:
        return False
    value = rule.match_value.strip()
    if rule.match_type == MatchType.REGEX:
        try:
            return re.search(value, text, re.IGNORECASE) is not None
        except re.error as e:
            logger.warning("rule_regex_invalid", rule_id=rule.id, pattern=value, error=str(e))
            return False

    text = text.strip().upper()
    value = value.upper()
    if rule.match_type == MatchType.CONTAINS:
        return value in text
    if rule.match_type == MatchType.STARTS_WITH:
        return text.startswith(value)
    return text == value


def validate_suggestion(raw: Any, candidates: Sequence[Account]) -> tuple[Optional[Account], Optional[str]]:
    """Resolve an advisor reply to one of the candidate accounts.

    Accepts an integer id, a numeric string id, or an account code, either
    bare or under an ``account_id``-style key of a JSON object. Anything
    else, including names, is treated as no suggestion.

    Returns:
        (account or None, memo or None)
    """
    memo = None
    value = raw
    if isinstance(raw, dict):
        memo_value = raw.get("memo")
        memo = str(memo_value).strip() if memo_value else None
        value = next((raw[key] for key in _ACCOUNT_KEYS if raw.get(key) is not None), None)

    if value is None or isinstance(value, bool):
        return None, memo

    by_id = {acc.id: acc for acc in candidates}
    if isinstance(value, int):
        return by_id.get(value), memo
    if isinstance(value, str):
        token = value.strip()
        if token.isdigit() and int(token) in by_id:
            return by_id[int(token)], memo
        for acc in candidates:
            if acc.code == token:
                return acc, memo
    return None, memo


class CategorizationEngine:
    """Suggests an offsetting account for a bank row.

    Rules are scanned in ascending priority and the first hit wins; the AI
    advisor is consulted only when no rule matches. Advisor calls run on a
    dedicated pool and are abandoned after ``ai_timeout`` seconds.
    """

    def __init__(
        self,
        advisor: Optional[CategorizationAdvisor] = None,
        ai_timeout: float = 10.0,
        max_ai_workers: int = 4,
    ):
        self.advisor = advisor
        self.ai_timeout = ai_timeout
        self._executor: Optional[ThreadPoolExecutor] = None
        self._max_ai_workers = max_ai_workers

    def _ai_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self._max_ai_workers, thread_name_prefix="ai-advisor"
            )
        return self._executor

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    def categorize(
        self,
        txn: ImportedTransaction,
        rules: Sequence[BankRule],
        accounts: Sequence[Account],
        exclude_account_id: Optional[int] = None,
    ) -> CategorizationResult:
        """Suggest an account for a row.

        Args:
            txn: Row to categorize
            rules: Bank rules; disabled ones are ignored
            accounts: Active chart of accounts
            exclude_account_id: Ledger account of the row's own source account

        Returns:
            CategorizationResult; ``account_id`` is None when the row needs
            manual categorization
        """
        log = logger.bind(transaction_id=txn.id)
        active_ids = {acc.id for acc in accounts if acc.is_active}

        for rule in sorted(rules, key=lambda r: (r.priority, r.id)):
            if not rule_matches(rule, txn):
                continue
            if rule.assign_account_id not in active_ids:
                log.warning("rule_target_inactive", rule_id=rule.id, account_id=rule.assign_account_id)
                continue
            log.info("rule_matched", rule_id=rule.id, rule_name=rule.name, account_id=rule.assign_account_id)
            return CategorizationResult(
                account_id=rule.assign_account_id,
                source=CategorizationSource.RULE,
                reason=f"rule '{rule.name}'",
                memo=rule.assign_memo,
                rule_id=rule.id,
            )

        if self.advisor is None:
            return CategorizationResult(account_id=None, source=None, reason="no rule matched")

        candidates = [acc for acc in accounts if acc.is_active and acc.id != exclude_account_id]
        future = self._ai_executor().submit(self.advisor.suggest, txn.description, txn.amount, candidates)
        try:
            raw = future.result(timeout=self.ai_timeout)
        except FutureTimeoutError:
            # Only stops a call that has not started; a running call keeps its
            # ai-advisor thread until the client timeout fires.
            future.cancel()
            log.warning("ai_categorization_timeout", timeout=self.ai_timeout)
            return CategorizationResult(account_id=None, source=None, reason="AI advisor timed out")
        except Exception as e:
            log.warning("ai_categorization_failed", error=str(e), error_type=type(e).__name__)
            return CategorizationResult(account_id=None, source=None, reason="AI advisor failed")

        account, memo = validate_suggestion(raw, candidates)
        if account is None:
            log.info("ai_suggestion_rejected", raw=repr(raw)[:200])
            return CategorizationResult(account_id=None, source=None, reason="AI gave no usable account")

        log.info("ai_suggestion_accepted", account_id=account.id)
        return CategorizationResult(
            account_id=account.id, source=CategorizationSource.AI, reason="AI suggestion", memo=memo
        )
