"""Bank rule management."""

import re
from decimal import Decimal
from enum import Enum
from typing import Optional, TypeVar

from ledgerflow.database.base import Database
from ledgerflow.domain.account import AccountService
from ledgerflow.domain.entities import BankRule, MatchField, MatchType, RuleTransactionType
from ledgerflow.domain.errors import NotFoundError, ValidationError
from ledgerflow.domain.money import to_money
from ledgerflow.logging_config import get_logger

logger = get_logger(__name__)

E = TypeVar("E", bound=Enum)


def parse_choice(enum_type: type[E], value: E | str, label: str) -> E:
    """Parse an enum member by value, ignoring case, spaces and dashes."""
    if isinstance(value, enum_type):
        return value
    wanted = str(value).replace(" ", "").replace("-", "").replace("_", "").lower()
    for member in enum_type:
        if member.value.lower() == wanted:
            return member
    choices = ", ".join(m.value for m in enum_type)
    raise ValidationError(f"Invalid {label} '{value}'. Must be one of: {choices}")


class BankRuleService:
    """Service for managing bank rules."""

    def __init__(self, db: Database):
        self.db = db
        self.account_service = AccountService(db)

    def create_rule(
        self,
        name: str,
        match_field: MatchField | str,
        match_type: MatchType | str,
        match_value: str,
        assign_account_id: int,
        priority: int = 100,
        source_account_id: Optional[int] = None,
        transaction_type: Optional[RuleTransactionType | str] = None,
        min_amount: Optional[Decimal | str] = None,
        max_amount: Optional[Decimal | str] = None,
        assign_memo: Optional[str] = None,
    ) -> int:
        """Create a bank rule. Lower priority values are evaluated first.

        Returns:
            Rule ID

        Raises:
            ValidationError: For an empty name or value, a bad regex, an
                inactive account or inverted amount bounds
            NotFoundError: If the account or source account does not exist
        """
        if not name or not name.strip():
            raise ValidationError("Rule name cannot be empty")
        if not match_value or not match_value.strip():
            raise ValidationError("Rule match value cannot be empty")

        field = parse_choice(MatchField, match_field, "match field")
        op = parse_choice(MatchType, match_type, "match type")
        direction = (
            parse_choice(RuleTransactionType, transaction_type, "transaction type")
            if transaction_type is not None
            else None
        )

        if op == MatchType.REGEX:
            try:
                re.compile(match_value)
            except re.error as e:
                raise ValidationError(f"Invalid regular expression '{match_value}': {e}")

        low = to_money(min_amount) if min_amount is not None else None
        high = to_money(max_amount) if max_amount is not None else None
        if low is not None and high is not None and low > high:
            raise ValidationError("Minimum amount cannot exceed maximum amount")

        self.account_service.require_postable(assign_account_id)
        if source_account_id is not None and self.db.get_source_account(source_account_id) is None:
            raise NotFoundError(f"Source account {source_account_id} not found")

        rule_id = self.db.create_bank_rule(
            name=name.strip(),
            match_field=field,
            match_type=op,
            match_value=match_value.strip(),
            assign_account_id=assign_account_id,
            priority=priority,
            source_account_id=source_account_id,
            transaction_type=direction,
            min_amount=low,
            max_amount=high,
            assign_memo=assign_memo,
        )
        logger.info("rule_created", rule_id=rule_id, name=name, priority=priority)
        return rule_id

    def get_rule(self, rule_id: int) -> BankRule:
        rule = self.db.get_bank_rule(rule_id)
        if rule is None:
            raise NotFoundError(f"Bank rule {rule_id} not found")
        return rule

    def list_rules(self, include_disabled: bool = False) -> list[BankRule]:
        return self.db.list_bank_rules(include_disabled=include_disabled)

    def disable_rule(self, rule_id: int) -> None:
        self.db.set_bank_rule_enabled(rule_id, False)
        logger.info("rule_disabled", rule_id=rule_id)

    def enable_rule(self, rule_id: int) -> None:
        self.db.set_bank_rule_enabled(rule_id, True)
        logger.info("rule_enabled", rule_id=rule_id)
