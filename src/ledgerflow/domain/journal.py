"""In-memory journal entry construction and balance checks."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from ledgerflow.domain.errors import UnbalancedEntryError, ValidationError
from ledgerflow.domain.money import ZERO, money_sum, to_money


@dataclass(frozen=True)
class LineSpec:
    """A single journal line before it is persisted."""

    account_id: int
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    description: Optional[str] = None

    @classmethod
    def debit_line(cls, account_id: int, amount: Decimal, description: Optional[str] = None) -> "LineSpec":
        return cls(account_id=account_id, debit=amount, credit=ZERO, description=description)

    @classmethod
    def credit_line(cls, account_id: int, amount: Decimal, description: Optional[str] = None) -> "LineSpec":
        return cls(account_id=account_id, debit=ZERO, credit=amount, description=description)

    def normalized(self) -> "LineSpec":
        """Return a copy with validated two-place amounts.

        Raises:
            ValidationError: If amounts are negative, have sub-cent precision,
                or the line has both or neither side set
        """
        debit = to_money(self.debit)
        credit = to_money(self.credit)
        if debit < 0 or credit < 0:
            raise ValidationError(
                f"Line for account {self.account_id} has a negative amount", code="invalid_line"
            )
        if (debit > 0) == (credit > 0):
            raise ValidationError(
                f"Line for account {self.account_id} must have exactly one of debit or credit",
                code="invalid_line",
            )
        return LineSpec(
            account_id=self.account_id, debit=debit, credit=credit, description=self.description
        )

    def swapped(self) -> "LineSpec":
        return LineSpec(
            account_id=self.account_id,
            debit=self.credit,
            credit=self.debit,
            description=self.description,
        )


def validate_lines(lines: Iterable[LineSpec], reference: Optional[str] = None) -> list[LineSpec]:
    """Validate a complete set of lines for a durable write.

    Args:
        lines: Lines of one entry
        reference: Entry reference used in error messages

    Returns:
        Normalized lines in their original order

    Raises:
        ValidationError: If there are fewer than two lines or a line is malformed
        UnbalancedEntryError: If total debits differ from total credits
    """
    normalized = [line.normalized() for line in lines]
    if len(normalized) < 2:
        raise ValidationError("A journal entry needs at least two lines", code="too_few_lines")
    total_debit = money_sum(line.debit for line in normalized)
    total_credit = money_sum(line.credit for line in normalized)
    if total_debit != total_credit:
        raise UnbalancedEntryError(total_debit, total_credit, reference)
    return normalized


@dataclass
class EntryDraft:
    """Journal entry being edited interactively.

    The draft may be unbalanced while lines are added or removed. It is only
    validated when handed to the posting engine.
    """

    reference: str
    transaction_date: date
    description: Optional[str] = None
    created_by: Optional[str] = None
    lines: list[LineSpec] = field(default_factory=list)

    def add_debit(self, account_id: int, amount: Decimal | str, description: Optional[str] = None) -> "EntryDraft":
        self.lines.append(LineSpec.debit_line(account_id, to_money(amount), description))
        return self

    def add_credit(self, account_id: int, amount: Decimal | str, description: Optional[str] = None) -> "EntryDraft":
        self.lines.append(LineSpec.credit_line(account_id, to_money(amount), description))
        return self

    def remove_line(self, index: int) -> LineSpec:
        return self.lines.pop(index)

    @property
    def total_debit(self) -> Decimal:
        return money_sum(line.debit for line in self.lines)

    @property
    def total_credit(self) -> Decimal:
        return money_sum(line.credit for line in self.lines)

    @property
    def difference(self) -> Decimal:
        return self.total_debit - self.total_credit

    @property
    def is_balanced(self) -> bool:
        return bool(self.lines) and self.difference == ZERO

    def validated_lines(self) -> list[LineSpec]:
        return validate_lines(self.lines, self.reference)
