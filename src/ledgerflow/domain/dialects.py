"""Bank export dialects.

Each dialect turns one CSV record into a :class:`ParsedRow` whose amount is
signed from the source account's point of view: negative means money left
the account. Dialects are detected from the shape of the first record.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from ledgerflow.utils.amount_parser import parse_amount
from ledgerflow.utils.date_parser import parse_date


@dataclass(frozen=True)
class ParsedRow:
    """Canonical bank row before it is stored."""

    row_num: int
    transaction_date: date
    description: str
    amount: Decimal
    post_date: Optional[date] = None
    merchant: Optional[str] = None
    raw_category: Optional[str] = None
    reference_number: Optional[str] = None
    check_number: Optional[str] = None
    bank_transaction_id: Optional[str] = None
    institution: Optional[str] = None
    account_identifier: Optional[str] = None
    currency: str = "USD"
    is_personal: bool = False
    is_credit_card: bool = False


def _normalize(name: str) -> str:
    return " ".join(name.strip().lower().replace("_", " ").split())


def _index(header: Sequence[str]) -> dict[str, int]:
    index: dict[str, int] = {}
    for position, name in enumerate(header):
        index.setdefault(_normalize(name), position)
    return index


def _find(index: dict[str, int], aliases: Sequence[str], exclude: Optional[int] = None) -> Optional[int]:
    for alias in aliases:
        position = index.get(alias)
        if position is not None and position != exclude:
            return position
    return None


def _cell(cells: Sequence[str], position: Optional[int]) -> Optional[str]:
    if position is None or position >= len(cells):
        return None
    value = cells[position].strip()
    return value or None


def _required(cells: Sequence[str], position: Optional[int], label: str) -> str:
    value = _cell(cells, position)
    if value is None:
        raise ValueError(f"Missing {label}")
    return value


def _optional_date(value: Optional[str], date_format: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    return parse_date(value, date_format)


def _debit_credit_amount(debit: Optional[str], credit: Optional[str]) -> Decimal:
    """Combine split columns into one signed amount.

    Banks disagree on whether debits are written as positive or negative
    numbers, so magnitudes are used: outflow is negative, inflow positive.
    """
    if debit is None and credit is None:
        raise ValueError("Missing amount")
    debit_amount = abs(parse_amount(debit)) if debit is not None else Decimal("0.00")
    credit_amount = abs(parse_amount(credit)) if credit is not None else Decimal("0.00")
    if credit_amount > 0:
        return credit_amount - debit_amount
    return -debit_amount


class Dialect:
    """Base class for CSV dialects."""

    name = "base"
    institution: Optional[str] = None
    has_header = True
    date_format: Optional[str] = None

    def __init__(self, header: Optional[Sequence[str]] = None):
        self.header = list(header) if header is not None else []
        self.index = _index(self.header)

    @classmethod
    def matches(cls, first_row: Sequence[str]) -> bool:
        raise NotImplementedError

    def parse(self, row_num: int, cells: Sequence[str]) -> ParsedRow:
        """Parse one data record.

        Raises:
            ValueError: If a required field is missing or unparseable
        """
        raise NotImplementedError


class CapitalOneDialect(Dialect):
    """Transaction Date, Posted Date, Card No., Description, Category, Debit, Credit."""

    name = "capital-one"
    institution = "Capital One"
    date_format = "%Y-%m-%d"

    @classmethod
    def matches(cls, first_row: Sequence[str]) -> bool:
        headers = ",".join(first_row).lower()
        return "debit" in headers and "credit" in headers and "card no" in headers

    def parse(self, row_num: int, cells: Sequence[str]) -> ParsedRow:
        card = _cell(cells, _find(self.index, ["card no.", "card no"]))
        debit = _cell(cells, _find(self.index, ["debit"]))
        credit = _cell(cells, _find(self.index, ["credit"]))
        return ParsedRow(
            row_num=row_num,
            transaction_date=parse_date(
                _required(cells, _find(self.index, ["transaction date"]), "date"), self.date_format
            ),
            post_date=_optional_date(_cell(cells, _find(self.index, ["posted date"])), self.date_format),
            description=_cell(cells, _find(self.index, ["description"])) or "",
            raw_category=_cell(cells, _find(self.index, ["category"])),
            amount=_debit_credit_amount(debit, credit),
            institution=self.institution,
            account_identifier=f"Card {card}" if card else None,
        )


class QbseDialect(Dialect):
    """QuickBooks Self-Employed export: Date, Bank, Account, Description, Amount, Type, Category, ..."""

    name = "qbse"
    date_format = "%m/%d/%Y"

    @classmethod
    def matches(cls, first_row: Sequence[str]) -> bool:
        names = {_normalize(c) for c in first_row}
        return {"date", "bank", "account", "amount", "type"} <= names

    def parse(self, row_num: int, cells: Sequence[str]) -> ParsedRow:
        kind = _cell(cells, _find(self.index, ["type"])) or ""
        return ParsedRow(
            row_num=row_num,
            transaction_date=parse_date(_required(cells, _find(self.index, ["date"]), "date"), self.date_format),
            description=_cell(cells, _find(self.index, ["description"])) or "",
            amount=parse_amount(_required(cells, _find(self.index, ["amount"]), "amount")),
            raw_category=_cell(cells, _find(self.index, ["category"])),
            institution=_cell(cells, _find(self.index, ["bank"])),
            account_identifier=_cell(cells, _find(self.index, ["account"])),
            is_personal=kind.lower() == "personal",
        )


class ChaseDialect(Dialect):
    """Transaction Date, Post Date, Description, Category, Type, Amount[, Memo]."""

    name = "chase"
    institution = "Chase"
    date_format = "%m/%d/%Y"

    @classmethod
    def matches(cls, first_row: Sequence[str]) -> bool:
        names = {_normalize(c) for c in first_row}
        return {"type", "amount"} <= names and ("memo" in names or "post date" in names)

    def parse(self, row_num: int, cells: Sequence[str]) -> ParsedRow:
        return ParsedRow(
            row_num=row_num,
            transaction_date=parse_date(
                _required(cells, _find(self.index, ["transaction date", "date"]), "date"), self.date_format
            ),
            post_date=_optional_date(_cell(cells, _find(self.index, ["post date"])), self.date_format),
            description=_cell(cells, _find(self.index, ["description"])) or "",
            raw_category=_cell(cells, _find(self.index, ["category"])),
            amount=parse_amount(_required(cells, _find(self.index, ["amount"]), "amount")),
            institution=self.institution,
        )


class WellsFargoDialect(Dialect):
    """Headerless: date, amount, *, check number, description."""

    name = "wells-fargo"
    institution = "Wells Fargo"
    has_header = False
    date_format = "%m/%d/%Y"

    @classmethod
    def matches(cls, first_row: Sequence[str]) -> bool:
        if len(first_row) != 5:
            return False
        try:
            parse_date(first_row[0], cls.date_format)
            parse_amount(first_row[1])
        except ValueError:
            return False
        return True

    def parse(self, row_num: int, cells: Sequence[str]) -> ParsedRow:
        return ParsedRow(
            row_num=row_num,
            transaction_date=parse_date(_required(cells, 0, "date"), self.date_format),
            amount=parse_amount(_required(cells, 1, "amount")),
            check_number=_cell(cells, 3),
            description=_cell(cells, 4) or "",
            institution=self.institution,
        )


DATE_ALIASES = ["transaction date", "trans. date", "trans date", "date", "posting date", "posted date"]
POST_DATE_ALIASES = ["post date", "posted date", "posting date", "settlement date"]
AMOUNT_ALIASES = ["amount", "transaction amount"]
DEBIT_ALIASES = ["debit", "debit amount", "withdrawal", "withdrawals", "money out"]
CREDIT_ALIASES = ["credit", "credit amount", "deposit", "deposits", "money in"]
DESCRIPTION_ALIASES = ["description", "memo", "payee", "name", "details", "merchant"]
MERCHANT_ALIASES = ["merchant", "payee"]
CATEGORY_ALIASES = ["category"]
CHECK_ALIASES = ["check number", "check no", "check no.", "check #", "check"]
REFERENCE_ALIASES = ["reference", "reference number", "ref", "ref #"]
TRANSACTION_ID_ALIASES = ["transaction id", "bank transaction id", "fitid", "id"]
ACCOUNT_ALIASES = ["account", "account number", "card no.", "card no", "card number", "card"]
INSTITUTION_ALIASES = ["bank", "institution"]


class GenericDialect(Dialect):
    """Header-named columns: a date, a signed amount or debit/credit pair, and a description."""

    name = "generic"

    def __init__(self, header: Optional[Sequence[str]] = None):
        super().__init__(header)
        idx = self.index
        self.date_col = _find(idx, DATE_ALIASES)
        self.post_date_col = _find(idx, POST_DATE_ALIASES, exclude=self.date_col)
        self.amount_col = _find(idx, AMOUNT_ALIASES)
        self.debit_col = _find(idx, DEBIT_ALIASES)
        self.credit_col = _find(idx, CREDIT_ALIASES)
        self.description_col = _find(idx, DESCRIPTION_ALIASES)
        self.merchant_col = _find(idx, MERCHANT_ALIASES, exclude=self.description_col)
        self.category_col = _find(idx, CATEGORY_ALIASES)
        self.check_col = _find(idx, CHECK_ALIASES)
        self.reference_col = _find(idx, REFERENCE_ALIASES)
        self.transaction_id_col = _find(idx, TRANSACTION_ID_ALIASES)
        self.account_col = _find(idx, ACCOUNT_ALIASES)
        self.institution_col = _find(idx, INSTITUTION_ALIASES)
        self.currency_col = _find(idx, ["currency"])

    @classmethod
    def matches(cls, first_row: Sequence[str]) -> bool:
        idx = _index(first_row)
        has_date = _find(idx, DATE_ALIASES) is not None
        has_amount = _find(idx, AMOUNT_ALIASES) is not None or (
            _find(idx, DEBIT_ALIASES) is not None or _find(idx, CREDIT_ALIASES) is not None
        )
        return has_date and has_amount

    def parse(self, row_num: int, cells: Sequence[str]) -> ParsedRow:
        date_value = _required(cells, self.date_col, "date")
        if self.amount_col is not None:
            amount = parse_amount(_required(cells, self.amount_col, "amount"))
        else:
            amount = _debit_credit_amount(_cell(cells, self.debit_col), _cell(cells, self.credit_col))
        return ParsedRow(
            row_num=row_num,
            transaction_date=parse_date(date_value),
            post_date=_optional_date(_cell(cells, self.post_date_col), None),
            description=_cell(cells, self.description_col) or "",
            merchant=_cell(cells, self.merchant_col),
            raw_category=_cell(cells, self.category_col),
            amount=amount,
            reference_number=_cell(cells, self.reference_col),
            check_number=_cell(cells, self.check_col),
            bank_transaction_id=_cell(cells, self.transaction_id_col),
            institution=_cell(cells, self.institution_col),
            account_identifier=_cell(cells, self.account_col),
            currency=(_cell(cells, self.currency_col) or "USD").upper(),
        )


# First match wins; generic is the fallback for any header it understands.
DIALECTS: list[type[Dialect]] = [
    CapitalOneDialect,
    QbseDialect,
    ChaseDialect,
    WellsFargoDialect,
    GenericDialect,
]

DIALECTS_BY_NAME = {d.name: d for d in DIALECTS}


def detect_dialect(first_row: Sequence[str]) -> Optional[Dialect]:
    """Pick the dialect for a file from its first record.

    Returns:
        Dialect instance bound to the header, or None if unsupported
    """
    for dialect_cls in DIALECTS:
        if dialect_cls.matches(first_row):
            return dialect_cls(first_row if dialect_cls.has_header else None)
    return None


def get_dialect(name: str, first_row: Sequence[str]) -> Dialect:
    """Instantiate a dialect by name, bypassing detection.

    Raises:
        ValueError: If the name is unknown
    """
    dialect_cls = DIALECTS_BY_NAME.get(name)
    if dialect_cls is None:
        raise ValueError(f"Unknown dialect '{name}'. Known: {', '.join(DIALECTS_BY_NAME)}")
    return dialect_cls(first_row if dialect_cls.has_header else None)
