"""OFX / QFX statement parsing.

OFX 2.x files are XML already. OFX 1.x files are SGML with unclosed leaf
tags, so those are closed first and the result goes through the same XML
parse. A file may hold several statements (a bank ``STMTRS`` next to a card
``CCSTMTRS``); each carries its own account identifier and currency.
"""

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Optional

from ledgerflow.domain.dialects import ParsedRow
from ledgerflow.utils.amount_parser import parse_amount
from ledgerflow.utils.date_parser import parse_date

STATEMENT_TAGS = ("STMTRS", "CCSTMTRS")

_LEAF = re.compile(r"<([A-Za-z0-9_.]+)>([^<\r\n]+)")
_BARE_AMPERSAND = re.compile(r"&(?!(?:[A-Za-z]+|#[0-9]+|#x[0-9A-Fa-f]+);)")


@dataclass
class OfxStatement:
    institution: Optional[str]
    account_identifier: Optional[str]
    currency: str
    is_credit_card: bool = False
    rows: list[ParsedRow] = field(default_factory=list)


@dataclass
class OfxDocument:
    """Every statement in one OFX payload.

    ``rows`` and ``errors`` run across statements in file order; row
    numbers count ``<STMTTRN>`` blocks from 1.
    """

    statements: list[OfxStatement] = field(default_factory=list)
    errors: list[tuple[int, str]] = field(default_factory=list)

    @property
    def rows(self) -> list[ParsedRow]:
        return [row for statement in self.statements for row in statement.rows]


def looks_like_ofx(text: str) -> bool:
    head = text[:4096].upper()
    return "OFXHEADER" in head or "<OFX>" in head


def sgml_to_xml(content: str) -> str:
    """Close SGML leaf tags and escape bare ampersands.

    Leaves that are already closed are kept as they are, so files mixing
    both styles convert cleanly.
    """

    def close_leaf(match: re.Match) -> str:
        tag = match.group(1)
        if not match.group(2).strip() or match.string.startswith(f"</{tag}>", match.end()):
            return match.group(0)
        return f"<{tag}>{match.group(2).strip()}</{tag}>"

    return _LEAF.sub(close_leaf, _BARE_AMPERSAND.sub("&amp;", content))


def _parse_root(text: str) -> ET.Element:
    start = text.upper().find("<OFX>")
    if start < 0:
        raise ValueError("Not an OFX file: no <OFX> element")
    body = text[start:]

    for candidate in (body, sgml_to_xml(body)):
        for suffix in ("", "</OFX>"):
            try:
                return ET.fromstring(candidate + suffix)
            except ET.ParseError:
                continue
    raise ValueError("Cannot parse OFX file: invalid XML/SGML structure")


def _text(element: Optional[ET.Element], path: str) -> Optional[str]:
    if element is None:
        return None
    found = element.find(path)
    if found is None or found.text is None:
        return None
    value = found.text.strip()
    return value or None


def parse_ofx(text: str) -> OfxDocument:
    """Parse an OFX/QFX payload.

    Args:
        text: Decoded statement text

    Returns:
        OfxDocument with one OfxStatement per ``STMTRS``/``CCSTMTRS`` block.
        Transactions missing DTPOSTED or TRNAMT, or with unparseable values,
        are reported as errors.

    Raises:
        ValueError: If the payload cannot be parsed at all
    """
    root = _parse_root(text)
    institution = _text(root, ".//FI/ORG")
    document = OfxDocument()
    row_num = 0

    for statement_el in root.iter():
        if statement_el.tag not in STATEMENT_TAGS:
            continue
        is_card = statement_el.tag == "CCSTMTRS"
        statement = OfxStatement(
            institution=institution,
            account_identifier=_text(statement_el, "CCACCTFROM/ACCTID" if is_card else "BANKACCTFROM/ACCTID"),
            currency=(_text(statement_el, "CURDEF") or "USD").upper(),
            is_credit_card=is_card,
        )
        document.statements.append(statement)

        for txn in statement_el.iter("STMTTRN"):
            row_num += 1
            try:
                posted = _text(txn, "DTPOSTED")
                if posted is None:
                    raise ValueError("Missing DTPOSTED")
                amount = _text(txn, "TRNAMT")
                if amount is None:
                    raise ValueError("Missing TRNAMT")
                name = _text(txn, "NAME")
                memo = _text(txn, "MEMO")
                statement.rows.append(
                    ParsedRow(
                        row_num=row_num,
                        transaction_date=parse_date(_text(txn, "DTUSER") or posted),
                        post_date=parse_date(posted),
                        description=name or memo or "",
                        merchant=name if name and memo else None,
                        amount=parse_amount(amount),
                        reference_number=_text(txn, "REFNUM"),
                        check_number=_text(txn, "CHECKNUM"),
                        bank_transaction_id=_text(txn, "FITID"),
                        institution=institution,
                        account_identifier=statement.account_identifier,
                        currency=statement.currency,
                        is_credit_card=is_card,
                    )
                )
            except ValueError as e:
                document.errors.append((row_num, str(e)))

    return document
