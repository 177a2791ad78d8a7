"""Source account domain service."""

from typing import Optional

from ledgerflow.database.base import Database
from ledgerflow.domain.account import AccountService
from ledgerflow.domain.entities import AccountType, SourceAccount
from ledgerflow.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    source_account_not_found,
)
from ledgerflow.logging_config import get_logger

logger = get_logger(__name__)

ASSET_CODE_BASE = 1010
LIABILITY_CODE_BASE = 2010
CODE_STEP = 10


def is_credit_account(institution: str, account_identifier: str) -> bool:
    """Card and credit lines are liabilities on the books."""
    return "card" in account_identifier.lower() or "credit" in institution.lower()


def source_account_name(institution: str, account_identifier: str) -> str:
    return f"{institution} - {account_identifier}"


class SourceAccountService:
    """Service for bank and card accounts that feed imports."""

    def __init__(self, db: Database, auto_create_ledger_accounts: bool = True):
        """Initialize source account service.

        Args:
            db: Database instance
            auto_create_ledger_accounts: Create and map a ledger account when
                an unseen source account appears
        """
        self.db = db
        self.account_service = AccountService(db)
        self.auto_create_ledger_accounts = auto_create_ledger_accounts

    def get_source_account(self, source_account_id: int) -> Optional[SourceAccount]:
        return self.db.get_source_account(source_account_id)

    def require_source_account(self, source_account_id: int) -> SourceAccount:
        source = self.db.get_source_account(source_account_id)
        if source is None:
            raise NotFoundError(source_account_not_found(source_account_id))
        return source

    def list_source_accounts(self) -> list[SourceAccount]:
        return self.db.list_source_accounts()

    def resolve_or_create(
        self,
        institution: str,
        account_identifier: str,
        currency: str = "USD",
        is_credit_card: bool = False,
    ) -> SourceAccount:
        """Find the source account for an identifier, creating it if unseen.

        Args:
            institution: Bank or card issuer name
            account_identifier: Last four digits, card label or full number
            currency: ISO currency code for a new source account
            is_credit_card: Book a new ledger account as a card liability
                even when the names do not say so

        Returns:
            Existing or newly created source account
        """
        institution = institution.strip() or "Unknown"
        account_identifier = account_identifier.strip() or "Default"

        existing = self.db.find_source_account(institution, account_identifier)
        if existing is not None:
            return existing

        ledger_account_id = None
        if self.auto_create_ledger_accounts:
            ledger_account_id = self._create_ledger_account(
                institution, account_identifier, is_credit_card
            )

        try:
            source_id = self.db.create_source_account(
                institution=institution,
                account_identifier=account_identifier,
                name=source_account_name(institution, account_identifier),
                currency=currency,
                ledger_account_id=ledger_account_id,
            )
        except ConflictError:
            # Another import created it first.
            existing = self.db.find_source_account(institution, account_identifier)
            if existing is None:
                raise
            return existing

        logger.info(
            "source_account_created",
            source_account_id=source_id,
            institution=institution,
            account_identifier=account_identifier,
            ledger_account_id=ledger_account_id,
        )
        return self.require_source_account(source_id)

    def _create_ledger_account(
        self, institution: str, account_identifier: str, is_credit_card: bool = False
    ) -> int:
        credit = is_credit_card or is_credit_account(institution, account_identifier)
        account_type = AccountType.LIABILITY if credit else AccountType.ASSET
        subtype = "Credit Card" if credit else "Bank"
        name = source_account_name(institution, account_identifier)

        existing = [
            acc for acc in self.account_service.list_accounts(include_inactive=True) if acc.name == name
        ]
        if existing:
            return existing[0].id

        code = self._next_free_code(LIABILITY_CODE_BASE if credit else ASSET_CODE_BASE)
        while True:
            try:
                return self.account_service.create_account(
                    code=code, name=name, account_type=account_type, subtype=subtype
                )
            except ConflictError:
                code = self._next_free_code(int(code) + CODE_STEP)

    def _next_free_code(self, start: int) -> str:
        used = {acc.code for acc in self.account_service.list_accounts(include_inactive=True)}
        code = start
        while str(code) in used:
            code += CODE_STEP
        return str(code)

    def map_to_ledger_account(self, source_account_id: int, ledger_account_id: int) -> None:
        """Point a source account at an existing ledger account.

        Raises:
            NotFoundError: If either account does not exist
            ValidationError: If the ledger account is inactive
        """
        self.require_source_account(source_account_id)
        self.account_service.require_postable(ledger_account_id)
        self.db.set_source_ledger_account(source_account_id, ledger_account_id)
        logger.info(
            "source_account_mapped",
            source_account_id=source_account_id,
            ledger_account_id=ledger_account_id,
        )

    def ledger_account_for(self, source_account_id: int) -> int:
        """Return the ledger account a source account posts against.

        Raises:
            ValidationError: If the source account is not mapped
        """
        source = self.require_source_account(source_account_id)
        if source.ledger_account_id is None:
            raise ValidationError(
                f"Source account {source.name} is not mapped to a ledger account",
                code="source_unmapped",
            )
        return source.ledger_account_id
