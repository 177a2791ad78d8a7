"""Chart-of-accounts domain service."""

from typing import Any, Optional

from ledgerflow.database.base import Database
from ledgerflow.domain.entities import Account, AccountStatus, AccountType
from ledgerflow.domain.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
    account_code_not_found,
    account_inactive,
    account_not_found,
)
from ledgerflow.logging_config import get_logger

logger = get_logger(__name__)


def parse_account_type(value: AccountType | str) -> AccountType:
    """Parse an account type name case-insensitively.

    Raises:
        ValidationError: If the name is not a known account type
    """
    if isinstance(value, AccountType):
        return value
    for member in AccountType:
        if member.value.lower() == value.strip().lower():
            return member
    valid = ", ".join(m.value for m in AccountType)
    raise ValidationError(f"Unknown account type '{value}'. Valid types: {valid}")


class AccountService:
    """Service for managing the chart of accounts."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_account(
        self,
        code: str,
        name: str,
        account_type: AccountType | str,
        subtype: Optional[str] = None,
        parent_code: Optional[str] = None,
    ) -> int:
        """Create a new ledger account.

        Args:
            code: Unique, sortable account code (e.g. "1000")
            name: Account name
            account_type: Asset, Liability, Equity, Revenue or Expense
            subtype: Optional free-form subtype (e.g. "Bank", "Credit Card")
            parent_code: Code of the parent account, if any

        Returns:
            Account ID

        Raises:
            ValidationError: If code or name is empty or the type is unknown
            ConflictError: If the code already exists
            NotFoundError: If the parent code does not exist
        """
        code = code.strip()
        name = name.strip()
        if not code:
            raise ValidationError("Account code cannot be empty")
        if not name:
            raise ValidationError("Account name cannot be empty")
        parsed_type = parse_account_type(account_type)

        if self.db.get_account_by_code(code) is not None:
            raise ConflictError(f"Account with code '{code}' already exists")

        parent_id = None
        if parent_code is not None:
            parent_id = self._require_by_code(parent_code).id

        account_id = self.db.create_account(
            code=code, name=name, account_type=parsed_type, subtype=subtype, parent_id=parent_id
        )
        logger.info("account_created", account_id=account_id, code=code, account_type=parsed_type.value)
        return account_id

    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID.

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def get_account_by_code(self, code: str) -> Optional[Account]:
        return self.db.get_account_by_code(code.strip())

    def list_accounts(self, include_inactive: bool = False) -> list[Account]:
        """List accounts ordered by code."""
        return self.db.list_accounts(include_inactive=include_inactive)

    def require_account(self, account_id: int) -> Account:
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account

    def require_postable(self, account_id: int) -> Account:
        """Return an account that may receive new journal lines.

        Raises:
            NotFoundError: If the account does not exist
            ValidationError: If the account is inactive
        """
        account = self.require_account(account_id)
        if not account.is_active:
            raise ValidationError(account_inactive(account_id), code="account_inactive")
        return account

    def _require_by_code(self, code: str) -> Account:
        account = self.db.get_account_by_code(code.strip())
        if account is None:
            raise NotFoundError(account_code_not_found(code))
        return account

    def update_account(
        self,
        account_id: int,
        name: Optional[str] = None,
        account_type: Optional[AccountType | str] = None,
        subtype: Optional[str] = None,
        parent_code: Optional[str] = None,
        clear_parent: bool = False,
    ) -> None:
        """Update an account.

        Args:
            account_id: Account to update
            name: New name
            account_type: New type; refused once journal lines reference the account
            subtype: New subtype
            parent_code: Code of the new parent
            clear_parent: Make the account a root account

        Raises:
            NotFoundError: If the account or parent does not exist
            DependencyError: If the type changes on a referenced account
            ValidationError: If the new parent would create a cycle
        """
        account = self.require_account(account_id)

        new_type = None
        if account_type is not None:
            new_type = parse_account_type(account_type)
            if new_type != account.account_type and self.db.count_account_lines(account_id) > 0:
                raise DependencyError(
                    f"Cannot change type of account {account.code}: journal lines reference it"
                )

        update_parent = False
        parent_id = None
        if clear_parent:
            update_parent = True
        elif parent_code is not None:
            parent = self._require_by_code(parent_code)
            self._check_no_cycle(account_id, parent.id)
            parent_id = parent.id
            update_parent = True

        if name is not None and not name.strip():
            raise ValidationError("Account name cannot be empty")

        self.db.update_account(
            account_id,
            name=name.strip() if name is not None else None,
            account_type=new_type,
            subtype=subtype,
            parent_id=parent_id,
            update_parent=update_parent,
        )

    def _check_no_cycle(self, account_id: int, new_parent_id: int) -> None:
        seen: set[int] = set()
        current: Optional[int] = new_parent_id
        while current is not None:
            if current == account_id:
                raise ValidationError(
                    f"Setting parent of account {account_id} to {new_parent_id} would create a cycle",
                    code="account_cycle",
                )
            if current in seen:
                break
            seen.add(current)
            parent = self.db.get_account(current)
            current = parent.parent_id if parent is not None else None

    def deactivate_account(self, account_id: int) -> None:
        """Mark an account inactive. Existing lines are untouched."""
        self.require_account(account_id)
        self.db.update_account(account_id, status=AccountStatus.INACTIVE)
        logger.info("account_deactivated", account_id=account_id)

    def get_account_tree(self, include_inactive: bool = True) -> list[dict[str, Any]]:
        """Get the chart as nested dicts ordered by code."""
        accounts = self.db.list_accounts(include_inactive=include_inactive)

        def build_tree(parent_id: Optional[int] = None) -> list[dict[str, Any]]:
            result = []
            for acc in accounts:
                if acc.parent_id == parent_id:
                    result.append({"account": acc, "children": build_tree(acc.id)})
            return result

        return build_tree()

    def format_account_path(self, account_id: int) -> str:
        """Format account path as 'Parent > Child'."""
        parts = []
        current = self.db.get_account(account_id)
        while current is not None:
            parts.append(current.name)
            if current.parent_id is None:
                break
            current = self.db.get_account(current.parent_id)
        return " > ".join(reversed(parts))
