"""Utility for resolving ledger account codes to IDs."""

from ledgerflow.domain.account import AccountService
from ledgerflow.domain.errors import NotFoundError


def resolve_account(account_service: AccountService, account: str | int) -> int:
    """Resolve an account code or ID to an account ID.

    Codes are tried first because they are usually numeric too.

    Args:
        account_service: AccountService instance
        account: Account code, "#<id>", or ID (int)

    Returns:
        Account ID

    Raises:
        NotFoundError: If account is not found
    """
    if isinstance(account, int):
        if account_service.get_account(account) is None:
            raise NotFoundError(f"Account ID {account} not found")
        return account

    account = account.strip()
    if account.startswith("#"):
        try:
            account_id = int(account[1:])
        except ValueError:
            raise NotFoundError(f"Account '{account}' not found")
        if account_service.get_account(account_id) is None:
            raise NotFoundError(f"Account ID {account_id} not found")
        return account_id

    by_code = account_service.get_account_by_code(account)
    if by_code is not None:
        return by_code.id

    for acc in account_service.list_accounts(include_inactive=True):
        if acc.name == account:
            return acc.id

    raise NotFoundError(f"Account '{account}' not found")
