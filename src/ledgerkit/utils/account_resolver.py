"""Utility for resolving account codes, names and IDs to account IDs."""

from ledgerkit.domain.account import AccountService


def resolve_account(account_service: AccountService, account: str | int) -> int:
    """Resolve an account code, ID or name to an account ID.

    Codes win over IDs, so "1-101" and "101" are looked up as codes first.

    Args:
        account_service: AccountService instance
        account: Account code, ID (int or string representation of int) or name

    Returns:
        Account ID

    Raises:
        ValueError: If account is not found
    """
    if isinstance(account, int):
        if account_service.get_account(account) is None:
            raise ValueError(f"Account ID {account} not found")
        return account

    text = account.strip()
    by_code = account_service.get_account_by_code(text)
    if by_code is not None:
        return by_code.id

    try:
        account_id = int(text)
    except ValueError:
        account_id = None
    if account_id is not None:
        if account_service.get_account(account_id) is None:
            raise ValueError(f"Account ID {account_id} not found")
        return account_id

    for acc in account_service.list_accounts(include_inactive=True):
        if acc.name.lower() == text.lower():
            return acc.id

    raise ValueError(f"Account '{account}' not found")
