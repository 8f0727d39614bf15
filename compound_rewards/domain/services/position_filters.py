from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PositionFilters:
    exclude_tokens: tuple[str, ...] = ()
    include_token_pairs: tuple[tuple[str, str], ...] = ()
    include_tokens: tuple[str, ...] = ()
    exclude_accounts: tuple[str, ...] = ()


def account_filter_reason(filters: PositionFilters, account: str) -> str | None:
    excluded_accounts = {value.lower() for value in filters.exclude_accounts}
    if account.lower() in excluded_accounts:
        return "excluded_account"
    return None


def filter_reason(
    filters: PositionFilters,
    *,
    symbol0: str,
    symbol1: str,
    account: str,
) -> str | None:
    """Name of the first filter that rejects the position, or None when it passes."""
    if symbol0 in filters.exclude_tokens or symbol1 in filters.exclude_tokens:
        return "excluded_token"
    if filters.include_token_pairs and not any(
        (symbol0, symbol1) in ((symbol_a, symbol_b), (symbol_b, symbol_a))
        for symbol_a, symbol_b in filters.include_token_pairs
    ):
        return "pair_not_included"
    if filters.include_tokens and not (
        symbol0 in filters.include_tokens or symbol1 in filters.include_tokens
    ):
        return "token_not_included"
    return account_filter_reason(filters, account)
