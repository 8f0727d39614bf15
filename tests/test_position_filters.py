from __future__ import annotations

from compound_rewards.domain.services.position_filters import (
    PositionFilters,
    account_filter_reason,
    filter_reason,
)


def test_no_filters_accepts_everything():
    assert filter_reason(PositionFilters(), symbol0="WETH", symbol1="USDC", account="0xA") is None


def test_excluded_token_wins_over_allow_lists():
    filters = PositionFilters(
        exclude_tokens=("SHIB",),
        include_token_pairs=(("SHIB", "WETH"),),
        include_tokens=("SHIB",),
    )
    assert filter_reason(filters, symbol0="WETH", symbol1="SHIB", account="0xa") == "excluded_token"


def test_pair_allow_list_is_unordered():
    filters = PositionFilters(include_token_pairs=(("USDC", "WETH"),))
    assert filter_reason(filters, symbol0="WETH", symbol1="USDC", account="0xa") is None
    assert filter_reason(filters, symbol0="WETH", symbol1="DAI", account="0xa") == "pair_not_included"


def test_pair_allow_list_with_same_symbol_twice():
    filters = PositionFilters(include_token_pairs=(("USDC", "USDC"),))
    assert filter_reason(filters, symbol0="USDC", symbol1="WETH", account="0xa") == "pair_not_included"


def test_token_allow_list_needs_one_side():
    filters = PositionFilters(include_tokens=("WETH",))
    assert filter_reason(filters, symbol0="DAI", symbol1="WETH", account="0xa") is None
    assert filter_reason(filters, symbol0="DAI", symbol1="USDC", account="0xa") == "token_not_included"


def test_excluded_account_is_case_insensitive():
    filters = PositionFilters(exclude_accounts=("0xABCDEF",))
    assert filter_reason(filters, symbol0="DAI", symbol1="WETH", account="0xabcdef") == "excluded_account"


def test_account_filter_needs_no_symbols():
    filters = PositionFilters(exclude_accounts=("0xABCDEF",), exclude_tokens=("DAI",))
    assert account_filter_reason(filters, "0xAbCdEf") == "excluded_account"
    assert account_filter_reason(filters, "0x123456") is None
