from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal

from dotenv import load_dotenv


load_dotenv()


SUBGRAPH_BASE = "https://api.thegraph.com/subgraphs/name/revert-finance"
DEFAULT_NPM_ADDRESS = "0xC36442b4a4522E871399CD717aBDD847Ab11FE88"
DEFAULT_FACTORY_ADDRESS = "0x1F98431c8aD98523631AE4a59f267346ea31F984"
DEFAULT_COMPOUNDOR_ADDRESS = "0x5411894842e610c4d0f6ed4c232da689400f94a1"


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


def _csv(name: str) -> tuple[str, ...]:
    value = _env(name) or ""
    return tuple(item.strip() for item in value.split(",") if item.strip())


def parse_token_pairs(values: tuple[str, ...]) -> tuple[tuple[str, str], ...]:
    pairs: list[tuple[str, str]] = []
    for item in values:
        symbol_a, sep, symbol_b = item.partition("/")
        if not sep or not symbol_a or not symbol_b:
            raise ValueError(f"Invalid token pair '{item}', expected SYMBOL_A/SYMBOL_B.")
        pairs.append((symbol_a.strip(), symbol_b.strip()))
    return tuple(pairs)


def parse_fixed_prices(values: tuple[str, ...]) -> dict[str, Decimal]:
    prices: dict[str, Decimal] = {}
    for item in values:
        token, sep, price = item.partition(":")
        if not sep or not token or not price:
            raise ValueError(f"Invalid fixed token price '{item}', expected ADDRESS:PRICE.")
        prices[token.strip().lower()] = Decimal(price.strip())
    return prices


@dataclass(frozen=True)
class Settings:
    rpc_url: str
    rpc_timeout_seconds: float
    network: str
    compoundor_subgraph_url: str
    uniswap_subgraph_url: str
    graph_request_timeout_seconds: float
    graph_max_retries: int
    graph_min_interval_ms: int
    sessions_page_size: int
    price_page_size: int
    start_block: int | None
    end_block: int | None
    vesting_period: int | None
    total_reward: int
    total_reward_decimals: int
    include_list_tokens: tuple[str, ...]
    include_list_token_pairs: tuple[tuple[str, str], ...]
    exclude_list_tokens: tuple[str, ...]
    exclude_list_accounts: tuple[str, ...]
    fixed_token_prices: dict
    fee_strategy: str
    fee_rate_lookback_blocks: int
    max_retries: int
    retry_delay_seconds: float
    max_workers: int
    temp_file_name: str
    info_file_name: str
    file_name: str
    proofs_file_name: str
    npm_address: str
    factory_address: str
    compoundor_address: str
    log_level: str


def _optional_int(name: str) -> int | None:
    value = _env(name)
    if value is None or not value.strip():
        return None
    return int(value)


def get_settings() -> Settings:
    network = _env("NETWORK", "mainnet")
    return Settings(
        rpc_url=_env("RPC_URL", ""),
        rpc_timeout_seconds=float(_env("RPC_TIMEOUT_SECONDS", "60")),
        network=network,
        compoundor_subgraph_url=_env("COMPOUNDOR_SUBGRAPH_URL", f"{SUBGRAPH_BASE}/compoundor-{network}"),
        uniswap_subgraph_url=_env("UNISWAP_SUBGRAPH_URL", f"{SUBGRAPH_BASE}/uniswap-v3-{network}"),
        graph_request_timeout_seconds=float(_env("GRAPH_REQUEST_TIMEOUT_SECONDS", "30")),
        graph_max_retries=int(_env("GRAPH_MAX_RETRIES", "3")),
        graph_min_interval_ms=int(_env("GRAPH_MIN_INTERVAL_MS", "0")),
        sessions_page_size=int(_env("SESSIONS_PAGE_SIZE", "1000")),
        price_page_size=int(_env("PRICE_PAGE_SIZE", "100")),
        start_block=_optional_int("START_BLOCK"),
        end_block=_optional_int("END_BLOCK"),
        vesting_period=_optional_int("VESTING_PERIOD"),
        total_reward=int(_env("TOTAL_REWARD", "0")),
        total_reward_decimals=int(_env("TOTAL_REWARD_DECIMALS", "18")),
        include_list_tokens=_csv("INCLUDE_LIST_TOKENS"),
        include_list_token_pairs=parse_token_pairs(_csv("INCLUDE_LIST_TOKEN_PAIRS")),
        exclude_list_tokens=_csv("EXCLUDE_LIST_TOKENS"),
        exclude_list_accounts=_csv("EXCLUDE_LIST_ACCOUNTS"),
        fixed_token_prices=parse_fixed_prices(_csv("FIXED_TOKEN_PRICES")),
        fee_strategy=_env("FEE_STRATEGY", "direct").strip().lower(),
        fee_rate_lookback_blocks=int(_env("FEE_RATE_LOOKBACK_BLOCKS", "1000000")),
        max_retries=int(_env("MAX_RETRIES", "3")),
        retry_delay_seconds=float(_env("RETRY_DELAY_SECONDS", "30")),
        max_workers=int(_env("MAX_WORKERS", "1")),
        temp_file_name=_env("TEMP_FILE_NAME", "positions.tmp.json"),
        info_file_name=_env("INFO_FILE_NAME", "positions.csv"),
        file_name=_env("FILE_NAME", "rewards.json"),
        proofs_file_name=_env("PROOFS_FILE_NAME", "proofs.json"),
        npm_address=_env("NPM_ADDRESS", DEFAULT_NPM_ADDRESS),
        factory_address=_env("FACTORY_ADDRESS", DEFAULT_FACTORY_ADDRESS),
        compoundor_address=_env("COMPOUNDOR_ADDRESS", DEFAULT_COMPOUNDOR_ADDRESS),
        log_level=_env("LOG_LEVEL", "INFO"),
    )
