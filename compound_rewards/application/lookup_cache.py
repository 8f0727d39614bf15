from __future__ import annotations

from decimal import Decimal
from enum import Enum
from threading import Lock
from typing import Any, Callable, Hashable

from compound_rewards.application.ports.chain_state_port import TokenMetadataPort
from compound_rewards.application.ports.token_price_port import TokenPricePort


class LookupKind(str, Enum):
    BLOCK_TIMESTAMP = "block_timestamp"
    TOKEN_DECIMALS = "token_decimals"
    TOKEN_SYMBOL = "token_symbol"
    TOKEN_PRICE = "token_price"


def _normalize_token(value: str) -> str:
    return value.strip().lower()


class LookupCache:
    """Run-scoped memo of immutable lookups.

    Entries are never invalidated. Concurrent misses may compute the same
    value twice; the first stored value wins. Errors from the ports propagate
    unchanged.
    """

    def __init__(
        self,
        *,
        metadata_port: TokenMetadataPort,
        price_port: TokenPricePort,
        fixed_prices: dict[str, Decimal] | None = None,
        price_page_size: int = 100,
    ):
        if price_page_size <= 0:
            raise ValueError("price_page_size must be positive.")
        self._metadata_port = metadata_port
        self._price_port = price_port
        self._fixed_prices = {_normalize_token(k): Decimal(v) for k, v in (fixed_prices or {}).items()}
        self._price_page_size = price_page_size
        self._store: dict[tuple[LookupKind, Hashable], Any] = {}
        self._lock = Lock()

    def get(self, kind: LookupKind, key: Hashable) -> Any:
        if kind is LookupKind.BLOCK_TIMESTAMP:
            return self.block_timestamp(key)
        if kind is LookupKind.TOKEN_DECIMALS:
            return self.token_decimals(key)
        if kind is LookupKind.TOKEN_SYMBOL:
            return self.token_symbol(key)
        if kind is LookupKind.TOKEN_PRICE:
            token, block = key
            return self.token_prices(token, [block])[block]
        raise ValueError(f"Unsupported lookup kind: {kind}")

    def block_timestamp(self, block_number: int) -> int:
        return self._memo(
            LookupKind.BLOCK_TIMESTAMP,
            int(block_number),
            lambda: int(self._metadata_port.get_block_timestamp(int(block_number))),
        )

    def token_decimals(self, token: str) -> int:
        key = _normalize_token(token)
        return self._memo(
            LookupKind.TOKEN_DECIMALS,
            key,
            lambda: int(self._metadata_port.get_token_decimals(token)),
        )

    def token_symbol(self, token: str) -> str:
        key = _normalize_token(token)
        return self._memo(
            LookupKind.TOKEN_SYMBOL,
            key,
            lambda: str(self._metadata_port.get_token_symbol(token)),
        )

    def token_prices(self, token: str, blocks: list[int]) -> dict[int, Decimal]:
        key = _normalize_token(token)
        fixed = self._fixed_prices.get(key)
        if fixed is not None:
            return {block: fixed for block in blocks}

        with self._lock:
            missing = sorted(
                {block for block in blocks if (LookupKind.TOKEN_PRICE, (key, block)) not in self._store}
            )

        for start in range(0, len(missing), self._price_page_size):
            page = missing[start : start + self._price_page_size]
            fetched = self._price_port.fetch_prices(token=key, blocks=page)
            with self._lock:
                for block in page:
                    self._store.setdefault(
                        (LookupKind.TOKEN_PRICE, (key, block)),
                        Decimal(fetched.get(block, Decimal("0"))),
                    )

        with self._lock:
            return {block: self._store[(LookupKind.TOKEN_PRICE, (key, block))] for block in blocks}

    def _memo(self, kind: LookupKind, key: Hashable, load: Callable[[], Any]) -> Any:
        cache_key = (kind, key)
        with self._lock:
            if cache_key in self._store:
                return self._store[cache_key]
        value = load()
        with self._lock:
            return self._store.setdefault(cache_key, value)
