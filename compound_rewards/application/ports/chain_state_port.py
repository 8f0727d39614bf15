from __future__ import annotations

from typing import Protocol

from compound_rewards.domain.entities.fees import FeeAmounts
from compound_rewards.domain.entities.liquidity_event import LiquidityEvent
from compound_rewards.domain.entities.position import PositionSnapshot


class ChainStatePort(Protocol):
    def get_position(self, *, position_id: int, block_number: int) -> PositionSnapshot:
        ...

    def get_pool_address(self, *, token0: str, token1: str, fee: int, block_number: int) -> str:
        ...

    def get_seconds_inside(
        self,
        *,
        pool_address: str,
        tick_lower: int,
        tick_upper: int,
        block_number: int,
    ) -> int | None:
        ...

    def get_liquidity_events(
        self,
        *,
        position_id: int,
        from_block: int,
        to_block: int,
    ) -> list[LiquidityEvent]:
        ...

    def get_collectable_fees(self, *, position_id: int, block_number: int) -> FeeAmounts:
        ...


class TokenMetadataPort(Protocol):
    def get_block_timestamp(self, block_number: int) -> int:
        ...

    def get_token_decimals(self, token: str) -> int:
        ...

    def get_token_symbol(self, token: str) -> str:
        ...
