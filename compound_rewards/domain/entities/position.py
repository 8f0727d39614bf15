from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum


@dataclass(frozen=True)
class PositionSnapshot:
    position_id: int
    token0: str
    token1: str
    fee: int
    tick_lower: int
    tick_upper: int
    liquidity: int
    fee_growth_inside0_last_x128: int = 0
    fee_growth_inside1_last_x128: int = 0


@dataclass(frozen=True)
class PositionRecord:
    id: str
    account: str
    symbol0: str
    symbol1: str
    fee: int
    amount: Decimal

    def accumulate(self, amount: Decimal) -> "PositionRecord":
        return replace(self, amount=self.amount + amount)


class PositionState(str, Enum):
    PENDING = "pending"
    FILTERED_OUT = "filtered_out"
    EVALUATING = "evaluating"
    CHECKPOINTED = "checkpointed"
