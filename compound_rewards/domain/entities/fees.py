from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FeeAmounts:
    amount0: int = 0
    amount1: int = 0

    def __add__(self, other: "FeeAmounts") -> "FeeAmounts":
        return FeeAmounts(amount0=self.amount0 + other.amount0, amount1=self.amount1 + other.amount1)

    def is_negative(self) -> bool:
        return self.amount0 < 0 or self.amount1 < 0


@dataclass(frozen=True)
class FeeGrowthPoint:
    block_number: int
    fee_growth_inside0_x128: int
    fee_growth_inside1_x128: int
