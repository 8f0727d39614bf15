from __future__ import annotations

from dataclasses import dataclass


@dataclass
class LiquidityLevel:
    seconds_inside: int = 0
    total_seconds: int = 0


@dataclass(frozen=True)
class RangeSample:
    block_number: int
    timestamp: int
    seconds_inside: int | None


@dataclass(frozen=True)
class LiquidityInterval:
    start_block: int
    end_block: int
    liquidity: int
