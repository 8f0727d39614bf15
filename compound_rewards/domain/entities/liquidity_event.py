from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class IncreaseLiquidity:
    block_number: int
    log_index: int
    liquidity: int
    amount0: int
    amount1: int


@dataclass(frozen=True)
class DecreaseLiquidity:
    block_number: int
    log_index: int
    liquidity: int
    amount0: int
    amount1: int


@dataclass(frozen=True)
class Collect:
    block_number: int
    log_index: int
    amount0: int
    amount1: int


LiquidityEvent = Union[IncreaseLiquidity, DecreaseLiquidity, Collect]


@dataclass(frozen=True)
class LiquidityMutation:
    block_number: int
    liquidity_delta: int


def split_events(
    events: list[LiquidityEvent],
) -> tuple[list[IncreaseLiquidity], list[DecreaseLiquidity], list[Collect]]:
    ordered = sorted(events, key=lambda event: (event.block_number, event.log_index))
    increases = [event for event in ordered if isinstance(event, IncreaseLiquidity)]
    decreases = [event for event in ordered if isinstance(event, DecreaseLiquidity)]
    collects = [event for event in ordered if isinstance(event, Collect)]
    return increases, decreases, collects
