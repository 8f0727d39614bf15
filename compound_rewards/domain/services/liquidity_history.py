from __future__ import annotations

from compound_rewards.domain.entities.liquidity import LiquidityInterval, LiquidityLevel, RangeSample
from compound_rewards.domain.entities.liquidity_event import (
    DecreaseLiquidity,
    IncreaseLiquidity,
    LiquidityMutation,
)
from compound_rewards.domain.exceptions import LiquidityReconstructionError, NegativeLiquidityError
from compound_rewards.domain.services.univ3_math import delta_uint32


def merge_liquidity_events(
    increases: list[IncreaseLiquidity],
    decreases: list[DecreaseLiquidity],
) -> list[LiquidityMutation]:
    """Merge both streams by block number; an increase wins a tie with a decrease."""
    merged: list[LiquidityMutation] = []
    add_index = 0
    withdraw_index = 0
    while add_index < len(increases) or withdraw_index < len(decreases):
        next_add = increases[add_index] if add_index < len(increases) else None
        next_withdraw = decreases[withdraw_index] if withdraw_index < len(decreases) else None
        if next_add is not None and (
            next_withdraw is None or next_add.block_number <= next_withdraw.block_number
        ):
            merged.append(LiquidityMutation(next_add.block_number, next_add.liquidity))
            add_index += 1
        else:
            merged.append(LiquidityMutation(next_withdraw.block_number, -next_withdraw.liquidity))
            withdraw_index += 1
    return merged


def plan_sample_blocks(
    initial_liquidity: int,
    mutations: list[LiquidityMutation],
    from_block: int,
    to_block: int,
) -> list[int]:
    """Blocks at which the range oracle and timestamps must be read.

    One block per mutation, bracketed by ``from_block`` and ``to_block``. A
    mutation that empties the position is sampled one block earlier and one
    that refills an empty position one block later, so range time never
    lands in the zero bucket. Blocks never decrease, so an empty-refill-empty
    sequence in consecutive blocks yields an empty interval.
    """
    blocks = [from_block]
    current = initial_liquidity
    for mutation in mutations:
        after = current + mutation.liquidity_delta
        if current > 0 and after == 0:
            block = max(mutation.block_number - 1, from_block)
        elif current == 0 and after > 0:
            block = min(mutation.block_number + 1, to_block)
        else:
            block = mutation.block_number
        blocks.append(max(block, blocks[-1]))
        current = after
    blocks.append(to_block)
    return blocks


def build_liquidity_levels(
    initial_liquidity: int,
    mutations: list[LiquidityMutation],
    samples: list[RangeSample],
) -> dict[int, LiquidityLevel]:
    if len(samples) != len(mutations) + 2:
        raise LiquidityReconstructionError("Expected one sample per mutation plus window start and end.")

    levels: dict[int, LiquidityLevel] = {initial_liquidity: LiquidityLevel()}
    current = initial_liquidity
    last = samples[0]

    for mutation, sample in zip(mutations, samples[1:-1]):
        _attribute(levels[current], last, sample)
        last = sample
        current += mutation.liquidity_delta
        if current < 0:
            raise NegativeLiquidityError(f"Liquidity went negative at block {mutation.block_number}.")
        levels.setdefault(current, LiquidityLevel())

    if current > 0:
        _attribute(levels[current], last, samples[-1])
    return levels


def _attribute(level: LiquidityLevel, start: RangeSample, end: RangeSample) -> None:
    if start.seconds_inside is None or end.seconds_inside is None:
        return
    level.seconds_inside += delta_uint32(end.seconds_inside, start.seconds_inside)
    level.total_seconds += end.timestamp - start.timestamp


def merge_liquidity_levels(
    target: dict[int, LiquidityLevel],
    other: dict[int, LiquidityLevel],
) -> dict[int, LiquidityLevel]:
    for liquidity, level in other.items():
        existing = target.get(liquidity)
        if existing is None:
            target[liquidity] = LiquidityLevel(level.seconds_inside, level.total_seconds)
        else:
            existing.seconds_inside += level.seconds_inside
            existing.total_seconds += level.total_seconds
    return target


def liquidity_intervals(
    initial_liquidity: int,
    mutations: list[LiquidityMutation],
    from_block: int,
    to_block: int,
) -> list[LiquidityInterval]:
    intervals: list[LiquidityInterval] = []
    current = initial_liquidity
    start = from_block
    for mutation in mutations:
        end = min(max(mutation.block_number, start), to_block)
        if end > start:
            intervals.append(LiquidityInterval(start, end, current))
        start = end
        current += mutation.liquidity_delta
    if to_block > start:
        intervals.append(LiquidityInterval(start, to_block, current))
    return intervals
