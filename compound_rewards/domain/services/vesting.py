from __future__ import annotations

from decimal import Decimal

from compound_rewards.domain.entities.liquidity import LiquidityLevel
from compound_rewards.domain.exceptions import InvalidRunInputError


def liquidity_time_totals(levels: dict[int, LiquidityLevel], vesting_period: int) -> tuple[int, int]:
    """Return ``(vested_liquidity_time, total_liquidity_time)``.

    Liquidity is split into tiers at every distinct level. Each tier only
    counts the dwell time of the levels at or above it, so liquidity added
    late does not inherit the range time of liquidity that was already there.
    """
    if vesting_period <= 0:
        raise InvalidRunInputError("vesting_period must be positive.")

    vested = 0
    total = 0
    previous = 0
    for liquidity in sorted(levels):
        delta = liquidity - previous
        above = [level for amount, level in levels.items() if amount >= liquidity]
        seconds_inside = sum(level.seconds_inside for level in above)
        total_seconds = sum(level.total_seconds for level in above)

        vested += delta * total_seconds * min(seconds_inside, vesting_period) // vesting_period
        total += delta * total_seconds
        previous = liquidity
    return vested, total


def vesting_factor(levels: dict[int, LiquidityLevel], vesting_period: int) -> Decimal:
    vested, total = liquidity_time_totals(levels, vesting_period)
    if total <= 0:
        return Decimal("0")
    return Decimal(vested) / Decimal(total)
