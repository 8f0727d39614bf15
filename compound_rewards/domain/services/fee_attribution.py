from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal, localcontext

from compound_rewards.domain.entities.fees import FeeAmounts, FeeGrowthPoint
from compound_rewards.domain.entities.liquidity import LiquidityInterval
from compound_rewards.domain.entities.liquidity_event import Collect, DecreaseLiquidity
from compound_rewards.domain.exceptions import FeeRateBracketError, NegativeFeeError
from compound_rewards.domain.services.univ3_math import delta_uint256, fees_from_growth


# X128 growth values carry ~39 significant digits.
GROWTH_PRECISION = 100


def direct_fee_amounts(
    *,
    initial: FeeAmounts,
    final: FeeAmounts,
    collects: list[Collect],
    decreases: list[DecreaseLiquidity],
) -> FeeAmounts:
    """Fees generated between two collectable-fee readings.

    Collected amounts left the position during the window and are added back.
    Decrease amounts are principal returned to the owner and are removed.
    """
    amount0 = final.amount0 - initial.amount0
    amount1 = final.amount1 - initial.amount1
    for collect in collects:
        amount0 += collect.amount0
        amount1 += collect.amount1
    for decrease in decreases:
        amount0 -= decrease.amount0
        amount1 -= decrease.amount1

    fees = FeeAmounts(amount0=amount0, amount1=amount1)
    ensure_non_negative(fees)
    return fees


def ensure_non_negative(fees: FeeAmounts) -> None:
    if fees.is_negative():
        raise NegativeFeeError(
            f"Negative fee accumulator amount0={fees.amount0} amount1={fees.amount1}."
        )


def normalize_growth_points(points: list[FeeGrowthPoint]) -> list[FeeGrowthPoint]:
    by_block: dict[int, FeeGrowthPoint] = {}
    for point in sorted(points, key=lambda p: p.block_number):
        by_block[point.block_number] = point
    return [by_block[block] for block in sorted(by_block)]


def growth_rate_at(points: list[FeeGrowthPoint], block_number: int) -> tuple[Decimal, Decimal]:
    """Average fee growth per block (X128) of the bracket around ``block_number``.

    Points must be normalized. Blocks before the first or after the last point
    use the outermost bracket.
    """
    if len(points) < 2:
        raise FeeRateBracketError("At least two fee growth points are required.")

    index = 1
    while index < len(points) - 1 and points[index].block_number < block_number:
        index += 1
    start = points[index - 1]
    end = points[index]
    with localcontext() as ctx:
        ctx.prec = GROWTH_PRECISION
        blocks = Decimal(end.block_number - start.block_number)
        rate0 = Decimal(delta_uint256(end.fee_growth_inside0_x128, start.fee_growth_inside0_x128)) / blocks
        rate1 = Decimal(delta_uint256(end.fee_growth_inside1_x128, start.fee_growth_inside1_x128)) / blocks
    return rate0, rate1


def estimate_fees_from_growth(
    *,
    points: list[FeeGrowthPoint],
    intervals: list[LiquidityInterval],
) -> FeeAmounts:
    normalized = normalize_growth_points(points)
    if len(normalized) < 2:
        raise FeeRateBracketError(
            f"Cannot bracket a fee growth rate with {len(normalized)} data point(s)."
        )

    total0 = Decimal("0")
    total1 = Decimal("0")
    with localcontext() as ctx:
        ctx.prec = GROWTH_PRECISION
        for interval in intervals:
            blocks = interval.end_block - interval.start_block
            if interval.liquidity <= 0 or blocks <= 0:
                continue
            rate0, rate1 = growth_rate_at(normalized, interval.end_block)
            total0 += fees_from_growth(growth_x128=rate0 * blocks, liquidity=interval.liquidity)
            total1 += fees_from_growth(growth_x128=rate1 * blocks, liquidity=interval.liquidity)

    fees = FeeAmounts(
        amount0=int(total0.to_integral_value(rounding=ROUND_FLOOR)),
        amount1=int(total1.to_integral_value(rounding=ROUND_FLOOR)),
    )
    ensure_non_negative(fees)
    return fees
