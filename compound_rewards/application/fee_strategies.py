from __future__ import annotations

import logging
from typing import Protocol

from compound_rewards.application.dto.evaluate_position import SessionWindow
from compound_rewards.application.ports.chain_state_port import ChainStatePort
from compound_rewards.domain.entities.fees import FeeAmounts, FeeGrowthPoint
from compound_rewards.domain.entities.liquidity_event import split_events
from compound_rewards.domain.exceptions import FeeRateBracketError
from compound_rewards.domain.services.fee_attribution import (
    direct_fee_amounts,
    estimate_fees_from_growth,
    normalize_growth_points,
)
from compound_rewards.domain.services.liquidity_history import liquidity_intervals


logger = logging.getLogger(__name__)


FEE_STRATEGIES = {"direct", "growth_rate"}


class FeeAttributionStrategy(Protocol):
    def compute(self, window: SessionWindow) -> FeeAmounts:
        ...


class DirectFeeAttribution:
    """Collectable fees read at both window edges, corrected by the events in between."""

    def __init__(self, *, chain_port: ChainStatePort):
        self._chain_port = chain_port

    def compute(self, window: SessionWindow) -> FeeAmounts:
        initial = self._chain_port.get_collectable_fees(
            position_id=window.position_id,
            block_number=window.from_block,
        )
        final = self._chain_port.get_collectable_fees(
            position_id=window.position_id,
            block_number=window.to_block,
        )
        _, decreases, collects = split_events(window.events)
        return direct_fee_amounts(
            initial=initial,
            final=final,
            collects=collects,
            decreases=decreases,
        )


class GrowthRateFeeAttribution:
    """Fees integrated from the average fee growth between mutation events."""

    def __init__(self, *, chain_port: ChainStatePort, lookback_blocks: int):
        self._chain_port = chain_port
        self._lookback_blocks = lookback_blocks

    def compute(self, window: SessionWindow) -> FeeAmounts:
        event_blocks = {event.block_number for event in window.events}
        points = self._points_at(window.position_id, event_blocks)

        if len(normalize_growth_points(points)) < 2:
            lookback_from = max(0, window.from_block - self._lookback_blocks)
            earlier = self._chain_port.get_liquidity_events(
                position_id=window.position_id,
                from_block=lookback_from,
                to_block=window.from_block,
            )
            earlier_blocks = {event.block_number for event in earlier} - event_blocks
            logger.info(
                "fee_strategies: widened_growth_bracket position_id=%s from_block=%s lookback_from=%s extra_points=%s",
                window.position_id,
                window.from_block,
                lookback_from,
                len(earlier_blocks),
            )
            points.extend(self._points_at(window.position_id, earlier_blocks))

        if len(normalize_growth_points(points)) < 2:
            raise FeeRateBracketError(
                f"Position {window.position_id} has fewer than two liquidity events up to block {window.to_block}."
            )

        intervals = liquidity_intervals(
            window.snapshot.liquidity,
            window.mutations,
            window.from_block,
            window.to_block,
        )
        return estimate_fees_from_growth(points=points, intervals=intervals)

    def _points_at(self, position_id: int, blocks: set[int]) -> list[FeeGrowthPoint]:
        points: list[FeeGrowthPoint] = []
        for block in sorted(blocks):
            snapshot = self._chain_port.get_position(position_id=position_id, block_number=block)
            points.append(
                FeeGrowthPoint(
                    block_number=block,
                    fee_growth_inside0_x128=snapshot.fee_growth_inside0_last_x128,
                    fee_growth_inside1_x128=snapshot.fee_growth_inside1_last_x128,
                )
            )
        return points


def build_fee_strategy(
    name: str,
    *,
    chain_port: ChainStatePort,
    lookback_blocks: int,
) -> FeeAttributionStrategy:
    key = name.strip().lower()
    if key == "direct":
        return DirectFeeAttribution(chain_port=chain_port)
    if key == "growth_rate":
        return GrowthRateFeeAttribution(chain_port=chain_port, lookback_blocks=lookback_blocks)
    raise ValueError(f"Unknown fee strategy '{name}', expected one of: {', '.join(sorted(FEE_STRATEGIES))}.")
