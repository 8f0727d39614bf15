from __future__ import annotations

from dataclasses import dataclass

from compound_rewards.domain.entities.liquidity_event import LiquidityEvent, LiquidityMutation
from compound_rewards.domain.entities.position import PositionRecord, PositionSnapshot, PositionState


@dataclass(frozen=True)
class SessionWindow:
    position_id: int
    snapshot: PositionSnapshot
    from_block: int
    to_block: int
    events: list[LiquidityEvent]
    mutations: list[LiquidityMutation]


@dataclass(frozen=True)
class EvaluatePositionSettings:
    start_block: int
    end_block: int
    vesting_period: int


@dataclass(frozen=True)
class PositionEvaluation:
    record: PositionRecord
    state: PositionState
    filter_reason: str | None = None
