from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from compound_rewards.domain.entities.position import PositionRecord
from compound_rewards.domain.entities.reward import LedgerRow, RewardRecord


@dataclass(frozen=True)
class RunRewardsInput:
    start_block: int
    end_block: int
    vesting_period: int
    total_reward: int
    reward_decimals: int = 18
    max_workers: int = 1


@dataclass(frozen=True)
class RunRewardsOutput:
    positions: dict[str, PositionRecord]
    account_amounts: dict[str, Decimal]
    total_value: Decimal
    rewards: list[RewardRecord]
    ledger: list[LedgerRow]
    merkle_root: str
    evaluated_positions: int
    skipped_positions: int
