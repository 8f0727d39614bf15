from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal, localcontext

from compound_rewards.domain.entities.position import PositionRecord
from compound_rewards.domain.entities.reward import LedgerRow, RewardRecord
from compound_rewards.domain.exceptions import InvalidRunInputError


# Enough digits for uint256 rewards multiplied by 18-decimal amounts.
ALLOCATION_PRECISION = 100


def aggregate_account_amounts(records: list[PositionRecord]) -> dict[str, Decimal]:
    accounts: dict[str, Decimal] = {}
    for record in records:
        accounts[record.account] = accounts.get(record.account, Decimal("0")) + record.amount
    return accounts


def allocate_rewards(account_amounts: dict[str, Decimal], total_reward: int) -> list[RewardRecord]:
    """Split ``total_reward`` proportionally, rounding every share down.

    Rounding dust stays unallocated; zero rewards are dropped.
    """
    if total_reward < 0:
        raise InvalidRunInputError("total_reward must be >= 0.")
    rewards: list[RewardRecord] = []
    with localcontext() as ctx:
        ctx.prec = ALLOCATION_PRECISION
        ctx.rounding = ROUND_FLOOR
        total = sum(account_amounts.values(), Decimal("0"))
        if total <= 0:
            return []
        for account, amount in account_amounts.items():
            if amount <= 0:
                continue
            raw = Decimal(total_reward) * amount / total
            reward = int(raw.to_integral_value(rounding=ROUND_FLOOR))
            if reward > 0:
                rewards.append(RewardRecord(account=account, reward=reward))
    return rewards


def build_ledger(
    records: list[PositionRecord],
    *,
    total_reward: int,
    reward_decimals: int,
) -> list[LedgerRow]:
    ordered = sorted(records, key=lambda record: record.amount, reverse=True)
    rows: list[LedgerRow] = []
    with localcontext() as ctx:
        ctx.prec = ALLOCATION_PRECISION
        total = sum((record.amount for record in records), Decimal("0"))
        unit = Decimal(10) ** reward_decimals
        for record in ordered:
            share = record.amount / total * Decimal(total_reward) / unit if total > 0 else Decimal("0")
            rows.append(
                LedgerRow(
                    id=record.id,
                    symbol0=record.symbol0,
                    symbol1=record.symbol1,
                    fee=record.fee,
                    account=record.account,
                    amount=record.amount,
                    share=share,
                )
            )
    return rows
