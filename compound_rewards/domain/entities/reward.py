from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class RewardRecord:
    account: str
    reward: int


@dataclass(frozen=True)
class LedgerRow:
    id: str
    symbol0: str
    symbol1: str
    fee: int
    account: str
    amount: Decimal
    share: Decimal
