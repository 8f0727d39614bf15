from __future__ import annotations

import logging
from decimal import Decimal

from compound_rewards.domain.entities.fees import FeeAmounts


logger = logging.getLogger(__name__)


def token_value(*, amount: int, decimals: int, price: Decimal) -> Decimal:
    return price * Decimal(amount) / (Decimal(10) ** decimals)


def normalize_value(
    *,
    fees: FeeAmounts,
    token0: str,
    token1: str,
    decimals0: int,
    decimals1: int,
    price0: Decimal,
    price1: Decimal,
) -> Decimal:
    if price0 == 0:
        logger.warning("valuation: zero_price token=%s amount=%s", token0, fees.amount0)
    if price1 == 0:
        logger.warning("valuation: zero_price token=%s amount=%s", token1, fees.amount1)
    return token_value(amount=fees.amount0, decimals=decimals0, price=price0) + token_value(
        amount=fees.amount1, decimals=decimals1, price=price1
    )
