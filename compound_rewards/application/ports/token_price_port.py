from __future__ import annotations

from decimal import Decimal
from typing import Protocol


class TokenPricePort(Protocol):
    def fetch_prices(self, *, token: str, blocks: list[int]) -> dict[int, Decimal]:
        ...
