from __future__ import annotations

from decimal import Decimal

import pytest

from compound_rewards.domain.entities.liquidity import LiquidityLevel
from compound_rewards.domain.exceptions import InvalidRunInputError
from compound_rewards.domain.services.vesting import liquidity_time_totals, vesting_factor


class TestVestingFactor:
    def test_fully_vested_when_in_range_for_whole_period(self):
        levels = {100: LiquidityLevel(seconds_inside=1000, total_seconds=1000)}
        assert vesting_factor(levels, 1000) == Decimal("1")

    def test_seconds_inside_are_capped_at_vesting_period(self):
        levels = {100: LiquidityLevel(seconds_inside=2000, total_seconds=2000)}
        assert vesting_factor(levels, 1000) == Decimal("1")

    def test_partially_vested(self):
        levels = {100: LiquidityLevel(seconds_inside=500, total_seconds=1000)}
        assert vesting_factor(levels, 1000) == Decimal("0.5")

    def test_later_liquidity_only_counts_its_own_time(self):
        levels = {
            100: LiquidityLevel(seconds_inside=1000, total_seconds=1000),
            300: LiquidityLevel(seconds_inside=200, total_seconds=200),
        }
        assert liquidity_time_totals(levels, 1000) == (128000, 160000)
        assert vesting_factor(levels, 1000) == Decimal("0.8")

    def test_short_lived_liquidity_vests_less_than_half(self):
        levels = {
            0: LiquidityLevel(),
            100: LiquidityLevel(seconds_inside=400, total_seconds=400),
        }
        factor = vesting_factor(levels, 1000)
        assert Decimal("0") < factor < Decimal("0.5")

    def test_zero_when_no_liquidity_time(self):
        assert vesting_factor({}, 1000) == Decimal("0")
        assert vesting_factor({0: LiquidityLevel(seconds_inside=10, total_seconds=10)}, 1000) == Decimal("0")

    def test_factor_stays_within_bounds(self):
        levels = {
            50: LiquidityLevel(seconds_inside=300, total_seconds=700),
            80: LiquidityLevel(seconds_inside=900, total_seconds=900),
            120: LiquidityLevel(seconds_inside=0, total_seconds=50),
        }
        factor = vesting_factor(levels, 600)
        assert Decimal("0") <= factor <= Decimal("1")

    def test_rejects_non_positive_vesting_period(self):
        with pytest.raises(InvalidRunInputError):
            vesting_factor({100: LiquidityLevel(1, 1)}, 0)
