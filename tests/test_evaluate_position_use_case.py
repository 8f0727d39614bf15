from __future__ import annotations

from decimal import Decimal
import unittest

from compound_rewards.application.dto.evaluate_position import EvaluatePositionSettings
from compound_rewards.application.fee_strategies import DirectFeeAttribution
from compound_rewards.application.lookup_cache import LookupCache
from compound_rewards.application.retry import RetryPolicy
from compound_rewards.application.use_cases.evaluate_position import (
    EvaluatePositionUseCase,
    session_window,
)
from compound_rewards.domain.entities.fees import FeeAmounts
from compound_rewards.domain.entities.liquidity_event import IncreaseLiquidity
from compound_rewards.domain.entities.position import PositionSnapshot, PositionState
from compound_rewards.domain.entities.session import Session
from compound_rewards.domain.exceptions import InvalidRunInputError
from compound_rewards.domain.services.position_filters import PositionFilters


TOKEN0 = "0x00000000000000000000000000000000000000a0"
TOKEN1 = "0x00000000000000000000000000000000000000b0"


class FakeChain:
    """Position always in range; seconds inside track the block timestamp."""

    def __init__(self, *, collectable: dict[int, FeeAmounts] | None = None, events=None):
        self._collectable = collectable or {}
        self._events = events or []
        self.collect_calls: list[int] = []
        self.event_queries: list[tuple[int, int]] = []

    def get_position(self, *, position_id: int, block_number: int) -> PositionSnapshot:
        return PositionSnapshot(
            position_id=position_id,
            token0=TOKEN0,
            token1=TOKEN1,
            fee=500,
            tick_lower=-100,
            tick_upper=100,
            liquidity=1000,
        )

    def get_pool_address(self, *, token0: str, token1: str, fee: int, block_number: int) -> str:
        return "0xpool"

    def get_seconds_inside(self, *, pool_address: str, tick_lower: int, tick_upper: int, block_number: int):
        return self.get_block_timestamp(block_number)

    def get_liquidity_events(self, *, position_id: int, from_block: int, to_block: int):
        self.event_queries.append((from_block, to_block))
        return [event for event in self._events if from_block <= event.block_number <= to_block]

    def get_collectable_fees(self, *, position_id: int, block_number: int) -> FeeAmounts:
        self.collect_calls.append(block_number)
        return self._collectable.get(block_number, FeeAmounts())

    def get_block_timestamp(self, block_number: int) -> int:
        return block_number * 12

    def get_token_decimals(self, token: str) -> int:
        return 18 if token == TOKEN0 else 6

    def get_token_symbol(self, token: str) -> str:
        return "WETH" if token == TOKEN0 else "USDC"


class UnreachableChain(FakeChain):
    def get_position(self, *, position_id: int, block_number: int) -> PositionSnapshot:
        raise AssertionError("position snapshot must not be read")

    def get_token_symbol(self, token: str) -> str:
        raise AssertionError("token symbol must not be read")


class FakePricePort:
    def fetch_prices(self, *, token: str, blocks: list[int]) -> dict[int, Decimal]:
        price = Decimal("1") if token == TOKEN0 else Decimal("0.0005")
        return {block: price for block in blocks}


def _session(session_id: str, start: int, end: int | None, account: str = "0xowner") -> Session:
    return Session(id=session_id, start_block=start, end_block=end, account=account, position_id=7)


class EvaluatePositionUseCaseTests(unittest.TestCase):
    def _use_case(self, chain: FakeChain, *, filters: PositionFilters | None = None, vesting_period: int = 1000):
        return EvaluatePositionUseCase(
            chain_port=chain,
            lookup_cache=LookupCache(metadata_port=chain, price_port=FakePricePort()),
            fee_strategy=DirectFeeAttribution(chain_port=chain),
            filters=filters or PositionFilters(),
            retry_policy=RetryPolicy(max_retries=0, base_delay_seconds=0),
            settings=EvaluatePositionSettings(start_block=100, end_block=200, vesting_period=vesting_period),
        )

    def test_session_window_bounds(self):
        self.assertEqual(session_window(_session("a", 50, None), start_block=100, end_block=200), (100, 200))
        self.assertEqual(session_window(_session("a", 120, 150), start_block=100, end_block=200), (120, 149))
        self.assertEqual(session_window(_session("a", 120, 250), start_block=100, end_block=200), (120, 200))

    def test_fully_vested_position_is_valued_at_end_prices(self):
        chain = FakeChain(collectable={200: FeeAmounts(amount0=2 * 10**18, amount1=4 * 10**6)})

        result = self._use_case(chain).execute(7, [_session("a", 100, None)])

        self.assertEqual(result.state, PositionState.CHECKPOINTED)
        self.assertEqual(result.record.id, "7")
        self.assertEqual(result.record.symbol0, "WETH")
        self.assertEqual(result.record.symbol1, "USDC")
        self.assertEqual(result.record.amount, Decimal("2.002"))
        self.assertEqual(chain.collect_calls, [100, 200])
        self.assertEqual(chain.event_queries, [(101, 200)])

    def test_short_stay_is_partially_vested(self):
        chain = FakeChain(collectable={200: FeeAmounts(amount0=10**18, amount1=0)})

        result = self._use_case(chain, vesting_period=2400).execute(7, [_session("a", 100, None)])

        # 1200 seconds in range out of a 2400 second vesting period
        self.assertEqual(result.record.amount, Decimal("0.5"))

    def test_sessions_are_accumulated_and_last_account_owns_position(self):
        chain = FakeChain(
            collectable={
                149: FeeAmounts(amount0=10**18, amount1=0),
                200: FeeAmounts(amount0=10**18, amount1=0),
            }
        )

        result = self._use_case(chain).execute(
            7,
            [_session("b", 160, None, account="0xnew"), _session("a", 100, 150, account="0xold")],
        )

        self.assertEqual(result.record.account, "0xnew")
        self.assertEqual(result.record.amount, Decimal("2"))
        self.assertEqual(chain.collect_calls, [100, 149, 160, 200])

    def test_liquidity_events_inside_window_are_used(self):
        increase = IncreaseLiquidity(block_number=150, log_index=0, liquidity=500, amount0=10, amount1=10)
        chain = FakeChain(collectable={200: FeeAmounts(amount0=10**18, amount1=0)}, events=[increase])

        result = self._use_case(chain).execute(7, [_session("a", 100, None)])

        # the added liquidity spent only 600 seconds in range
        self.assertGreater(result.record.amount, Decimal("0"))
        self.assertLess(result.record.amount, Decimal("1"))

    def test_filtered_position_is_recorded_with_zero_amount(self):
        chain = FakeChain()

        result = self._use_case(chain, filters=PositionFilters(exclude_tokens=("USDC",))).execute(
            7,
            [_session("a", 100, None)],
        )

        self.assertEqual(result.state, PositionState.FILTERED_OUT)
        self.assertEqual(result.filter_reason, "excluded_token")
        self.assertEqual(result.record.amount, Decimal("0"))
        self.assertEqual(chain.collect_calls, [])

    def test_excluded_account_is_filtered(self):
        result = self._use_case(FakeChain(), filters=PositionFilters(exclude_accounts=("0xOWNER",))).execute(
            7,
            [_session("a", 100, None)],
        )
        self.assertEqual(result.filter_reason, "excluded_account")

    def test_excluded_account_skips_chain_reads(self):
        chain = UnreachableChain()

        result = self._use_case(chain, filters=PositionFilters(exclude_accounts=("0xOWNER",))).execute(
            7,
            [_session("a", 100, None)],
        )

        self.assertEqual(result.state, PositionState.FILTERED_OUT)
        self.assertEqual(result.filter_reason, "excluded_account")
        self.assertEqual(result.record.account, "0xowner")
        self.assertEqual(result.record.amount, Decimal("0"))
        self.assertEqual(result.record.symbol0, "")

    def test_empty_window_contributes_nothing(self):
        chain = FakeChain()

        result = self._use_case(chain).execute(7, [_session("a", 100, 100)])

        self.assertEqual(result.state, PositionState.CHECKPOINTED)
        self.assertEqual(result.record.amount, Decimal("0"))
        self.assertEqual(chain.collect_calls, [])

    def test_requires_sessions(self):
        with self.assertRaises(InvalidRunInputError):
            self._use_case(FakeChain()).execute(7, [])
