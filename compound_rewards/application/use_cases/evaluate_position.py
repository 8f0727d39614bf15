from __future__ import annotations

import logging
from decimal import Decimal

from compound_rewards.application.dto.evaluate_position import (
    EvaluatePositionSettings,
    PositionEvaluation,
    SessionWindow,
)
from compound_rewards.application.fee_strategies import FeeAttributionStrategy
from compound_rewards.application.lookup_cache import LookupCache
from compound_rewards.application.ports.chain_state_port import ChainStatePort
from compound_rewards.application.retry import RetryPolicy, call_with_retries
from compound_rewards.domain.entities.fees import FeeAmounts
from compound_rewards.domain.entities.liquidity import LiquidityLevel, RangeSample
from compound_rewards.domain.entities.liquidity_event import split_events
from compound_rewards.domain.entities.position import PositionRecord, PositionSnapshot, PositionState
from compound_rewards.domain.entities.session import Session
from compound_rewards.domain.exceptions import InvalidRunInputError
from compound_rewards.domain.services.liquidity_history import (
    build_liquidity_levels,
    merge_liquidity_events,
    merge_liquidity_levels,
    plan_sample_blocks,
)
from compound_rewards.domain.services.position_filters import (
    PositionFilters,
    account_filter_reason,
    filter_reason,
)
from compound_rewards.domain.services.valuation import normalize_value
from compound_rewards.domain.services.vesting import vesting_factor


logger = logging.getLogger(__name__)


def session_window(session: Session, *, start_block: int, end_block: int) -> tuple[int, int]:
    from_block = max(session.start_block, start_block)
    if session.end_block is None or session.end_block > end_block:
        to_block = end_block
    else:
        # last block before the position left the compounder
        to_block = session.end_block - 1
    return from_block, to_block


class EvaluatePositionUseCase:
    def __init__(
        self,
        *,
        chain_port: ChainStatePort,
        lookup_cache: LookupCache,
        fee_strategy: FeeAttributionStrategy,
        filters: PositionFilters,
        retry_policy: RetryPolicy,
        settings: EvaluatePositionSettings,
    ):
        if settings.vesting_period <= 0:
            raise InvalidRunInputError("vesting_period must be positive.")
        self._chain_port = chain_port
        self._cache = lookup_cache
        self._fee_strategy = fee_strategy
        self._filters = filters
        self._retry_policy = retry_policy
        self._settings = settings

    def execute(self, position_id: int, sessions: list[Session]) -> PositionEvaluation:
        if not sessions:
            raise InvalidRunInputError(f"Position {position_id} has no sessions.")
        ordered = sorted(sessions, key=lambda session: session.start_block)
        account = ordered[-1].account
        denied = account_filter_reason(self._filters, account)
        if denied is not None:
            logger.info(
                "evaluate_position: filtered_out position_id=%s reason=%s account=%s",
                position_id,
                denied,
                account,
            )
            record = PositionRecord(
                id=str(position_id),
                account=account,
                symbol0="",
                symbol1="",
                fee=0,
                amount=Decimal("0"),
            )
            return PositionEvaluation(record=record, state=PositionState.FILTERED_OUT, filter_reason=denied)

        first_from, _ = session_window(
            ordered[0],
            start_block=self._settings.start_block,
            end_block=self._settings.end_block,
        )

        snapshot = self._retry(
            lambda: self._chain_port.get_position(position_id=position_id, block_number=first_from),
            f"position_snapshot position_id={position_id} block={first_from}",
        )
        symbol0 = self._retry(lambda: self._cache.token_symbol(snapshot.token0), f"symbol token={snapshot.token0}")
        symbol1 = self._retry(lambda: self._cache.token_symbol(snapshot.token1), f"symbol token={snapshot.token1}")

        record = PositionRecord(
            id=str(position_id),
            account=account,
            symbol0=symbol0,
            symbol1=symbol1,
            fee=snapshot.fee,
            amount=Decimal("0"),
        )

        reason = filter_reason(self._filters, symbol0=symbol0, symbol1=symbol1, account=account)
        if reason is not None:
            logger.info(
                "evaluate_position: filtered_out position_id=%s reason=%s pair=%s/%s account=%s",
                position_id,
                reason,
                symbol0,
                symbol1,
                account,
            )
            return PositionEvaluation(record=record, state=PositionState.FILTERED_OUT, filter_reason=reason)

        levels: dict[int, LiquidityLevel] = {}
        fees = FeeAmounts()
        for index, session in enumerate(ordered):
            from_block, to_block = session_window(
                session,
                start_block=self._settings.start_block,
                end_block=self._settings.end_block,
            )
            if to_block < from_block:
                logger.info(
                    "evaluate_position: empty_window position_id=%s session=%s from_block=%s to_block=%s",
                    position_id,
                    session.id,
                    from_block,
                    to_block,
                )
                continue
            known_snapshot = snapshot if index == 0 else None
            session_levels, session_fees = self._retry(
                lambda: self._evaluate_session(position_id, known_snapshot, from_block, to_block),
                f"session position_id={position_id} session={session.id}",
            )
            merge_liquidity_levels(levels, session_levels)
            fees = fees + session_fees

        factor = vesting_factor(levels, self._settings.vesting_period)
        value = self._retry(
            lambda: self._value_at_end(snapshot, fees),
            f"valuation position_id={position_id}",
        )
        amount = value * factor
        logger.info(
            "evaluate_position: evaluated position_id=%s sessions=%s amount0=%s amount1=%s vesting_factor=%s amount=%s",
            position_id,
            len(ordered),
            fees.amount0,
            fees.amount1,
            factor,
            amount,
        )
        return PositionEvaluation(
            record=record.accumulate(amount),
            state=PositionState.CHECKPOINTED,
        )

    def _evaluate_session(
        self,
        position_id: int,
        snapshot: PositionSnapshot | None,
        from_block: int,
        to_block: int,
    ) -> tuple[dict[int, LiquidityLevel], FeeAmounts]:
        if snapshot is None:
            snapshot = self._chain_port.get_position(position_id=position_id, block_number=from_block)
        pool_address = self._chain_port.get_pool_address(
            token0=snapshot.token0,
            token1=snapshot.token1,
            fee=snapshot.fee,
            block_number=from_block,
        )

        # the snapshot already reflects every event of from_block
        events = []
        if to_block > from_block:
            events = self._chain_port.get_liquidity_events(
                position_id=position_id,
                from_block=from_block + 1,
                to_block=to_block,
            )
        increases, decreases, collects = split_events(events)
        mutations = merge_liquidity_events(increases, decreases)
        logger.info(
            "evaluate_position: session_events position_id=%s from_block=%s to_block=%s increases=%s decreases=%s collects=%s",
            position_id,
            from_block,
            to_block,
            len(increases),
            len(decreases),
            len(collects),
        )

        blocks = plan_sample_blocks(snapshot.liquidity, mutations, from_block, to_block)
        samples = [
            RangeSample(
                block_number=block,
                timestamp=self._cache.block_timestamp(block),
                seconds_inside=self._chain_port.get_seconds_inside(
                    pool_address=pool_address,
                    tick_lower=snapshot.tick_lower,
                    tick_upper=snapshot.tick_upper,
                    block_number=block,
                ),
            )
            for block in blocks
        ]
        levels = build_liquidity_levels(snapshot.liquidity, mutations, samples)

        fees = self._fee_strategy.compute(
            SessionWindow(
                position_id=position_id,
                snapshot=snapshot,
                from_block=from_block,
                to_block=to_block,
                events=events,
                mutations=mutations,
            )
        )
        return levels, fees

    def _value_at_end(self, snapshot: PositionSnapshot, fees: FeeAmounts) -> Decimal:
        block = self._settings.end_block
        price0 = self._cache.token_prices(snapshot.token0, [block])[block]
        price1 = self._cache.token_prices(snapshot.token1, [block])[block]
        return normalize_value(
            fees=fees,
            token0=snapshot.token0,
            token1=snapshot.token1,
            decimals0=self._cache.token_decimals(snapshot.token0),
            decimals1=self._cache.token_decimals(snapshot.token1),
            price0=price0,
            price1=price1,
        )

    def _retry(self, fn, operation: str):
        return call_with_retries(fn, policy=self._retry_policy, operation=operation)
