from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
import logging
from threading import Lock

from compound_rewards.application.dto.run_rewards import RunRewardsInput, RunRewardsOutput
from compound_rewards.application.ports.checkpoint_port import CheckpointPort
from compound_rewards.application.ports.session_port import SessionPort
from compound_rewards.application.retry import RetryPolicy, call_with_retries
from compound_rewards.application.use_cases.evaluate_position import EvaluatePositionUseCase
from compound_rewards.domain.entities.session import Session
from compound_rewards.domain.exceptions import InvalidRunInputError
from compound_rewards.domain.services.merkle import merkle_root
from compound_rewards.domain.services.reward_allocation import (
    aggregate_account_amounts,
    allocate_rewards,
    build_ledger,
)


logger = logging.getLogger(__name__)


def group_sessions(sessions: list[Session]) -> dict[int, list[Session]]:
    grouped: dict[int, list[Session]] = {}
    for session in sorted(sessions, key=lambda item: item.start_block):
        grouped.setdefault(session.position_id, []).append(session)
    return grouped


class RunRewardsUseCase:
    def __init__(
        self,
        *,
        session_port: SessionPort,
        checkpoint_port: CheckpointPort,
        evaluator: EvaluatePositionUseCase,
        retry_policy: RetryPolicy,
    ):
        self._session_port = session_port
        self._checkpoint_port = checkpoint_port
        self._evaluator = evaluator
        self._retry_policy = retry_policy
        self._checkpoint_lock = Lock()

    def execute(self, command: RunRewardsInput) -> RunRewardsOutput:
        self._validate(command)

        sessions = call_with_retries(
            lambda: self._session_port.fetch_sessions(
                from_block=command.start_block,
                to_block=command.end_block,
            ),
            policy=self._retry_policy,
            operation="fetch_sessions",
        )
        grouped = group_sessions(sessions)
        positions = self._checkpoint_port.load()

        pending = [position_id for position_id in grouped if str(position_id) not in positions]
        skipped = len(grouped) - len(pending)
        logger.info(
            "run_rewards: processing positions=%s pending=%s checkpointed=%s sessions=%s",
            len(grouped),
            len(pending),
            skipped,
            len(sessions),
        )

        def evaluate(position_id: int) -> None:
            evaluation = self._evaluator.execute(position_id, grouped[position_id])
            with self._checkpoint_lock:
                positions[evaluation.record.id] = evaluation.record
                self._checkpoint_port.save(dict(positions))

        if command.max_workers > 1:
            with ThreadPoolExecutor(max_workers=command.max_workers) as executor:
                futures = [executor.submit(evaluate, position_id) for position_id in pending]
                for future in futures:
                    future.result()
        else:
            for position_id in pending:
                evaluate(position_id)

        records = list(positions.values())
        account_amounts = aggregate_account_amounts(records)
        total_value = sum(account_amounts.values(), Decimal("0"))
        rewards = allocate_rewards(account_amounts, command.total_reward)
        ledger = build_ledger(
            records,
            total_reward=command.total_reward,
            reward_decimals=command.reward_decimals,
        )
        root = "0x" + merkle_root(rewards).hex()

        distributed = sum(record.reward for record in rewards)
        logger.info(
            "run_rewards: allocated accounts=%s rewarded=%s total_value=%s distributed=%s dust=%s merkle_root=%s",
            len(account_amounts),
            len(rewards),
            total_value,
            distributed,
            command.total_reward - distributed,
            root,
        )
        return RunRewardsOutput(
            positions=positions,
            account_amounts=account_amounts,
            total_value=total_value,
            rewards=rewards,
            ledger=ledger,
            merkle_root=root,
            evaluated_positions=len(pending),
            skipped_positions=skipped,
        )

    @staticmethod
    def _validate(command: RunRewardsInput) -> None:
        if command.start_block < 0:
            raise InvalidRunInputError("start_block must be >= 0.")
        if command.end_block < command.start_block:
            raise InvalidRunInputError("end_block must be >= start_block.")
        if command.vesting_period <= 0:
            raise InvalidRunInputError("vesting_period must be positive.")
        if command.total_reward < 0:
            raise InvalidRunInputError("total_reward must be >= 0.")
        if command.max_workers < 1:
            raise InvalidRunInputError("max_workers must be >= 1.")
