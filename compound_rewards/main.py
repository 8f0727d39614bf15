from __future__ import annotations

from dataclasses import replace
import logging

import click

from compound_rewards.application.dto.run_rewards import RunRewardsInput
from compound_rewards.application.retry import PositionEvaluationError
from compound_rewards.cli.deps import get_run_rewards_use_case
from compound_rewards.domain.exceptions import DomainError
from compound_rewards.infrastructure.clients.graphql_client import SubgraphError
from compound_rewards.infrastructure.clients.web3_chain_client import ChainConnectionError
from compound_rewards.infrastructure.storage.output_writers import (
    write_ledger_csv,
    write_merkle_proofs,
    write_rewards_json,
)
from compound_rewards.shared.config import get_settings


logger = logging.getLogger(__name__)


@click.group()
def cli():
    """Fee-weighted reward distribution for auto-compounded Uniswap v3 positions."""


@cli.command("run")
@click.option("--start-block", type=int, default=None, help="First block of the reward period (START_BLOCK).")
@click.option("--end-block", type=int, default=None, help="Last block of the reward period (END_BLOCK).")
@click.option("--vesting-period", type=int, default=None, help="Vesting period in seconds (VESTING_PERIOD).")
@click.option("--total-reward", type=int, default=None, help="Reward to distribute, in base units (TOTAL_REWARD).")
@click.option("--workers", type=int, default=None, help="Positions evaluated in parallel (MAX_WORKERS).")
@click.option("--checkpoint", "temp_file_name", type=str, default=None, help="Checkpoint path (TEMP_FILE_NAME).")
@click.option("--ledger-out", "info_file_name", type=str, default=None, help="Ledger CSV path (INFO_FILE_NAME).")
@click.option("--rewards-out", "file_name", type=str, default=None, help="Rewards JSON path (FILE_NAME).")
@click.option("--proofs-out", "proofs_file_name", type=str, default=None, help="Merkle proofs JSON path (PROOFS_FILE_NAME).")
def run_cmd(
    start_block,
    end_block,
    vesting_period,
    total_reward,
    workers,
    temp_file_name,
    info_file_name,
    file_name,
    proofs_file_name,
):
    """Compute the reward of every account that compounded during the period."""
    try:
        settings = get_settings()
    except ValueError as exc:
        raise click.ClickException(f"Invalid configuration: {exc}") from exc
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    overrides = {
        "start_block": start_block,
        "end_block": end_block,
        "vesting_period": vesting_period,
        "total_reward": total_reward,
        "max_workers": workers,
        "temp_file_name": temp_file_name,
        "info_file_name": info_file_name,
        "file_name": file_name,
        "proofs_file_name": proofs_file_name,
    }
    settings = replace(settings, **{key: value for key, value in overrides.items() if value is not None})

    for name in ("start_block", "end_block", "vesting_period"):
        if getattr(settings, name) is None:
            raise click.UsageError(f"{name.upper()} is required (env or --{name.replace('_', '-')}).")

    try:
        use_case = get_run_rewards_use_case(
            settings,
            start_block=settings.start_block,
            end_block=settings.end_block,
            vesting_period=settings.vesting_period,
        )
        result = use_case.execute(
            RunRewardsInput(
                start_block=settings.start_block,
                end_block=settings.end_block,
                vesting_period=settings.vesting_period,
                total_reward=settings.total_reward,
                reward_decimals=settings.total_reward_decimals,
                max_workers=settings.max_workers,
            )
        )
    except (DomainError, PositionEvaluationError, SubgraphError, ChainConnectionError, ValueError) as exc:
        logger.error("main: run_failed error=%s", exc)
        raise click.ClickException(str(exc)) from exc

    write_ledger_csv(settings.info_file_name, result.ledger)
    write_rewards_json(settings.file_name, result.rewards)
    write_merkle_proofs(settings.proofs_file_name, result.rewards, result.merkle_root)
    logger.info(
        "main: outputs_written ledger=%s rewards=%s proofs=%s accounts=%s merkle_root=%s",
        settings.info_file_name,
        settings.file_name,
        settings.proofs_file_name,
        len(result.rewards),
        result.merkle_root,
    )
    click.echo(result.merkle_root)


if __name__ == "__main__":
    cli()
