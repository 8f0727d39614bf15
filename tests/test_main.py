from __future__ import annotations

from decimal import Decimal
import json

from click.testing import CliRunner
import pytest

from compound_rewards import main
from compound_rewards.application.dto.run_rewards import RunRewardsOutput
from compound_rewards.domain.entities.reward import LedgerRow, RewardRecord
from compound_rewards.domain.exceptions import NegativeFeeError


ACCOUNT = "0x" + "aa" * 20


class FakeRunRewardsUseCase:
    def __init__(self, *, error: Exception | None = None):
        self.commands = []
        self._error = error

    def execute(self, command):
        self.commands.append(command)
        if self._error is not None:
            raise self._error
        return RunRewardsOutput(
            positions={},
            account_amounts={ACCOUNT: Decimal("1")},
            total_value=Decimal("1"),
            rewards=[RewardRecord(account=ACCOUNT, reward=1000)],
            ledger=[
                LedgerRow(
                    id="1",
                    symbol0="WETH",
                    symbol1="USDC",
                    fee=500,
                    account=ACCOUNT,
                    amount=Decimal("1"),
                    share=Decimal("1000"),
                )
            ],
            merkle_root="0x" + "ab" * 32,
            evaluated_positions=1,
            skipped_positions=0,
        )


@pytest.fixture
def run_env(monkeypatch: pytest.MonkeyPatch):
    for key in ("START_BLOCK", "END_BLOCK", "VESTING_PERIOD", "INCLUDE_LIST_TOKEN_PAIRS", "FIXED_TOKEN_PRICES"):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


def test_run_writes_outputs_and_prints_root(run_env, tmp_path):
    use_case = FakeRunRewardsUseCase()
    built = {}

    def fake_builder(settings, *, start_block, end_block, vesting_period):
        built.update(start_block=start_block, end_block=end_block, vesting_period=vesting_period)
        return use_case

    run_env.setattr(main, "get_run_rewards_use_case", fake_builder)
    rewards_path = tmp_path / "rewards.json"
    ledger_path = tmp_path / "positions.csv"
    proofs_path = tmp_path / "proofs.json"

    result = CliRunner().invoke(
        main.cli,
        [
            "run",
            "--start-block", "100",
            "--end-block", "200",
            "--vesting-period", "3600",
            "--total-reward", "1000",
            "--rewards-out", str(rewards_path),
            "--ledger-out", str(ledger_path),
            "--proofs-out", str(proofs_path),
        ],
    )

    assert result.exit_code == 0, result.output
    assert ("0x" + "ab" * 32) in result.output
    assert built == {"start_block": 100, "end_block": 200, "vesting_period": 3600}
    assert use_case.commands[0].total_reward == 1000
    assert json.loads(rewards_path.read_text()) == {ACCOUNT: "1000"}
    proofs = json.loads(proofs_path.read_text())
    assert proofs["merkleRoot"] == "0x" + "ab" * 32
    assert proofs["claims"] == {ACCOUNT: {"amount": "1000", "proof": []}}
    assert ledger_path.read_text().splitlines()[0] == "id,symbol0,symbol1,fee,account,amount,share"


def test_run_requires_block_range(run_env):
    result = CliRunner().invoke(main.cli, ["run", "--vesting-period", "3600"])
    assert result.exit_code == 2
    assert "START_BLOCK is required" in result.output


def test_domain_errors_fail_without_outputs(run_env, tmp_path):
    run_env.setattr(
        main,
        "get_run_rewards_use_case",
        lambda settings, **kwargs: FakeRunRewardsUseCase(error=NegativeFeeError("negative fees")),
    )
    rewards_path = tmp_path / "rewards.json"

    result = CliRunner().invoke(
        main.cli,
        [
            "run",
            "--start-block", "100",
            "--end-block", "200",
            "--vesting-period", "3600",
            "--rewards-out", str(rewards_path),
            "--ledger-out", str(tmp_path / "positions.csv"),
        ],
    )

    assert result.exit_code == 1
    assert "negative fees" in result.output
    assert not rewards_path.exists()
