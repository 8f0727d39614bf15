from __future__ import annotations

import csv
import json
from pathlib import Path

from compound_rewards.domain.entities.reward import LedgerRow, RewardRecord
from compound_rewards.domain.services.merkle import merkle_proofs


LEDGER_COLUMNS = ("id", "symbol0", "symbol1", "fee", "account", "amount", "share")


def write_ledger_csv(path: str | Path, rows: list[LedgerRow]) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.writer(handle)
        writer.writerow(LEDGER_COLUMNS)
        for row in rows:
            writer.writerow(
                [row.id, row.symbol0, row.symbol1, row.fee, row.account, row.amount, row.share]
            )


def write_rewards_json(path: str | Path, rewards: list[RewardRecord]) -> None:
    """Writes ``{account: "reward"}``; rewards are decimal strings so uint256 values survive."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = {record.account: str(record.reward) for record in rewards}
    target.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def load_rewards_json(path: str | Path) -> dict[str, int]:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    return {str(account): int(value) for account, value in raw.items()}


def write_merkle_proofs(path: str | Path, rewards: list[RewardRecord], merkle_root: str) -> None:
    """Writes the claim of every account: its reward and the proof against ``merkleRoot``."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    proofs = merkle_proofs(rewards)
    payload = {
        "merkleRoot": merkle_root,
        "claims": {
            record.account: {
                "amount": str(record.reward),
                "proof": ["0x" + node.hex() for node in proofs[record.account]],
            }
            for record in rewards
        },
    }
    target.write_text(json.dumps(payload, indent=2), encoding="utf-8")
