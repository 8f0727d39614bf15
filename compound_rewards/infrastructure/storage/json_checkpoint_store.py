from __future__ import annotations

from decimal import Decimal
import json
import logging
import os
from pathlib import Path

from pydantic import BaseModel, ValidationError

from compound_rewards.domain.entities.position import PositionRecord


logger = logging.getLogger(__name__)


class PositionRecordSchema(BaseModel):
    id: str
    account: str
    symbol0: str
    symbol1: str
    fee: int
    amount: str

    @classmethod
    def from_record(cls, record: PositionRecord) -> "PositionRecordSchema":
        return cls(
            id=record.id,
            account=record.account,
            symbol0=record.symbol0,
            symbol1=record.symbol1,
            fee=record.fee,
            amount=str(record.amount),
        )

    def to_record(self) -> PositionRecord:
        return PositionRecord(
            id=self.id,
            account=self.account,
            symbol0=self.symbol0,
            symbol1=self.symbol1,
            fee=self.fee,
            amount=Decimal(self.amount),
        )


class JsonCheckpointStore:
    """Position records keyed by position id, persisted as one JSON document."""

    def __init__(self, path: str | Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict[str, PositionRecord]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            if not isinstance(raw, dict):
                raise ValueError("checkpoint root must be an object")
            records = {
                str(key): PositionRecordSchema.model_validate(value).to_record()
                for key, value in raw.items()
            }
        except (OSError, ValueError, ValidationError, ArithmeticError) as exc:
            logger.warning(
                "json_checkpoint_store: unreadable_checkpoint path=%s error=%s",
                self._path,
                exc,
            )
            return {}
        logger.info("json_checkpoint_store: loaded path=%s positions=%s", self._path, len(records))
        return records

    def save(self, records: dict[str, PositionRecord]) -> None:
        payload = {
            key: PositionRecordSchema.from_record(record).model_dump()
            for key, record in records.items()
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(self._path.name + ".partial")
        tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        os.replace(tmp_path, self._path)
