from __future__ import annotations

from typing import Protocol

from compound_rewards.domain.entities.position import PositionRecord


class CheckpointPort(Protocol):
    def load(self) -> dict[str, PositionRecord]:
        ...

    def save(self, records: dict[str, PositionRecord]) -> None:
        ...
