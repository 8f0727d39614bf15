from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Session:
    id: str
    start_block: int
    end_block: int | None
    account: str
    position_id: int

    @property
    def is_open(self) -> bool:
        return self.end_block is None
