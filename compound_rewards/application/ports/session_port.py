from __future__ import annotations

from typing import Protocol

from compound_rewards.domain.entities.session import Session


class SessionPort(Protocol):
    def fetch_sessions(self, *, from_block: int, to_block: int) -> list[Session]:
        ...
