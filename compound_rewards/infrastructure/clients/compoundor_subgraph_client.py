from __future__ import annotations

import logging

from compound_rewards.domain.entities.session import Session
from compound_rewards.domain.services.univ3_math import parse_uint
from compound_rewards.infrastructure.clients.graphql_client import GraphqlClient


logger = logging.getLogger(__name__)


SESSIONS_QUERY = """
query CompoundSessions($first: Int!, $fromStart: BigInt!, $toStart: BigInt!) {
  compoundSessions(
    first: $first,
    where: { startBlockNumber_gte: $fromStart, startBlockNumber_lt: $toStart },
    orderBy: startBlockNumber,
    orderDirection: asc
  ) {
    id
    startBlockNumber
    endBlockNumber
    account
    token { id }
  }
}
"""


def _to_session(row: dict) -> Session:
    end_block = row.get("endBlockNumber")
    return Session(
        id=str(row["id"]),
        start_block=parse_uint(row["startBlockNumber"], bits=64),
        end_block=parse_uint(end_block, bits=64) if end_block not in (None, "") else None,
        account=str(row["account"]),
        position_id=parse_uint(row["token"]["id"]),
    )


class CompoundorSubgraphClient:
    def __init__(self, graphql: GraphqlClient, *, page_size: int = 1000):
        if page_size <= 0:
            raise ValueError("page_size must be positive.")
        self._graphql = graphql
        self._page_size = page_size

    def fetch_sessions(self, *, from_block: int, to_block: int) -> list[Session]:
        """Sessions started before ``to_block`` that were still active after ``from_block``.

        Pages are keyed by start block and overlap on the last start block of
        the previous page, so rows are deduplicated by id.
        """
        sessions: dict[str, Session] = {}
        current_from = 0
        pages = 0
        while True:
            data = self._graphql.post(
                query=SESSIONS_QUERY,
                variables={
                    "first": self._page_size,
                    "fromStart": str(current_from),
                    "toStart": str(to_block),
                },
            )
            rows = data.get("compoundSessions") or []
            pages += 1
            for row in rows:
                session = _to_session(row)
                sessions.setdefault(session.id, session)

            if len(rows) < self._page_size:
                break
            next_from = parse_uint(rows[-1]["startBlockNumber"], bits=64)
            if next_from == current_from:
                # a full page sharing one start block can not be paged by start block
                raise RuntimeError(
                    f"compoundSessions page stuck at startBlockNumber={current_from}; increase page size."
                )
            current_from = next_from

        result = [
            session
            for session in sessions.values()
            if session.end_block is None or session.end_block > from_block
        ]
        logger.info(
            "compoundor_subgraph_client: fetched_sessions pages=%s unique=%s active=%s from_block=%s to_block=%s",
            pages,
            len(sessions),
            len(result),
            from_block,
            to_block,
        )
        return result
