from __future__ import annotations

import pytest

from compound_rewards.domain.entities.session import Session
from compound_rewards.infrastructure.clients.compoundor_subgraph_client import CompoundorSubgraphClient


def _row(session_id: str, start: int, end: int | None, token_id: int = 1) -> dict:
    return {
        "id": session_id,
        "startBlockNumber": str(start),
        "endBlockNumber": str(end) if end is not None else None,
        "account": "0xowner",
        "token": {"id": str(token_id)},
    }


class FakeGraphql:
    def __init__(self, pages: list[list[dict]]):
        self._pages = pages
        self.variables: list[dict] = []

    def post(self, *, query: str, variables: dict | None = None) -> dict:
        self.variables.append(variables)
        return {"compoundSessions": self._pages[len(self.variables) - 1]}


def test_fetch_sessions_pages_by_start_block_and_dedupes():
    graphql = FakeGraphql(
        [
            [_row("a", 10, None), _row("b", 20, 500)],
            [_row("b", 20, 500), _row("c", 30, None, token_id=2)],
            [_row("c", 30, None, token_id=2)],
        ]
    )
    client = CompoundorSubgraphClient(graphql, page_size=2)

    sessions = client.fetch_sessions(from_block=100, to_block=1000)

    assert [variables["fromStart"] for variables in graphql.variables] == ["0", "20", "30"]
    assert all(variables["toStart"] == "1000" for variables in graphql.variables)
    assert sessions == [
        Session(id="a", start_block=10, end_block=None, account="0xowner", position_id=1),
        Session(id="b", start_block=20, end_block=500, account="0xowner", position_id=1),
        Session(id="c", start_block=30, end_block=None, account="0xowner", position_id=2),
    ]


def test_sessions_ended_before_period_are_dropped():
    graphql = FakeGraphql([[_row("old", 10, 100), _row("edge", 20, 101)]])
    client = CompoundorSubgraphClient(graphql, page_size=10)

    sessions = client.fetch_sessions(from_block=100, to_block=1000)

    assert [session.id for session in sessions] == ["edge"]


def test_full_page_with_one_start_block_is_an_error():
    graphql = FakeGraphql([[_row("a", 0, None), _row("b", 0, None)]])
    client = CompoundorSubgraphClient(graphql, page_size=2)

    with pytest.raises(RuntimeError, match="stuck"):
        client.fetch_sessions(from_block=0, to_block=10)


def test_session_fields_accept_hex_token_ids():
    row = _row("a", 10, None)
    row["token"]["id"] = "0x2a"
    graphql = FakeGraphql([[row]])

    sessions = CompoundorSubgraphClient(graphql, page_size=10).fetch_sessions(from_block=0, to_block=100)

    assert sessions[0].position_id == 42


def test_malformed_block_number_is_rejected():
    row = _row("a", 10, None)
    row["startBlockNumber"] = "-5"
    graphql = FakeGraphql([[row]])

    with pytest.raises(ValueError):
        CompoundorSubgraphClient(graphql, page_size=10).fetch_sessions(from_block=0, to_block=100)
