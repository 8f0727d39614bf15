from __future__ import annotations

from decimal import Decimal
import logging

from compound_rewards.infrastructure.clients.graphql_client import GraphqlClient


logger = logging.getLogger(__name__)


def build_prices_query(token: str, blocks: list[int]) -> str:
    fields = " ".join(
        f'price_{block}: token(block: {{ number: {block} }}, id: "{token}") {{ derivedETH }}'
        for block in blocks
    )
    return f"{{ {fields} }}"


class UniswapSubgraphPriceClient:
    """Historical token prices in ETH (``derivedETH``) from the Uniswap v3 subgraph."""

    def __init__(self, graphql: GraphqlClient):
        self._graphql = graphql

    def fetch_prices(self, *, token: str, blocks: list[int]) -> dict[int, Decimal]:
        if not blocks:
            return {}
        token_id = token.strip().lower()
        data = self._graphql.post(query=build_prices_query(token_id, blocks))

        prices: dict[int, Decimal] = {}
        for block in blocks:
            row = data.get(f"price_{block}")
            if not row or row.get("derivedETH") is None:
                logger.warning(
                    "uniswap_price_client: token_not_indexed token=%s block=%s",
                    token_id,
                    block,
                )
                prices[block] = Decimal("0")
                continue
            prices[block] = Decimal(str(row["derivedETH"]))
        return prices
