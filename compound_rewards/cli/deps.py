from __future__ import annotations

from compound_rewards.application.dto.evaluate_position import EvaluatePositionSettings
from compound_rewards.application.fee_strategies import build_fee_strategy
from compound_rewards.application.lookup_cache import LookupCache
from compound_rewards.application.retry import RetryPolicy
from compound_rewards.application.use_cases.evaluate_position import EvaluatePositionUseCase
from compound_rewards.application.use_cases.run_rewards import RunRewardsUseCase
from compound_rewards.domain.services.position_filters import PositionFilters
from compound_rewards.infrastructure.clients.compoundor_subgraph_client import CompoundorSubgraphClient
from compound_rewards.infrastructure.clients.graphql_client import GraphqlClient, GraphqlClientSettings
from compound_rewards.infrastructure.clients.uniswap_price_client import UniswapSubgraphPriceClient
from compound_rewards.infrastructure.clients.web3_chain_client import (
    Web3ChainClient,
    Web3ChainClientSettings,
)
from compound_rewards.infrastructure.storage.json_checkpoint_store import JsonCheckpointStore
from compound_rewards.shared.config import Settings


def _graphql_client(settings: Settings, url: str) -> GraphqlClient:
    return GraphqlClient(
        GraphqlClientSettings(
            url=url,
            timeout_seconds=settings.graph_request_timeout_seconds,
            max_retries=settings.graph_max_retries,
            min_interval_ms=settings.graph_min_interval_ms,
        )
    )


def get_chain_client(settings: Settings) -> Web3ChainClient:
    return Web3ChainClient(
        Web3ChainClientSettings(
            rpc_url=settings.rpc_url,
            timeout_seconds=settings.rpc_timeout_seconds,
            npm_address=settings.npm_address,
            factory_address=settings.factory_address,
            compoundor_address=settings.compoundor_address,
        )
    )


def get_position_filters(settings: Settings) -> PositionFilters:
    return PositionFilters(
        exclude_tokens=settings.exclude_list_tokens,
        include_token_pairs=settings.include_list_token_pairs,
        include_tokens=settings.include_list_tokens,
        exclude_accounts=settings.exclude_list_accounts,
    )


def get_retry_policy(settings: Settings) -> RetryPolicy:
    return RetryPolicy(
        max_retries=settings.max_retries,
        base_delay_seconds=settings.retry_delay_seconds,
    )


def get_run_rewards_use_case(
    settings: Settings,
    *,
    start_block: int,
    end_block: int,
    vesting_period: int,
) -> RunRewardsUseCase:
    chain_client = get_chain_client(settings)
    retry_policy = get_retry_policy(settings)
    lookup_cache = LookupCache(
        metadata_port=chain_client,
        price_port=UniswapSubgraphPriceClient(_graphql_client(settings, settings.uniswap_subgraph_url)),
        fixed_prices=settings.fixed_token_prices,
        price_page_size=settings.price_page_size,
    )
    evaluator = EvaluatePositionUseCase(
        chain_port=chain_client,
        lookup_cache=lookup_cache,
        fee_strategy=build_fee_strategy(
            settings.fee_strategy,
            chain_port=chain_client,
            lookback_blocks=settings.fee_rate_lookback_blocks,
        ),
        filters=get_position_filters(settings),
        retry_policy=retry_policy,
        settings=EvaluatePositionSettings(
            start_block=start_block,
            end_block=end_block,
            vesting_period=vesting_period,
        ),
    )
    return RunRewardsUseCase(
        session_port=CompoundorSubgraphClient(
            _graphql_client(settings, settings.compoundor_subgraph_url),
            page_size=settings.sessions_page_size,
        ),
        checkpoint_port=JsonCheckpointStore(settings.temp_file_name),
        evaluator=evaluator,
        retry_policy=retry_policy,
    )
