from __future__ import annotations

from dataclasses import dataclass
import logging

from web3 import Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from compound_rewards.domain.entities.fees import FeeAmounts
from compound_rewards.domain.entities.liquidity_event import (
    Collect,
    DecreaseLiquidity,
    IncreaseLiquidity,
    LiquidityEvent,
)
from compound_rewards.domain.entities.position import PositionSnapshot
from compound_rewards.domain.services.univ3_math import MAX_UINT128
from compound_rewards.infrastructure.clients.abis import (
    COLLECT_SIGNATURE,
    DECREASE_LIQUIDITY_SIGNATURE,
    ERC20_ABI,
    ERC20_BYTES32_SYMBOL_ABI,
    FACTORY_ABI,
    INCREASE_LIQUIDITY_SIGNATURE,
    POOL_ABI,
    POSITION_MANAGER_ABI,
)


logger = logging.getLogger(__name__)


class ChainConnectionError(RuntimeError):
    pass


@dataclass(frozen=True)
class Web3ChainClientSettings:
    rpc_url: str
    timeout_seconds: float
    npm_address: str
    factory_address: str
    compoundor_address: str


def token_id_topic(position_id: int) -> str:
    return "0x" + position_id.to_bytes(32, "big").hex()


class Web3ChainClient:
    """Block-addressable reads of positions, pools, events and token metadata."""

    def __init__(self, settings: Web3ChainClientSettings, *, w3: Web3 | None = None):
        if w3 is None:
            if not settings.rpc_url:
                raise ChainConnectionError("RPC_URL is required.")
            w3 = Web3(
                Web3.HTTPProvider(
                    settings.rpc_url,
                    request_kwargs={"timeout": settings.timeout_seconds},
                )
            )
        self.w3 = w3
        self._npm_address = Web3.to_checksum_address(settings.npm_address)
        self._compoundor_address = Web3.to_checksum_address(settings.compoundor_address)
        self._npm = self.w3.eth.contract(address=self._npm_address, abi=POSITION_MANAGER_ABI)
        self._factory = self.w3.eth.contract(
            address=Web3.to_checksum_address(settings.factory_address),
            abi=FACTORY_ABI,
        )
        self._topic_increase = Web3.to_hex(Web3.keccak(text=INCREASE_LIQUIDITY_SIGNATURE))
        self._topic_decrease = Web3.to_hex(Web3.keccak(text=DECREASE_LIQUIDITY_SIGNATURE))
        self._topic_collect = Web3.to_hex(Web3.keccak(text=COLLECT_SIGNATURE))

    def get_position(self, *, position_id: int, block_number: int) -> PositionSnapshot:
        row = self._npm.functions.positions(position_id).call(block_identifier=block_number)
        return PositionSnapshot(
            position_id=position_id,
            token0=row[2],
            token1=row[3],
            fee=int(row[4]),
            tick_lower=int(row[5]),
            tick_upper=int(row[6]),
            liquidity=int(row[7]),
            fee_growth_inside0_last_x128=int(row[8]),
            fee_growth_inside1_last_x128=int(row[9]),
        )

    def get_pool_address(self, *, token0: str, token1: str, fee: int, block_number: int) -> str:
        return self._factory.functions.getPool(
            Web3.to_checksum_address(token0),
            Web3.to_checksum_address(token1),
            fee,
        ).call(block_identifier=block_number)

    def get_seconds_inside(
        self,
        *,
        pool_address: str,
        tick_lower: int,
        tick_upper: int,
        block_number: int,
    ) -> int | None:
        pool = self.w3.eth.contract(address=Web3.to_checksum_address(pool_address), abi=POOL_ABI)
        try:
            snapshot = pool.functions.snapshotCumulativesInside(tick_lower, tick_upper).call(
                block_identifier=block_number
            )
        except ContractLogicError as exc:
            # reverts while a tick of the range is not initialized
            logger.warning(
                "web3_chain_client: range_snapshot_reverted pool=%s tick_lower=%s tick_upper=%s block=%s error=%s",
                pool_address,
                tick_lower,
                tick_upper,
                block_number,
                exc,
            )
            return None
        return int(snapshot[2])

    def get_liquidity_events(
        self,
        *,
        position_id: int,
        from_block: int,
        to_block: int,
    ) -> list[LiquidityEvent]:
        if to_block < from_block:
            return []
        logs = self.w3.eth.get_logs(
            {
                "address": self._npm_address,
                "fromBlock": from_block,
                "toBlock": to_block,
                "topics": [
                    [self._topic_increase, self._topic_decrease, self._topic_collect],
                    token_id_topic(position_id),
                ],
            }
        )
        events = [self._decode(log) for log in logs]
        return sorted(events, key=lambda event: (event.block_number, event.log_index))

    def _decode(self, log) -> LiquidityEvent:
        topic0 = Web3.to_hex(log["topics"][0])
        block_number = int(log["blockNumber"])
        log_index = int(log["logIndex"])
        if topic0 == self._topic_increase:
            args = self._npm.events.IncreaseLiquidity().process_log(log)["args"]
            return IncreaseLiquidity(
                block_number=block_number,
                log_index=log_index,
                liquidity=int(args["liquidity"]),
                amount0=int(args["amount0"]),
                amount1=int(args["amount1"]),
            )
        if topic0 == self._topic_decrease:
            args = self._npm.events.DecreaseLiquidity().process_log(log)["args"]
            return DecreaseLiquidity(
                block_number=block_number,
                log_index=log_index,
                liquidity=int(args["liquidity"]),
                amount0=int(args["amount0"]),
                amount1=int(args["amount1"]),
            )
        if topic0 == self._topic_collect:
            args = self._npm.events.Collect().process_log(log)["args"]
            return Collect(
                block_number=block_number,
                log_index=log_index,
                amount0=int(args["amount0"]),
                amount1=int(args["amount1"]),
            )
        raise ValueError(f"Unexpected position manager log topic {topic0}.")

    def get_collectable_fees(self, *, position_id: int, block_number: int) -> FeeAmounts:
        params = {
            "tokenId": position_id,
            "recipient": self._npm_address,
            "amount0Max": MAX_UINT128,
            "amount1Max": MAX_UINT128,
        }
        amount0, amount1 = self._npm.functions.collect(params).call(
            {"from": self._compoundor_address},
            block_identifier=block_number,
        )
        return FeeAmounts(amount0=int(amount0), amount1=int(amount1))

    def get_block_timestamp(self, block_number: int) -> int:
        return int(self.w3.eth.get_block(block_number)["timestamp"])

    def get_token_decimals(self, token: str) -> int:
        contract = self.w3.eth.contract(address=Web3.to_checksum_address(token), abi=ERC20_ABI)
        return int(contract.functions.decimals().call())

    def get_token_symbol(self, token: str) -> str:
        address = Web3.to_checksum_address(token)
        contract = self.w3.eth.contract(address=address, abi=ERC20_ABI)
        try:
            return str(contract.functions.symbol().call())
        except (BadFunctionCallOutput, OverflowError):
            legacy = self.w3.eth.contract(address=address, abi=ERC20_BYTES32_SYMBOL_ABI)
            raw = legacy.functions.symbol().call()
            return bytes(raw).rstrip(b"\x00").decode("utf-8", errors="replace")
