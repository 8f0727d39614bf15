"""Minimal ABIs for the Uniswap v3 contracts the reward run reads."""

INCREASE_LIQUIDITY_SIGNATURE = "IncreaseLiquidity(uint256,uint128,uint256,uint256)"
DECREASE_LIQUIDITY_SIGNATURE = "DecreaseLiquidity(uint256,uint128,uint256,uint256)"
COLLECT_SIGNATURE = "Collect(uint256,address,uint256,uint256)"


def _liquidity_event(name: str) -> dict:
    return {
        "anonymous": False,
        "name": name,
        "type": "event",
        "inputs": [
            {"indexed": True, "name": "tokenId", "type": "uint256"},
            {"indexed": False, "name": "liquidity", "type": "uint128"},
            {"indexed": False, "name": "amount0", "type": "uint256"},
            {"indexed": False, "name": "amount1", "type": "uint256"},
        ],
    }


POSITION_MANAGER_ABI = [
    {
        "name": "positions",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "outputs": [
            {"name": "nonce", "type": "uint96"},
            {"name": "operator", "type": "address"},
            {"name": "token0", "type": "address"},
            {"name": "token1", "type": "address"},
            {"name": "fee", "type": "uint24"},
            {"name": "tickLower", "type": "int24"},
            {"name": "tickUpper", "type": "int24"},
            {"name": "liquidity", "type": "uint128"},
            {"name": "feeGrowthInside0LastX128", "type": "uint256"},
            {"name": "feeGrowthInside1LastX128", "type": "uint256"},
            {"name": "tokensOwed0", "type": "uint128"},
            {"name": "tokensOwed1", "type": "uint128"},
        ],
    },
    {
        "name": "collect",
        "type": "function",
        "stateMutability": "payable",
        "inputs": [
            {
                "name": "params",
                "type": "tuple",
                "components": [
                    {"name": "tokenId", "type": "uint256"},
                    {"name": "recipient", "type": "address"},
                    {"name": "amount0Max", "type": "uint128"},
                    {"name": "amount1Max", "type": "uint128"},
                ],
            }
        ],
        "outputs": [
            {"name": "amount0", "type": "uint256"},
            {"name": "amount1", "type": "uint256"},
        ],
    },
    _liquidity_event("IncreaseLiquidity"),
    _liquidity_event("DecreaseLiquidity"),
    {
        "anonymous": False,
        "name": "Collect",
        "type": "event",
        "inputs": [
            {"indexed": True, "name": "tokenId", "type": "uint256"},
            {"indexed": False, "name": "recipient", "type": "address"},
            {"indexed": False, "name": "amount0", "type": "uint256"},
            {"indexed": False, "name": "amount1", "type": "uint256"},
        ],
    },
]

FACTORY_ABI = [
    {
        "name": "getPool",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "tokenA", "type": "address"},
            {"name": "tokenB", "type": "address"},
            {"name": "fee", "type": "uint24"},
        ],
        "outputs": [{"name": "pool", "type": "address"}],
    }
]

POOL_ABI = [
    {
        "name": "snapshotCumulativesInside",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "tickLower", "type": "int24"},
            {"name": "tickUpper", "type": "int24"},
        ],
        "outputs": [
            {"name": "tickCumulativeInside", "type": "int56"},
            {"name": "secondsPerLiquidityInsideX128", "type": "uint160"},
            {"name": "secondsInside", "type": "uint32"},
        ],
    }
]

ERC20_ABI = [
    {
        "name": "decimals",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}],
    },
    {
        "name": "symbol",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
    },
]

# Some early tokens (MKR, SAI) return bytes32 symbols.
ERC20_BYTES32_SYMBOL_ABI = [
    {
        "name": "symbol",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "bytes32"}],
    }
]
