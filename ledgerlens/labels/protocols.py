"""Hardcoded known DeFi protocols and per-category analysis text."""

from __future__ import annotations

from dataclasses import dataclass

from ledgerlens.models.schema import ProtocolCategory, RiskLevel

DEX = ProtocolCategory.DEX
LENDING = ProtocolCategory.LENDING
YIELD = ProtocolCategory.YIELD_FARMING
BRIDGE = ProtocolCategory.BRIDGE
STAKING = ProtocolCategory.STAKING


@dataclass(frozen=True)
class KnownProtocol:
    name: str
    category: ProtocolCategory
    description: str
    verified: bool = True
    risk_level: RiskLevel = RiskLevel.LOW


_UNISWAP_V3_ROUTER = KnownProtocol("Uniswap V3 Router", DEX, "Automated Market Maker with concentrated liquidity")
_UNISWAP_V3_ROUTER2 = KnownProtocol("Uniswap V3 Router 2", DEX, "Automated Market Maker with concentrated liquidity")
_SUSHISWAP = KnownProtocol("SushiSwap Router", DEX, "Constant-product AMM router")
_AAVE_V3 = KnownProtocol("Aave V3 Pool", LENDING, "Over-collateralized money market")

# address -> KnownProtocol
KNOWN_PROTOCOLS: dict[int, dict[str, KnownProtocol]] = {
    43114: {
        "0x60ae616a2155ee3d9a68541ba4544862310933d4": KnownProtocol("Trader Joe Router", DEX, "Constant-product AMM router"),
        "0xb4315e873dbcf96ffd0acd8ea43f689d8c20fb30": KnownProtocol("Trader Joe LB Router", DEX, "Liquidity Book AMM with discretized bins"),
        "0xe54ca86531e17ef3616d22ca28b0d458b6c89106": KnownProtocol("Pangolin Router", DEX, "Constant-product AMM router"),
        "0x794a61358d6845594f94dc1db02a252b5b4814ad": _AAVE_V3,
        "0x486af39519b4dc9a7fccd318217352830e8ad9b4": KnownProtocol("Benqi Comptroller", LENDING, "Algorithmic money market"),
        "0x2b2c81e08f1af8835a78bb2a90ae924ace0ea4be": KnownProtocol("Benqi sAVAX", STAKING, "Liquid staking for AVAX"),
    },
    1: {
        "0x7a250d5630b4cf539739df2c5dacb4c659f2488d": KnownProtocol("Uniswap V2 Router", DEX, "Constant-product AMM router"),
        "0xe592427a0aece92de3edee1f18e0157c05861564": _UNISWAP_V3_ROUTER,
        "0x68b3465833fb72a70ecdf485e0e4c7bd8665fc45": _UNISWAP_V3_ROUTER2,
        "0xef1c6e67703c7bd7107eed8303fbe6ec2554bf6b": KnownProtocol("Uniswap Universal Router", DEX, "Aggregating swap router"),
        "0x3fc91a3afd70395cd496c647d5a6cc9d4b2b7fad": KnownProtocol("Uniswap Universal Router V2", DEX, "Aggregating swap router"),
        "0x1f98431c8ad98523631ae4a59f267346ea31f984": KnownProtocol("Uniswap V3", DEX, "Automated Market Maker with concentrated liquidity"),
        "0xd9e1ce17f2641f24ae83637ab66a2cca9c378b9f": _SUSHISWAP,
        "0x87870bca3f3fd6335c3f4ce8392d69350b4fa4e2": _AAVE_V3,
        "0xae7ab96520de3a18e5e111b5eaab095312d7fe84": KnownProtocol("Lido stETH", STAKING, "Liquid staking for ETH"),
        "0x40ec5b33f54e0e8a33a975908c5ba1c14e5bbbdf": KnownProtocol("Polygon Bridge", BRIDGE, "Ethereum to Polygon asset bridge", risk_level=RiskLevel.MEDIUM),
        "0xa3a7b6f88361f48403514059f1f16c8e78d60eec": KnownProtocol("Arbitrum Bridge", BRIDGE, "Ethereum to Arbitrum asset bridge", risk_level=RiskLevel.MEDIUM),
        "0x99c9fc46f92e8a1c0dec1b1747d010903e884be1": KnownProtocol("Optimism Bridge", BRIDGE, "Ethereum to Optimism asset bridge", risk_level=RiskLevel.MEDIUM),
    },
    42161: {
        "0xe592427a0aece92de3edee1f18e0157c05861564": _UNISWAP_V3_ROUTER,
        "0x68b3465833fb72a70ecdf485e0e4c7bd8665fc45": _UNISWAP_V3_ROUTER2,
        "0x1b02da8cb0d097eb8d57a175b88c7d8b47997506": _SUSHISWAP,
        "0x794a61358d6845594f94dc1db02a252b5b4814ad": _AAVE_V3,
    },
    10: {
        "0xe592427a0aece92de3edee1f18e0157c05861564": _UNISWAP_V3_ROUTER,
        "0x68b3465833fb72a70ecdf485e0e4c7bd8665fc45": _UNISWAP_V3_ROUTER2,
        "0x794a61358d6845594f94dc1db02a252b5b4814ad": _AAVE_V3,
    },
    8453: {
        "0x2626664c2603336e57b271c5c0b26f421741e481": _UNISWAP_V3_ROUTER2,
    },
    137: {
        "0xe592427a0aece92de3edee1f18e0157c05861564": _UNISWAP_V3_ROUTER,
        "0x1b02da8cb0d097eb8d57a175b88c7d8b47997506": _SUSHISWAP,
        "0xa5e0829caced8ffdd4de3c43696c57f7d7a678ff": KnownProtocol("QuickSwap Router", DEX, "Constant-product AMM router"),
        "0x794a61358d6845594f94dc1db02a252b5b4814ad": _AAVE_V3,
    },
}


def get_protocol(network_id: int, address: str) -> KnownProtocol | None:
    return KNOWN_PROTOCOLS.get(network_id, {}).get(address.lower())


# Bytecode probes for unknown contracts, in priority order. Names index DEFI_FUNCTIONS.
HEURISTIC_PROBES: list[tuple[ProtocolCategory, tuple[str, ...]]] = [
    (DEX, ("swapExactTokensForTokens", "swapExactETHForTokens", "exactInputSingle", "exactInput", "pairSwap")),
    (LENDING, ("supply", "borrow", "borrowCToken", "repayBorrow", "liquidationCall")),
    (YIELD, ("stake", "harvest", "getReward", "farmDeposit")),
    (BRIDGE, ("depositETH", "depositERC20", "outboundTransfer", "unwrap")),
]

# Protocol fee in percent of notional
PROTOCOL_FEES: dict[ProtocolCategory, float] = {
    DEX: 0.3,
    LENDING: 0.0,
    YIELD: 0.1,
}

PURPOSES: dict[ProtocolCategory, dict[str, str]] = {
    DEX: {
        "Token Swap": "Exchange one token for another at current market rates",
        "Single Token Swap": "Perform concentrated liquidity swap with precise control",
        "Add Liquidity": "Deposit a token pair into a pool to earn trading fees",
        "Remove Liquidity": "Withdraw a token pair from a liquidity pool",
        "default": "Interact with decentralized exchange protocol",
    },
    LENDING: {
        "Supply Assets": "Provide liquidity to earn interest",
        "Borrow Assets": "Take a loan against collateral",
        "Repay Loan": "Repay borrowed assets to unlock collateral",
        "Withdraw Assets": "Remove supplied assets from lending pool",
        "Liquidation": "Repay an undercollateralized position in exchange for its collateral",
        "default": "Interact with lending protocol",
    },
    YIELD: {
        "Stake Tokens": "Lock tokens to earn rewards",
        "Unstake Tokens": "Unlock staked tokens and claim rewards",
        "Harvest Rewards": "Claim accumulated farming rewards",
        "default": "Participate in yield farming",
    },
    BRIDGE: {
        "Bridge Assets": "Move assets to another chain",
        "default": "Interact with cross-chain bridge",
    },
    STAKING: {
        "Stake Tokens": "Stake native currency for a liquid staking token",
        "default": "Interact with liquid staking protocol",
    },
}

CATEGORY_RISKS: dict[ProtocolCategory, list[str]] = {
    DEX: ["Slippage risk", "MEV exposure", "Price impact"],
    LENDING: ["Liquidation risk", "Interest rate changes", "Bad debt risk"],
    YIELD: ["Impermanent loss", "Token devaluation", "Farming token volatility"],
    BRIDGE: ["Cross-chain risk", "Validator risk", "Bridge security"],
    STAKING: ["Validator slashing", "Liquid token depeg"],
}

CATEGORY_OPPORTUNITIES: dict[ProtocolCategory, list[str]] = {
    DEX: ["Arbitrage potential", "Better price discovery", "MEV capture"],
    LENDING: ["Passive income generation", "Capital efficiency", "Leverage opportunities"],
    YIELD: ["High yield potential", "Token rewards", "Governance participation"],
    BRIDGE: ["Cross-chain capital efficiency", "New market access"],
    STAKING: ["Staking rewards while staying liquid"],
}

CATEGORY_RECOMMENDATIONS: dict[ProtocolCategory, list[str]] = {
    DEX: ["Monitor slippage tolerance", "Consider breaking large trades into smaller parts"],
    LENDING: ["Monitor health factor to avoid liquidation", "Diversify across multiple protocols"],
    YIELD: [
        "Understand impermanent loss risks",
        "Monitor farming token emissions",
        "Consider exit strategy for rewards",
    ],
    BRIDGE: ["Confirm the destination address and chain before bridging"],
}
