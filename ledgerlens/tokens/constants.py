"""Event topics, function selectors, well-known tokens and price feed tables."""

from eth_utils import keccak


def event_topic(signature: str) -> str:
    return "0x" + keccak(text=signature).hex()


def function_selector(signature: str) -> str:
    return "0x" + keccak(text=signature)[:4].hex()


ZERO_ADDRESS = "0x" + "0" * 40
NATIVE_TOKEN_ADDRESS = "native"

# Transfer(address indexed from, address indexed to, uint256 value)
# ERC-721 shares the topic; tokenId is indexed, so the log has 4 topics instead of 3.
TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"

# TransferSingle(address indexed operator, address indexed from, address indexed to, uint256 id, uint256 value)
TRANSFER_SINGLE_TOPIC = "0xc3d58168c5ae7397731d063d5bbf3d657854427343f4c083240f7aacaa2d0f62"

# TransferBatch(address indexed operator, address indexed from, address indexed to, uint256[] ids, uint256[] values)
TRANSFER_BATCH_TOPIC = "0x4a39dc06d4c0dbc64b70af90fd698a233a518aa5d07e595d983b8c0526c8f7fb"

# Uniswap V2 Swap(address,uint256,uint256,uint256,uint256,address)
UNISWAP_V2_SWAP_TOPIC = (
    "0xd78ad95fa46c994b6551d0da85fc275fe613ce37657fb8d5e3d130840159d822"
)

# Uniswap V3 Swap(address,address,int256,int256,uint160,uint128,int24)
UNISWAP_V3_SWAP_TOPIC = (
    "0xc42079f94a6350d7e6235f29174924f928cc2ac818eb64fed8004e115fbcca67"
)

# Token metadata getters
NAME_SELECTOR = "0x06fdde03"
SYMBOL_SELECTOR = "0x95d89b41"
DECIMALS_SELECTOR = "0x313ce567"
URI_SELECTOR = "0x0e89341c"  # ERC-1155 uri(uint256)
TRANSFER_SELECTOR = "0xa9059cbb"
BALANCE_OF_SELECTOR = "0x70a08231"

# EIP-1167 minimal proxy runtime prefix
MINIMAL_PROXY_PREFIX = bytes.fromhex("363d3d373d3d3d363d73")

# DeFi functions: name -> signature. Names double as keys into ACTION_NAMES.
DEFI_FUNCTIONS: dict[str, str] = {
    # DEX
    "swapExactTokensForTokens": "swapExactTokensForTokens(uint256,uint256,address[],address,uint256)",
    "swapTokensForExactTokens": "swapTokensForExactTokens(uint256,uint256,address[],address,uint256)",
    "swapExactETHForTokens": "swapExactETHForTokens(uint256,address[],address,uint256)",
    "swapTokensForExactETH": "swapTokensForExactETH(uint256,uint256,address[],address,uint256)",
    "swapExactTokensForETH": "swapExactTokensForETH(uint256,uint256,address[],address,uint256)",
    "swapETHForExactTokens": "swapETHForExactTokens(uint256,address[],address,uint256)",
    "swapExactAVAXForTokens": "swapExactAVAXForTokens(uint256,address[],address,uint256)",
    "swapExactTokensForAVAX": "swapExactTokensForAVAX(uint256,uint256,address[],address,uint256)",
    "exactInputSingle": "exactInputSingle((address,address,uint24,address,uint256,uint256,uint256,uint160))",
    "exactOutputSingle": "exactOutputSingle((address,address,uint24,address,uint256,uint256,uint256,uint160))",
    "exactInput": "exactInput((bytes,address,uint256,uint256,uint256))",
    "pairSwap": "swap(uint256,uint256,address,bytes)",
    "addLiquidity": "addLiquidity(address,address,uint256,uint256,uint256,uint256,address,uint256)",
    "removeLiquidity": "removeLiquidity(address,address,uint256,uint256,uint256,address,uint256)",
    # Lending
    "supply": "supply(address,uint256,address,uint16)",
    "borrow": "borrow(address,uint256,uint256,uint16,address)",
    "repay": "repay(address,uint256,uint256,address)",
    "withdraw": "withdraw(address,uint256,address)",
    "liquidationCall": "liquidationCall(address,address,address,uint256,bool)",
    "borrowCToken": "borrow(uint256)",
    "repayBorrow": "repayBorrow(uint256)",
    # Yield farming
    "stake": "stake(uint256)",
    "unstake": "unstake(uint256)",
    "harvest": "harvest()",
    "getReward": "getReward()",
    "farmDeposit": "deposit(uint256,uint256)",
    # Bridge
    "depositETH": "depositETH(uint32,bytes)",
    "depositERC20": "depositERC20(address,address,uint256,uint32,bytes)",
    "outboundTransfer": "outboundTransfer(address,address,uint256,bytes)",
    "unwrap": "unwrap(uint256,uint256)",
    # Governance
    "castVote": "castVote(uint256,uint8)",
}

DEFI_SELECTORS: dict[str, str] = {
    function_selector(sig): name for name, sig in DEFI_FUNCTIONS.items()
}

# DeFi events: name -> topic0
DEFI_EVENTS: dict[str, str] = {
    "Swap": UNISWAP_V2_SWAP_TOPIC,
    "SwapV3": UNISWAP_V3_SWAP_TOPIC,
    "Mint": event_topic("Mint(address,uint256,uint256)"),
    "Burn": event_topic("Burn(address,uint256,uint256,address)"),
    "Supply": event_topic("Supply(address,address,address,uint256,uint16)"),
    "Borrow": event_topic("Borrow(address,address,address,uint256,uint8,uint256,uint16)"),
    "Repay": event_topic("Repay(address,address,address,uint256,bool)"),
    "Withdraw": event_topic("Withdraw(address,address,address,uint256)"),
    "LiquidationCall": event_topic("LiquidationCall(address,address,address,uint256,uint256,address,bool)"),
    "Staked": event_topic("Staked(address,uint256)"),
    "Withdrawn": event_topic("Withdrawn(address,uint256)"),
    "RewardPaid": event_topic("RewardPaid(address,uint256)"),
}

DEFI_EVENT_NAMES: dict[str, str] = {topic: name for name, topic in DEFI_EVENTS.items()}

ACTION_NAMES: dict[str, str] = {
    "swapExactTokensForTokens": "Token Swap",
    "swapTokensForExactTokens": "Token Swap",
    "swapExactETHForTokens": "Token Swap",
    "swapTokensForExactETH": "Token Swap",
    "swapExactTokensForETH": "Token Swap",
    "swapETHForExactTokens": "Token Swap",
    "swapExactAVAXForTokens": "Token Swap",
    "swapExactTokensForAVAX": "Token Swap",
    "exactInputSingle": "Single Token Swap",
    "exactOutputSingle": "Single Token Swap",
    "exactInput": "Multi-hop Swap",
    "pairSwap": "Token Swap",
    "addLiquidity": "Add Liquidity",
    "removeLiquidity": "Remove Liquidity",
    "supply": "Supply Assets",
    "borrow": "Borrow Assets",
    "borrowCToken": "Borrow Assets",
    "repay": "Repay Loan",
    "repayBorrow": "Repay Loan",
    "withdraw": "Withdraw Assets",
    "liquidationCall": "Liquidation",
    "stake": "Stake Tokens",
    "unstake": "Unstake Tokens",
    "harvest": "Harvest Rewards",
    "getReward": "Harvest Rewards",
    "farmDeposit": "Stake Tokens",
    "depositETH": "Bridge Assets",
    "depositERC20": "Bridge Assets",
    "outboundTransfer": "Bridge Assets",
    "unwrap": "Bridge Assets",
    "castVote": "Governance Vote",
    "Swap": "Token Swap",
    "SwapV3": "Token Swap",
    "Mint": "Add Liquidity",
    "Burn": "Remove Liquidity",
    "Supply": "Supply Assets",
    "Borrow": "Borrow Assets",
    "Repay": "Repay Loan",
    "Withdraw": "Withdraw Assets",
    "LiquidationCall": "Liquidation",
    "Staked": "Stake Tokens",
    "Withdrawn": "Unstake Tokens",
    "RewardPaid": "Harvest Rewards",
}

# Well-known tokens: address -> (symbol, name, decimals). Skips on-chain probing.
KNOWN_TOKENS: dict[int, dict[str, tuple[str, str, int]]] = {
    43114: {
        "0xb31f66aa3c1e785363f0875a1b74e27b85fd66c7": ("WAVAX", "Wrapped AVAX", 18),
        "0xb97ef9ef8734c71904d8002f8b6bc66dd9c48a6e": ("USDC", "USD Coin", 6),
        "0x9702230a8ea53601f5cd2dc00fdbc13d4df4a8c7": ("USDT", "TetherToken", 6),
        "0xa7d7079b0fead91f3e65f86e8915cb59c1a4c664": ("USDC.e", "USD Coin (bridged)", 6),
        "0xd586e7f844cea2f87f50152665bcbc2c279d8d70": ("DAI.e", "Dai Stablecoin (bridged)", 18),
        "0x49d5c2bdffac6ce2bfdb6640f4f80f226bc10bab": ("WETH.e", "Wrapped Ether (bridged)", 18),
        "0x152b9d0fdc40c096757f570a51e494bd4b943e50": ("BTC.b", "Bitcoin (bridged)", 8),
        "0x6e84a6216ea6dacc71ee8e6b0a5b7322eebc0fdd": ("JOE", "JoeToken", 18),
    },
    1: {
        "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2": ("WETH", "Wrapped Ether", 18),
        "0xdac17f958d2ee523a2206206994597c13d831ec7": ("USDT", "Tether USD", 6),
        "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48": ("USDC", "USD Coin", 6),
        "0x6b175474e89094c44da98b954eedeac495271d0f": ("DAI", "Dai Stablecoin", 18),
        "0x2260fac5e5542a773aa44fbcfedf7c193bc2c599": ("WBTC", "Wrapped BTC", 8),
        "0x514910771af9ca656af840dff83e8264ecf986ca": ("LINK", "ChainLink Token", 18),
    },
    42161: {
        "0x82af49447d8a07e3bd95bd0d56f35241523fbab1": ("WETH", "Wrapped Ether", 18),
        "0xfd086bc7cd5c481dcc9c85ebe478a1c0b69fcbb9": ("USDT", "Tether USD", 6),
        "0xaf88d065e77c8cc2239327c5edb3a432268e5831": ("USDC", "USD Coin", 6),
        "0xda10009cbd5d07dd0cecc66161fc93d7c9000da1": ("DAI", "Dai Stablecoin", 18),
    },
    10: {
        "0x4200000000000000000000000000000000000006": ("WETH", "Wrapped Ether", 18),
        "0x94b008aa00579c1307b0ef2c499ad98a8ce58e58": ("USDT", "Tether USD", 6),
        "0x0b2c639c533813f4aa9d7837caf62653d097ff85": ("USDC", "USD Coin", 6),
        "0xda10009cbd5d07dd0cecc66161fc93d7c9000da1": ("DAI", "Dai Stablecoin", 18),
    },
    8453: {
        "0x4200000000000000000000000000000000000006": ("WETH", "Wrapped Ether", 18),
        "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913": ("USDC", "USD Coin", 6),
        "0x50c5725949a6f0c72e6c4a641f24049a917db0cb": ("DAI", "Dai Stablecoin", 18),
    },
    137: {
        "0x0d500b1d8e8ef31e21c99d1db9a6444d3adf1270": ("WMATIC", "Wrapped Matic", 18),
        "0xc2132d05d31c914a87c6611c10748aeb04b58e8f": ("USDT", "Tether USD", 6),
        "0x2791bca1f2de4661ed88a30c99a7a9449aa84174": ("USDC.e", "USD Coin (PoS)", 6),
        "0x8f3cf7ad23cd3cadbd9735aff958023239c6a063": ("DAI", "Dai Stablecoin", 18),
    },
}

# Symbols with external price feeds: symbol -> CoinGecko id.
# DeFiLlama accepts the same ids as "coingecko:<id>".
PRICE_FEEDS: dict[str, str] = {
    "AVAX": "avalanche-2",
    "WAVAX": "avalanche-2",
    "ETH": "ethereum",
    "WETH": "ethereum",
    "WETH.E": "ethereum",
    "BTC": "bitcoin",
    "WBTC": "wrapped-bitcoin",
    "BTC.B": "bitcoin",
    "USDC": "usd-coin",
    "USDC.E": "usd-coin",
    "USDT": "tether",
    "USDT.E": "tether",
    "DAI": "dai",
    "DAI.E": "dai",
    "MATIC": "matic-network",
    "WMATIC": "matic-network",
    "JOE": "joe",
    "LINK": "chainlink",
}

# Reference USD prices used only when every live source fails.
FALLBACK_PRICES: dict[str, float] = {
    "AVAX": 25.0,
    "WAVAX": 25.0,
    "ETH": 2400.0,
    "WETH": 2400.0,
    "WETH.E": 2400.0,
    "BTC": 45000.0,
    "WBTC": 45000.0,
    "BTC.B": 45000.0,
    "USDC": 1.0,
    "USDC.E": 1.0,
    "USDT": 1.0,
    "USDT.E": 1.0,
    "DAI": 1.0,
    "DAI.E": 1.0,
    "MATIC": 0.5,
    "WMATIC": 0.5,
}
