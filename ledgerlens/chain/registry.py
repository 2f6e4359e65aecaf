"""Network registry mapping chain id to its descriptor."""

from dataclasses import dataclass


@dataclass(frozen=True)
class NetworkDescriptor:
    id: int
    name: str
    short_name: str
    native_name: str
    native_symbol: str
    rpc_urls: tuple[str, ...]
    explorer_url: str
    native_decimals: int = 18
    is_poa: bool = False
    # Network gas price (gwei) below low is "Low" congestion, at or above high is "High"
    congestion_gwei: tuple[float, float] = (2.0, 10.0)
    infura_slug: str = ""

    def tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer_url}/tx/{tx_hash}"

    def block_url(self, number: int) -> str:
        return f"{self.explorer_url}/block/{number}"

    def address_url(self, address: str) -> str:
        return f"{self.explorer_url}/address/{address}"


NETWORKS: dict[int, NetworkDescriptor] = {
    43114: NetworkDescriptor(
        id=43114,
        name="Avalanche C-Chain",
        short_name="avalanche",
        native_name="Avalanche",
        native_symbol="AVAX",
        rpc_urls=(
            "https://api.avax.network/ext/bc/C/rpc",
            "https://avalanche-c-chain-rpc.publicnode.com",
            "https://rpc.ankr.com/avalanche",
        ),
        explorer_url="https://snowtrace.io",
        is_poa=True,
        congestion_gwei=(2.0, 10.0),
        infura_slug="avalanche-mainnet",
    ),
    43113: NetworkDescriptor(
        id=43113,
        name="Avalanche Fuji Testnet",
        short_name="fuji",
        native_name="Avalanche",
        native_symbol="AVAX",
        rpc_urls=(
            "https://api.avax-test.network/ext/bc/C/rpc",
            "https://avalanche-fuji-c-chain-rpc.publicnode.com",
        ),
        explorer_url="https://testnet.snowtrace.io",
        is_poa=True,
        congestion_gwei=(2.0, 10.0),
        infura_slug="avalanche-fuji",
    ),
    1: NetworkDescriptor(
        id=1,
        name="Ethereum",
        short_name="ethereum",
        native_name="Ether",
        native_symbol="ETH",
        rpc_urls=(
            "https://ethereum-rpc.publicnode.com",
            "https://rpc.ankr.com/eth",
            "https://cloudflare-eth.com",
        ),
        explorer_url="https://etherscan.io",
        congestion_gwei=(15.0, 50.0),
        infura_slug="mainnet",
    ),
    42161: NetworkDescriptor(
        id=42161,
        name="Arbitrum One",
        short_name="arbitrum",
        native_name="Ether",
        native_symbol="ETH",
        rpc_urls=("https://arb1.arbitrum.io/rpc", "https://arbitrum-one-rpc.publicnode.com"),
        explorer_url="https://arbiscan.io",
        is_poa=True,
        congestion_gwei=(0.1, 1.0),
        infura_slug="arbitrum-mainnet",
    ),
    10: NetworkDescriptor(
        id=10,
        name="Optimism",
        short_name="optimism",
        native_name="Ether",
        native_symbol="ETH",
        rpc_urls=("https://mainnet.optimism.io", "https://optimism-rpc.publicnode.com"),
        explorer_url="https://optimistic.etherscan.io",
        is_poa=True,
        congestion_gwei=(0.01, 0.1),
        infura_slug="optimism-mainnet",
    ),
    8453: NetworkDescriptor(
        id=8453,
        name="Base",
        short_name="base",
        native_name="Ether",
        native_symbol="ETH",
        rpc_urls=("https://mainnet.base.org", "https://base-rpc.publicnode.com"),
        explorer_url="https://basescan.org",
        is_poa=True,
        congestion_gwei=(0.01, 0.1),
        infura_slug="base-mainnet",
    ),
    137: NetworkDescriptor(
        id=137,
        name="Polygon PoS",
        short_name="polygon",
        native_name="Polygon",
        native_symbol="MATIC",
        rpc_urls=("https://polygon-rpc.com", "https://polygon-bor-rpc.publicnode.com"),
        explorer_url="https://polygonscan.com",
        is_poa=True,
        congestion_gwei=(50.0, 200.0),
        infura_slug="polygon-mainnet",
    ),
}

NETWORK_NAME_TO_ID: dict[str, int] = {n.short_name: n.id for n in NETWORKS.values()}


def get_network(network_id: int) -> NetworkDescriptor:
    if network_id not in NETWORKS:
        raise ValueError(f"Unknown network_id={network_id}. Supported: {list(NETWORKS.keys())}")
    return NETWORKS[network_id]


def resolve_network(name_or_id: str | int) -> NetworkDescriptor:
    """Resolve a network short name or ID to its descriptor."""
    if isinstance(name_or_id, int):
        return get_network(name_or_id)
    name = str(name_or_id).lower()
    if name.isdigit():
        return get_network(int(name))
    if name not in NETWORK_NAME_TO_ID:
        raise ValueError(f"Unknown network '{name}'. Supported: {list(NETWORK_NAME_TO_ID.keys())}")
    return get_network(NETWORK_NAME_TO_ID[name])


def all_networks() -> list[NetworkDescriptor]:
    return list(NETWORKS.values())
