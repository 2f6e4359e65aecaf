"""Centralized configuration via pydantic-settings. All secrets from .env."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from ledgerlens.chain.registry import NetworkDescriptor


PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_network_id: int = 43114

    # Per-network RPC overrides, tried before the built-in endpoints
    avalanche_rpc_urls: list[str] = Field(default_factory=list)
    fuji_rpc_urls: list[str] = Field(default_factory=list)
    ethereum_rpc_urls: list[str] = Field(default_factory=list)
    arbitrum_rpc_urls: list[str] = Field(default_factory=list)
    optimism_rpc_urls: list[str] = Field(default_factory=list)
    base_rpc_urls: list[str] = Field(default_factory=list)
    polygon_rpc_urls: list[str] = Field(default_factory=list)
    infura_api_key: str = ""

    rpc_attempt_timeout: float = 5.0
    rpc_request_timeout: float = 15.0

    # Price sources
    coingecko_api_key: str = ""
    price_http_timeout: float = 10.0

    # Cache lifetimes (seconds)
    token_metadata_ttl: float = 300.0
    price_ttl: float = 60.0
    gas_ttl: float = 30.0

    # Risk thresholds
    large_value_usd: float = 100_000.0
    high_gas_multiplier: float = 3.0

    # Request shaping
    request_budget_seconds: float = 30.0
    block_detail_limit: int = 10
    max_concurrent: int = 10

    log_level: str = "INFO"

    def rpc_endpoints(self, network: NetworkDescriptor) -> list[str]:
        """Ordered endpoint list for a network: overrides, built-ins, then Infura."""
        overrides = {
            43114: self.avalanche_rpc_urls,
            43113: self.fuji_rpc_urls,
            1: self.ethereum_rpc_urls,
            42161: self.arbitrum_rpc_urls,
            10: self.optimism_rpc_urls,
            8453: self.base_rpc_urls,
            137: self.polygon_rpc_urls,
        }
        urls = list(overrides.get(network.id, [])) + list(network.rpc_urls)
        if network.infura_slug and self.infura_api_key:
            urls.append(f"https://{network.infura_slug}.infura.io/v3/{self.infura_api_key}")
        # Keep first occurrence order
        return list(dict.fromkeys(urls))


@lru_cache
def get_settings() -> Settings:
    return Settings()
