"""Resolve token contracts to name / symbol / decimals / standard."""

from __future__ import annotations

import logging

from ledgerlens.cache import TTLCache
from ledgerlens.chain.capabilities import probe_call, probe_string
from ledgerlens.chain.registry import NetworkDescriptor
from ledgerlens.models.schema import TokenMetadata, TokenStandard
from ledgerlens.tokens.constants import (
    DECIMALS_SELECTOR,
    KNOWN_TOKENS,
    NAME_SELECTOR,
    NATIVE_TOKEN_ADDRESS,
    SYMBOL_SELECTOR,
    URI_SELECTOR,
)

logger = logging.getLogger(__name__)


def unknown_token(address: str) -> TokenMetadata:
    return TokenMetadata(address=address.lower())


def native_token(network: NetworkDescriptor) -> TokenMetadata:
    return TokenMetadata(
        address=NATIVE_TOKEN_ADDRESS,
        name=network.native_name,
        symbol=network.native_symbol,
        decimals=network.native_decimals,
        standard=TokenStandard.NATIVE,
    )


class TokenMetadataResolver:
    """Cache-first token metadata lookup.

    On a miss, probes in order ERC-20 (name, symbol, decimals), ERC-721
    (name, symbol), ERC-1155 (``uri(1)``). A failed probe never stops the
    next one; if all fail the Unknown sentinel is returned, so ``resolve``
    never raises.
    """

    def __init__(self, cache: TTLCache[TokenMetadata]):
        self.cache = cache

    async def resolve(self, address: str, connection) -> TokenMetadata:
        address = address.lower()
        key = (connection.network_id, address)

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        known = KNOWN_TOKENS.get(connection.network_id, {}).get(address)
        if known:
            symbol, name, decimals = known
            metadata = TokenMetadata(
                address=address, name=name, symbol=symbol, decimals=decimals,
                standard=TokenStandard.ERC20,
            )
        else:
            try:
                metadata, conclusive = await self._probe(address, connection)
            except Exception as exc:
                logger.debug(f"Metadata probe for {address} failed: {exc}")
                metadata, conclusive = unknown_token(address), False
            # A sentinel caused by transport errors is not cached
            if not conclusive:
                return metadata

        self.cache.set(key, metadata)
        return metadata

    async def _probe(self, address: str, connection) -> tuple[TokenMetadata, bool]:
        name = await probe_string(connection, address, NAME_SELECTOR)
        symbol = await probe_string(connection, address, SYMBOL_SELECTOR)
        decimals = await probe_call(connection, address, DECIMALS_SELECTOR, ("uint8",))

        if name.supported and symbol.supported and decimals.supported:
            return TokenMetadata(
                address=address,
                name=name.value or "Unknown Token",
                symbol=symbol.value or "UNKNOWN",
                decimals=int(decimals.value),
                standard=TokenStandard.ERC20,
            ), True

        # ERC-721 collections expose name/symbol but no decimals
        if name.supported and symbol.supported:
            return TokenMetadata(
                address=address,
                name=name.value or "Unknown NFT",
                symbol=symbol.value or "NFT",
                decimals=0,
                standard=TokenStandard.ERC721,
            ), True

        uri = await probe_call(connection, address, URI_SELECTOR, ("string",), ("uint256",), (1,))
        if uri.supported:
            return TokenMetadata(
                address=address,
                name="Multi-Token",
                symbol="ERC1155",
                decimals=0,
                standard=TokenStandard.ERC1155,
            ), True

        logger.debug(
            f"No token interface detected at {address}: "
            f"name={name.capability.value}, symbol={symbol.capability.value}, uri={uri.reason}"
        )
        conclusive = all(not p.errored for p in (name, symbol, decimals, uri))
        return unknown_token(address), conclusive
