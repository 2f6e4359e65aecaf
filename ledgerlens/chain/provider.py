"""Async EVM connections with ordered endpoint failover, using web3.py 7.x."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from web3 import AsyncWeb3, AsyncHTTPProvider
from web3.exceptions import BlockNotFound, TransactionNotFound
from web3.middleware import ExtraDataToPOAMiddleware

from ledgerlens.config import Settings, get_settings
from ledgerlens.chain.registry import NetworkDescriptor, get_network
from ledgerlens.errors import EndpointExhausted, EndpointFailure, RecordNotFound

logger = logging.getLogger(__name__)


def web3_for_endpoint(url: str, network: NetworkDescriptor, request_timeout: float) -> AsyncWeb3:
    w3 = AsyncWeb3(AsyncHTTPProvider(url, request_kwargs={"timeout": request_timeout}))
    if network.is_poa:
        w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    return w3


async def disconnect(w3: AsyncWeb3) -> None:
    """Close the provider's HTTP session. Errors are logged, not raised."""
    try:
        await w3.provider.disconnect()
    except Exception as exc:
        logger.debug(f"Disconnect failed: {exc}")


class LiveConnection:
    """A web3 handle on one endpoint that answered its liveness check."""

    def __init__(
        self,
        network: NetworkDescriptor,
        w3: AsyncWeb3,
        endpoint: str,
        prior_failures: list[EndpointFailure] | None = None,
    ):
        self.network = network
        self.w3 = w3
        self.endpoint = endpoint
        self.prior_failures = list(prior_failures or [])

    @property
    def network_id(self) -> int:
        return self.network.id

    async def aclose(self) -> None:
        await disconnect(self.w3)

    async def __aenter__(self) -> LiveConnection:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _checksum(self, address: str) -> str:
        return self.w3.to_checksum_address(address)

    async def get_latest_block_number(self) -> int:
        return await self.w3.eth.block_number

    async def get_block(self, block_number: int, full_transactions: bool = False):
        try:
            return await self.w3.eth.get_block(block_number, full_transactions=full_transactions)
        except BlockNotFound as exc:
            raise RecordNotFound("block", block_number) from exc

    async def get_transaction(self, tx_hash: str):
        try:
            return await self.w3.eth.get_transaction(tx_hash)
        except TransactionNotFound as exc:
            raise RecordNotFound("transaction", tx_hash) from exc

    async def get_transaction_receipt(self, tx_hash: str):
        try:
            return await self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound as exc:
            raise RecordNotFound("transaction receipt", tx_hash) from exc

    async def get_balance(self, address: str) -> int:
        """Balance in base units (wei)."""
        return await self.w3.eth.get_balance(self._checksum(address))

    async def get_code(self, address: str) -> bytes:
        return bytes(await self.w3.eth.get_code(self._checksum(address)))

    async def get_transaction_count(self, address: str) -> int:
        return await self.w3.eth.get_transaction_count(self._checksum(address))

    async def call(self, to: str, data: bytes) -> bytes:
        result = await self.w3.eth.call({"to": self._checksum(to), "data": "0x" + data.hex()})
        return bytes(result)

    async def gas_price(self) -> int:
        return await self.w3.eth.gas_price

    async def fee_history(self, block_count: int = 20, percentile: float = 50.0) -> dict:
        return await self.w3.eth.fee_history(block_count, "latest", [percentile])


class EndpointPool:
    """Acquire a live connection by trying a network's endpoints in order.

    Endpoints are tried sequentially, each bounded by ``rpc_attempt_timeout``,
    and none is retried within one acquisition. No connection outlives the
    request that acquired it: callers close it with ``aclose()`` or
    use it as an async context manager.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        connect: Callable[[str, NetworkDescriptor], AsyncWeb3] | None = None,
    ):
        self.settings = settings or get_settings()
        self._connect = connect or (
            lambda url, network: web3_for_endpoint(url, network, self.settings.rpc_request_timeout)
        )

    async def acquire(self, network_id: int) -> LiveConnection:
        network = get_network(network_id)
        failures: list[EndpointFailure] = []

        for url in self.settings.rpc_endpoints(network):
            logger.debug(f"Trying RPC {url} for network {network_id}")
            w3 = None
            try:
                w3 = self._connect(url, network)
                chain_id = await asyncio.wait_for(w3.eth.chain_id, timeout=self.settings.rpc_attempt_timeout)
            except asyncio.TimeoutError:
                reason = f"timed out after {self.settings.rpc_attempt_timeout}s"
            except Exception as exc:
                reason = f"{type(exc).__name__}: {exc}"
            else:
                if chain_id == network.id:
                    if failures:
                        logger.info(f"Connected to {url} after {len(failures)} failed endpoint(s)")
                    else:
                        logger.debug(f"Connected to {url}, chain id {chain_id}")
                    return LiveConnection(network, w3, url, prior_failures=failures)
                reason = f"chain id mismatch: expected {network.id}, got {chain_id}"

            if w3 is not None:
                await disconnect(w3)
            logger.warning(f"RPC {url} failed: {reason}")
            failures.append(EndpointFailure(url=url, reason=reason))

        raise EndpointExhausted(network_id, failures)
