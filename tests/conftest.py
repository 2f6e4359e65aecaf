from __future__ import annotations

import httpx
import pytest
from eth_abi import encode
from web3.exceptions import ContractLogicError

from ledgerlens.cache import TTLCache
from ledgerlens.chain.registry import get_network
from ledgerlens.config import Settings
from ledgerlens.errors import RecordNotFound
from ledgerlens.tokens.constants import DECIMALS_SELECTOR, NAME_SELECTOR, SYMBOL_SELECTOR

GWEI = 10**9

ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
CAROL = "0x" + "c3" * 20
USDC_AVAX = "0xb97ef9ef8734c71904d8002f8b6bc66dd9c48a6e"
TOKEN = "0x" + "70" * 20


def pad_topic(address: str) -> str:
    return "0x" + "0" * 24 + address.removeprefix("0x").lower()


def string_result(value: str) -> bytes:
    return encode(["string"], [value])


def erc20_calls(address: str, name: str, symbol: str, decimals: int) -> dict:
    return {
        (address, NAME_SELECTOR): string_result(name),
        (address, SYMBOL_SELECTOR): string_result(symbol),
        (address, DECIMALS_SELECTOR): encode(["uint8"], [decimals]),
    }


class FakeConnection:
    """In-memory stand-in for LiveConnection.

    ``calls`` maps (address, selector) to return bytes or an exception
    instance; unknown calls revert.
    """

    def __init__(
        self,
        network_id: int = 43114,
        transactions: dict | None = None,
        receipts: dict | None = None,
        blocks: dict | None = None,
        head: int = 1000,
        balances: dict | None = None,
        codes: dict | None = None,
        nonces: dict | None = None,
        calls: dict | None = None,
        gas_price: int = 25 * GWEI,
        base_fee: int = 25 * GWEI,
    ):
        self.network = get_network(network_id)
        self.endpoint = "https://fake.rpc"
        self.prior_failures = []
        self.transactions = transactions or {}
        self.receipts = receipts or {}
        self.blocks = blocks or {}
        self.head = head
        self.balances = balances or {}
        self.codes = codes or {}
        self.nonces = nonces or {}
        self.calls = calls or {}
        self._gas_price = gas_price
        self._base_fee = base_fee
        self.call_log: list[tuple[str, str]] = []
        self.closed = False

    @property
    def network_id(self) -> int:
        return self.network.id

    async def aclose(self) -> None:
        self.closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def get_latest_block_number(self) -> int:
        return self.head

    async def get_block(self, block_number: int, full_transactions: bool = False):
        if block_number not in self.blocks:
            raise RecordNotFound("block", block_number)
        return self.blocks[block_number]

    async def get_transaction(self, tx_hash: str):
        if tx_hash not in self.transactions:
            raise RecordNotFound("transaction", tx_hash)
        return self.transactions[tx_hash]

    async def get_transaction_receipt(self, tx_hash: str):
        if tx_hash not in self.receipts:
            raise RecordNotFound("transaction receipt", tx_hash)
        return self.receipts[tx_hash]

    async def get_balance(self, address: str) -> int:
        return self.balances.get(address.lower(), 0)

    async def get_code(self, address: str) -> bytes:
        return self.codes.get(address.lower(), b"")

    async def get_transaction_count(self, address: str) -> int:
        return self.nonces.get(address.lower(), 0)

    async def call(self, to: str, data: bytes) -> bytes:
        key = (to.lower(), "0x" + data[:4].hex())
        self.call_log.append(key)
        result = self.calls.get(key)
        if result is None:
            raise ContractLogicError("execution reverted")
        if isinstance(result, Exception):
            raise result
        return result

    async def gas_price(self) -> int:
        return self._gas_price

    async def fee_history(self, block_count: int = 20, percentile: float = 50.0) -> dict:
        return {
            "baseFeePerGas": [self._base_fee] * (block_count + 1),
            "reward": [[0]] * block_count,
        }


def price_transport(prices: dict[str, float], fail: bool = False, counter: list | None = None) -> httpx.MockTransport:
    return httpx.MockTransport(price_handler(prices, fail=fail, counter=counter))


def price_handler(prices: dict[str, float], fail: bool = False, counter: list | None = None):
    """CoinGecko + DeFiLlama responses keyed by feed id."""

    def handler(request: httpx.Request) -> httpx.Response:
        if counter is not None:
            counter.append(str(request.url))
        if fail:
            return httpx.Response(503, json={"error": "unavailable"})
        if request.url.path.endswith("/simple/price"):
            feed = request.url.params["ids"]
            if feed not in prices:
                return httpx.Response(200, json={})
            return httpx.Response(200, json={
                feed: {"usd": prices[feed], "usd_24h_change": 1.0, "usd_24h_vol": 5e8, "usd_market_cap": 1e10},
            })
        coin = request.url.path.rsplit("/", 1)[-1]
        feed = coin.removeprefix("coingecko:")
        if feed not in prices:
            return httpx.Response(200, json={"coins": {}})
        return httpx.Response(200, json={"coins": {coin: {"price": prices[feed], "confidence": 0.99}}})

    return handler


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, request_budget_seconds=5.0)


@pytest.fixture
def conn() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def metadata_cache() -> TTLCache:
    return TTLCache(300)
