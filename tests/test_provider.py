import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from ledgerlens.chain.provider import EndpointPool
from ledgerlens.chain.registry import get_network, resolve_network
from ledgerlens.config import Settings
from ledgerlens.errors import EndpointExhausted


async def _answer(value):
    return value


async def _fail(exc):
    raise exc


async def _hang():
    await asyncio.sleep(10)


def fake_connect(behaviour: dict):
    """url -> chain id, exception, or "hang"; unknown urls refuse connections.

    Every web3 stand-in handed out is kept in ``connect.created`` by url.
    """
    attempted = []

    def connect(url, network):
        attempted.append(url)
        outcome = behaviour.get(url, ConnectionError("connection refused"))
        if outcome == "hang":
            chain_id = _hang()
        elif isinstance(outcome, Exception):
            chain_id = _fail(outcome)
        else:
            chain_id = _answer(outcome)
        w3 = SimpleNamespace(eth=SimpleNamespace(chain_id=chain_id), provider=SimpleNamespace(disconnect=AsyncMock()))
        connect.created[url] = w3
        return w3

    connect.created = {}
    return connect, attempted


def make_settings(**kwargs) -> Settings:
    return Settings(_env_file=None, rpc_attempt_timeout=0.05, **kwargs)


@pytest.mark.asyncio
async def test_first_live_endpoint_wins():
    settings = make_settings(avalanche_rpc_urls=["https://primary", "https://secondary"])
    connect, attempted = fake_connect({"https://primary": 43114, "https://secondary": 43114})

    conn = await EndpointPool(settings, connect=connect).acquire(43114)

    assert conn.endpoint == "https://primary"
    assert conn.network_id == 43114
    assert conn.prior_failures == []
    assert attempted == ["https://primary"]


@pytest.mark.asyncio
async def test_failover_records_prior_failures_in_order():
    settings = make_settings(avalanche_rpc_urls=["https://down", "https://slow", "https://wrong", "https://ok"])
    connect, attempted = fake_connect({
        "https://slow": "hang",
        "https://wrong": 1,
        "https://ok": 43114,
    })

    conn = await EndpointPool(settings, connect=connect).acquire(43114)

    assert conn.endpoint == "https://ok"
    assert [f.url for f in conn.prior_failures] == ["https://down", "https://slow", "https://wrong"]
    assert "ConnectionError" in conn.prior_failures[0].reason
    assert "timed out" in conn.prior_failures[1].reason
    assert "chain id mismatch" in conn.prior_failures[2].reason
    assert attempted == ["https://down", "https://slow", "https://wrong", "https://ok"]


@pytest.mark.asyncio
async def test_all_endpoints_failing_raises_exhausted():
    settings = make_settings(fuji_rpc_urls=["https://custom-fuji"])
    connect, attempted = fake_connect({})

    with pytest.raises(EndpointExhausted) as excinfo:
        await EndpointPool(settings, connect=connect).acquire(43113)

    expected = settings.rpc_endpoints(get_network(43113))
    assert [f.url for f in excinfo.value.failures] == expected
    assert attempted == expected
    assert excinfo.value.network_id == 43113
    assert "https://custom-fuji" in str(excinfo.value)


def test_endpoint_order_dedupes_and_appends_infura():
    settings = Settings(
        _env_file=None,
        ethereum_rpc_urls=["https://rpc.ankr.com/eth", "https://mine"],
        infura_api_key="KEY",
    )
    urls = settings.rpc_endpoints(get_network(1))
    assert urls[:2] == ["https://rpc.ankr.com/eth", "https://mine"]
    assert len(urls) == len(set(urls))
    assert urls[-1] == "https://mainnet.infura.io/v3/KEY"


def test_unknown_network_is_rejected():
    with pytest.raises(ValueError):
        get_network(999999)
    with pytest.raises(ValueError):
        resolve_network("dogechain")
    assert resolve_network("avalanche").id == 43114
    assert resolve_network("10").short_name == "optimism"


@pytest.mark.asyncio
async def test_two_hung_endpoints_then_live_one():
    settings = make_settings(avalanche_rpc_urls=["https://one", "https://two", "https://three"])
    connect, _ = fake_connect({"https://one": "hang", "https://two": "hang", "https://three": 43114})

    conn = await EndpointPool(settings, connect=connect).acquire(43114)

    assert conn.endpoint == "https://three"
    assert len(conn.prior_failures) == 2
    assert all("timed out" in f.reason for f in conn.prior_failures)


@pytest.mark.asyncio
async def test_failed_endpoints_are_disconnected_and_live_one_closes_on_exit():
    settings = make_settings(avalanche_rpc_urls=["https://slow", "https://wrong", "https://ok"])
    connect, _ = fake_connect({"https://slow": "hang", "https://wrong": 1, "https://ok": 43114})

    conn = await EndpointPool(settings, connect=connect).acquire(43114)

    connect.created["https://slow"].provider.disconnect.assert_awaited_once()
    connect.created["https://wrong"].provider.disconnect.assert_awaited_once()
    live = connect.created["https://ok"].provider.disconnect
    live.assert_not_awaited()

    async with conn:
        pass
    live.assert_awaited_once()


@pytest.mark.asyncio
async def test_exhausted_pool_leaves_no_open_providers():
    settings = make_settings(avalanche_rpc_urls=["https://one", "https://two"])
    connect, _ = fake_connect({"https://one": "hang", "https://two": 1})

    with pytest.raises(EndpointExhausted):
        await EndpointPool(settings, connect=connect).acquire(43114)

    for w3 in connect.created.values():
        w3.provider.disconnect.assert_awaited_once()
