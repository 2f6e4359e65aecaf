import httpx
import pytest

from conftest import ALICE, BOB, CAROL, GWEI, TOKEN, FakeConnection, price_handler, price_transport
from ledgerlens.cache import TTLCache
from ledgerlens.labels.classifier import ProtocolClassifier
from ledgerlens.models.schema import DecodedEvent, EventKind, RiskLevel, TokenMetadata, TokenStandard, TransactionContext
from ledgerlens.scoring.risk import RiskScorer
from ledgerlens.tokens.constants import UNISWAP_V2_SWAP_TOPIC, UNISWAP_V3_SWAP_TOPIC
from ledgerlens.tokens.gas import GasAnalyzer
from ledgerlens.tokens.metadata import native_token
from ledgerlens.tokens.pricing import (
    CoinGeckoSource,
    DefiLlamaSource,
    PriceOracleAggregator,
    arbitrage_signals,
    fallback_quote,
    market_read,
    price_movement_pct,
)

USDC = TokenMetadata(address=TOKEN, name="USD Coin", symbol="USDC", decimals=6, standard=TokenStandard.ERC20)


def make_oracle(settings, transport, price_cache=None) -> PriceOracleAggregator:
    return PriceOracleAggregator(
        [CoinGeckoSource(transport=transport), DefiLlamaSource(transport=transport)],
        price_cache or TTLCache(60),
        classifier=ProtocolClassifier(),
        scorer=RiskScorer(settings),
        gas_analyzer=GasAnalyzer(TTLCache(30)),
    )


def transfer(token: TokenMetadata, amount: int, sender=ALICE, recipient=BOB, kind=EventKind.TOKEN_TRANSFER):
    return DecodedEvent(kind=kind, from_address=sender, to_address=recipient, amount=str(amount), token=token)


@pytest.mark.asyncio
async def test_coingecko_quote_is_cached(settings):
    requests = []
    oracle = make_oracle(settings, price_transport({"avalanche-2": 31.5}, counter=requests))

    quote = await oracle.get_quote("avax")
    again = await oracle.get_quote("AVAX")

    assert quote.usd_price == 31.5
    assert quote.source == "coingecko"
    assert quote.confidence == 0.95
    assert quote.volume_24h == 5e8
    assert again == quote
    assert len(requests) == 1


@pytest.mark.asyncio
async def test_defillama_used_when_coingecko_fails(settings):
    llama = price_handler({"ethereum": 3000.0})

    def handler(request):
        if "coingecko.com" in request.url.host:
            raise httpx.ConnectError("coingecko down")
        return llama(request)

    oracle = make_oracle(settings, httpx.MockTransport(handler))
    quote = await oracle.get_quote("WETH")

    assert quote.source == "defillama"
    assert quote.usd_price == 3000.0
    assert quote.confidence == 0.9


@pytest.mark.asyncio
async def test_fallback_quote_is_not_cached(settings):
    requests = []
    oracle = make_oracle(settings, price_transport({}, fail=True, counter=requests))

    first = await oracle.get_quote("AVAX")
    await oracle.get_quote("AVAX")

    assert first.source == "fallback"
    assert first.usd_price == 25.0
    assert first.confidence == 0.7
    # Both sources retried on the second call
    assert len(requests) == 4


@pytest.mark.asyncio
async def test_symbol_without_feed_gets_zero_confidence(settings):
    requests = []
    oracle = make_oracle(settings, price_transport({}, counter=requests))

    quote = await oracle.get_quote("SHIBAMOON")

    assert quote.source == "fallback"
    assert quote.usd_price == 0.0
    assert quote.confidence == 0.0
    assert requests == []


@pytest.mark.asyncio
async def test_value_transfers_prices_fungible_only(settings):
    conn = FakeConnection()
    oracle = make_oracle(settings, price_transport({"avalanche-2": 20.0, "usd-coin": 1.0}))
    nft = TokenMetadata(address=CAROL, name="Punks", symbol="PUNK", decimals=0, standard=TokenStandard.ERC721)
    mystery = TokenMetadata(address="0x" + "99" * 20)
    events = [
        transfer(native_token(conn.network), 3 * 10**18, kind=EventKind.NATIVE_TRANSFER),
        transfer(USDC, 250_000_000),
        transfer(nft, 1, kind=EventKind.NFT_TRANSFER),
        transfer(mystery, 10**18),
    ]
    tx = TransactionContext(hash="0x01", from_address=ALICE, gas_used="100000", gas_price=str(25 * GWEI), fee=str(100000 * 25 * GWEI))

    value = await oracle.value_transfers(events, tx, conn)

    assert value.total == pytest.approx(60.0 + 250.0)
    assert value.fees_usd == pytest.approx(0.0025 * 20.0)
    assert value.transfers[2].note == "Non-fungible transfers are not priced"
    assert value.transfers[3].note == "Unknown token metadata"
    assert value.transfers[3].value_usd == 0.0


def test_market_read_from_fallback_is_high_risk():
    read = market_read(fallback_quote("ETH"))
    assert read.risk_level is RiskLevel.HIGH
    assert read.trend == "Neutral"


def test_price_movement_tiers():
    assert price_movement_pct(5_000) == 0.0
    assert price_movement_pct(50_000) == 0.1
    assert price_movement_pct(500_000) == 0.5
    assert price_movement_pct(5_000_000) == 2.0


def test_arbitrage_signals_cyclic_flow_and_swaps():
    events = [
        transfer(USDC, 100, sender=ALICE, recipient=BOB),
        transfer(USDC, 101, sender=BOB, recipient=ALICE),
        transfer(USDC, 5, sender=CAROL, recipient=CAROL),
    ]
    logs = [
        {"address": "0x" + "11" * 20, "topics": [UNISWAP_V2_SWAP_TOPIC]},
        {"address": "0x" + "22" * 20, "topics": [UNISWAP_V3_SWAP_TOPIC]},
    ]

    signals = arbitrage_signals(events, logs)

    kinds = [s.kind for s in signals]
    assert kinds.count("cyclic-flow") == 2
    assert "repeated-swaps" in kinds
    assert CAROL not in {s.address for s in signals}


def test_single_swap_is_not_a_signal():
    logs = [{"address": TOKEN, "topics": [UNISWAP_V2_SWAP_TOPIC]}]
    assert arbitrage_signals([], logs) == []


@pytest.mark.asyncio
async def test_advanced_analysis_attaches_risk(settings):
    conn = FakeConnection()
    oracle = make_oracle(settings, price_transport({"avalanche-2": 20.0}))
    tx = TransactionContext(
        hash="0x02", from_address=ALICE, to_address=BOB, value=str(10**18),
        gas_limit="21000", gas_used="21000", gas_price=str(25 * GWEI), fee=str(21000 * 25 * GWEI), succeeded=False,
    )
    events = [transfer(native_token(conn.network), 10**18, kind=EventKind.NATIVE_TRANSFER)]

    analysis = await oracle.get_advanced_analysis(events, tx, [], conn, protocol_tags=[])

    assert analysis.usd_value.total == pytest.approx(20.0)
    assert analysis.gas.congestion is RiskLevel.HIGH
    assert analysis.gas.efficiency_pct == 100.0
    assert analysis.protocols == []
    assert analysis.risk is not None
    assert analysis.risk.overall_level is RiskLevel.HIGH
    assert any(t.description == "Transaction failed" for t in analysis.risk.threats)
