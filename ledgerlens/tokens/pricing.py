"""Live USD quotes from CoinGecko and DeFiLlama, plus per-transaction valuation."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timezone

import httpx

from ledgerlens.cache import TTLCache
from ledgerlens.labels.classifier import ProtocolClassifier
from ledgerlens.models.schema import (
    FUNGIBLE_KINDS,
    AdvancedAnalysis,
    ArbitrageSignal,
    DecodedEvent,
    MarketImpact,
    MarketRead,
    PriceQuote,
    ProtocolTag,
    RiskLevel,
    TransactionContext,
    TransferValuation,
    UsdValue,
)
from ledgerlens.scoring.risk import RiskScorer
from ledgerlens.tokens.constants import (
    DEFI_EVENTS,
    FALLBACK_PRICES,
    PRICE_FEEDS,
    ZERO_ADDRESS,
)
from ledgerlens.tokens.events import to_hex
from ledgerlens.tokens.gas import GasAnalyzer

logger = logging.getLogger(__name__)

COINGECKO_BASE = "https://api.coingecko.com/api/v3"
DEFILLAMA_BASE = "https://coins.llama.fi"

FALLBACK_SOURCE = "fallback"
FALLBACK_CONFIDENCE = 0.7

SWAP_TOPICS = frozenset({DEFI_EVENTS["Swap"], DEFI_EVENTS["SwapV3"]})


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CoinGeckoSource:
    """CoinGecko ``simple/price`` with 24h change, volume and market cap."""

    name = "coingecko"
    confidence = 0.95

    def __init__(self, api_key: str = "", timeout: float = 10.0, transport: httpx.AsyncBaseTransport | None = None):
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    async def fetch(self, symbol: str, feed_id: str) -> PriceQuote | None:
        params = {
            "ids": feed_id,
            "vs_currencies": "usd",
            "include_24hr_change": "true",
            "include_24hr_vol": "true",
            "include_market_cap": "true",
        }
        headers = {"x-cg-demo-api-key": self.api_key} if self.api_key else {}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            resp = await client.get(f"{COINGECKO_BASE}/simple/price", params=params, headers=headers)
            resp.raise_for_status()
            data = resp.json()

        info = data.get(feed_id)
        if not info or "usd" not in info:
            return None
        return PriceQuote(
            symbol=symbol,
            usd_price=float(info["usd"]),
            change_24h=float(info.get("usd_24h_change") or 0.0),
            volume_24h=float(info.get("usd_24h_vol") or 0.0),
            market_cap=float(info.get("usd_market_cap") or 0.0),
            source=self.name,
            confidence=self.confidence,
            fetched_at=_now(),
        )


class DefiLlamaSource:
    """DeFiLlama current prices (free, no API key). Price only."""

    name = "defillama"
    max_confidence = 0.9

    def __init__(self, timeout: float = 10.0, transport: httpx.AsyncBaseTransport | None = None):
        self.timeout = timeout
        self.transport = transport

    async def fetch(self, symbol: str, feed_id: str) -> PriceQuote | None:
        coin_id = f"coingecko:{feed_id}"
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            resp = await client.get(f"{DEFILLAMA_BASE}/prices/current/{coin_id}")
            resp.raise_for_status()
            data = resp.json()

        info = data.get("coins", {}).get(coin_id)
        if not info or "price" not in info:
            return None
        confidence = min(self.max_confidence, float(info.get("confidence", self.max_confidence)))
        return PriceQuote(
            symbol=symbol,
            usd_price=float(info["price"]),
            source=self.name,
            confidence=max(0.0, confidence),
            fetched_at=_now(),
        )


def fallback_quote(symbol: str) -> PriceQuote:
    reference = FALLBACK_PRICES.get(symbol)
    return PriceQuote(
        symbol=symbol,
        usd_price=reference or 0.0,
        source=FALLBACK_SOURCE,
        confidence=FALLBACK_CONFIDENCE if reference is not None else 0.0,
        fetched_at=_now(),
    )


def market_read(quote: PriceQuote | None) -> MarketRead:
    if quote is None or quote.source == FALLBACK_SOURCE:
        return MarketRead(volatility=RiskLevel.HIGH, trend="Neutral", risk_level=RiskLevel.HIGH)

    change = quote.change_24h
    if abs(change) > 10:
        volatility = RiskLevel.HIGH
    elif abs(change) > 5:
        volatility = RiskLevel.MEDIUM
    else:
        volatility = RiskLevel.LOW

    trend = "Bullish" if change > 2 else "Bearish" if change < -2 else "Neutral"

    if volatility is RiskLevel.HIGH or quote.confidence < 0.8:
        risk = RiskLevel.HIGH
    elif volatility is RiskLevel.MEDIUM:
        risk = RiskLevel.MEDIUM
    else:
        risk = RiskLevel.LOW
    return MarketRead(volatility=volatility, trend=trend, risk_level=risk)


def price_movement_pct(total_usd: float) -> float:
    """Expected price movement tier for a trade of this size."""
    if total_usd > 1_000_000:
        return 2.0
    if total_usd > 100_000:
        return 0.5
    if total_usd > 10_000:
        return 0.1
    return 0.0


def volume_significance(valuations: list[TransferValuation]) -> str:
    ratios = [
        v.value_usd / v.quote.volume_24h
        for v in valuations
        if v.quote is not None and v.quote.volume_24h > 0 and v.value_usd > 0
    ]
    if not ratios:
        return "Negligible"
    peak = max(ratios)
    if peak > 0.01:
        return "High"
    if peak > 0.001:
        return "Medium"
    return "Low"


def arbitrage_signals(events: list[DecodedEvent], logs=()) -> list[ArbitrageSignal]:
    """Deterministic arbitrage-like patterns within a single transaction.

    - an address that both sends and receives the same fungible token
    - more than one DEX swap event in the same transaction
    """
    sent: dict[str, set[str]] = defaultdict(set)
    received: dict[str, set[str]] = defaultdict(set)
    symbols: dict[str, str] = {}
    for e in events:
        if e.kind not in FUNGIBLE_KINDS or e.from_address == e.to_address:
            continue
        sent[e.from_address].add(e.token.address)
        received[e.to_address].add(e.token.address)
        symbols[e.token.address] = e.token.symbol

    signals = []
    for address in sent:
        if address == ZERO_ADDRESS:
            continue
        for token in sorted(sent[address] & received.get(address, set())):
            signals.append(ArbitrageSignal(
                kind="cyclic-flow",
                detail=f"{address} sent and received {symbols[token]}",
                address=address,
                token_symbol=symbols[token],
            ))

    swaps = [log for log in logs if log.get("topics") and to_hex(log["topics"][0]) in SWAP_TOPICS]
    if len(swaps) > 1:
        pools = list(dict.fromkeys(str(log.get("address", "")).lower() for log in swaps))
        signals.append(ArbitrageSignal(
            kind="repeated-swaps",
            detail=f"{len(swaps)} DEX swaps across {len(pools)} pool(s) in one transaction",
        ))
    return signals


class PriceOracleAggregator:
    """Cache-first price lookup with ordered sources and a static fallback.

    Only symbols with a known feed are looked up externally. The first source
    that answers wins; if none does, a fallback quote is returned (and not
    cached), so ``get_quote`` never raises.
    """

    def __init__(
        self,
        sources: list,
        cache: TTLCache[PriceQuote],
        classifier: ProtocolClassifier,
        scorer: RiskScorer,
        gas_analyzer: GasAnalyzer,
    ):
        self.sources = sources
        self.cache = cache
        self.classifier = classifier
        self.scorer = scorer
        self.gas_analyzer = gas_analyzer

    async def get_quote(self, symbol: str) -> PriceQuote:
        key = symbol.upper()
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        feed_id = PRICE_FEEDS.get(key)
        if feed_id is None:
            logger.debug(f"No price feed for {key}, using fallback")
            return fallback_quote(key)

        for source in self.sources:
            try:
                quote = await source.fetch(key, feed_id)
            except Exception as exc:
                logger.debug(f"{source.name} failed for {key}: {exc}")
                continue
            if quote is not None:
                self.cache.set(key, quote)
                return quote

        logger.warning(f"All price sources failed for {key}, using fallback quote")
        return fallback_quote(key)

    async def get_quotes(self, symbols) -> dict[str, PriceQuote]:
        unique = list(dict.fromkeys(s.upper() for s in symbols))
        quotes = await asyncio.gather(*(self.get_quote(s) for s in unique))
        return dict(zip(unique, quotes))

    async def value_transfers(
        self,
        events: list[DecodedEvent],
        tx: TransactionContext,
        connection,
    ) -> UsdValue:
        native = connection.network
        priced = [e for e in events if e.kind in FUNGIBLE_KINDS and not e.token.is_unknown]
        quotes = await self.get_quotes([native.native_symbol] + [e.token.symbol for e in priced])

        valuations = []
        for e in events:
            amount_decimal = int(e.amount) / 10 ** e.token.decimals
            valuation = TransferValuation(
                kind=e.kind,
                token_symbol=e.token.symbol,
                token_address=e.token.address,
                amount=e.amount,
                amount_decimal=amount_decimal,
            )
            if e.kind not in FUNGIBLE_KINDS:
                valuation.note = "Non-fungible transfers are not priced"
            elif e.token.is_unknown:
                valuation.note = "Unknown token metadata"
            else:
                quote = quotes[e.token.symbol.upper()]
                valuation.quote = quote
                valuation.value_usd = amount_decimal * quote.usd_price
                valuation.market = market_read(quote)
            valuations.append(valuation)

        native_quote = quotes[native.native_symbol.upper()]
        fees_usd = int(tx.fee) / 10 ** native.native_decimals * native_quote.usd_price
        return UsdValue(
            total=sum(v.value_usd for v in valuations),
            fees_usd=fees_usd,
            transfers=valuations,
        )

    async def get_advanced_analysis(
        self,
        events: list[DecodedEvent],
        tx: TransactionContext,
        contract_addresses: list[str],
        connection,
        logs=(),
        protocol_tags: list[ProtocolTag] | None = None,
    ) -> AdvancedAnalysis:
        logs = list(logs)
        if protocol_tags is None:
            usd_value, gas, protocol_tags = await asyncio.gather(
                self.value_transfers(events, tx, connection),
                self.gas_analyzer.analyze(tx, connection),
                self.classifier.classify(contract_addresses, tx, logs, connection),
            )
        else:
            usd_value, gas = await asyncio.gather(
                self.value_transfers(events, tx, connection),
                self.gas_analyzer.analyze(tx, connection),
            )

        impact = MarketImpact(
            price_movement_pct=price_movement_pct(usd_value.total),
            volume_significance=volume_significance(usd_value.transfers),
            arbitrage_signals=arbitrage_signals(events, logs),
        )
        analysis = AdvancedAnalysis(
            usd_value=usd_value,
            gas=gas,
            market_impact=impact,
            protocols=list(protocol_tags),
            succeeded=tx.succeeded,
        )
        analysis.risk = self.scorer.score(events, analysis.protocols, analysis)
        return analysis
