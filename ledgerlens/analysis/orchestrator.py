"""Entry point: classify the input, acquire a connection, run the pipeline.

Transaction pipeline:
    fetch tx + receipt -> decode events -> classify protocols
    -> advanced analysis (prices, gas, risk) -> flow graph + diagram -> summary

Only EndpointExhausted, RecordNotFound and InvalidInput abort a request.
Enrichment stages share the request budget; an overrun stage is listed in
``incomplete_sections`` and its section is absent from the output.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

import httpx

from ledgerlens.analysis.address import analyze_address
from ledgerlens.analysis.block import analyze_block, network_info
from ledgerlens.analysis.budget import RequestBudget
from ledgerlens.analysis.inputs import InputKind, classify_input
from ledgerlens.cache import TTLCache
from ledgerlens.chain.fetcher import fetch_transaction_bundle
from ledgerlens.chain.provider import EndpointPool, LiveConnection
from ledgerlens.config import Settings, get_settings
from ledgerlens.errors import InvalidInput
from ledgerlens.graph.builder import FlowGraphBuilder, graph_stats, to_networkx
from ledgerlens.graph.mermaid import clean_diagram, render_flow_graph
from ledgerlens.labels.classifier import ProtocolClassifier
from ledgerlens.models.artifacts import ArtifactBase, Summary, TransactionArtifact
from ledgerlens.models.schema import TransactionContext
from ledgerlens.scoring.complexity import complexity_score, complexity_tier
from ledgerlens.scoring.risk import RiskScorer
from ledgerlens.tokens.events import EventDecoder, ExtractedEvents, to_hex
from ledgerlens.tokens.gas import GasAnalyzer
from ledgerlens.tokens.metadata import TokenMetadataResolver
from ledgerlens.tokens.pricing import CoinGeckoSource, DefiLlamaSource, PriceOracleAggregator

logger = logging.getLogger(__name__)


def _int(value) -> int:
    if value is None:
        return 0
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    return int(value)


def transaction_context(tx, receipt) -> TransactionContext:
    """Flatten a transaction + receipt pair; every big integer becomes a decimal string."""
    gas_used = _int(receipt.get("gasUsed"))
    gas_price = _int(receipt.get("effectiveGasPrice") or tx.get("gasPrice"))
    to = tx.get("to")
    contract_address = receipt.get("contractAddress")
    return TransactionContext(
        hash=to_hex(tx.get("hash")),
        from_address=str(tx["from"]).lower(),
        to_address=str(to).lower() if to else None,
        contract_address=str(contract_address).lower() if contract_address else None,
        value=str(_int(tx.get("value"))),
        input=to_hex(tx.get("input")),
        nonce=_int(tx.get("nonce")),
        tx_type=_int(tx.get("type")),
        block_number=_int(receipt.get("blockNumber")) if receipt.get("blockNumber") is not None else None,
        gas_limit=str(_int(tx.get("gas"))),
        gas_price=str(gas_price),
        gas_used=str(gas_used),
        fee=str(gas_used * gas_price),
        succeeded=_int(receipt.get("status")) == 1,
    )


class AnalysisOrchestrator:
    def __init__(
        self,
        settings: Settings,
        pool: EndpointPool,
        resolver: TokenMetadataResolver,
        oracle: PriceOracleAggregator,
        classifier: ProtocolClassifier,
        scorer: RiskScorer,
        graph_builder: FlowGraphBuilder,
        gas_analyzer: GasAnalyzer,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings
        self.pool = pool
        self.resolver = resolver
        self.decoder = EventDecoder(resolver)
        self.oracle = oracle
        self.classifier = classifier
        self.scorer = scorer
        self.graph_builder = graph_builder
        self.gas_analyzer = gas_analyzer
        self.clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> AnalysisOrchestrator:
        """Default object graph with fresh caches."""
        settings = settings or get_settings()
        classifier = ProtocolClassifier()
        scorer = RiskScorer(settings)
        gas_analyzer = GasAnalyzer(TTLCache(settings.gas_ttl, clock=clock))
        sources = [
            CoinGeckoSource(settings.coingecko_api_key, timeout=settings.price_http_timeout, transport=transport),
            DefiLlamaSource(timeout=settings.price_http_timeout, transport=transport),
        ]
        oracle = PriceOracleAggregator(
            sources,
            TTLCache(settings.price_ttl, clock=clock),
            classifier=classifier,
            scorer=scorer,
            gas_analyzer=gas_analyzer,
        )
        return cls(
            settings=settings,
            pool=EndpointPool(settings),
            resolver=TokenMetadataResolver(TTLCache(settings.token_metadata_ttl, clock=clock)),
            oracle=oracle,
            classifier=classifier,
            scorer=scorer,
            graph_builder=FlowGraphBuilder(),
            gas_analyzer=gas_analyzer,
            clock=clock,
        )

    async def analyze(self, raw_input: str, network_id: int | None = None) -> ArtifactBase:
        classification = classify_input(raw_input)
        if not classification.valid:
            raise InvalidInput(raw_input)

        network_id = network_id or self.settings.default_network_id
        logger.info(f"Analyzing {classification.kind.value} {classification.normalized} on network {network_id}")
        connection = await self.pool.acquire(network_id)
        async with connection:
            budget = RequestBudget(self.settings.request_budget_seconds, clock=self.clock)
            if classification.kind is InputKind.TRANSACTION:
                artifact = await self.analyze_transaction(classification.normalized, connection, budget)
            elif classification.kind is InputKind.BLOCK:
                artifact = await analyze_block(connection, int(classification.normalized), self.settings, budget)
            else:
                artifact = await analyze_address(
                    connection, classification.normalized, self.resolver, self.classifier, self.oracle, budget,
                )

        artifact.incomplete_sections = list(budget.incomplete)
        return artifact

    async def analyze_transaction(
        self,
        tx_hash: str,
        connection: LiveConnection,
        budget: RequestBudget | None = None,
    ) -> TransactionArtifact:
        budget = budget or RequestBudget(self.settings.request_budget_seconds, clock=self.clock)
        bundle = await fetch_transaction_bundle(connection, tx_hash)
        tx = transaction_context(bundle.transaction, bundle.receipt)
        logs = list(bundle.receipt.get("logs") or [])
        diagnostics = list(bundle.diagnostics)

        extracted = await budget.run("events", self.decoder.decode(bundle.receipt, connection, bundle.transaction))
        if extracted is None:
            extracted = ExtractedEvents()

        interactions = list(extracted.contract_interactions)
        action_types = list(extracted.action_types)
        if tx.to_address is None:
            action_types.append("Contract Creation")
            if tx.contract_address:
                interactions.insert(0, tx.contract_address)
        elif tx.input not in ("0x", ""):
            action_types.append("Contract Call")
            interactions.insert(0, tx.to_address)
        interactions = list(dict.fromkeys(interactions))

        protocols = await budget.run("protocols", self.classifier.classify(interactions, tx, logs, connection))
        advanced = await budget.run(
            "advanced",
            self.oracle.get_advanced_analysis(
                extracted.events, tx, interactions, connection, logs=logs, protocol_tags=protocols or [],
            ),
        )
        risk = advanced.risk if advanced is not None else None

        flow_graph = self.graph_builder.build(extracted.events)
        diagram = render_flow_graph(flow_graph, contracts=set(interactions))
        check = clean_diagram(diagram)
        if not check.valid:
            diagnostics.extend(f"diagram: {e}" for e in check.errors)
            diagram = check.cleaned or diagram

        for other in extracted.other_events:
            if other.error:
                diagnostics.append(f"log {other.log_index}: {other.error}")

        tokens = {e.token.address for e in extracted.events}
        score = complexity_score(
            transfer_count=len(extracted.events),
            interaction_count=len(interactions),
            action_type_count=len(action_types),
            tags=protocols or [],
            total_usd=advanced.usd_value.total if advanced else 0.0,
            risk_level=risk.overall_level if risk else None,
        )
        summary = Summary(
            complexity_tier=complexity_tier(score),
            risk_tier=risk.overall_level if risk else None,
            status="Success" if tx.succeeded else "Failed",
            transfer_count=len(extracted.events),
            token_count=len(tokens),
            contract_count=len(interactions),
            event_count=len(logs),
            other_event_count=len(extracted.other_events),
            total_usd=advanced.usd_value.total if advanced else None,
            fees_usd=advanced.usd_value.fees_usd if advanced else None,
            fee=tx.fee,
            gas_efficiency_pct=round(tx.gas_efficiency_pct, 2),
            congestion=advanced.gas.congestion if advanced and not advanced.gas.degraded else None,
        )

        artifact = TransactionArtifact(
            network=network_info(connection),
            explorer_url=connection.network.tx_url(tx.hash),
            transaction=tx,
            action_types=action_types,
            events=extracted.events,
            contract_interactions=interactions,
            other_events=extracted.other_events,
            protocols=protocols,
            advanced=advanced,
            risk=risk,
            flow_graph=flow_graph,
            flow_stats=graph_stats(to_networkx(flow_graph)),
            diagram=diagram,
            summary=summary,
            diagnostics=diagnostics,
            incomplete_sections=list(budget.incomplete),
            endpoint_failures=connection.prior_failures,
        )
        logger.info(
            f"Analyzed {tx.hash}: {summary.transfer_count} transfers, "
            f"{summary.complexity_tier}, risk {summary.risk_tier.value if summary.risk_tier else 'n/a'}"
        )
        return artifact
