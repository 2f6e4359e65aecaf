"""Address analysis: balance, activity, and a profile for contracts."""

from __future__ import annotations

import logging

from ledgerlens.analysis.block import network_info
from ledgerlens.analysis.budget import RequestBudget
from ledgerlens.chain.fetcher import AddressSnapshot, fetch_address_snapshot
from ledgerlens.chain.provider import LiveConnection
from ledgerlens.graph.mermaid import render_address_diagram
from ledgerlens.labels.classifier import ProtocolClassifier
from ledgerlens.models.artifacts import AddressArtifact, AddressSummary, ContractProfile
from ledgerlens.models.schema import ProtocolTag, RiskLevel, TokenMetadata
from ledgerlens.tokens.constants import MINIMAL_PROXY_PREFIX
from ledgerlens.tokens.metadata import TokenMetadataResolver
from ledgerlens.tokens.pricing import PriceOracleAggregator

logger = logging.getLogger(__name__)


def code_complexity(code_size: int) -> RiskLevel:
    if code_size > 5000:
        return RiskLevel.HIGH
    if code_size > 1000:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def activity_level(nonce: int) -> RiskLevel:
    if nonce > 100:
        return RiskLevel.HIGH
    if nonce > 10:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def balance_category(balance_native: float) -> str:
    if balance_native > 1000:
        return "Whale"
    if balance_native > 100:
        return "Large"
    if balance_native > 1:
        return "Medium"
    return "Small"


def address_risk(snapshot: AddressSnapshot, token: TokenMetadata | None, protocol: ProtocolTag | None) -> RiskLevel:
    if protocol is not None:
        return protocol.risk_level
    if snapshot.is_contract and token is None:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


async def analyze_address(
    conn: LiveConnection,
    address: str,
    resolver: TokenMetadataResolver,
    classifier: ProtocolClassifier,
    oracle: PriceOracleAggregator,
    budget: RequestBudget,
) -> AddressArtifact:
    snapshot = await fetch_address_snapshot(conn, address)
    network = conn.network
    balance_native = snapshot.balance / 10 ** network.native_decimals

    quote = await budget.run("price", oracle.get_quote(network.native_symbol))
    balance_usd = balance_native * quote.usd_price if quote is not None else None

    contract = None
    token = protocol = None
    if snapshot.is_contract:
        resolved = await budget.run("token", resolver.resolve(snapshot.address, conn))
        token = resolved if resolved is not None and not resolved.is_unknown else None
        tags = await budget.run("protocol", classifier.classify([snapshot.address], None, [], conn))
        protocol = tags[0] if tags else None
        contract = ContractProfile(
            code_size=len(snapshot.code),
            is_minimal_proxy=snapshot.code.startswith(MINIMAL_PROXY_PREFIX),
            estimated_complexity=code_complexity(len(snapshot.code)),
            token=token,
            protocol=protocol,
        )

    diagram = render_address_diagram(
        balance_native,
        network.native_symbol,
        snapshot.nonce,
        snapshot.is_contract,
        code_size=len(snapshot.code),
        complexity=contract.estimated_complexity.value if contract else "",
    )
    artifact = AddressArtifact(
        network=network_info(conn),
        explorer_url=network.address_url(snapshot.address),
        address=snapshot.address,
        balance=str(snapshot.balance),
        balance_native=balance_native,
        transaction_count=snapshot.nonce,
        is_contract=snapshot.is_contract,
        head=snapshot.head,
        contract=contract,
        summary=AddressSummary(
            address_type="Contract" if snapshot.is_contract else "EOA",
            activity_level=activity_level(snapshot.nonce),
            balance_category=balance_category(balance_native),
            risk_level=address_risk(snapshot, token, protocol),
            balance_usd=balance_usd,
        ),
        diagram=diagram,
        endpoint_failures=conn.prior_failures,
    )
    logger.info(f"Analyzed address {snapshot.address}: {'contract' if snapshot.is_contract else 'EOA'}")
    return artifact
