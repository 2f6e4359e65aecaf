"""Tag contract addresses with DeFi protocol, category and action."""

from __future__ import annotations

import asyncio
import logging

from ledgerlens.chain.capabilities import probe_bytecode
from ledgerlens.labels.protocols import (
    CATEGORY_OPPORTUNITIES,
    CATEGORY_RECOMMENDATIONS,
    CATEGORY_RISKS,
    HEURISTIC_PROBES,
    PROTOCOL_FEES,
    PURPOSES,
    KnownProtocol,
    get_protocol,
)
from ledgerlens.models.schema import ProtocolCategory, ProtocolTag, RiskLevel, TransactionContext
from ledgerlens.tokens.constants import (
    ACTION_NAMES,
    DEFI_EVENT_NAMES,
    DEFI_FUNCTIONS,
    DEFI_SELECTORS,
    MINIMAL_PROXY_PREFIX,
    function_selector,
)
from ledgerlens.tokens.events import to_hex

logger = logging.getLogger(__name__)

UNKNOWN_ACTION = "Unknown"


def tag_confidence(known: bool, action: str, risk_level: RiskLevel) -> float:
    confidence = 0.5
    if known:
        confidence += 0.3
    if action != UNKNOWN_ACTION:
        confidence += 0.2
    if risk_level in (RiskLevel.HIGH, RiskLevel.CRITICAL):
        confidence -= 0.2
    return round(min(max(confidence, 0.0), 1.0), 4)


def identify_action(address: str, tx: TransactionContext | None, logs) -> str:
    """Humanized action for ``address``: the call selector if it was the tx target, else its DeFi events."""
    if tx is not None and tx.to_address and tx.to_address.lower() == address:
        name = DEFI_SELECTORS.get(tx.selector or "")
        if name:
            return ACTION_NAMES.get(name, UNKNOWN_ACTION)

    for log in logs:
        if str(log.get("address", "")).lower() != address:
            continue
        topics = log.get("topics") or []
        if not topics:
            continue
        name = DEFI_EVENT_NAMES.get(to_hex(topics[0]))
        if name:
            return ACTION_NAMES.get(name, UNKNOWN_ACTION)
    return UNKNOWN_ACTION


def infer_category(code: bytes) -> ProtocolCategory | None:
    """First category whose characteristic selectors appear in the dispatcher."""
    for category, names in HEURISTIC_PROBES:
        for name in names:
            if probe_bytecode(code, function_selector(DEFI_FUNCTIONS[name])).supported:
                return category
    return None


def build_tag(address: str, protocol: KnownProtocol, action: str, known: bool) -> ProtocolTag:
    category = protocol.category
    purposes = PURPOSES.get(category, {})

    risk_factors = ["Smart contract risk", "Market volatility"]
    if protocol.risk_level is RiskLevel.HIGH or not protocol.verified:
        risk_factors.append("Unverified protocol risk")
    risk_factors.extend(CATEGORY_RISKS.get(category, []))

    opportunities = list(CATEGORY_OPPORTUNITIES.get(category, []))
    if protocol.verified and protocol.risk_level is RiskLevel.LOW:
        opportunities.append("Low-risk DeFi exposure")

    recommendations = []
    if not protocol.verified:
        recommendations.append("Verify protocol audits and security measures")
    recommendations.extend(CATEGORY_RECOMMENDATIONS.get(category, []))

    return ProtocolTag(
        address=address,
        protocol_name=protocol.name,
        category=category,
        verified=protocol.verified,
        risk_level=protocol.risk_level,
        action=action,
        confidence=tag_confidence(known, action, protocol.risk_level),
        description=protocol.description,
        purpose=purposes.get(action) or purposes.get("default") or "Unknown DeFi interaction",
        protocol_fee_pct=PROTOCOL_FEES.get(category, 0.0),
        risk_factors=risk_factors,
        opportunities=opportunities,
        recommendations=recommendations,
    )


class ProtocolClassifier:
    """Known-table lookup first, bytecode heuristics second.

    Tags are recomputed on every request. An address that matches neither is
    left untagged.
    """

    async def classify(
        self,
        addresses: list[str],
        tx: TransactionContext | None,
        logs,
        connection,
    ) -> list[ProtocolTag]:
        addresses = list(dict.fromkeys(a.lower() for a in addresses if a))
        logs = list(logs or [])
        results = await asyncio.gather(*(self._classify_one(a, tx, logs, connection) for a in addresses))
        tags = [tag for tag in results if tag is not None]
        logger.debug(f"Tagged {len(tags)} of {len(addresses)} contracts")
        return tags

    async def _classify_one(self, address: str, tx, logs, connection) -> ProtocolTag | None:
        action = identify_action(address, tx, logs)

        protocol = get_protocol(connection.network_id, address)
        if protocol is not None:
            return build_tag(address, protocol, action, known=True)

        category = await self._infer(address, connection)
        if category is None:
            return None
        inferred = KnownProtocol(
            name=f"Unknown {category.value}",
            category=category,
            description=f"Detected {category.value} protocol",
            verified=False,
            risk_level=RiskLevel.HIGH,
        )
        return build_tag(address, inferred, action, known=False)

    async def _infer(self, address: str, connection) -> ProtocolCategory | None:
        try:
            code = await connection.get_code(address)
            # EIP-1167 clones carry no dispatcher; inspect the implementation instead
            if code.startswith(MINIMAL_PROXY_PREFIX) and len(code) >= 30:
                implementation = "0x" + code[10:30].hex()
                code = await connection.get_code(implementation)
        except Exception as exc:
            logger.debug(f"Could not fetch code for {address}: {exc}")
            return None
        return infer_category(code)
