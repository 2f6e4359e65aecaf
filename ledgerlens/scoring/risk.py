"""Rule-based threat detection and overall risk level.

Rules:
- USD total above ``large_value_usd``            -> Medium / Economic
- any high-risk or unverified protocol tag       -> High / Smart Contract
- gas price > multiplier x recent average while
  the network is congested                       -> Medium / Transaction
- failed transaction                             -> High / Transaction
- more than two arbitrage-like signals (MEV)     -> Medium / Economic

Overall level only ever rounds up: 3+ High is Critical, any High or 3+ Medium
is High, any Medium is Medium, otherwise Low.
"""

from __future__ import annotations

import logging

from ledgerlens.config import Settings, get_settings
from ledgerlens.models.schema import (
    AdvancedAnalysis,
    DecodedEvent,
    EventKind,
    ProtocolTag,
    RiskAssessment,
    RiskLevel,
    Threat,
)

logger = logging.getLogger(__name__)

MANY_TRANSFERS = 10
MEV_SIGNAL_THRESHOLD = 2
SCORE_PENALTY = {RiskLevel.CRITICAL: 30, RiskLevel.HIGH: 20, RiskLevel.MEDIUM: 10, RiskLevel.LOW: 5}


def overall_level(threats: list[Threat]) -> RiskLevel:
    severities = [t.severity for t in threats]
    high = sum(1 for s in severities if s.rank >= RiskLevel.HIGH.rank)
    medium = sum(1 for s in severities if s is RiskLevel.MEDIUM)

    if RiskLevel.CRITICAL in severities or high >= 3:
        return RiskLevel.CRITICAL
    if high >= 1 or medium >= 3:
        return RiskLevel.HIGH
    if medium >= 1:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def security_score(threats: list[Threat]) -> int:
    score = 100 - sum(SCORE_PENALTY[t.severity] for t in threats)
    return max(0, min(100, score))


def _decimal_amount(event: DecodedEvent) -> float:
    return int(event.amount) / 10 ** event.token.decimals


class RiskScorer:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def score(
        self,
        events: list[DecodedEvent],
        tags: list[ProtocolTag],
        advanced: AdvancedAnalysis,
    ) -> RiskAssessment:
        threats = self.detect_threats(tags, advanced)
        level = overall_level(threats)
        assessment = RiskAssessment(
            overall_level=level,
            score=security_score(threats),
            threats=threats,
            recommendations=self.recommendations(threats, tags),
            observations=self.observations(events, advanced),
        )
        logger.debug(f"Risk {level.value} with {len(threats)} threat(s)")
        return assessment

    def detect_threats(self, tags: list[ProtocolTag], advanced: AdvancedAnalysis) -> list[Threat]:
        threats: list[Threat] = []

        total = advanced.usd_value.total
        if total > self.settings.large_value_usd:
            threats.append(Threat(
                category="Economic",
                severity=RiskLevel.MEDIUM,
                description="Large value transaction detected",
                evidence=[f"Transaction value: ${total:,.2f}"],
                mitigation=["Verify transaction details carefully", "Consider breaking into smaller transactions"],
                confidence=0.9,
            ))

        risky = [t for t in tags if not t.verified or t.risk_level.rank >= RiskLevel.HIGH.rank]
        if risky:
            threats.append(Threat(
                category="Smart Contract",
                severity=RiskLevel.HIGH,
                description="Interaction with high-risk or unverified contracts",
                evidence=[
                    f"{t.address}: {t.protocol_name} ({'verified' if t.verified else 'unverified'}, {t.risk_level.value} risk)"
                    for t in risky
                ],
                mitigation=["Avoid interacting with unverified contracts", "Research contract thoroughly"],
                confidence=0.8,
            ))

        gas = advanced.gas
        tx_price = int(gas.transaction_gas_price)
        average = int(gas.average_gas_price)
        if (
            not gas.degraded
            and gas.congestion is RiskLevel.HIGH
            and average > 0
            and tx_price > average * self.settings.high_gas_multiplier
        ):
            threats.append(Threat(
                category="Transaction",
                severity=RiskLevel.MEDIUM,
                description="Gas price far above the recent average during network congestion",
                evidence=[f"Gas price: {tx_price} wei", f"Recent average: {average} wei"],
                mitigation=["Review transaction parameters", "Check for potential gas griefing"],
                confidence=0.7,
            ))

        if not advanced.succeeded:
            threats.append(Threat(
                category="Transaction",
                severity=RiskLevel.HIGH,
                description="Transaction failed",
                evidence=["Transaction status: FAILED"],
                mitigation=["Investigate failure reason", "Check contract state before retrying"],
                confidence=1.0,
            ))

        signals = advanced.market_impact.arbitrage_signals
        if len(signals) > MEV_SIGNAL_THRESHOLD:
            threats.append(Threat(
                category="Economic",
                severity=RiskLevel.MEDIUM,
                description="Possible MEV activity detected",
                evidence=[f"{len(signals)} arbitrage-like signals"] + [s.detail for s in signals],
                mitigation=["Use private mempool", "Implement MEV protection"],
                confidence=0.6,
            ))

        return threats

    @staticmethod
    def recommendations(threats: list[Threat], tags: list[ProtocolTag]) -> list[str]:
        recs: dict[str, None] = {}
        if any(t.severity.rank >= RiskLevel.HIGH.rank for t in threats):
            recs["Stop transaction and review all parameters"] = None
            recs["Verify contract addresses and functions"] = None
        if any(not t.verified for t in tags):
            recs["Only interact with verified and audited contracts"] = None
        for threat in threats:
            for step in threat.mitigation:
                recs[step] = None
        if any(t.category == "Economic" for t in threats):
            recs["Monitor market conditions and slippage"] = None
        recs["Monitor transaction status and confirmations"] = None
        return list(recs)

    def observations(self, events: list[DecodedEvent], advanced: AdvancedAnalysis) -> list[str]:
        notes = []
        if len(events) > MANY_TRANSFERS:
            notes.append(f"High number of token transfers ({len(events)})")
        if advanced.usd_value.total > self.settings.large_value_usd:
            notes.append("Large value transaction")
        if advanced.gas.congestion is RiskLevel.HIGH:
            notes.append("Transaction during network congestion")

        fungible = [e for e in events if e.kind in (EventKind.NATIVE_TRANSFER, EventKind.TOKEN_TRANSFER)]
        if any(_decimal_amount(e) >= 1000 and _decimal_amount(e) % 1000 == 0 for e in fungible):
            notes.append("Round number transfers detected")

        nft = sum(1 for e in events if e.kind in (EventKind.NFT_TRANSFER, EventKind.MULTI_TOKEN_TRANSFER))
        if nft:
            notes.append(f"{nft} NFT / multi-token transfer(s) are not valued in USD")
        if any(e.kind is EventKind.UNCLASSIFIED for e in events):
            notes.append("Non-standard Transfer events decoded without an indexed layout")
        return notes
