"""Weighted complexity tier for an analyzed transaction."""

from __future__ import annotations

from ledgerlens.models.schema import ProtocolCategory, ProtocolTag, RiskLevel

TIERS = [(10, "Simple"), (25, "Moderate"), (50, "Complex")]


def complexity_score(
    transfer_count: int,
    interaction_count: int,
    action_type_count: int,
    tags: list[ProtocolTag],
    total_usd: float = 0.0,
    risk_level: RiskLevel | None = None,
) -> int:
    score = transfer_count * 2 + interaction_count * 3
    if action_type_count > 1:
        score += 5
    score += len(tags) * 5
    score += sum(3 for t in tags if t.category is ProtocolCategory.DEX)
    score += sum(4 for t in tags if t.category is ProtocolCategory.LENDING)

    if total_usd > 100_000:
        score += 10
    elif total_usd > 10_000:
        score += 5

    if risk_level in (RiskLevel.HIGH, RiskLevel.CRITICAL):
        score += 8
    elif risk_level is RiskLevel.MEDIUM:
        score += 4
    return score


def complexity_tier(score: int) -> str:
    for ceiling, tier in TIERS:
        if score <= ceiling:
            return tier
    return "Very Complex"
