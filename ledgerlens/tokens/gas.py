"""Gas efficiency and network congestion analysis."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ledgerlens.cache import TTLCache
from ledgerlens.chain.registry import NetworkDescriptor
from ledgerlens.models.schema import GasAnalysis, RiskLevel, TransactionContext

logger = logging.getLogger(__name__)

FEE_HISTORY_BLOCKS = 20

TIMING = {
    RiskLevel.LOW: "Optimal time for transactions",
    RiskLevel.MEDIUM: "Consider waiting for lower gas prices",
    RiskLevel.HIGH: "Wait for network congestion to decrease",
}


@dataclass(frozen=True)
class NetworkGas:
    """Per-network gas snapshot, all prices in wei."""

    gas_price: int
    average: int
    optimal: int


def congestion_level(gas_price_wei: int, network: NetworkDescriptor) -> RiskLevel:
    low, high = network.congestion_gwei
    gwei = gas_price_wei / 1e9
    if gwei < low:
        return RiskLevel.LOW
    if gwei < high:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


def default_gas_analysis() -> GasAnalysis:
    return GasAnalysis(
        congestion=RiskLevel.MEDIUM,
        timing="Unable to analyze network conditions",
        optimizations=["Monitor gas prices before transacting"],
        degraded=True,
    )


class GasAnalyzer:
    """Compare a transaction's gas against the network's recent fee market.

    The network snapshot (``eth_gasPrice`` plus base fee + median tip over the
    last 20 blocks from ``eth_feeHistory``) is cached per network.
    """

    def __init__(self, cache: TTLCache[NetworkGas]):
        self.cache = cache

    async def network_gas(self, connection) -> NetworkGas:
        cached = self.cache.get(connection.network_id)
        if cached is not None:
            return cached

        gas_price = int(await connection.gas_price())
        try:
            history = await connection.fee_history(FEE_HISTORY_BLOCKS, 50.0)
            base_fees = [int(b) for b in history["baseFeePerGas"]]
            tips = [int(r[0]) if r else 0 for r in history.get("reward") or []]
            # baseFeePerGas carries one extra entry for the next block
            effective = [base + tip for base, tip in zip(base_fees, tips)] or base_fees
            average = sum(effective) // len(effective) if effective else gas_price
            optimal = min(effective) if effective else gas_price
        except Exception as exc:
            logger.debug(f"fee_history unavailable on network {connection.network_id}: {exc}")
            average = optimal = gas_price

        snapshot = NetworkGas(gas_price=gas_price, average=average, optimal=optimal)
        self.cache.set(connection.network_id, snapshot)
        return snapshot

    async def analyze(self, tx: TransactionContext, connection) -> GasAnalysis:
        try:
            snapshot = await self.network_gas(connection)
        except Exception as exc:
            logger.warning(f"Gas analysis degraded: {exc}")
            return default_gas_analysis()

        congestion = congestion_level(snapshot.gas_price, connection.network)
        tx_price = int(tx.gas_price)
        efficiency = round(tx.gas_efficiency_pct, 2)

        optimizations = ["Use appropriate gas limit to avoid overpaying"]
        if int(tx.gas_limit) and efficiency < 70:
            optimizations.append("Gas limit was too high - consider lowering for future transactions")
        if snapshot.average and tx_price > snapshot.average * 1.5:
            optimizations.append("Gas price was well above the recent average - use the suggested network fee")
        if tx.tx_type != 2:
            optimizations.append("Use EIP-1559 (type 2) transactions for more predictable fees")
        optimizations.append("Batch multiple operations when possible")

        saving = 0.0
        if tx_price > 0 and tx_price > snapshot.optimal:
            saving = round((tx_price - snapshot.optimal) / tx_price * 100, 2)

        return GasAnalysis(
            network_gas_price=str(snapshot.gas_price),
            average_gas_price=str(snapshot.average),
            optimal_gas_price=str(snapshot.optimal),
            transaction_gas_price=str(tx_price),
            congestion=congestion,
            efficiency_pct=efficiency,
            timing=TIMING[congestion],
            optimizations=optimizations,
            cost_saving_pct=saving,
        )
