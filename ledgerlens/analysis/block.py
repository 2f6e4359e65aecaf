"""Block analysis: header metrics plus a sample of transaction details."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from ledgerlens.analysis.budget import RequestBudget
from ledgerlens.chain.fetcher import BlockFetcher
from ledgerlens.chain.provider import LiveConnection
from ledgerlens.config import Settings
from ledgerlens.graph.mermaid import render_block_diagram
from ledgerlens.models.artifacts import BlockArtifact, BlockSummary, BlockTransaction, NetworkInfo
from ledgerlens.models.schema import RiskLevel
from ledgerlens.tokens.events import to_hex

logger = logging.getLogger(__name__)


def network_info(conn: LiveConnection) -> NetworkInfo:
    network = conn.network
    return NetworkInfo(
        id=network.id,
        name=network.name,
        native_symbol=network.native_symbol,
        explorer_url=network.explorer_url,
        endpoint=conn.endpoint,
    )


def activity_level(gas_utilization_pct: float) -> RiskLevel:
    if gas_utilization_pct > 80:
        return RiskLevel.HIGH
    if gas_utilization_pct > 50:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def block_transaction(detail: dict) -> BlockTransaction:
    if detail.get("unavailable"):
        return BlockTransaction(hash=to_hex(detail["hash"]), unavailable=True)
    to = detail.get("to")
    return BlockTransaction(
        hash=to_hex(detail["hash"]),
        from_address=str(detail.get("from", "")).lower() or None,
        to_address=str(to).lower() if to else None,
        value=str(int(detail.get("value") or 0)),
        gas_limit=str(int(detail.get("gas") or 0)),
        gas_price=str(int(detail.get("gasPrice") or 0)),
        type="Call" if to else "Create",
    )


async def analyze_block(
    conn: LiveConnection,
    number: int,
    settings: Settings,
    budget: RequestBudget,
) -> BlockArtifact:
    fetcher = BlockFetcher(conn, max_concurrent=settings.max_concurrent, detail_limit=settings.block_detail_limit)
    block, head = await fetcher.fetch_header(number)

    parent, details = None, []
    fetched = await budget.run("transactions", fetcher.fetch_details(block))
    if fetched is not None:
        parent, details = fetched

    transactions = [block_transaction(d) for d in details]
    available = [t for t in transactions if not t.unavailable]
    types: dict[str, int] = {}
    addresses: set[str] = set()
    for t in available:
        types[t.type] = types.get(t.type, 0) + 1
        addresses.update(a for a in (t.from_address, t.to_address) if a)

    gas_limit = int(block.get("gasLimit") or 0)
    gas_used = int(block.get("gasUsed") or 0)
    utilization = round(gas_used / gas_limit * 100, 2) if gas_limit else 0.0
    timestamp = int(block["timestamp"])
    all_hashes = [to_hex(t["hash"] if hasattr(t, "keys") else t) for t in block.get("transactions", [])]

    diagnostics = []
    if fetched is not None and number > 0 and parent is None:
        diagnostics.append("parent block: unavailable")
    missing = len(transactions) - len(available)
    if missing:
        diagnostics.append(f"transactions: {missing} of {len(transactions)} details unavailable")

    miner = str(block.get("miner") or "").lower() or None
    base_fee = block.get("baseFeePerGas")
    artifact = BlockArtifact(
        network=network_info(conn),
        explorer_url=conn.network.block_url(number),
        number=number,
        hash=to_hex(block.get("hash")),
        parent_hash=to_hex(block.get("parentHash")),
        timestamp=timestamp,
        timestamp_iso=datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat(),
        gas_limit=str(gas_limit),
        gas_used=str(gas_used),
        base_fee_per_gas=str(int(base_fee)) if base_fee is not None else None,
        miner=miner,
        block_time_seconds=timestamp - int(parent["timestamp"]) if parent else None,
        head=head,
        transaction_hashes=all_hashes[:50],
        transaction_types=types,
        total_value=str(sum(int(t.value) for t in available)),
        unique_addresses=len(addresses),
        transactions=transactions,
        summary=BlockSummary(
            total_transactions=len(all_hashes),
            gas_efficiency_pct=utilization,
            network_activity=activity_level(utilization),
            block_health="Active" if all_hashes else "Empty",
            blocks_behind=max(0, head - number),
        ),
        diagram=render_block_diagram(number, len(all_hashes), utilization, gas_used, miner or "", len(addresses)),
        diagnostics=diagnostics,
        endpoint_failures=conn.prior_failures,
    )
    logger.info(f"Analyzed block {number}: {len(all_hashes)} txns, {utilization:.1f}% gas used")
    return artifact
