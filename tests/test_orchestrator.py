import asyncio
from unittest.mock import AsyncMock

import pytest
from eth_abi import encode

from conftest import ALICE, BOB, CAROL, GWEI, USDC_AVAX, FakeConnection, pad_topic, price_transport
from ledgerlens.analysis.orchestrator import AnalysisOrchestrator, transaction_context
from ledgerlens.config import Settings
from ledgerlens.errors import EndpointExhausted, EndpointFailure, InvalidInput, RecordNotFound
from ledgerlens.models.schema import RiskLevel
from ledgerlens.tokens.constants import TRANSFER_TOPIC

TX_HASH = "0x" + "ab" * 32
TOKEN_TX_HASH = "0x" + "cd" * 32
TRADER_JOE = "0x60ae616a2155ee3d9a68541ba4544862310933d4"


def native_transfer_connection() -> FakeConnection:
    tx = {
        "hash": TX_HASH,
        "from": ALICE,
        "to": BOB,
        "value": 15 * 10**17,
        "input": "0x",
        "nonce": 7,
        "type": 2,
        "gas": 21000,
        "gasPrice": 25 * GWEI,
    }
    receipt = {
        "status": 1,
        "gasUsed": 21000,
        "effectiveGasPrice": 25 * GWEI,
        "blockNumber": 100,
        "contractAddress": None,
        "logs": [],
    }
    token_tx = dict(tx, hash=TOKEN_TX_HASH, to=TRADER_JOE, value=0, input="0x38ed1739" + "00" * 160, gas=200_000)
    token_receipt = dict(
        receipt,
        gasUsed=150_000,
        logs=[{
            "address": USDC_AVAX,
            "topics": [TRANSFER_TOPIC, pad_topic(TRADER_JOE), pad_topic(ALICE)],
            "data": "0x" + encode(["uint256"], [12_000_000]).hex(),
            "logIndex": 0,
        }],
    )
    return FakeConnection(
        transactions={TX_HASH: tx, TOKEN_TX_HASH: token_tx},
        receipts={TX_HASH: receipt, TOKEN_TX_HASH: token_receipt},
        blocks={100: {"number": 100, "timestamp": 1_700_000_000, "transactions": [TX_HASH]}},
    )


def make_orchestrator(conn: FakeConnection, settings: Settings | None = None, prices=None) -> AnalysisOrchestrator:
    settings = settings or Settings(_env_file=None)
    orchestrator = AnalysisOrchestrator.from_settings(
        settings, transport=price_transport(prices if prices is not None else {"avalanche-2": 30.0, "usd-coin": 1.0}),
    )
    orchestrator.pool.acquire = AsyncMock(return_value=conn)
    return orchestrator


@pytest.mark.asyncio
async def test_native_transfer_end_to_end():
    conn = native_transfer_connection()
    artifact = await make_orchestrator(conn).analyze(TX_HASH)

    assert artifact.kind == "transaction"
    assert artifact.complete
    assert artifact.transaction.fee == "525000000000000"
    assert artifact.transaction.value == str(15 * 10**17)
    assert artifact.action_types == ["AVAX Transfer"]
    assert artifact.contract_interactions == []
    assert artifact.protocols == []
    assert artifact.summary.complexity_tier == "Simple"
    assert artifact.summary.risk_tier is RiskLevel.LOW
    assert artifact.summary.total_usd == pytest.approx(45.0)
    assert artifact.summary.status == "Success"
    assert artifact.summary.gas_efficiency_pct == 100.0
    assert artifact.explorer_url == f"https://snowtrace.io/tx/{TX_HASH}"
    assert artifact.flow_graph.nodes == {"A": ALICE, "B": BOB}
    assert 'A -->|"1.50 AVAX"| B' in artifact.diagram
    assert artifact.flow_stats["nodes"] == 2
    assert artifact.flow_stats["edges"] == 1
    assert artifact.flow_stats["is_weakly_connected"]
    assert conn.closed

    payload = artifact.to_json()
    assert payload["network"]["id"] == 43114
    assert payload["transaction"]["gas_used"] == "21000"
    assert payload["summary"]["risk_tier"] == "Low"


@pytest.mark.asyncio
async def test_contract_call_is_tagged():
    conn = native_transfer_connection()
    artifact = await make_orchestrator(conn).analyze(TOKEN_TX_HASH)

    assert artifact.action_types == ["ERC-20 Transfer", "Contract Call"]
    assert artifact.contract_interactions == [TRADER_JOE, USDC_AVAX]
    (tag,) = artifact.protocols
    assert tag.protocol_name == "Trader Joe Router"
    assert tag.action == "Token Swap"
    assert artifact.to_json()["flow_stats"]["edges"] == 1
    assert artifact.summary.total_usd == pytest.approx(12.0)
    assert artifact.summary.token_count == 1
    assert artifact.summary.gas_efficiency_pct == 75.0


@pytest.mark.asyncio
async def test_prices_degrade_to_fallback():
    conn = native_transfer_connection()
    orchestrator = make_orchestrator(conn, prices={})
    artifact = await orchestrator.analyze(TX_HASH)

    transfer = artifact.advanced.usd_value.transfers[0]
    assert transfer.quote.source == "fallback"
    assert transfer.value_usd == pytest.approx(37.5)
    assert artifact.complete


@pytest.mark.asyncio
async def test_missing_transaction_raises():
    conn = native_transfer_connection()
    orchestrator = make_orchestrator(conn)
    with pytest.raises(RecordNotFound):
        await orchestrator.analyze("0x" + "ee" * 32)
    assert conn.closed


@pytest.mark.asyncio
async def test_invalid_input_raises_before_connecting():
    orchestrator = make_orchestrator(native_transfer_connection())
    with pytest.raises(InvalidInput):
        await orchestrator.analyze("not-a-hash")
    orchestrator.pool.acquire.assert_not_called()


@pytest.mark.asyncio
async def test_endpoint_exhaustion_propagates():
    orchestrator = make_orchestrator(native_transfer_connection())
    failures = [EndpointFailure(url="https://down", reason="timed out")]
    orchestrator.pool.acquire = AsyncMock(side_effect=EndpointExhausted(43114, failures))

    with pytest.raises(EndpointExhausted):
        await orchestrator.analyze(TX_HASH)


@pytest.mark.asyncio
async def test_overrunning_stage_is_reported_incomplete():
    conn = native_transfer_connection()
    orchestrator = make_orchestrator(conn, settings=Settings(_env_file=None, request_budget_seconds=0.2))

    async def slow_analysis(*args, **kwargs):
        await asyncio.sleep(5)

    orchestrator.oracle.get_advanced_analysis = slow_analysis
    artifact = await orchestrator.analyze(TX_HASH)

    assert artifact.incomplete_sections == ["advanced"]
    assert not artifact.complete
    assert artifact.advanced is None
    assert artifact.risk is None
    assert artifact.summary.risk_tier is None
    assert len(artifact.events) == 1
    payload = artifact.to_json()
    assert "advanced" not in payload
    assert "risk" not in payload
    assert payload["incomplete_sections"] == ["advanced"]


@pytest.mark.asyncio
async def test_endpoint_failures_are_reported():
    conn = native_transfer_connection()
    conn.prior_failures = [EndpointFailure(url="https://down", reason="timed out after 5.0s")]
    artifact = await make_orchestrator(conn).analyze(TX_HASH)

    assert artifact.endpoint_failures[0].url == "https://down"
    assert artifact.to_json()["endpoint_failures"][0]["reason"] == "timed out after 5.0s"


@pytest.mark.asyncio
async def test_block_analysis_degrades_missing_details():
    block = {
        "number": 500,
        "hash": "0x" + "11" * 32,
        "parentHash": "0x" + "22" * 32,
        "timestamp": 1_700_000_002,
        "gasLimit": 15_000_000,
        "gasUsed": 9_000_000,
        "baseFeePerGas": 25 * GWEI,
        "miner": CAROL,
        "transactions": [TX_HASH, "0x" + "ee" * 32],
    }
    conn = native_transfer_connection()
    conn.blocks = {500: block, 499: {"number": 499, "timestamp": 1_700_000_000, "transactions": []}}
    conn.head = 510

    artifact = await make_orchestrator(conn).analyze("500")

    assert artifact.kind == "block"
    assert artifact.summary.total_transactions == 2
    assert artifact.summary.gas_efficiency_pct == 60.0
    assert artifact.summary.network_activity is RiskLevel.MEDIUM
    assert artifact.summary.blocks_behind == 10
    assert artifact.block_time_seconds == 2
    assert [t.unavailable for t in artifact.transactions] == [False, True]
    assert artifact.transaction_types == {"Call": 1}
    assert artifact.unique_addresses == 2
    assert any("1 of 2 details unavailable" in d for d in artifact.diagnostics)
    assert artifact.explorer_url == "https://snowtrace.io/block/500"


@pytest.mark.asyncio
async def test_missing_block_raises():
    with pytest.raises(RecordNotFound):
        await make_orchestrator(native_transfer_connection()).analyze("0x1f4")


@pytest.mark.asyncio
async def test_address_analysis():
    conn = native_transfer_connection()
    conn.balances = {ALICE: 150 * 10**18}
    conn.nonces = {ALICE: 42}

    artifact = await make_orchestrator(conn).analyze(ALICE)

    assert artifact.kind == "address"
    assert not artifact.is_contract
    assert artifact.balance == str(150 * 10**18)
    assert artifact.summary.address_type == "EOA"
    assert artifact.summary.balance_category == "Large"
    assert artifact.summary.activity_level is RiskLevel.MEDIUM
    assert artifact.summary.balance_usd == pytest.approx(4500.0)
    assert artifact.contract is None


@pytest.mark.asyncio
async def test_contract_address_profile():
    conn = native_transfer_connection()
    conn.codes = {TRADER_JOE: b"\x60\x80" * 1200}

    artifact = await make_orchestrator(conn).analyze(TRADER_JOE)

    assert artifact.is_contract
    assert artifact.contract.code_size == 2400
    assert artifact.contract.estimated_complexity is RiskLevel.MEDIUM
    assert artifact.contract.protocol.protocol_name == "Trader Joe Router"
    assert artifact.contract.token is None


@pytest.mark.asyncio
async def test_empty_address_is_not_found():
    with pytest.raises(RecordNotFound):
        await make_orchestrator(native_transfer_connection()).analyze("0x" + "99" * 20)


def test_transaction_context_handles_hex_strings():
    tx = {"hash": TX_HASH, "from": ALICE, "to": None, "value": "0x0", "input": "0x6080", "gas": "0x5208", "gasPrice": "0x3b9aca00"}
    receipt = {"status": "0x0", "gasUsed": "0x5208", "contractAddress": CAROL, "blockNumber": "0x10"}

    ctx = transaction_context(tx, receipt)

    assert ctx.to_address is None
    assert ctx.contract_address == CAROL
    assert ctx.gas_price == str(10**9)
    assert ctx.fee == str(21000 * 10**9)
    assert ctx.block_number == 16
    assert not ctx.succeeded
