import pytest

from conftest import ALICE, FakeConnection
from ledgerlens.labels.classifier import ProtocolClassifier, identify_action, infer_category, tag_confidence
from ledgerlens.models.schema import ProtocolCategory, RiskLevel, TransactionContext
from ledgerlens.tokens.constants import DEFI_EVENTS, DEFI_FUNCTIONS, MINIMAL_PROXY_PREFIX, function_selector

TRADER_JOE = "0x60ae616a2155ee3d9a68541ba4544862310933d4"
AAVE_V3 = "0x794a61358d6845594f94dc1db02a252b5b4814ad"
MYSTERY = "0x" + "5e" * 20
IMPLEMENTATION = "0x" + "1d" * 20


def dispatcher(*names: str) -> bytes:
    """Fake runtime code with a PUSH4 per selector."""
    code = b"\x60\x80\x60\x40"
    for name in names:
        code += b"\x63" + bytes.fromhex(function_selector(DEFI_FUNCTIONS[name])[2:]) + b"\x14"
    return code


def call_to(address: str, name: str) -> TransactionContext:
    return TransactionContext(
        hash="0x01",
        from_address=ALICE,
        to_address=address,
        input=function_selector(DEFI_FUNCTIONS[name]) + "00" * 64,
    )


@pytest.mark.asyncio
async def test_known_router_with_swap_selector():
    tags = await ProtocolClassifier().classify([TRADER_JOE], call_to(TRADER_JOE, "swapExactAVAXForTokens"), [], FakeConnection())

    (tag,) = tags
    assert tag.protocol_name == "Trader Joe Router"
    assert tag.category is ProtocolCategory.DEX
    assert tag.verified
    assert tag.action == "Token Swap"
    assert tag.confidence == 1.0
    assert tag.protocol_fee_pct == 0.3
    assert "Low-risk DeFi exposure" in tag.opportunities


@pytest.mark.asyncio
async def test_known_protocol_is_network_scoped():
    tags = await ProtocolClassifier().classify([TRADER_JOE], None, [], FakeConnection(network_id=1))
    assert tags == []


@pytest.mark.asyncio
async def test_action_from_events_when_not_tx_target():
    logs = [{"address": AAVE_V3, "topics": [DEFI_EVENTS["Borrow"]]}]
    (tag,) = await ProtocolClassifier().classify([AAVE_V3], None, logs, FakeConnection())

    assert tag.protocol_name == "Aave V3 Pool"
    assert tag.action == "Borrow Assets"
    assert tag.purpose


@pytest.mark.asyncio
async def test_heuristic_tag_is_unverified_and_high_risk():
    conn = FakeConnection(codes={MYSTERY: dispatcher("supply", "borrow")})
    (tag,) = await ProtocolClassifier().classify([MYSTERY], None, [], conn)

    assert tag.protocol_name == "Unknown Lending"
    assert tag.category is ProtocolCategory.LENDING
    assert not tag.verified
    assert tag.risk_level is RiskLevel.HIGH
    assert tag.action == "Unknown"
    assert tag.confidence == pytest.approx(0.3)
    assert "Unverified protocol risk" in tag.risk_factors
    assert tag.recommendations[0] == "Verify protocol audits and security measures"


@pytest.mark.asyncio
async def test_minimal_proxy_is_classified_by_implementation():
    proxy_code = MINIMAL_PROXY_PREFIX + bytes.fromhex(IMPLEMENTATION[2:]) + bytes.fromhex("5af43d82803e903d91602b57fd5bf3")
    conn = FakeConnection(codes={MYSTERY: proxy_code, IMPLEMENTATION: dispatcher("stake", "getReward")})

    (tag,) = await ProtocolClassifier().classify([MYSTERY], None, [], conn)

    assert tag.category is ProtocolCategory.YIELD_FARMING


@pytest.mark.asyncio
async def test_unmatched_address_is_left_untagged():
    conn = FakeConnection(codes={MYSTERY: b"\x60\x80\x60\x40\x52"})
    assert await ProtocolClassifier().classify([MYSTERY, "", MYSTERY], None, [], conn) == []


def test_heuristics_prefer_dex_over_lending():
    assert infer_category(dispatcher("borrow", "swapExactTokensForTokens")) is ProtocolCategory.DEX
    assert infer_category(dispatcher("depositETH")) is ProtocolCategory.BRIDGE
    assert infer_category(b"") is None


def test_identify_action_uses_selector_only_for_tx_target():
    tx = call_to(TRADER_JOE, "addLiquidity")
    assert identify_action(TRADER_JOE, tx, []) == "Add Liquidity"
    assert identify_action(AAVE_V3, tx, []) == "Unknown"


def test_tag_confidence_bounds():
    assert tag_confidence(True, "Token Swap", RiskLevel.LOW) == 1.0
    assert tag_confidence(False, "Unknown", RiskLevel.HIGH) == pytest.approx(0.3)
    assert tag_confidence(True, "Unknown", RiskLevel.MEDIUM) == pytest.approx(0.8)
