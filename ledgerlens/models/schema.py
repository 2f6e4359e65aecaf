"""Pydantic v2 domain models for decoded and enriched ledger data.

Raw integer quantities (wei values, token amounts, gas figures) are carried
as decimal strings so they survive JSON serialization untouched.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TokenStandard(str, Enum):
    NATIVE = "Native"
    ERC20 = "ERC-20"
    ERC721 = "ERC-721"
    ERC1155 = "ERC-1155"
    UNKNOWN = "Unknown"


class EventKind(str, Enum):
    NATIVE_TRANSFER = "NativeTransfer"
    TOKEN_TRANSFER = "TokenTransfer"
    NFT_TRANSFER = "NFTTransfer"
    MULTI_TOKEN_TRANSFER = "MultiTokenTransfer"
    UNCLASSIFIED = "Unclassified"


FUNGIBLE_KINDS = frozenset({EventKind.NATIVE_TRANSFER, EventKind.TOKEN_TRANSFER})


class ProtocolCategory(str, Enum):
    DEX = "DEX"
    LENDING = "Lending"
    YIELD_FARMING = "Yield Farming"
    BRIDGE = "Bridge"
    STAKING = "Staking"
    UNKNOWN = "Unknown"


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]


_RISK_RANK = {RiskLevel.LOW: 0, RiskLevel.MEDIUM: 1, RiskLevel.HIGH: 2, RiskLevel.CRITICAL: 3}


class TokenMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: str = Field(description="Lower-cased contract address, or 'native'")
    name: str = "Unknown Token"
    symbol: str = "UNKNOWN"
    decimals: int = 18
    standard: TokenStandard = TokenStandard.UNKNOWN

    @property
    def is_unknown(self) -> bool:
        return self.standard is TokenStandard.UNKNOWN


class DecodedEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: EventKind
    from_address: str
    to_address: str
    amount: str = Field(description="Raw integer amount as a decimal string")
    token: TokenMetadata
    token_id: str | None = None
    operator: str | None = None
    log_index: int | None = None


class OtherEvent(BaseModel):
    """A log we did not decode, kept verbatim for auditability."""

    address: str
    topics: list[str]
    data: str
    log_index: int | None = None
    error: str | None = None


class TransactionContext(BaseModel):
    hash: str
    from_address: str
    to_address: str | None = None
    contract_address: str | None = None
    value: str = "0"
    input: str = "0x"
    nonce: int = 0
    tx_type: int = 0
    block_number: int | None = None
    gas_limit: str = "0"
    gas_price: str = "0"
    gas_used: str = "0"
    fee: str = "0"
    succeeded: bool = True

    @property
    def selector(self) -> str | None:
        return self.input[:10].lower() if len(self.input) >= 10 else None

    @property
    def gas_efficiency_pct(self) -> float:
        limit = int(self.gas_limit)
        return int(self.gas_used) / limit * 100 if limit else 0.0


class PriceQuote(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    usd_price: float
    change_24h: float = 0.0
    volume_24h: float = 0.0
    market_cap: float = 0.0
    source: str
    confidence: float = Field(ge=0.0, le=1.0)
    fetched_at: datetime


class ProtocolTag(BaseModel):
    address: str
    protocol_name: str
    category: ProtocolCategory
    verified: bool
    risk_level: RiskLevel
    action: str = "Unknown"
    confidence: float = Field(ge=0.0, le=1.0)
    description: str = ""
    purpose: str = ""
    protocol_fee_pct: float = 0.0
    risk_factors: list[str] = Field(default_factory=list)
    opportunities: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class Threat(BaseModel):
    category: str
    severity: RiskLevel
    description: str
    evidence: list[str] = Field(default_factory=list)
    mitigation: list[str] = Field(default_factory=list)
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)


class RiskAssessment(BaseModel):
    overall_level: RiskLevel
    score: int = Field(ge=0, le=100, description="Security score, 100 is cleanest")
    threats: list[Threat] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    observations: list[str] = Field(default_factory=list)


class MarketRead(BaseModel):
    volatility: RiskLevel
    trend: str
    risk_level: RiskLevel


class TransferValuation(BaseModel):
    kind: EventKind
    token_symbol: str
    token_address: str
    amount: str
    amount_decimal: float
    quote: PriceQuote | None = None
    value_usd: float = 0.0
    market: MarketRead | None = None
    note: str | None = None


class UsdValue(BaseModel):
    total: float = 0.0
    fees_usd: float = 0.0
    transfers: list[TransferValuation] = Field(default_factory=list)


class GasAnalysis(BaseModel):
    network_gas_price: str = "0"
    average_gas_price: str = "0"
    optimal_gas_price: str = "0"
    transaction_gas_price: str = "0"
    congestion: RiskLevel = RiskLevel.MEDIUM
    efficiency_pct: float = 0.0
    timing: str = ""
    optimizations: list[str] = Field(default_factory=list)
    cost_saving_pct: float = 0.0
    degraded: bool = False


class ArbitrageSignal(BaseModel):
    kind: str
    detail: str
    address: str | None = None
    token_symbol: str | None = None


class MarketImpact(BaseModel):
    price_movement_pct: float = 0.0
    volume_significance: str = "Negligible"
    arbitrage_signals: list[ArbitrageSignal] = Field(default_factory=list)


class AdvancedAnalysis(BaseModel):
    usd_value: UsdValue
    gas: GasAnalysis
    market_impact: MarketImpact
    protocols: list[ProtocolTag] = Field(default_factory=list)
    risk: RiskAssessment | None = None
    succeeded: bool = True


class FlowEdge(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: str
    target: str
    amount_label: str
    token_label: str


class FlowGraph(BaseModel):
    nodes: dict[str, str] = Field(default_factory=dict, description="node id -> address")
    edges: list[FlowEdge] = Field(default_factory=list)
    placeholder: bool = False
