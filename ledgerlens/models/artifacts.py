"""Outbound analysis artifacts.

Big integers are decimal strings. Sections that did not complete within the
request budget are left as ``None`` and dropped by ``to_json``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from ledgerlens.errors import EndpointFailure
from ledgerlens.models.schema import (
    AdvancedAnalysis,
    DecodedEvent,
    FlowGraph,
    OtherEvent,
    ProtocolTag,
    RiskAssessment,
    RiskLevel,
    TokenMetadata,
    TransactionContext,
)


class NetworkInfo(BaseModel):
    id: int
    name: str
    native_symbol: str
    explorer_url: str
    endpoint: str | None = None


class ArtifactBase(BaseModel):
    network: NetworkInfo
    explorer_url: str
    diagram: str | None = None
    diagnostics: list[str] = Field(default_factory=list)
    incomplete_sections: list[str] = Field(default_factory=list)
    endpoint_failures: list[EndpointFailure] = Field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.incomplete_sections

    def to_json(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


class Summary(BaseModel):
    complexity_tier: str
    risk_tier: RiskLevel | None = None
    status: str
    transfer_count: int
    token_count: int
    contract_count: int
    event_count: int
    other_event_count: int
    total_usd: float | None = None
    fees_usd: float | None = None
    fee: str
    gas_efficiency_pct: float
    congestion: RiskLevel | None = None


class TransactionArtifact(ArtifactBase):
    kind: str = "transaction"
    transaction: TransactionContext
    action_types: list[str] = Field(default_factory=list)
    events: list[DecodedEvent] = Field(default_factory=list)
    contract_interactions: list[str] = Field(default_factory=list)
    other_events: list[OtherEvent] = Field(default_factory=list)
    protocols: list[ProtocolTag] | None = None
    advanced: AdvancedAnalysis | None = None
    risk: RiskAssessment | None = None
    flow_graph: FlowGraph | None = None
    flow_stats: dict | None = None
    summary: Summary | None = None


class BlockTransaction(BaseModel):
    hash: str
    from_address: str | None = None
    to_address: str | None = None
    value: str = "0"
    gas_limit: str = "0"
    gas_price: str = "0"
    type: str = "Unknown"
    unavailable: bool = False


class BlockSummary(BaseModel):
    total_transactions: int
    gas_efficiency_pct: float
    network_activity: RiskLevel
    block_health: str
    blocks_behind: int


class BlockArtifact(ArtifactBase):
    kind: str = "block"
    number: int
    hash: str
    parent_hash: str
    timestamp: int
    timestamp_iso: str
    gas_limit: str
    gas_used: str
    base_fee_per_gas: str | None = None
    miner: str | None = None
    block_time_seconds: int | None = None
    head: int
    transaction_hashes: list[str] = Field(default_factory=list)
    transaction_types: dict[str, int] = Field(default_factory=dict)
    total_value: str = "0"
    unique_addresses: int = 0
    transactions: list[BlockTransaction] = Field(default_factory=list)
    summary: BlockSummary


class ContractProfile(BaseModel):
    code_size: int
    is_minimal_proxy: bool = False
    estimated_complexity: RiskLevel
    token: TokenMetadata | None = None
    protocol: ProtocolTag | None = None


class AddressSummary(BaseModel):
    address_type: str
    activity_level: RiskLevel
    balance_category: str
    risk_level: RiskLevel
    balance_usd: float | None = None


class AddressArtifact(ArtifactBase):
    kind: str = "address"
    address: str
    balance: str
    balance_native: float
    transaction_count: int
    is_contract: bool
    head: int
    contract: ContractProfile | None = None
    summary: AddressSummary
