"""Errors that abort an analysis request.

Everything else (undecodable logs, failed metadata probes, missing prices,
unmatched protocols) degrades in place and never raises.
"""

from __future__ import annotations

from dataclasses import dataclass


class LedgerLensError(Exception):
    pass


@dataclass(frozen=True)
class EndpointFailure:
    url: str
    reason: str


class EndpointExhausted(LedgerLensError):
    """Every configured RPC endpoint for a network failed its liveness check."""

    def __init__(self, network_id: int, failures: list[EndpointFailure]):
        self.network_id = network_id
        self.failures = list(failures)
        reasons = "; ".join(f"{f.url}: {f.reason}" for f in self.failures) or "no endpoints configured"
        super().__init__(f"All RPC endpoints failed for network {network_id}. {reasons}")


class RecordNotFound(LedgerLensError):
    def __init__(self, kind: str, identifier: str | int):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class InvalidInput(LedgerLensError, ValueError):
    def __init__(self, value: str):
        self.value = value
        super().__init__(
            "Invalid input format. Provide a transaction hash (0x + 64 hex), "
            f"a block number, or an address (0x + 40 hex). Got: {value!r}"
        )
