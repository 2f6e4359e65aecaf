"""Typed capability queries against contracts.

A probe answers "does this contract support X?" with SUPPORTED, UNSUPPORTED
or ERROR instead of letting a revert propagate as control flow. UNSUPPORTED
means the chain answered and the answer was no (revert, empty return,
undecodable output). ERROR means we could not find out (transport failure,
timeout), which callers treat as "unknown" rather than "no".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from eth_abi import decode, encode
from web3.exceptions import ContractLogicError

logger = logging.getLogger(__name__)

PUSH4 = 0x63


class Capability(str, Enum):
    SUPPORTED = "supported"
    UNSUPPORTED = "unsupported"
    ERROR = "error"


@dataclass(frozen=True)
class ProbeResult:
    capability: Capability
    value: Any = None
    reason: str = ""

    @property
    def supported(self) -> bool:
        return self.capability is Capability.SUPPORTED

    @property
    def errored(self) -> bool:
        return self.capability is Capability.ERROR


def selector_bytes(selector: str) -> bytes:
    return bytes.fromhex(selector.removeprefix("0x"))


async def probe_call(
    connection,
    address: str,
    selector: str,
    output_types: tuple[str, ...],
    arg_types: tuple[str, ...] = (),
    args: tuple = (),
) -> ProbeResult:
    """eth_call ``selector`` on ``address`` and decode its output."""
    payload = selector_bytes(selector)
    if arg_types:
        payload += encode(list(arg_types), list(args))

    try:
        raw = await connection.call(address, payload)
    except ContractLogicError as exc:
        return ProbeResult(Capability.UNSUPPORTED, reason=f"reverted: {exc}")
    except Exception as exc:
        logger.debug(f"Probe {selector} on {address} errored: {exc}")
        return ProbeResult(Capability.ERROR, reason=f"{type(exc).__name__}: {exc}")

    if not raw:
        return ProbeResult(Capability.UNSUPPORTED, reason="empty return data")

    try:
        values = decode(list(output_types), raw)
    except Exception as exc:
        return ProbeResult(Capability.UNSUPPORTED, reason=f"undecodable output: {exc}")
    return ProbeResult(Capability.SUPPORTED, value=values[0] if len(values) == 1 else values)


async def probe_string(connection, address: str, selector: str) -> ProbeResult:
    """Probe a ``string`` getter, accepting the legacy ``bytes32`` form (e.g. MKR)."""
    result = await probe_call(connection, address, selector, ("string",))
    if not result.reason.startswith("undecodable"):
        return result

    legacy = await probe_call(connection, address, selector, ("bytes32",))
    if legacy.supported:
        text = legacy.value.rstrip(b"\x00").decode("utf-8", errors="ignore")
        return ProbeResult(Capability.SUPPORTED, value=text)
    return result


def probe_bytecode(code: bytes, selector: str) -> ProbeResult:
    """Check a contract's dispatcher for ``PUSH4 <selector>``.

    Solidity and Vyper dispatchers compare the calldata selector against
    PUSH4 constants, so the pattern's presence is a strong hint the function
    exists. Proxies forward everything and never match.
    """
    if not code:
        return ProbeResult(Capability.UNSUPPORTED, reason="no code at address")
    needle = bytes([PUSH4]) + selector_bytes(selector)
    if needle in code:
        return ProbeResult(Capability.SUPPORTED, value=selector)
    return ProbeResult(Capability.UNSUPPORTED, reason=f"selector {selector} not in dispatcher")
