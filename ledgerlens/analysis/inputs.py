"""Classify free-form user input as a transaction hash, block number or address."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

TX_HASH_RE = re.compile(r"^0x[a-fA-F0-9]{64}$")
ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
DECIMAL_BLOCK_RE = re.compile(r"^[0-9]+$")
HEX_BLOCK_RE = re.compile(r"^0x[a-fA-F0-9]+$")
MAX_HEX_BLOCK_LENGTH = 12


class InputKind(str, Enum):
    TRANSACTION = "transaction-hash"
    BLOCK = "block-number"
    ADDRESS = "address"
    INVALID = "invalid"


@dataclass(frozen=True)
class InputClassification:
    kind: InputKind
    value: str
    normalized: str = ""

    @property
    def valid(self) -> bool:
        return self.kind is not InputKind.INVALID


def classify_input(text: str) -> InputClassification:
    value = (text or "").strip()

    if TX_HASH_RE.match(value):
        return InputClassification(InputKind.TRANSACTION, value, value.lower())
    if ADDRESS_RE.match(value):
        return InputClassification(InputKind.ADDRESS, value, value.lower())
    if DECIMAL_BLOCK_RE.match(value):
        return InputClassification(InputKind.BLOCK, value, str(int(value)))
    if HEX_BLOCK_RE.match(value) and len(value) <= MAX_HEX_BLOCK_LENGTH:
        return InputClassification(InputKind.BLOCK, value, str(int(value, 16)))
    return InputClassification(InputKind.INVALID, value)
