"""Decode receipt logs into typed transfer events.

Transfer topics handled:
- ERC-20 Transfer: 3 topics (sig, from, to), value in data
- ERC-721 Transfer: same signature, 4 topics (sig, from, to, tokenId), empty data
- ERC-1155 TransferSingle: 4 topics (sig, operator, from, to), data = (id, value)
- ERC-1155 TransferBatch: 4 topics, data = (ids[], values[])
- Legacy Transfer with nothing indexed: 1 topic, data = (from, to, value)

Anything else is kept verbatim in ``other_events``.
"""

from __future__ import annotations

import asyncio
import logging

from eth_abi import decode
from pydantic import BaseModel, Field

from ledgerlens.models.schema import DecodedEvent, EventKind, OtherEvent, TokenMetadata
from ledgerlens.tokens.constants import (
    TRANSFER_BATCH_TOPIC,
    TRANSFER_SINGLE_TOPIC,
    TRANSFER_TOPIC,
    ZERO_ADDRESS,
)
from ledgerlens.tokens.metadata import TokenMetadataResolver, native_token

logger = logging.getLogger(__name__)

TOKEN_TOPICS = frozenset({TRANSFER_TOPIC, TRANSFER_SINGLE_TOPIC, TRANSFER_BATCH_TOPIC})


class ExtractedEvents(BaseModel):
    events: list[DecodedEvent] = Field(default_factory=list)
    action_types: list[str] = Field(default_factory=list)
    contract_interactions: list[str] = Field(default_factory=list)
    other_events: list[OtherEvent] = Field(default_factory=list)


def to_hex(value) -> str:
    """Render HexBytes / bytes / hex strings as a lower-case 0x string."""
    if value is None:
        return "0x"
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    text = str(value).lower()
    return text if text.startswith("0x") else "0x" + text


def to_bytes(value) -> bytes:
    if value is None:
        return b""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return bytes.fromhex(str(value).removeprefix("0x"))


def topic_to_address(topic) -> str:
    """Convert a 32-byte padded topic to a 20-byte hex address."""
    return "0x" + to_hex(topic)[-40:]


def topic_to_int(topic) -> int:
    return int(to_hex(topic), 16)


def action_label(event: DecodedEvent, batch: bool = False) -> str:
    if event.kind is EventKind.NATIVE_TRANSFER:
        return f"{event.token.symbol} Transfer"
    if event.kind is EventKind.TOKEN_TRANSFER:
        return "ERC-20 Transfer"
    if event.kind is EventKind.NFT_TRANSFER:
        return "ERC-721 Transfer"
    if event.kind is EventKind.MULTI_TOKEN_TRANSFER:
        return "ERC-1155 Batch Transfer" if batch else "ERC-1155 Transfer"
    return "Token Transfer"


class EventDecoder:
    """Turn a transaction receipt into DecodedEvents plus the leftovers."""

    def __init__(self, resolver: TokenMetadataResolver):
        self.resolver = resolver

    async def decode(self, receipt, connection, transaction=None) -> ExtractedEvents:
        extracted = ExtractedEvents()
        actions: dict[str, None] = {}
        interactions: dict[str, None] = {}

        native = self._native_transfer(transaction, connection)
        if native is not None:
            extracted.events.append(native)
            actions[action_label(native)] = None

        logs = list(receipt.get("logs") or [])
        tokens = await self._prefetch_metadata(logs, connection)

        for log in logs:
            address = str(log.get("address", "")).lower()
            if address:
                interactions[address] = None

            topics = [to_hex(t) for t in log.get("topics") or []]
            topic0 = topics[0] if topics else None
            if topic0 not in TOKEN_TOPICS:
                extracted.other_events.append(self._other(log, topics))
                continue

            try:
                token = tokens.get(address) or await self.resolver.resolve(address, connection)
                decoded = self._decode_log(log, topics, token)
            except Exception as exc:
                logger.debug(f"Demoting log {log.get('logIndex')} from {address}: {exc}")
                extracted.other_events.append(self._other(log, topics, error=f"{type(exc).__name__}: {exc}"))
                continue

            batch = topic0 == TRANSFER_BATCH_TOPIC
            for event in decoded:
                extracted.events.append(event)
                actions[action_label(event, batch=batch)] = None

        extracted.action_types = list(actions)
        extracted.contract_interactions = list(interactions)
        logger.debug(
            f"Decoded {len(extracted.events)} events, {len(extracted.other_events)} other logs"
        )
        return extracted

    def _native_transfer(self, transaction, connection) -> DecodedEvent | None:
        if transaction is None:
            return None
        value = int(transaction.get("value") or 0)
        if value <= 0:
            return None
        recipient = transaction.get("to") or ZERO_ADDRESS
        return DecodedEvent(
            kind=EventKind.NATIVE_TRANSFER,
            from_address=str(transaction["from"]).lower(),
            to_address=str(recipient).lower(),
            amount=str(value),
            token=native_token(connection.network),
        )

    async def _prefetch_metadata(self, logs: list, connection) -> dict[str, TokenMetadata]:
        """Resolve every distinct token contract once, concurrently."""
        addresses = list(dict.fromkeys(
            str(log.get("address", "")).lower()
            for log in logs
            if log.get("topics") and to_hex(log["topics"][0]) in TOKEN_TOPICS and log.get("address")
        ))
        if not addresses:
            return {}
        results = await asyncio.gather(
            *(self.resolver.resolve(a, connection) for a in addresses),
            return_exceptions=True,
        )
        return {a: r for a, r in zip(addresses, results) if isinstance(r, TokenMetadata)}

    def _decode_log(self, log, topics: list[str], token: TokenMetadata) -> list[DecodedEvent]:
        topic0 = topics[0]
        data = to_bytes(log.get("data"))
        log_index = log.get("logIndex")
        if isinstance(log_index, str):
            log_index = int(log_index, 16)

        if topic0 == TRANSFER_TOPIC:
            if len(topics) == 3:
                (value,) = decode(["uint256"], data)
                return [DecodedEvent(
                    kind=EventKind.TOKEN_TRANSFER,
                    from_address=topic_to_address(topics[1]),
                    to_address=topic_to_address(topics[2]),
                    amount=str(value),
                    token=token,
                    log_index=log_index,
                )]
            if len(topics) == 4:
                return [DecodedEvent(
                    kind=EventKind.NFT_TRANSFER,
                    from_address=topic_to_address(topics[1]),
                    to_address=topic_to_address(topics[2]),
                    amount="1",
                    token=token,
                    token_id=str(topic_to_int(topics[3])),
                    log_index=log_index,
                )]
            if len(topics) == 1 and len(data) == 96:
                sender, recipient, value = decode(["address", "address", "uint256"], data)
                return [DecodedEvent(
                    kind=EventKind.UNCLASSIFIED,
                    from_address=sender.lower(),
                    to_address=recipient.lower(),
                    amount=str(value),
                    token=token,
                    log_index=log_index,
                )]
            raise ValueError(f"unexpected Transfer shape: {len(topics)} topics, {len(data)} data bytes")

        if len(topics) != 4:
            raise ValueError(f"ERC-1155 event with {len(topics)} topics")
        operator = topic_to_address(topics[1])
        sender = topic_to_address(topics[2])
        recipient = topic_to_address(topics[3])

        if topic0 == TRANSFER_SINGLE_TOPIC:
            token_id, value = decode(["uint256", "uint256"], data)
            pairs = [(token_id, value)]
        else:
            ids, values = decode(["uint256[]", "uint256[]"], data)
            if len(ids) != len(values):
                raise ValueError(f"TransferBatch length mismatch: {len(ids)} ids, {len(values)} values")
            pairs = list(zip(ids, values))

        return [
            DecodedEvent(
                kind=EventKind.MULTI_TOKEN_TRANSFER,
                from_address=sender,
                to_address=recipient,
                amount=str(value),
                token=token,
                token_id=str(token_id),
                operator=operator,
                log_index=log_index,
            )
            for token_id, value in pairs
        ]

    @staticmethod
    def _other(log, topics: list[str], error: str | None = None) -> OtherEvent:
        log_index = log.get("logIndex")
        if isinstance(log_index, str):
            log_index = int(log_index, 16)
        return OtherEvent(
            address=str(log.get("address", "")).lower(),
            topics=topics,
            data=to_hex(log.get("data")),
            log_index=log_index,
            error=error,
        )
