"""Raw ledger fetches: transaction bundles, blocks with details, address snapshots."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from tqdm import tqdm

from ledgerlens.chain.provider import LiveConnection
from ledgerlens.errors import RecordNotFound
from ledgerlens.tokens.events import to_hex

logger = logging.getLogger(__name__)


@dataclass
class TransactionBundle:
    transaction: dict
    receipt: dict
    block: dict | None = None
    diagnostics: list[str] = field(default_factory=list)


@dataclass
class AddressSnapshot:
    address: str
    balance: int
    code: bytes
    nonce: int
    head: int

    @property
    def is_contract(self) -> bool:
        return len(self.code) > 0


async def fetch_transaction_bundle(conn: LiveConnection, tx_hash: str) -> TransactionBundle:
    """Transaction and receipt are required; the containing block is best-effort."""
    transaction, receipt = await asyncio.gather(
        conn.get_transaction(tx_hash),
        conn.get_transaction_receipt(tx_hash),
    )
    bundle = TransactionBundle(transaction=transaction, receipt=receipt)

    block_number = receipt.get("blockNumber")
    if block_number is None:
        bundle.diagnostics.append("block: transaction is not yet mined")
        return bundle
    try:
        bundle.block = await conn.get_block(block_number)
    except Exception as exc:
        logger.debug(f"Block {block_number} for {tx_hash} unavailable: {exc}")
        bundle.diagnostics.append(f"block: unavailable ({type(exc).__name__})")
    return bundle


class BlockFetcher:
    """Fetch a block plus the details of its first transactions in parallel."""

    def __init__(self, conn: LiveConnection, max_concurrent: int = 10, detail_limit: int = 10):
        self.conn = conn
        self.semaphore = asyncio.Semaphore(max_concurrent)
        self.detail_limit = detail_limit

    async def _fetch_detail(self, tx_hash: str) -> dict:
        """Fetch one transaction. Degrades to an 'unavailable' stub on error."""
        async with self.semaphore:
            try:
                return dict(await self.conn.get_transaction(tx_hash))
            except Exception as exc:
                logger.debug(f"Transaction {tx_hash} unavailable: {exc}")
                return {"hash": tx_hash, "unavailable": True}

    async def _fetch_optional_block(self, number: int) -> dict | None:
        async with self.semaphore:
            try:
                return await self.conn.get_block(number)
            except Exception as exc:
                logger.debug(f"Block {number} unavailable: {exc}")
                return None

    async def fetch_header(self, block_number: int) -> tuple[dict, int]:
        """The block itself and the chain head. Raises RecordNotFound."""
        block, head = await asyncio.gather(
            self.conn.get_block(block_number),
            self.conn.get_latest_block_number(),
        )
        return block, head

    async def fetch_details(self, block: dict, progress: bool = False) -> tuple[dict | None, list[dict]]:
        """Parent block and the first ``detail_limit`` transactions, fetched concurrently.

        Outstanding fetches are cancelled if the caller is cancelled or times out.
        """
        number = block["number"]
        hashes = [to_hex(t["hash"] if hasattr(t, "keys") else t) for t in block.get("transactions", [])]
        selected = hashes[: self.detail_limit]

        async def indexed(i: int, h: str) -> tuple[int, dict]:
            return i, await self._fetch_detail(h)

        parent_task = asyncio.create_task(self._fetch_optional_block(number - 1)) if number > 0 else None
        tasks = [asyncio.create_task(indexed(i, h)) for i, h in enumerate(selected)]
        details: list[dict] = [{}] * len(selected)
        desc = f"Fetching transactions of block {number}"
        try:
            for coro in tqdm(asyncio.as_completed(tasks), total=len(tasks), desc=desc, disable=not progress):
                i, detail = await coro
                details[i] = detail
            parent = await parent_task if parent_task is not None else None
        finally:
            pending = [t for t in (parent_task, *tasks) if t is not None and not t.done()]
            for task in pending:
                task.cancel()
            if pending:
                logger.debug(f"Cancelled {len(pending)} outstanding fetches for block {number}")
                await asyncio.gather(*pending, return_exceptions=True)
        return parent, details


async def fetch_address_snapshot(conn: LiveConnection, address: str) -> AddressSnapshot:
    balance, code, nonce, head = await asyncio.gather(
        conn.get_balance(address),
        conn.get_code(address),
        conn.get_transaction_count(address),
        conn.get_latest_block_number(),
    )
    if balance == 0 and not code and nonce == 0:
        raise RecordNotFound("address", address)
    return AddressSnapshot(address=address.lower(), balance=balance, code=bytes(code), nonce=nonce, head=head)
