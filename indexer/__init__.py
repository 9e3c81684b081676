"""Indexer module for the fair swap program.

This module provides:
- IDL loading and instruction decoding
- Per-instruction projection handlers
- The poll loop that drives them and advances the checkpoint

Each tick reads the checkpoint, lists program signatures newer than it,
applies their transactions oldest first, then moves the checkpoint to the
highest slot seen. Ticks never overlap.
"""

import asyncio
import logging
from typing import Dict, NamedTuple, Optional

import asyncpg

from database.exceptions import DatabaseError
from projections import ProjectionError
from rpc import RPCError, TransactionNotAvailable, node_unavailable
from rpc.models import SignatureInfo
from .idl import IdlError, IdlNotFoundError, ProgramIdl, load_idl
from .instructions import DecodedInstruction, InstructionKind
from .parser import InstructionDecoder
from .processor import TransactionProcessor
from .resolver import OfferResolver

logger = logging.getLogger(__name__)

# Failures confined to one transaction; the tick moves on to the next
STORE_ERRORS = (asyncpg.PostgresError, DatabaseError, ProjectionError)

class TickResult(NamedTuple):
    signatures: int
    transactions: int
    instructions: int
    checkpoint: int

class Indexer:
    """Polls the chain and projects fair swap instructions."""

    def __init__(
        self,
        reader,
        decoder: InstructionDecoder,
        processor: TransactionProcessor,
        checkpoint,
        poll_interval: float = 2.0,
        batch_size: int = 100,
        missing_retries: int = 5
    ):
        """Initialize the indexer.

        Args:
            reader: Chain reader for the program
            decoder: Instruction decoder
            processor: Transaction processor
            checkpoint: Checkpoint store
            poll_interval: Seconds to sleep between ticks
            batch_size: Signatures requested per page
            missing_retries: Ticks a listed transaction may be missing before it is skipped
        """
        self.reader = reader
        self.decoder = decoder
        self.processor = processor
        self.checkpoint = checkpoint
        self.poll_interval = poll_interval
        self.batch_size = batch_size
        self.missing_retries = missing_retries
        self.running = False
        self._missing: Dict[str, int] = {}

    async def run(self) -> None:
        """Poll until stopped. A failed tick is logged and retried next interval."""
        self.running = True
        logger.info(
            f"Indexing program {self.reader.program_id} every {self.poll_interval}s"
        )
        while self.running:
            try:
                result = await self.poll_once()
                if result.signatures:
                    logger.info(
                        f"Tick: {result.signatures} signature(s), {result.transactions} "
                        f"transaction(s) applied, {result.instructions} instruction(s), "
                        f"checkpoint {result.checkpoint}"
                    )
            except Exception as e:
                logger.error(f"Error in poll tick, checkpoint not advanced: {e}")

            if self.running:
                await asyncio.sleep(self.poll_interval)
        logger.info("Indexer stopped")

    def stop(self) -> None:
        """Ask the loop to exit after the in-flight tick."""
        logger.info("Stopping indexer...")
        self.running = False

    async def poll_once(self) -> TickResult:
        """Run a single tick.

        Raises:
            RPCError: If the node is unavailable; the checkpoint is unchanged
        """
        last = await self.checkpoint.get_last_processed_slot()
        current = self.reader.get_current_slot()
        if current <= last:
            return TickResult(0, 0, 0, last)

        signatures = self.reader.list_signatures_since(last, limit=self.batch_size)
        if not signatures:
            await self.checkpoint.set_last_processed_slot(current)
            return TickResult(0, 0, 0, current)

        logger.debug(f"Found {len(signatures)} new signature(s) after slot {last}")

        applied_transactions = 0
        applied_instructions = 0
        for sig_info in signatures:
            try:
                applied = await self.process_transaction(sig_info)
            except STORE_ERRORS as e:
                logger.error(f"Store error on transaction {sig_info.signature}: {e}")
                continue
            except RPCError as e:
                if node_unavailable(e):
                    raise
                logger.error(f"Node rejected reads for transaction {sig_info.signature}, skipping: {e}")
                continue
            except Exception as e:
                logger.error(
                    f"Error processing transaction {sig_info.signature}, skipping: {e}",
                    exc_info=True
                )
                continue
            if applied:
                applied_transactions += 1
                applied_instructions += applied

        new_checkpoint = max(last, max(sig.slot for sig in signatures))
        await self.checkpoint.set_last_processed_slot(new_checkpoint)
        return TickResult(len(signatures), applied_transactions, applied_instructions, new_checkpoint)

    async def process_transaction(self, sig_info: SignatureInfo) -> int:
        """Fetch, decode and apply one transaction.

        Returns:
            Number of instructions that changed the projection
        """
        if sig_info.failed:
            logger.debug(f"Skipping failed transaction {sig_info.signature[:8]}")
            return 0

        tx = self.reader.fetch_transaction(sig_info.signature)
        if tx is None:
            # Listed but not served yet: the node's transaction index lags its signature index
            misses = self._missing.get(sig_info.signature, 0) + 1
            if misses < self.missing_retries:
                self._missing[sig_info.signature] = misses
                raise TransactionNotAvailable(
                    f"Transaction {sig_info.signature} listed but not found (attempt {misses})",
                    method='getTransaction'
                )
            self._missing.pop(sig_info.signature, None)
            logger.warning(
                f"Transaction {sig_info.signature} not found after {misses} attempts, skipping"
            )
            return 0
        self._missing.pop(sig_info.signature, None)
        if tx.failed:
            logger.debug(f"Skipping failed transaction {sig_info.signature[:8]}: {tx.err}")
            return 0

        slot = tx.slot or sig_info.slot
        applied = 0
        for data, accounts in tx.instructions_for(self.reader.program_id):
            instruction = self.decoder.decode(data, accounts)
            if instruction is None:
                continue
            logger.debug(f"[{sig_info.signature[:8]}] {instruction.kind.value}")
            if await self.processor.process(instruction, sig_info.signature, slot):
                applied += 1
        return applied

def create_indexer(
    reader,
    store,
    checkpoint,
    idl: Optional[ProgramIdl] = None,
    poll_interval: float = 2.0,
    batch_size: int = 100,
    missing_retries: int = 5
) -> Indexer:
    """Wire an Indexer from its collaborators.

    Args:
        reader: Chain reader for the program
        store: Projection store
        checkpoint: Checkpoint store
        idl: Program IDL; loaded from the default locations if not provided

    Raises:
        IdlNotFoundError: If no IDL is given and none can be found
    """
    decoder = InstructionDecoder(idl or load_idl())
    resolver = OfferResolver(reader, store, decoder)
    processor = TransactionProcessor(store, resolver)
    return Indexer(
        reader,
        decoder,
        processor,
        checkpoint,
        poll_interval=poll_interval,
        batch_size=batch_size,
        missing_retries=missing_retries
    )

# Export public interface
__all__ = [
    'Indexer',
    'TickResult',
    'create_indexer',
    'InstructionDecoder',
    'TransactionProcessor',
    'OfferResolver',
    'DecodedInstruction',
    'InstructionKind',
    'ProgramIdl',
    'load_idl',
    'IdlError',
    'IdlNotFoundError'
]
