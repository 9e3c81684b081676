"""Checkpoint store: the last fully processed slot."""
import logging
from typing import Optional

from database import get_pool

logger = logging.getLogger(__name__)

class CheckpointStore:
    """Single row in indexer_state keyed by the indexer key.

    The store doesn't enforce monotonic slots; callers only move the
    checkpoint forward, except for an explicit operator reset.
    """

    def __init__(self, pool=None, key: str = 'fair_swap'):
        self.pool = pool
        self.key = key

    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()

    async def get_last_processed_slot(self) -> int:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            slot: Optional[int] = await conn.fetchval(
                'SELECT last_processed_slot FROM indexer_state WHERE key = $1',
                self.key
            )
        return slot or 0

    async def set_last_processed_slot(self, slot: int) -> None:
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            await conn.execute(
                '''
                INSERT INTO indexer_state (key, last_processed_slot, updated_at)
                VALUES ($1, $2, now())
                ON CONFLICT (key) DO UPDATE SET
                    last_processed_slot = EXCLUDED.last_processed_slot,
                    updated_at = now()
                ''',
                self.key,
                slot
            )
        logger.debug(f"Checkpoint {self.key} set to slot {slot}")
