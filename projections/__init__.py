"""Projections module: the relational read model of the fair swap program.

This module provides:
- Offer, proposal and swap repositories
- Transactional sessions so multi-row changes apply atomically
- The indexer checkpoint store

The indexer is the only writer. Readers (REST layer, dashboards) query the
same tables and see each session's changes all at once.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from database import get_pool
from .checkpoint import CheckpointStore
from .errors import ProjectionError, InvalidStatusTransition
from .models import Offer, OfferKey, OfferStatus, Proposal, ProposalStatus, Swap
from .offers import OfferRepository
from .proposals import ProposalRepository
from .swaps import SwapRepository

class ProjectionSession:
    """Repositories sharing one connection."""

    def __init__(self, conn):
        self.conn = conn
        self.offers = OfferRepository(conn)
        self.proposals = ProposalRepository(conn)
        self.swaps = SwapRepository(conn)

class ProjectionStore:
    """Entry point to the projection tables."""

    def __init__(self, pool=None):
        """Initialize the projection store.

        Args:
            pool: Optional database pool. If not provided, will get from database module.
        """
        self.pool = pool

    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[ProjectionSession]:
        """Session without an explicit transaction, for reads."""
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            yield ProjectionSession(conn)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[ProjectionSession]:
        """Session whose writes commit together or not at all."""
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield ProjectionSession(conn)

# Export public interface
__all__ = [
    'ProjectionStore',
    'ProjectionSession',
    'CheckpointStore',
    'ProjectionError',
    'InvalidStatusTransition',
    'Offer',
    'OfferKey',
    'OfferStatus',
    'Proposal',
    'ProposalStatus',
    'Swap'
]
