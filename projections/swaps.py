"""Completed swap records. Rows are only ever inserted."""
from typing import List, Optional

from .models import Swap

class SwapRepository:
    """Swaps table, bound to one connection."""

    def __init__(self, conn):
        self.conn = conn

    async def get_by_signature(self, signature: str) -> Optional[Swap]:
        row = await self.conn.fetchrow('SELECT * FROM swaps WHERE signature = $1', signature)
        return Swap(**dict(row)) if row else None

    async def create(self, swap: Swap) -> bool:
        """Insert a swap; False if one already exists for the signature."""
        swap_uuid = await self.conn.fetchval(
            '''
            INSERT INTO swaps (
                offer_id, proposal_id, buyer, seller,
                token_a_mint, token_a_amount, token_b_mint, token_b_amount,
                signature, slot
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
            ON CONFLICT (signature) DO NOTHING
            RETURNING id
            ''',
            swap.offer_id,
            swap.proposal_id,
            swap.buyer,
            swap.seller,
            swap.token_a_mint,
            swap.token_a_amount,
            swap.token_b_mint,
            swap.token_b_amount,
            swap.signature,
            swap.slot
        )
        return swap_uuid is not None

    async def list_recent(
        self,
        limit: int = 100,
        buyer: Optional[str] = None,
        seller: Optional[str] = None
    ) -> List[Swap]:
        rows = await self.conn.fetch(
            '''
            SELECT * FROM swaps
            WHERE ($2::text IS NULL OR buyer = $2)
            AND ($3::text IS NULL OR seller = $3)
            ORDER BY slot DESC
            LIMIT $1
            ''',
            limit,
            buyer,
            seller
        )
        return [Swap(**dict(row)) for row in rows]

    async def count(self) -> int:
        return await self.conn.fetchval('SELECT count(*) FROM swaps')
