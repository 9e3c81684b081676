"""Offer projection queries and mutations."""
import logging
from typing import Dict, List, Optional

from .errors import InvalidStatusTransition
from .models import Offer, OfferStatus

logger = logging.getLogger(__name__)

class OfferRepository:
    """Offers table, bound to one connection."""

    def __init__(self, conn):
        self.conn = conn

    async def get(self, seller: str, offer_id: str) -> Optional[Offer]:
        row = await self.conn.fetchrow(
            'SELECT * FROM offers WHERE seller = $1 AND offer_id = $2',
            seller,
            offer_id
        )
        return Offer(**dict(row)) if row else None

    async def find_by_pda(self, offer_pda: str) -> Optional[Offer]:
        row = await self.conn.fetchrow(
            'SELECT * FROM offers WHERE offer_pda = $1 ORDER BY slot DESC LIMIT 1',
            offer_pda
        )
        return Offer(**dict(row)) if row else None

    async def find_active_by_seller(self, seller: str) -> List[Offer]:
        rows = await self.conn.fetch(
            '''
            SELECT * FROM offers
            WHERE seller = $1 AND status = 'active'
            ORDER BY slot DESC
            ''',
            seller
        )
        return [Offer(**dict(row)) for row in rows]

    async def create(self, offer: Offer) -> bool:
        """Insert an offer.

        Returns:
            False if an offer with the same (seller, offer_id) or signature
            already exists
        """
        offer_uuid = await self.conn.fetchval(
            '''
            INSERT INTO offers (
                offer_id, seller, offer_pda, token_mint_a, token_amount_a,
                token_mint_b, token_amount_b, allow_alternatives, status,
                signature, slot
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
            ON CONFLICT DO NOTHING
            RETURNING id
            ''',
            offer.offer_id,
            offer.seller,
            offer.offer_pda,
            offer.token_mint_a,
            offer.token_amount_a,
            offer.token_mint_b,
            offer.token_amount_b,
            offer.allow_alternatives,
            offer.status.value,
            offer.signature,
            offer.slot
        )
        return offer_uuid is not None

    async def set_status(self, seller: str, offer_id: str, status: OfferStatus) -> bool:
        """Move an active offer to ``status``.

        Returns:
            False if the offer doesn't exist or is no longer active

        Raises:
            InvalidStatusTransition: If ``status`` is not a terminal status
        """
        if status == OfferStatus.ACTIVE:
            raise InvalidStatusTransition(f"Offer {seller}/{offer_id} cannot be re-activated")

        offer_uuid = await self.conn.fetchval(
            '''
            UPDATE offers
            SET status = $3
            WHERE seller = $1 AND offer_id = $2 AND status = 'active'
            RETURNING id
            ''',
            seller,
            offer_id,
            status.value
        )
        return offer_uuid is not None

    async def list(
        self,
        seller: Optional[str] = None,
        status: Optional[OfferStatus] = None,
        limit: int = 100
    ) -> List[Offer]:
        rows = await self.conn.fetch(
            '''
            SELECT * FROM offers
            WHERE ($1::text IS NULL OR seller = $1)
            AND ($2::text IS NULL OR status = $2)
            ORDER BY slot DESC
            LIMIT $3
            ''',
            seller,
            status.value if status else None,
            limit
        )
        return [Offer(**dict(row)) for row in rows]

    async def count_by_status(self) -> Dict[str, int]:
        rows = await self.conn.fetch('SELECT status, count(*) AS n FROM offers GROUP BY status')
        return {row['status']: row['n'] for row in rows}
