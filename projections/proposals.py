"""Proposal projection queries and mutations."""
import logging
from typing import Dict, List, Optional
from uuid import UUID

from .errors import InvalidStatusTransition
from .models import OfferKey, Proposal, ProposalStatus

logger = logging.getLogger(__name__)

class ProposalRepository:
    """Proposals table, bound to one connection."""

    def __init__(self, conn):
        self.conn = conn

    async def get(self, offer: OfferKey, buyer: str, proposal_id: str) -> Optional[Proposal]:
        row = await self.conn.fetchrow(
            '''
            SELECT * FROM proposals
            WHERE offer_seller = $1 AND offer_id = $2 AND buyer = $3 AND proposal_id = $4
            ''',
            offer.seller,
            offer.offer_id,
            buyer,
            proposal_id
        )
        return Proposal(**dict(row)) if row else None

    async def find_by_pda(self, proposal_pda: str) -> Optional[Proposal]:
        row = await self.conn.fetchrow(
            'SELECT * FROM proposals WHERE proposal_pda = $1 ORDER BY slot DESC LIMIT 1',
            proposal_pda
        )
        return Proposal(**dict(row)) if row else None

    async def find_pending(self, offer: OfferKey, buyer: Optional[str] = None) -> List[Proposal]:
        rows = await self.conn.fetch(
            '''
            SELECT * FROM proposals
            WHERE offer_seller = $1 AND offer_id = $2 AND status = 'pending'
            AND ($3::text IS NULL OR buyer = $3)
            ORDER BY slot
            ''',
            offer.seller,
            offer.offer_id,
            buyer
        )
        return [Proposal(**dict(row)) for row in rows]

    async def create(self, proposal: Proposal) -> bool:
        """Insert a proposal.

        Returns:
            False if the natural key or signature already exists
        """
        proposal_uuid = await self.conn.fetchval(
            '''
            INSERT INTO proposals (
                proposal_id, buyer, offer_seller, offer_id, offer_pda,
                proposal_pda, proposed_mint, proposed_amount, status,
                signature, slot
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
            ON CONFLICT DO NOTHING
            RETURNING id
            ''',
            proposal.proposal_id,
            proposal.buyer,
            proposal.offer_seller,
            proposal.offer_id,
            proposal.offer_pda,
            proposal.proposal_pda,
            proposal.proposed_mint,
            proposal.proposed_amount,
            proposal.status.value,
            proposal.signature,
            proposal.slot
        )
        return proposal_uuid is not None

    async def set_status(self, proposal_uuid: UUID, status: ProposalStatus) -> bool:
        """Move a pending proposal to ``status``.

        Returns:
            False if the proposal is no longer pending

        Raises:
            InvalidStatusTransition: If ``status`` is not a terminal status
        """
        if status == ProposalStatus.PENDING:
            raise InvalidStatusTransition(f"Proposal {proposal_uuid} cannot return to pending")

        updated = await self.conn.fetchval(
            '''
            UPDATE proposals
            SET status = $2
            WHERE id = $1 AND status = 'pending'
            RETURNING id
            ''',
            proposal_uuid,
            status.value
        )
        return updated is not None

    async def withdraw_pending(self, offer: OfferKey, exclude: UUID) -> int:
        """Withdraw every pending proposal on an offer except ``exclude``.

        Returns:
            Number of proposals withdrawn
        """
        rows = await self.conn.fetch(
            '''
            UPDATE proposals
            SET status = 'withdrawn'
            WHERE offer_seller = $1 AND offer_id = $2
            AND status = 'pending' AND id != $3
            RETURNING id
            ''',
            offer.seller,
            offer.offer_id,
            exclude
        )
        return len(rows)

    async def count_by_status(self) -> Dict[str, int]:
        rows = await self.conn.fetch('SELECT status, count(*) AS n FROM proposals GROUP BY status')
        return {row['status']: row['n'] for row in rows}
