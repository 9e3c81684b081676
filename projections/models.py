from datetime import datetime
from enum import Enum
from typing import NamedTuple, Optional
from uuid import UUID
from pydantic import BaseModel


class OfferStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class ProposalStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    WITHDRAWN = "withdrawn"


class OfferKey(NamedTuple):
    """Natural key of an offer: the seller and the program-assigned offer id."""
    seller: str
    offer_id: str


class Offer(BaseModel):
    id: Optional[UUID] = None
    offer_id: str
    seller: str
    offer_pda: Optional[str] = None
    token_mint_a: str
    token_amount_a: str
    token_mint_b: str
    token_amount_b: str
    allow_alternatives: bool = False
    status: OfferStatus = OfferStatus.ACTIVE
    signature: str
    slot: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def key(self) -> OfferKey:
        return OfferKey(self.seller, self.offer_id)


class Proposal(BaseModel):
    id: Optional[UUID] = None
    proposal_id: str
    buyer: str
    offer_seller: str
    offer_id: str
    offer_pda: Optional[str] = None
    proposal_pda: Optional[str] = None
    proposed_mint: str
    proposed_amount: str
    status: ProposalStatus = ProposalStatus.PENDING
    signature: str
    slot: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def offer_key(self) -> OfferKey:
        return OfferKey(self.offer_seller, self.offer_id)


class Swap(BaseModel):
    id: Optional[UUID] = None
    offer_id: str
    proposal_id: Optional[str] = None
    buyer: str
    seller: str
    token_a_mint: str
    token_a_amount: str
    token_b_mint: str
    token_b_amount: str
    signature: str
    slot: int
    executed_at: Optional[datetime] = None
