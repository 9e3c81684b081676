"""Instruction handlers: decoded instructions in, projection changes out.

The processor is the only writer of the projection tables. It holds no state
between calls; everything it needs is read from the store or resolved
through the offer resolver.

Every handler may see the same instruction more than once (a crash between
applying a transaction and advancing the checkpoint replays it), so each one
checks for its own earlier effect and does nothing when it finds it. The
unique constraints on natural keys and signatures back this up.
"""
import logging
from typing import Awaitable, Callable, Dict, Optional

from projections import (
    Offer, OfferKey, OfferStatus, Proposal, ProposalStatus, Swap
)
from .instructions import (
    AcceptProposal, CancelOffer, DecodedInstruction, ExecuteSwap,
    InitializeOffer, InstructionKind, SubmitProposal, WithdrawProposal
)
from .resolver import OfferResolver

logger = logging.getLogger(__name__)

class TransactionProcessor:
    """Applies decoded fair swap instructions to the projection store."""

    def __init__(self, store, resolver: OfferResolver):
        """Initialize the processor.

        Args:
            store: Projection store (``ProjectionStore`` or a double with the same interface)
            resolver: Offer resolver for instructions that only carry the offer account
        """
        self.store = store
        self.resolver = resolver

    async def process(self, instruction: DecodedInstruction, signature: str, slot: int) -> bool:
        """Apply one instruction.

        Args:
            instruction: Decoded instruction
            signature: Signature of the enclosing transaction
            slot: Slot of the enclosing transaction

        Returns:
            True if the projection changed

        Raises:
            RPCError: If resolving an offer account fails on chain I/O
            asyncpg.PostgresError, DatabaseError, ProjectionError: On store failure;
                the handler's writes are rolled back
        """
        handler = _HANDLERS[instruction.kind]
        return await handler(self, instruction, signature, slot)

    async def initialize_offer(self, ix: InitializeOffer, signature: str, slot: int) -> bool:
        offer = Offer(
            offer_id=str(ix.offer_id),
            seller=ix.seller,
            offer_pda=ix.offer,
            token_mint_a=ix.token_mint_a,
            token_amount_a=str(ix.token_amount_a),
            token_mint_b=ix.token_mint_b,
            token_amount_b=str(ix.token_amount_b),
            allow_alternatives=ix.allow_alternatives,
            status=OfferStatus.ACTIVE,
            signature=signature,
            slot=slot
        )

        async with self.store.transaction() as session:
            if await session.offers.get(offer.seller, offer.offer_id):
                logger.debug(f"Offer {offer.seller}/{offer.offer_id} already indexed")
                return False
            created = await session.offers.create(offer)

        if created:
            logger.info(
                f"[{signature[:8]}] Offer {offer.offer_id} created by {offer.seller}: "
                f"{offer.token_amount_a} {offer.token_mint_a} for "
                f"{offer.token_amount_b} {offer.token_mint_b}"
            )
        return created

    async def cancel_offer(self, ix: CancelOffer, signature: str, slot: int) -> bool:
        async with self.store.transaction() as session:
            offer = await session.offers.find_by_pda(ix.offer)
            if not offer or offer.seller != ix.seller:
                logger.warning(
                    f"[{signature[:8]}] Cancel for unknown offer account {ix.offer} "
                    f"(seller {ix.seller}), skipping"
                )
                return False

            changed = await session.offers.set_status(
                offer.seller, offer.offer_id, OfferStatus.CANCELLED
            )

        if changed:
            logger.info(f"[{signature[:8]}] Offer {offer.offer_id} cancelled by {offer.seller}")
        else:
            logger.debug(f"Offer {offer.offer_id} is already {offer.status.value}")
        return changed

    async def execute_swap(self, ix: ExecuteSwap, signature: str, slot: int) -> bool:
        async with self.store.transaction() as session:
            if await session.swaps.get_by_signature(signature):
                logger.debug(f"Swap {signature[:8]} already indexed")
                return False

            offer = await session.offers.find_by_pda(ix.offer)
            if not offer or offer.seller != ix.seller:
                active = await session.offers.find_active_by_seller(ix.seller)
                offer = active[0] if len(active) == 1 else None
            if not offer:
                logger.warning(
                    f"[{signature[:8]}] No offer found for swap on {ix.offer} "
                    f"(seller {ix.seller}), skipping"
                )
                return False
            if offer.status != OfferStatus.ACTIVE:
                logger.warning(
                    f"[{signature[:8]}] Offer {offer.offer_id} is {offer.status.value}, "
                    f"ignoring swap"
                )
                return False

            await session.swaps.create(Swap(
                offer_id=offer.offer_id,
                buyer=ix.buyer,
                seller=offer.seller,
                token_a_mint=offer.token_mint_a,
                token_a_amount=offer.token_amount_a,
                token_b_mint=offer.token_mint_b,
                token_b_amount=offer.token_amount_b,
                signature=signature,
                slot=slot
            ))
            await session.offers.set_status(offer.seller, offer.offer_id, OfferStatus.COMPLETED)

        logger.info(
            f"[{signature[:8]}] Swap executed on offer {offer.offer_id}: "
            f"{offer.seller} -> {ix.buyer}"
        )
        return True

    async def submit_proposal(self, ix: SubmitProposal, signature: str, slot: int) -> bool:
        key = await self.resolver.resolve(ix.offer)
        if not key:
            logger.warning(
                f"[{signature[:8]}] Could not resolve offer account {ix.offer} "
                f"for proposal {ix.proposal_id}, skipping"
            )
            return False

        proposal = Proposal(
            proposal_id=str(ix.proposal_id),
            buyer=ix.buyer,
            offer_seller=key.seller,
            offer_id=key.offer_id,
            offer_pda=ix.offer,
            proposal_pda=ix.proposal,
            proposed_mint=ix.proposed_mint,
            proposed_amount=str(ix.proposed_amount),
            status=ProposalStatus.PENDING,
            signature=signature,
            slot=slot
        )

        async with self.store.transaction() as session:
            if await session.proposals.get(key, proposal.buyer, proposal.proposal_id):
                logger.debug(
                    f"Proposal {proposal.proposal_id} by {proposal.buyer} on "
                    f"offer {key.offer_id} already indexed"
                )
                return False
            created = await session.proposals.create(proposal)

        if created:
            logger.info(
                f"[{signature[:8]}] Proposal {proposal.proposal_id} on offer {key.offer_id} "
                f"by {proposal.buyer}: {proposal.proposed_amount} {proposal.proposed_mint}"
            )
        return created

    async def accept_proposal(self, ix: AcceptProposal, signature: str, slot: int) -> bool:
        key = await self.resolver.resolve(ix.offer)
        if not key:
            logger.warning(
                f"[{signature[:8]}] Could not resolve offer account {ix.offer} "
                f"for accept, skipping"
            )
            return False

        async with self.store.transaction() as session:
            if await session.swaps.get_by_signature(signature):
                logger.debug(f"Accept {signature[:8]} already indexed")
                return False

            proposal = await self._pending_proposal(session, key, ix)
            if not proposal:
                logger.warning(
                    f"[{signature[:8]}] No pending proposal by {ix.buyer} on "
                    f"offer {key.offer_id}, skipping"
                )
                return False

            offer = await session.offers.get(key.seller, key.offer_id)
            if not offer:
                logger.warning(f"[{signature[:8]}] Offer {key.offer_id} of {key.seller} never indexed, skipping")
                return False
            if offer.status != OfferStatus.ACTIVE:
                logger.warning(
                    f"[{signature[:8]}] Offer {offer.offer_id} is {offer.status.value}, "
                    f"ignoring accept"
                )
                return False

            await session.proposals.set_status(proposal.id, ProposalStatus.ACCEPTED)
            await session.swaps.create(Swap(
                offer_id=offer.offer_id,
                proposal_id=proposal.proposal_id,
                buyer=proposal.buyer,
                seller=offer.seller,
                token_a_mint=offer.token_mint_a,
                token_a_amount=offer.token_amount_a,
                token_b_mint=proposal.proposed_mint,
                token_b_amount=proposal.proposed_amount,
                signature=signature,
                slot=slot
            ))
            await session.offers.set_status(offer.seller, offer.offer_id, OfferStatus.COMPLETED)
            withdrawn = await session.proposals.withdraw_pending(key, exclude=proposal.id)

        logger.info(
            f"[{signature[:8]}] Proposal {proposal.proposal_id} by {proposal.buyer} accepted "
            f"on offer {offer.offer_id}; {withdrawn} other proposal(s) withdrawn"
        )
        return True

    async def withdraw_proposal(self, ix: WithdrawProposal, signature: str, slot: int) -> bool:
        async with self.store.transaction() as session:
            proposal = await session.proposals.find_by_pda(ix.proposal)
            if not proposal or proposal.buyer != ix.buyer:
                logger.warning(
                    f"[{signature[:8]}] Withdraw for unknown proposal account {ix.proposal} "
                    f"(buyer {ix.buyer}), skipping"
                )
                return False
            if proposal.status != ProposalStatus.PENDING:
                logger.debug(f"Proposal {proposal.proposal_id} is already {proposal.status.value}")
                return False

            changed = await session.proposals.set_status(proposal.id, ProposalStatus.WITHDRAWN)

        if changed:
            logger.info(
                f"[{signature[:8]}] Proposal {proposal.proposal_id} on offer "
                f"{proposal.offer_id} withdrawn by {proposal.buyer}"
            )
        return changed

    async def _pending_proposal(
        self,
        session,
        key: OfferKey,
        ix: AcceptProposal
    ) -> Optional[Proposal]:
        """The pending proposal an accept refers to.

        Looked up by proposal account first. Rows indexed before account
        addresses were recorded fall back to (offer, buyer) when exactly one
        pending proposal matches.
        """
        proposal = await session.proposals.find_by_pda(ix.proposal)
        if proposal and proposal.status == ProposalStatus.PENDING and proposal.offer_key == key:
            return proposal

        candidates = await session.proposals.find_pending(key, buyer=ix.buyer)
        if len(candidates) == 1:
            return candidates[0]
        if len(candidates) > 1:
            logger.warning(
                f"{len(candidates)} pending proposals by {ix.buyer} on offer {key.offer_id}, "
                f"cannot tell which was accepted"
            )
        return None

Handler = Callable[[TransactionProcessor, DecodedInstruction, str, int], Awaitable[bool]]

_HANDLERS: Dict[InstructionKind, Handler] = {
    InstructionKind.INITIALIZE_OFFER: TransactionProcessor.initialize_offer,
    InstructionKind.CANCEL_OFFER: TransactionProcessor.cancel_offer,
    InstructionKind.EXECUTE_SWAP: TransactionProcessor.execute_swap,
    InstructionKind.SUBMIT_PROPOSAL: TransactionProcessor.submit_proposal,
    InstructionKind.ACCEPT_PROPOSAL: TransactionProcessor.accept_proposal,
    InstructionKind.WITHDRAW_PROPOSAL: TransactionProcessor.withdraw_proposal,
}

if set(_HANDLERS) != set(InstructionKind):
    raise RuntimeError("every instruction kind needs a handler")
