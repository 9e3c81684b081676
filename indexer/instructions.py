"""Typed fair swap instructions.

Each instruction kind has one model holding its role-labeled accounts and its
decoded arguments. ``ROLES`` is the fixed positional account layout of the
kind: position N of the instruction's account list fills ``ROLES[N]``.
"""
from enum import Enum
from typing import ClassVar, Dict, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field


class InstructionKind(str, Enum):
    INITIALIZE_OFFER = "initialize_offer"
    CANCEL_OFFER = "cancel_offer"
    EXECUTE_SWAP = "execute_swap"
    SUBMIT_PROPOSAL = "submit_proposal"
    ACCEPT_PROPOSAL = "accept_proposal"
    WITHDRAW_PROPOSAL = "withdraw_proposal"


class DecodedInstruction(BaseModel):
    model_config = ConfigDict(frozen=True)

    KIND: ClassVar[InstructionKind]
    ROLES: ClassVar[Tuple[str, ...]]

    @property
    def kind(self) -> InstructionKind:
        return self.KIND

    @property
    def accounts(self) -> Dict[str, str]:
        return {role: getattr(self, role) for role in self.ROLES}


class InitializeOffer(DecodedInstruction):
    KIND: ClassVar[InstructionKind] = InstructionKind.INITIALIZE_OFFER
    ROLES: ClassVar[Tuple[str, ...]] = (
        'offer', 'vault', 'seller_token_account', 'token_mint_a', 'seller'
    )

    offer: str
    vault: str
    seller_token_account: str
    token_mint_a: str
    seller: str

    offer_id: int = Field(ge=0)
    token_amount_a: int = Field(ge=0)
    token_mint_b: str
    token_amount_b: int = Field(ge=0)
    allow_alternatives: bool


class CancelOffer(DecodedInstruction):
    KIND: ClassVar[InstructionKind] = InstructionKind.CANCEL_OFFER
    ROLES: ClassVar[Tuple[str, ...]] = (
        'offer', 'vault', 'seller_token_account', 'seller'
    )

    offer: str
    vault: str
    seller_token_account: str
    seller: str


class ExecuteSwap(DecodedInstruction):
    KIND: ClassVar[InstructionKind] = InstructionKind.EXECUTE_SWAP
    ROLES: ClassVar[Tuple[str, ...]] = (
        'offer', 'vault', 'buyer_token_account', 'seller_token_account',
        'buyer_receive_account', 'buyer', 'seller'
    )

    offer: str
    vault: str
    buyer_token_account: str
    seller_token_account: str
    buyer_receive_account: str
    buyer: str
    seller: str


class SubmitProposal(DecodedInstruction):
    KIND: ClassVar[InstructionKind] = InstructionKind.SUBMIT_PROPOSAL
    ROLES: ClassVar[Tuple[str, ...]] = (
        'offer', 'proposal', 'proposal_vault', 'buyer_token_account',
        'proposed_mint', 'buyer'
    )

    offer: str
    proposal: str
    proposal_vault: str
    buyer_token_account: str
    proposed_mint: str
    buyer: str

    proposal_id: int = Field(ge=0)
    proposed_amount: int = Field(ge=0)


class AcceptProposal(DecodedInstruction):
    KIND: ClassVar[InstructionKind] = InstructionKind.ACCEPT_PROPOSAL
    ROLES: ClassVar[Tuple[str, ...]] = (
        'offer', 'proposal', 'offer_vault', 'proposal_vault',
        'seller_receive_account', 'buyer_receive_account', 'seller', 'buyer'
    )

    offer: str
    proposal: str
    offer_vault: str
    proposal_vault: str
    seller_receive_account: str
    buyer_receive_account: str
    seller: str
    buyer: str


class WithdrawProposal(DecodedInstruction):
    KIND: ClassVar[InstructionKind] = InstructionKind.WITHDRAW_PROPOSAL
    ROLES: ClassVar[Tuple[str, ...]] = (
        'proposal', 'proposal_vault', 'buyer_token_account', 'buyer'
    )

    proposal: str
    proposal_vault: str
    buyer_token_account: str
    buyer: str


INSTRUCTION_MODELS: Dict[InstructionKind, Type[DecodedInstruction]] = {
    model.KIND: model
    for model in (
        InitializeOffer,
        CancelOffer,
        ExecuteSwap,
        SubmitProposal,
        AcceptProposal,
        WithdrawProposal,
    )
}

if set(INSTRUCTION_MODELS) != set(InstructionKind):
    raise RuntimeError("every instruction kind needs a model")
