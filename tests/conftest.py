"""Shared fixtures: an in-memory projection store, a scripted chain and
instruction builders, so the indexer can be exercised without a node or a
database."""

import json
from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Tuple
from uuid import uuid4

import base58
import pytest
from borsh_construct import Bool, U64

from indexer.idl import BUNDLED_IDL, parse_idl, sighash
from projections import (
    InvalidStatusTransition, Offer, OfferKey, OfferStatus, Proposal, ProposalStatus, Swap
)
from rpc import NodeConnectionError
from rpc.models import ChainTransaction, CompiledInstruction, SignatureInfo

PROGRAM_ID = 'GUijjz5VNLUkPSw9KKvH5ntUNoJuSDbWQDXZSrQgx9fW'

def address(n: int) -> str:
    """Deterministic base58 address for test account ``n``."""
    return base58.b58encode(bytes([n % 256]) * 31 + bytes([n // 256 + 1])).decode()

def u64(value: int) -> bytes:
    return U64.build(value)

def pubkey(addr: str) -> bytes:
    return base58.b58decode(addr)

def flag(value: bool) -> bytes:
    return Bool.build(value)

def ix_data(name: str, *args: bytes) -> bytes:
    return sighash('global', name) + b''.join(args)

def offer_account_data(seller: str, offer_id: int) -> bytes:
    # Trailing bytes stand in for the rest of the account (mints, amounts, bumps)
    return sighash('account', 'Offer') + u64(offer_id) + pubkey(seller) + bytes(90)

class Accounts:
    """Named test addresses"""
    SELLER = address(1)
    BUYER_X = address(2)
    BUYER_Y = address(3)
    MINT_A = address(10)
    MINT_B = address(11)
    MINT_C = address(12)
    MINT_D = address(13)
    OFFER_7 = address(20)
    OFFER_8 = address(21)
    VAULT = address(30)
    TOKEN_ACCOUNT = address(31)
    RECEIVE_ACCOUNT = address(32)
    PROPOSAL_X = address(40)
    PROPOSAL_Y = address(41)
    PROPOSAL_X2 = address(42)
    PROPOSAL_VAULT = address(50)

A = Accounts

def initialize_offer(offer=A.OFFER_7, seller=A.SELLER, offer_id=7, amount_a=10,
                     mint_a=A.MINT_A, mint_b=A.MINT_B, amount_b=5, alternatives=False):
    data = ix_data(
        'initialize_offer',
        u64(offer_id), u64(amount_a), pubkey(mint_b), u64(amount_b), flag(alternatives)
    )
    return data, [offer, A.VAULT, A.TOKEN_ACCOUNT, mint_a, seller]

def cancel_offer(offer=A.OFFER_7, seller=A.SELLER):
    return ix_data('cancel_offer'), [offer, A.VAULT, A.TOKEN_ACCOUNT, seller]

def execute_swap(offer=A.OFFER_7, buyer=A.BUYER_X, seller=A.SELLER):
    return ix_data('execute_swap'), [
        offer, A.VAULT, A.TOKEN_ACCOUNT, A.TOKEN_ACCOUNT, A.RECEIVE_ACCOUNT, buyer, seller
    ]

def submit_proposal(offer=A.OFFER_7, proposal=A.PROPOSAL_X, buyer=A.BUYER_X,
                    proposal_id=1, amount=8, mint=A.MINT_C):
    data = ix_data('submit_proposal', u64(proposal_id), u64(amount))
    return data, [offer, proposal, A.PROPOSAL_VAULT, A.TOKEN_ACCOUNT, mint, buyer]

def accept_proposal(offer=A.OFFER_7, proposal=A.PROPOSAL_Y, buyer=A.BUYER_Y, seller=A.SELLER):
    return ix_data('accept_proposal'), [
        offer, proposal, A.VAULT, A.PROPOSAL_VAULT,
        A.RECEIVE_ACCOUNT, A.RECEIVE_ACCOUNT, seller, buyer
    ]

def withdraw_proposal(proposal=A.PROPOSAL_X, buyer=A.BUYER_X):
    return ix_data('withdraw_proposal'), [proposal, A.PROPOSAL_VAULT, A.TOKEN_ACCOUNT, buyer]

class MemoryState:
    def __init__(self):
        self.offers: Dict[OfferKey, Offer] = {}
        self.proposals: Dict = {}
        self.swaps: Dict[str, Swap] = {}

class MemoryOffers:
    def __init__(self, state: MemoryState):
        self.state = state

    async def get(self, seller, offer_id):
        return self.state.offers.get(OfferKey(seller, offer_id))

    async def find_by_pda(self, offer_pda):
        matches = [o for o in self.state.offers.values() if o.offer_pda == offer_pda]
        return max(matches, key=lambda o: o.slot) if matches else None

    async def find_active_by_seller(self, seller):
        return [
            o for o in self.state.offers.values()
            if o.seller == seller and o.status == OfferStatus.ACTIVE
        ]

    async def create(self, offer):
        if offer.key in self.state.offers:
            return False
        if any(o.signature == offer.signature for o in self.state.offers.values()):
            return False
        self.state.offers[offer.key] = offer.model_copy(update={'id': uuid4()})
        return True

    async def set_status(self, seller, offer_id, status):
        if status == OfferStatus.ACTIVE:
            raise InvalidStatusTransition(f"Offer {seller}/{offer_id} cannot be re-activated")
        key = OfferKey(seller, offer_id)
        offer = self.state.offers.get(key)
        if not offer or offer.status != OfferStatus.ACTIVE:
            return False
        self.state.offers[key] = offer.model_copy(update={'status': status})
        return True

    async def list(self, seller=None, status=None, limit=100):
        rows = [
            o for o in self.state.offers.values()
            if (seller is None or o.seller == seller) and (status is None or o.status == status)
        ]
        return sorted(rows, key=lambda o: o.slot, reverse=True)[:limit]

    async def count_by_status(self):
        counts: Dict[str, int] = {}
        for o in self.state.offers.values():
            counts[o.status.value] = counts.get(o.status.value, 0) + 1
        return counts

class MemoryProposals:
    def __init__(self, state: MemoryState):
        self.state = state

    async def get(self, offer, buyer, proposal_id):
        for p in self.state.proposals.values():
            if p.offer_key == offer and p.buyer == buyer and p.proposal_id == proposal_id:
                return p
        return None

    async def find_by_pda(self, proposal_pda):
        matches = [p for p in self.state.proposals.values() if p.proposal_pda == proposal_pda]
        return max(matches, key=lambda p: p.slot) if matches else None

    async def find_pending(self, offer, buyer=None):
        return [
            p for p in self.state.proposals.values()
            if p.offer_key == offer and p.status == ProposalStatus.PENDING
            and (buyer is None or p.buyer == buyer)
        ]

    async def create(self, proposal):
        if await self.get(proposal.offer_key, proposal.buyer, proposal.proposal_id):
            return False
        if any(p.signature == proposal.signature for p in self.state.proposals.values()):
            return False
        row = proposal.model_copy(update={'id': uuid4()})
        self.state.proposals[row.id] = row
        return True

    async def set_status(self, proposal_uuid, status):
        if status == ProposalStatus.PENDING:
            raise InvalidStatusTransition(f"Proposal {proposal_uuid} cannot return to pending")
        proposal = self.state.proposals.get(proposal_uuid)
        if not proposal or proposal.status != ProposalStatus.PENDING:
            return False
        self.state.proposals[proposal_uuid] = proposal.model_copy(update={'status': status})
        return True

    async def withdraw_pending(self, offer, exclude):
        withdrawn = 0
        for p in await self.find_pending(offer):
            if p.id != exclude:
                self.state.proposals[p.id] = p.model_copy(update={'status': ProposalStatus.WITHDRAWN})
                withdrawn += 1
        return withdrawn

    async def count_by_status(self):
        counts: Dict[str, int] = {}
        for p in self.state.proposals.values():
            counts[p.status.value] = counts.get(p.status.value, 0) + 1
        return counts

class MemorySwaps:
    def __init__(self, state: MemoryState):
        self.state = state

    async def get_by_signature(self, signature):
        return self.state.swaps.get(signature)

    async def create(self, swap):
        if swap.signature in self.state.swaps:
            return False
        self.state.swaps[swap.signature] = swap.model_copy(update={'id': uuid4()})
        return True

    async def list_recent(self, limit=100, buyer=None, seller=None):
        rows = [
            s for s in self.state.swaps.values()
            if (buyer is None or s.buyer == buyer) and (seller is None or s.seller == seller)
        ]
        return sorted(rows, key=lambda s: s.slot, reverse=True)[:limit]

    async def count(self):
        return len(self.state.swaps)

class MemorySession:
    def __init__(self, state: MemoryState):
        self.offers = MemoryOffers(state)
        self.proposals = MemoryProposals(state)
        self.swaps = MemorySwaps(state)

class MemoryProjectionStore:
    """Same interface as ProjectionStore; a failing transaction leaves no trace."""

    def __init__(self):
        self.state = MemoryState()
        self.transactions = 0

    @asynccontextmanager
    async def session(self):
        yield MemorySession(self.state)

    @asynccontextmanager
    async def transaction(self):
        snapshot = (dict(self.state.offers), dict(self.state.proposals), dict(self.state.swaps))
        self.transactions += 1
        try:
            yield MemorySession(self.state)
        except BaseException:
            self.state.offers, self.state.proposals, self.state.swaps = snapshot
            raise

    @property
    def offers(self) -> List[Offer]:
        return list(self.state.offers.values())

    @property
    def proposals(self) -> List[Proposal]:
        return sorted(self.state.proposals.values(), key=lambda p: p.slot)

    @property
    def swaps(self) -> List[Swap]:
        return sorted(self.state.swaps.values(), key=lambda s: s.slot)

    def offer(self, seller, offer_id) -> Optional[Offer]:
        return self.state.offers.get(OfferKey(seller, str(offer_id)))

    def counts(self) -> Tuple[int, int, int]:
        return len(self.state.offers), len(self.state.proposals), len(self.state.swaps)

class MemoryCheckpoint:
    def __init__(self, slot: int = 0):
        self.key = 'fair_swap'
        self.slot = slot
        self.history: List[int] = []

    async def get_last_processed_slot(self) -> int:
        return self.slot

    async def set_last_processed_slot(self, slot: int) -> None:
        self.slot = slot
        self.history.append(slot)

class FakeChainReader:
    """Scripted chain: transactions are added by tests, reads never touch a node."""

    def __init__(self, program_id: str = PROGRAM_ID):
        self.program_id = program_id
        self.slot = 0
        self.signatures: List[SignatureInfo] = []
        self.transactions: Dict[str, ChainTransaction] = {}
        self.accounts: Dict[str, bytes] = {}
        self.down = False
        self.fetch_failures = set()
        self.fetch_errors: Dict[str, Exception] = {}
        self.account_errors: Dict[str, Exception] = {}
        self.account_reads: List[str] = []

    def add_transaction(self, signature: str, slot: int, instructions, err=None) -> ChainTransaction:
        """Record a transaction holding ``instructions`` as (data, accounts) pairs."""
        keys = [self.program_id]
        compiled = []
        for data, accounts in instructions:
            indexes = []
            for account in accounts:
                if account not in keys:
                    keys.append(account)
                indexes.append(keys.index(account))
            compiled.append(CompiledInstruction(program_id_index=0, accounts=indexes, data=data))

        tx = ChainTransaction(
            signature=signature, slot=slot, err=err, account_keys=keys, instructions=compiled
        )
        self.transactions[signature] = tx
        self.signatures.append(SignatureInfo(signature=signature, slot=slot, err=err))
        self.slot = max(self.slot, slot)
        return tx

    def get_current_slot(self) -> int:
        if self.down:
            raise NodeConnectionError("node unavailable", method='getSlot')
        return self.slot

    def list_signatures_since(self, after_slot: int, limit: int = 100) -> List[SignatureInfo]:
        if self.down:
            raise NodeConnectionError("node unavailable", method='getSignaturesForAddress')
        return sorted(
            (s for s in self.signatures if s.slot > after_slot),
            key=lambda s: s.slot
        )

    def fetch_transaction(self, signature: str) -> Optional[ChainTransaction]:
        if signature in self.fetch_failures:
            raise NodeConnectionError("request timed out", method='getTransaction')
        if signature in self.fetch_errors:
            raise self.fetch_errors[signature]
        return self.transactions.get(signature)

    def get_account_data(self, address: str) -> Optional[bytes]:
        self.account_reads.append(address)
        if address in self.account_errors:
            raise self.account_errors[address]
        return self.accounts.get(address)

@pytest.fixture
def idl():
    return parse_idl(json.loads(BUNDLED_IDL.read_text()), BUNDLED_IDL)

@pytest.fixture
def store():
    return MemoryProjectionStore()

@pytest.fixture
def chain():
    return FakeChainReader()

@pytest.fixture
def checkpoint():
    return MemoryCheckpoint()
