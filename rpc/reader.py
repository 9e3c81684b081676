"""Read-only view of the chain for one program.

Wraps the JSON-RPC client with the handful of calls the indexer needs and
turns the node's JSON into typed models. Nothing here writes to the chain.
"""
import base64
import logging
from typing import Any, Dict, List, Optional

import base58

from . import SolanaRPC
from .models import ChainTransaction, CompiledInstruction, SignatureInfo

logger = logging.getLogger(__name__)

class ChainReader:
    """Reads signatures, transactions and accounts for a single program."""

    def __init__(self, client: SolanaRPC, program_id: str, commitment: str = 'confirmed'):
        self.client = client
        self.program_id = program_id
        self.commitment = commitment

    def get_current_slot(self) -> int:
        return int(self.client.getSlot({'commitment': self.commitment}))

    def list_signatures_since(self, after_slot: int, limit: int = 100) -> List[SignatureInfo]:
        """List program signatures with slot greater than ``after_slot``.

        The node returns signatures newest first, ``limit`` per page. Pages are
        walked backwards with ``before`` until a page reaches ``after_slot`` or
        the history runs out.

        Returns:
            Signatures ordered oldest first, so causally earlier transactions
            are applied first
        """
        collected: List[SignatureInfo] = []
        before: Optional[str] = None

        while True:
            options: Dict[str, Any] = {'limit': limit, 'commitment': self.commitment}
            if before:
                options['before'] = before

            page = self.client.getSignaturesForAddress(self.program_id, options) or []
            entries = [
                SignatureInfo(
                    signature=item['signature'],
                    slot=item['slot'],
                    err=item.get('err'),
                    block_time=item.get('blockTime')
                )
                for item in page
            ]

            newer = [entry for entry in entries if entry.slot > after_slot]
            collected.extend(newer)

            if len(newer) < len(entries) or len(entries) < limit:
                break
            before = entries[-1].signature
            logger.debug(f"Fetched {len(collected)} signatures so far, paging before {before[:8]}")

        collected.reverse()
        return collected

    def fetch_transaction(self, signature: str) -> Optional[ChainTransaction]:
        """Fetch a committed transaction, or None if the node doesn't know it."""
        raw = self.client.getTransaction(signature, {
            'encoding': 'json',
            'commitment': self.commitment,
            'maxSupportedTransactionVersion': 0
        })
        if not raw:
            return None
        return parse_transaction(signature, raw)

    def get_account_data(self, address: str) -> Optional[bytes]:
        """Raw account data, or None for a missing or closed account."""
        result = self.client.getAccountInfo(address, {
            'encoding': 'base64',
            'commitment': self.commitment
        })
        value = (result or {}).get('value')
        if not value:
            return None
        data = value.get('data')
        if isinstance(data, list):
            data = data[0]
        return base64.b64decode(data or '')

def parse_transaction(signature: str, raw: Dict[str, Any]) -> ChainTransaction:
    """Build a ChainTransaction from a ``getTransaction`` json response.

    The account list is the static message keys followed by the writable then
    readonly keys loaded from address lookup tables. Inner instructions follow
    the outer instruction that invoked them.
    """
    meta = raw.get('meta') or {}
    message = raw['transaction']['message']

    account_keys = list(message.get('accountKeys', []))
    loaded = meta.get('loadedAddresses') or {}
    account_keys.extend(loaded.get('writable', []))
    account_keys.extend(loaded.get('readonly', []))

    inner_by_index: Dict[int, List[Dict[str, Any]]] = {}
    for inner in meta.get('innerInstructions') or []:
        inner_by_index.setdefault(inner['index'], []).extend(inner.get('instructions', []))

    instructions = []
    for index, ix in enumerate(message.get('instructions', [])):
        instructions.append(_compiled(ix))
        instructions.extend(_compiled(inner) for inner in inner_by_index.get(index, []))

    # Without meta the execution status is unknown, so treat it as failed
    err = meta.get('err') if raw.get('meta') is not None else 'meta unavailable'

    return ChainTransaction(
        signature=signature,
        slot=raw.get('slot', 0),
        err=err,
        account_keys=account_keys,
        instructions=instructions
    )

def _compiled(ix: Dict[str, Any]) -> CompiledInstruction:
    return CompiledInstruction(
        program_id_index=ix['programIdIndex'],
        accounts=ix.get('accounts', []),
        data=base58.b58decode(ix.get('data', ''))
    )
