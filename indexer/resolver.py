"""Resolve an offer account address to the offer's natural key."""
import logging
from typing import Optional

from projections import OfferKey
from rpc import RPCError, node_unavailable
from .parser import InstructionDecoder

logger = logging.getLogger(__name__)

class OfferResolver:
    """Maps on-chain offer account addresses to (seller, offer_id).

    The live account is read first. Offer accounts are closed once the offer
    is cancelled or filled, so a missing account falls back to the offer row
    recorded under that address when the offer was created.
    """

    def __init__(self, reader, store, decoder: InstructionDecoder):
        """Initialize the resolver.

        Args:
            reader: Chain reader used for the account read
            store: Projection store used for the fallback lookup
            decoder: Decoder for the raw Offer account layout
        """
        self.reader = reader
        self.store = store
        self.decoder = decoder

    async def resolve(self, offer_address: str) -> Optional[OfferKey]:
        """Resolve ``offer_address``.

        Returns:
            The offer's natural key, or None when neither the chain nor the
            projection knows the address

        Raises:
            RPCError: If the node is unavailable; "account not found" and
                rejected reads fall back to the projection
        """
        try:
            data = self.reader.get_account_data(offer_address)
        except RPCError as e:
            if node_unavailable(e):
                raise
            logger.warning(f"Could not read offer account {offer_address}: {e}")
            data = None
        if data is not None:
            key = self.decoder.decode_offer_account(data)
            if key:
                return key
            logger.warning(f"Account {offer_address} is not a fair swap offer account")

        async with self.store.session() as session:
            offer = await session.offers.find_by_pda(offer_address)
        if offer:
            logger.debug(f"Resolved closed offer account {offer_address} from projection")
            return offer.key

        return None
