"""Instruction decoding.

Pure functions of bytes: no RPC, no database. An instruction is
``[8-byte discriminator][borsh-encoded args]``; the discriminator selects the
IDL entry, whose argument list is turned into a borsh struct once per decoder,
and the instruction's account list is mapped to role names by the fixed
layout of its kind.

Anything that cannot be decoded yields None. Programs evolve and transactions
carry instructions this indexer doesn't know about, so a failed decode is an
expected outcome and never aborts processing.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import base58
from borsh_construct import CStruct, I8, I16, I32, I64, I128, U8, U16, U32, U64, U128
from construct import Bytes, ConstructError, ExprAdapter, Mapping
from pydantic import ValidationError

from projections.models import OfferKey
from .idl import ProgramIdl
from .instructions import DecodedInstruction, InstructionKind, INSTRUCTION_MODELS

logger = logging.getLogger(__name__)

DISCRIMINATOR_SIZE = 8
PUBKEY_SIZE = 32

# Base58 on the way out, like every address the RPC hands back
PUBKEY = ExprAdapter(
    Bytes(PUBKEY_SIZE),
    lambda obj, ctx: base58.b58encode(obj).decode(),
    lambda obj, ctx: base58.b58decode(obj)
)

# Borsh only allows 0 and 1
BOOL = Mapping(U8, {False: 0, True: 1})

ARG_TYPES = {
    'u8': U8,
    'u16': U16,
    'u32': U32,
    'u64': U64,
    'u128': U128,
    'i8': I8,
    'i16': I16,
    'i32': I32,
    'i64': I64,
    'i128': I128,
    'bool': BOOL,
    'pubkey': PUBKEY,
}

# Leading fields of the Offer account, after its discriminator
OFFER_HEADER = CStruct(
    "offer_id" / U64,
    "seller" / PUBKEY,
)

class DecodeError(Exception):
    """Raised when a payload doesn't match its layout."""
    pass

def args_struct(layout: List[Tuple[str, Any]]) -> CStruct:
    """Build the borsh struct for an IDL argument list.

    Raises:
        DecodeError: If an argument type has no borsh mapping here
    """
    fields = []
    for name, arg_type in layout:
        if not isinstance(arg_type, str) or arg_type not in ARG_TYPES:
            raise DecodeError(f"Unsupported argument type {arg_type!r} for {name}")
        fields.append(name / ARG_TYPES[arg_type])
    return CStruct(*fields)

def _parse(struct: CStruct, payload: bytes) -> Dict[str, Any]:
    try:
        parsed = struct.parse(payload)
    except ConstructError as e:
        raise DecodeError(str(e)) from e
    return {key: value for key, value in parsed.items() if not key.startswith('_')}

def decode_args(layout: List[Tuple[str, Any]], payload: bytes) -> Dict[str, Any]:
    """Decode borsh arguments in IDL order.

    Raises:
        DecodeError: On a short buffer, invalid bool or unsupported type
    """
    return _parse(args_struct(layout), payload)

class InstructionDecoder:
    """Decodes fair swap instructions against a loaded IDL."""

    def __init__(self, idl: ProgramIdl):
        self.idl = idl
        self._offer_discriminator = idl.account_discriminator('Offer')
        self._layouts: Dict[bytes, CStruct] = {}
        for discriminator, ix in idl.instructions.items():
            try:
                self._layouts[discriminator] = args_struct(ix.args)
            except DecodeError as e:
                logger.warning(f"Instruction {ix.name} will not be decoded: {e}")

    def decode(self, data: bytes, accounts: Sequence[str]) -> Optional[DecodedInstruction]:
        """Decode one instruction.

        Args:
            data: Raw instruction data
            accounts: Addresses of the instruction's accounts, in order

        Returns:
            The typed instruction, or None when it is not decodable
        """
        if len(data) < DISCRIMINATOR_SIZE:
            logger.debug(f"Instruction data too short for a discriminator ({len(data)} bytes)")
            return None

        discriminator = bytes(data[:DISCRIMINATOR_SIZE])
        ix = self.idl.instruction(discriminator)
        layout = self._layouts.get(discriminator)
        if ix is None or layout is None:
            logger.debug(f"Unknown discriminator {discriminator.hex()}")
            return None

        try:
            kind = InstructionKind(ix.name)
        except ValueError:
            logger.debug(f"No model for instruction {ix.name}")
            return None

        model = INSTRUCTION_MODELS[kind]
        if len(accounts) < len(model.ROLES):
            logger.debug(
                f"{kind.value} expects {len(model.ROLES)} accounts, got {len(accounts)}"
            )
            return None

        try:
            fields: Dict[str, Any] = dict(zip(model.ROLES, accounts))
            fields.update(_parse(layout, bytes(data[DISCRIMINATOR_SIZE:])))
            return model(**fields)
        except (DecodeError, ValidationError) as e:
            logger.debug(f"Failed to decode {kind.value}: {e}")
            return None

    def decode_offer_account(self, data: bytes) -> Optional[OfferKey]:
        """Read the natural key out of raw Offer account data.

        Layout: ``[8 discriminator][u64 offer_id][32 seller]...``
        """
        if bytes(data[:DISCRIMINATOR_SIZE]) != self._offer_discriminator:
            return None

        try:
            header = _parse(OFFER_HEADER, bytes(data[DISCRIMINATOR_SIZE:]))
        except DecodeError:
            return None
        return OfferKey(header['seller'], str(header['offer_id']))
