from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, Field


class SignatureInfo(BaseModel):
    signature: str
    slot: int
    err: Optional[Any] = None
    block_time: Optional[int] = None

    @property
    def failed(self) -> bool:
        return self.err is not None


class CompiledInstruction(BaseModel):
    program_id_index: int
    accounts: List[int] = Field(default_factory=list)
    data: bytes = b''


class ChainTransaction(BaseModel):
    """A committed transaction with its account list fully resolved."""
    signature: str
    slot: int
    err: Optional[Any] = None
    account_keys: List[str]
    instructions: List[CompiledInstruction]

    @property
    def failed(self) -> bool:
        return self.err is not None

    def instructions_for(self, program_id: str) -> List[Tuple[bytes, List[str]]]:
        """Instructions addressed to ``program_id`` as (data, account addresses).

        Instructions whose account indexes fall outside the account list are
        dropped; they cannot be mapped to addresses.
        """
        found = []
        keys = self.account_keys
        for ix in self.instructions:
            if ix.program_id_index >= len(keys) or keys[ix.program_id_index] != program_id:
                continue
            if any(index >= len(keys) for index in ix.accounts):
                continue
            found.append((ix.data, [keys[index] for index in ix.accounts]))
        return found
