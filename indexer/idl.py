"""Program interface definition (IDL) loading.

The IDL names the program's instructions, their discriminators and argument
layouts. It is a versioned build artifact of the on-chain program and must be
present at startup: without it nothing can be decoded.

Both IDL layouts produced by Anchor are accepted:
- current: snake_case names, explicit ``discriminator`` arrays, ``pubkey``
- legacy: camelCase names, no discriminators, ``publicKey``
"""
import hashlib
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional, Tuple, Union

logger = logging.getLogger(__name__)

IDL_FILENAME = 'fair_swap.json'
BUNDLED_IDL = Path(__file__).resolve().parent / 'fair_swap_idl.json'

class IdlError(Exception):
    """Raised when the IDL cannot be parsed."""
    pass

class IdlNotFoundError(IdlError):
    """Raised when no IDL file exists at any candidate location."""
    pass

class IdlInstruction(NamedTuple):
    name: str
    discriminator: bytes
    args: List[Tuple[str, Any]]

class ProgramIdl:
    """Instruction and account layouts of one program."""

    def __init__(
        self,
        name: str,
        instructions: List[IdlInstruction],
        account_discriminators: Dict[str, bytes],
        source: Optional[Path] = None
    ):
        self.name = name
        self.instructions = {ix.discriminator: ix for ix in instructions}
        self.account_discriminators = account_discriminators
        self.source = source

    def instruction(self, discriminator: bytes) -> Optional[IdlInstruction]:
        return self.instructions.get(discriminator)

    def account_discriminator(self, account_name: str) -> bytes:
        return self.account_discriminators.get(account_name) or sighash('account', account_name)

def sighash(namespace: str, name: str) -> bytes:
    """Anchor discriminator: first 8 bytes of sha256("<namespace>:<name>")."""
    return hashlib.sha256(f"{namespace}:{name}".encode()).digest()[:8]

def camel_to_snake(name: str) -> str:
    out = []
    for ch in name:
        out.append("_" + ch.lower() if ch.isupper() else ch)
    snake = "".join(out)
    return snake[1:] if snake.startswith("_") else snake

def _normalize_type(arg_type: Any) -> Any:
    if arg_type == 'publicKey':
        return 'pubkey'
    return arg_type

def parse_idl(doc: Dict[str, Any], source: Optional[Path] = None) -> ProgramIdl:
    """Build a ProgramIdl from a parsed IDL document.

    Raises:
        IdlError: If the document has no instruction list or an entry is malformed
    """
    if not isinstance(doc, dict) or not isinstance(doc.get('instructions'), list):
        raise IdlError(f"IDL {source or ''} has no instruction list")

    name = (doc.get('metadata') or {}).get('name') or doc.get('name') or 'unknown'

    instructions = []
    try:
        for ix in doc['instructions']:
            ix_name = camel_to_snake(ix['name'])
            if ix.get('discriminator'):
                discriminator = bytes(ix['discriminator'])
            else:
                discriminator = sighash('global', ix_name)
            args = [
                (camel_to_snake(arg['name']), _normalize_type(arg['type']))
                for arg in ix.get('args', [])
            ]
            instructions.append(IdlInstruction(ix_name, discriminator, args))

        account_discriminators = {
            account['name']: bytes(account['discriminator'])
            for account in doc.get('accounts', []) or []
            if account.get('discriminator')
        }
    except (KeyError, TypeError, ValueError) as e:
        raise IdlError(f"Malformed IDL {source or ''}: {e}") from e

    return ProgramIdl(name, instructions, account_discriminators, source)

def candidate_paths(explicit: Optional[Union[str, Path]] = None) -> List[Path]:
    """Locations searched for the IDL, in order."""
    cwd = Path.cwd()
    paths = [
        cwd / 'target' / 'idl' / IDL_FILENAME,
        cwd / 'idl' / IDL_FILENAME,
        cwd.parent / 'target' / 'idl' / IDL_FILENAME,
        BUNDLED_IDL,
    ]
    if explicit:
        paths.insert(0, Path(explicit))
    return paths

def load_idl(explicit: Optional[Union[str, Path]] = None) -> ProgramIdl:
    """Load the program IDL from the first candidate location that exists.

    Args:
        explicit: Path configured by the operator, searched first

    Raises:
        IdlNotFoundError: If no candidate location holds a file
        IdlError: If the file found cannot be parsed
    """
    paths = candidate_paths(explicit)
    for path in paths:
        if not path.is_file():
            continue
        try:
            doc = json.loads(path.read_text(encoding='utf-8'))
        except (OSError, ValueError) as e:
            raise IdlError(f"Could not read IDL at {path}: {e}") from e
        idl = parse_idl(doc, source=path)
        logger.info(f"Loaded IDL {idl.name} from: {path}")
        return idl

    searched = "\n".join(f"  - {path}" for path in paths)
    raise IdlNotFoundError(
        "Could not find the program IDL. Make sure the program is built.\n"
        f"Searched:\n{searched}"
    )
