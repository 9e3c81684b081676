"""RPC module for interacting with a Solana node"""
import logging
from typing import Any, Optional

import backoff
import requests

logger = logging.getLogger(__name__)

class RPCError(Exception):
    """Base exception for RPC errors"""
    def __init__(self, message: str, code: Optional[int] = None, method: Optional[str] = None):
        self.code = code
        self.method = method
        super().__init__(f"RPC Error [{code}] in {method}: {message}" if code else message)

class NodeConnectionError(RPCError):
    """Raised when connection to node fails or the node is temporarily unavailable"""
    pass

class NodeAuthError(RPCError):
    """Raised when authentication failed"""
    pass

class TransactionNotAvailable(NodeConnectionError):
    """Raised when a listed transaction is not served by the node yet"""
    pass

class SolanaRPCError(RPCError):
    """Solana JSON-RPC error codes and messages

    Common error codes:
    -32002 - Transaction simulation failed
    -32004 - Block not available for slot
    -32005 - Node is unhealthy / behind
    -32007 - Slot was skipped or missing due to ledger jump
    -32009 - Slot was skipped or missing in long-term storage
    -32014 - Block status not yet available
    -32015 - Transaction version not supported
    -32016 - Minimum context slot has not been reached
    -32602 - Invalid params
    """
    # Map of known Solana error codes to human-readable messages
    ERROR_MESSAGES = {
        -32002: "Transaction simulation failed",
        -32004: "Block not available for slot",
        -32005: "Node is unhealthy",
        -32007: "Slot skipped or missing due to ledger jump",
        -32009: "Slot skipped or missing in long-term storage",
        -32014: "Block status not yet available",
        -32015: "Transaction version not supported",
        -32016: "Minimum context slot has not been reached",
        -32601: "Method not found",
        -32602: "Invalid params",
    }

    # Codes that describe a node that is catching up rather than a bad request
    TRANSIENT_CODES = {-32004, -32005, -32014, -32016}

    def __init__(self, message: str, code: int, method: str):
        self.code = code
        self.method = method
        standard_msg = self.ERROR_MESSAGES.get(code, "Unknown error")
        full_msg = f"{standard_msg} - {message}" if message != standard_msg else message
        super().__init__(full_msg, code, method)

    @property
    def transient(self) -> bool:
        return self.code in self.TRANSIENT_CODES

class RPCMethod:
    """Descriptor class for RPC methods"""
    def __init__(self, method_name: str):
        self.method_name = method_name

    def __get__(self, obj, objtype=None):
        if obj is None:
            return self

        def caller(*args) -> Any:
            return obj.call(self.method_name, *args)

        return caller

def node_unavailable(e: Exception) -> bool:
    """True when the node cannot answer right now, as opposed to rejecting the request."""
    if isinstance(e, SolanaRPCError):
        return e.transient
    return isinstance(e, (NodeConnectionError, NodeAuthError))

def _give_up(e: Exception) -> bool:
    """Only node-side transient errors are worth another attempt."""
    if isinstance(e, SolanaRPCError):
        return not e.transient
    return False

class SolanaRPC:
    """Solana JSON-RPC client

    Every request is bounded by ``timeout`` seconds and retried with
    exponential backoff up to ``max_tries`` attempts on connection errors,
    timeouts, rate limiting and node-side transient errors.
    """

    def __init__(self, url: str, timeout: float = 10, max_tries: int = 5, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.max_tries = max_tries

        self.session = session or requests.Session()
        self.session.headers['content-type'] = 'application/json'

        # Request ID counter
        self._request_id = 0

        self._send_with_retry = backoff.on_exception(
            backoff.expo,
            (NodeConnectionError, SolanaRPCError),
            max_tries=max_tries,
            giveup=_give_up,
            logger=logger
        )(self._send)

    def _get_request_id(self) -> int:
        """Get unique request ID"""
        self._request_id += 1
        return self._request_id

    def call(self, method: str, *args) -> Any:
        """Make RPC call to the Solana node

        Args:
            method: RPC method name
            *args: Method arguments

        Returns:
            The ``result`` member of the response

        Raises:
            NodeConnectionError: Connection to node failed after all retries
            NodeAuthError: Authentication failed
            SolanaRPCError: Node returned a JSON-RPC error
        """
        return self._send_with_retry(method, list(args))

    def _send(self, method: str, params: list) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": self._get_request_id()
        }

        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise NodeConnectionError(
                f"Request timed out after {self.timeout} seconds", method=method
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise NodeConnectionError(
                f"Failed to connect to Solana node at {self.url}", method=method
            ) from e
        except requests.exceptions.RequestException as e:
            raise NodeConnectionError(f"Request failed: {str(e)}", method=method) from e

        if response.status_code in (401, 403):
            raise NodeAuthError("Authentication failed - check the RPC URL credentials", method=method)

        # Rate limiting and gateway errors are transient
        if response.status_code == 429 or response.status_code >= 500:
            raise NodeConnectionError(
                f"HTTP {response.status_code} from Solana node", method=method
            )

        try:
            result = response.json()
        except ValueError as e:
            raise NodeConnectionError(f"Invalid response format: {str(e)}", method=method) from e

        if isinstance(result, dict) and result.get('error') is not None:
            error = result['error']
            raise SolanaRPCError(
                error.get('message', 'Unknown error'),
                error.get('code', -1),
                method
            )

        try:
            response.raise_for_status()
            return result['result']
        except requests.exceptions.HTTPError as e:
            raise NodeConnectionError(f"HTTP error occurred: {str(e)}", method=method) from e
        except (KeyError, TypeError) as e:
            raise NodeConnectionError(f"Invalid response format: {str(e)}", method=method) from e

    # Define RPC methods as descriptors
    getSlot = RPCMethod('getSlot')
    getHealth = RPCMethod('getHealth')
    getVersion = RPCMethod('getVersion')
    getSignaturesForAddress = RPCMethod('getSignaturesForAddress')
    getTransaction = RPCMethod('getTransaction')
    getAccountInfo = RPCMethod('getAccountInfo')

# Export the client and error types
__all__ = [
    'SolanaRPC',
    'RPCError',
    'NodeConnectionError',
    'NodeAuthError',
    'SolanaRPCError',
    'TransactionNotAvailable',
    'node_unavailable'
]
