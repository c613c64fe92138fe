"""
Exceptions for the p2pago SDK.
"""
from typing import Optional


class P2PagoError(Exception):
    """Base exception for all SDK errors."""
    pass


class ResolutionUnavailable(P2PagoError):
    """Raised when an alias needs resolving but no name provider can be obtained."""
    pass


class NameNotFound(P2PagoError):
    """Raised when a name provider returns no address for an alias."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Failed to resolve name: {name}")


class QuoteUnavailable(P2PagoError):
    """Raised when the quote service fails or returns no quotes."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_text: Optional[str] = None
    ):
        self.status_code = status_code
        self.response_text = response_text
        super().__init__(message)


class VerificationFailed(P2PagoError):
    """Raised when the intent verifier rejects a descriptor or answers without a payload."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_text: Optional[str] = None
    ):
        self.status_code = status_code
        self.response_text = response_text
        super().__init__(message)


class InvalidSigner(P2PagoError):
    """Raised when a signer is not bound to a network connection."""
    pass


class OnChainCallFailed(P2PagoError):
    """Raised when a contract call reverts or cannot be broadcast."""

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        self.tx_hash = tx_hash
        super().__init__(message)


class AgentUnavailable(P2PagoError):
    """Raised when no local signing agent is installed."""

    def __init__(self, install_url: str):
        self.install_url = install_url
        super().__init__(
            "Payment proofs require the PeerAuth signing agent. "
            f"Install it from: {install_url}"
        )


class ConnectionDeclined(P2PagoError):
    """Raised when the user declines the signing agent connection request."""
    pass


class NoRpcEndpoint(P2PagoError):
    """Raised when no RPC endpoint is known for a chain and none was supplied."""

    def __init__(self, chain_id: int):
        self.chain_id = chain_id
        super().__init__(
            f"No RPC URL for chainId {chain_id}. Pass rpc_url or use a supported chain."
        )


class InvalidAddress(P2PagoError):
    """Raised when a value is not a 20-byte hex address."""

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Invalid address: {address}")


class MalformedChallengeBody(P2PagoError):
    """Raised when a payment-required body is missing required fields."""
    pass


class RpcRequestError(P2PagoError):
    """Raised when a node JSON-RPC request fails or returns an error object."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)
