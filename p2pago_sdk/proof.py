"""
Payment proof generation through the local signing agent.
"""
import json
import logging
from typing import Any, Optional

from .agent import AgentHost
from .constants import ZKP2P_EXTENSION_INSTALL_URL
from .exceptions import AgentUnavailable, ConnectionDeclined


def encode_proof(proof: Any) -> str:
    """
    Encode proof content as bytes for fulfillIntent.

    Compact JSON in the key order the agent produced, UTF-8 encoded, then
    "0x" + two lowercase hex digits per byte.
    """
    proof_string = json.dumps(proof, separators=(',', ':'), ensure_ascii=False)
    return '0x' + proof_string.encode('utf-8').hex()


def decode_proof(proof_bytes: str) -> str:
    """Recover the serialized proof text from its 0x hex encoding."""
    hex_part = proof_bytes[2:] if proof_bytes.startswith('0x') else proof_bytes
    return bytes.fromhex(hex_part).decode('utf-8')


class ProofGenerator:
    """Requests notarized payment proofs from the signing agent"""

    def __init__(
        self,
        host: Optional[AgentHost],
        install_url: str = ZKP2P_EXTENSION_INSTALL_URL,
        logger: Optional[logging.Logger] = None
    ):
        self.host = host
        self.install_url = install_url
        self.logger = logger or logging.getLogger(__name__)

    def generate_proof(self, intent_hash: str, platform: str, proof_index: int = 0) -> str:
        """
        Generate and encode a payment proof

        Args:
            intent_hash: Hash of the signaled intent the payment settles
            platform: Payment platform the fiat payment was made on
            proof_index: Index of the payment to prove when several match

        Returns:
            Encoded proof (0x hex) for fulfillIntent

        Raises:
            AgentUnavailable: If no signing agent is installed
            ConnectionDeclined: If the user rejects the connection request
        """
        agent = self.host.get_agent() if self.host is not None else None
        if agent is None:
            raise AgentUnavailable(self.install_url)

        if not agent.request_connection():
            raise ConnectionDeclined("PeerAuth connection was not approved")

        generated = agent.generate_proof(
            intent_hash=intent_hash,
            original_index=proof_index,
            platform=platform.lower()
        )
        proof_id = generated["proofId"]
        self.logger.debug(f"Proof {proof_id} generated for intent {intent_hash}")

        fetched = agent.fetch_proof_by_id(proof_id)
        return encode_proof(fetched["notaryRequest"])
