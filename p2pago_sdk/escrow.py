"""
EscrowClient - calls into the ZKP2P escrow contract.
"""
import logging
from typing import Any, Dict, Optional

from web3 import Web3
from web3.types import TxReceipt as Web3TxReceipt

from .constants import ESCROW_ADDRESS
from .exceptions import InvalidSigner, OnChainCallFailed
from .models import TxReceipt, VerifiedIntent
from .signer import Signer, _to_hex


class EscrowClient:
    """
    Client for the escrow contract's two entry points.

    ``signalIntent`` registers a verified intent and yields its hash;
    ``fulfillIntent`` submits the payment proof against that hash and
    releases the deposit.
    """

    ESCROW_ABI = [
        {
            "inputs": [
                {"internalType": "uint256", "name": "_depositId", "type": "uint256"},
                {"internalType": "uint256", "name": "_amount", "type": "uint256"},
                {"internalType": "address", "name": "_to", "type": "address"},
                {"internalType": "address", "name": "_paymentVerifier", "type": "address"},
                {"internalType": "bytes32", "name": "_fiatCurrency", "type": "bytes32"},
                {"internalType": "bytes", "name": "_gatingServiceSignature", "type": "bytes"}
            ],
            "name": "signalIntent",
            "outputs": [{"internalType": "bytes32", "name": "intentHash", "type": "bytes32"}],
            "stateMutability": "nonpayable",
            "type": "function"
        },
        {
            "inputs": [
                {"internalType": "bytes", "name": "_paymentProof", "type": "bytes"},
                {"internalType": "bytes32", "name": "_intentHash", "type": "bytes32"}
            ],
            "name": "fulfillIntent",
            "outputs": [],
            "stateMutability": "nonpayable",
            "type": "function"
        }
    ]

    def __init__(
        self,
        escrow_address: str = ESCROW_ADDRESS,
        receipt_timeout: float = 120,
        poll_interval: float = 0.1,
        logger: Optional[logging.Logger] = None
    ):
        """
        Args:
            escrow_address: Escrow contract address
            receipt_timeout: Seconds to wait for inclusion
            poll_interval: How often to poll for the receipt (seconds)
            logger: Optional logger instance
        """
        self.escrow_address = Web3.to_checksum_address(escrow_address)
        self.receipt_timeout = receipt_timeout
        self.poll_interval = poll_interval
        self.logger = logger or logging.getLogger(__name__)

    def _bind(self, signer: Signer):
        w3 = getattr(signer, "w3", None)
        if w3 is None:
            raise InvalidSigner(
                "Signer must be bound to a network connection. "
                "Use Web3Signer (or any signer exposing .w3) for escrow calls."
            )
        return w3, w3.eth.contract(address=self.escrow_address, abi=self.ESCROW_ABI)

    def _wait(self, w3: Web3, tx_hash: str, action: str) -> TxReceipt:
        try:
            receipt = w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=self.receipt_timeout,
                poll_latency=self.poll_interval
            )
        except Exception as e:
            self.logger.error(f"{action} was not mined: {e}")
            raise OnChainCallFailed(f"{action} was not mined: {str(e)}", tx_hash=tx_hash)

        converted = self._convert_receipt(receipt)
        if converted.status != 1:
            raise OnChainCallFailed(f"{action} reverted", tx_hash=converted.hash)
        return converted

    def signal_intent(self, signer: Signer, verified_intent: VerifiedIntent) -> str:
        """
        Register a verified intent on the escrow

        Args:
            signer: Signer with a live connection
            verified_intent: Intent authorized by the gating service

        Returns:
            Intent hash (0x + 64 hex)

        Raises:
            InvalidSigner: If the signer has no connection
            OnChainCallFailed: If the call reverts or cannot be broadcast
        """
        w3, contract = self._bind(signer)
        data = verified_intent.intent_data

        fn = contract.functions.signalIntent(
            int(data.deposit_id),
            int(data.token_amount),
            Web3.to_checksum_address(data.recipient_address),
            Web3.to_checksum_address(data.verifier_address),
            data.currency_code_hash,
            data.gating_service_signature
        )

        # The hash is only observable as the call's return value, so simulate first
        try:
            intent_hash = _to_hex(fn.call({'from': signer.address}))
            tx = fn.build_transaction({'from': signer.address})
        except Exception as e:
            self.logger.error(f"signalIntent simulation failed: {e}")
            raise OnChainCallFailed(f"signalIntent failed: {str(e)}")

        tx_hash = signer.send_transaction(tx)
        self._wait(w3, tx_hash, "signalIntent")
        self.logger.info(f"Intent signaled: {intent_hash}")
        return intent_hash

    def fulfill_intent(self, signer: Signer, proof_bytes: str, intent_hash: str) -> TxReceipt:
        """
        Submit a payment proof and release the escrowed funds

        Args:
            signer: Signer with a live connection
            proof_bytes: Encoded proof (0x hex)
            intent_hash: Hash returned by signal_intent

        Returns:
            Receipt of the settlement transaction

        Raises:
            InvalidSigner: If the signer has no connection
            OnChainCallFailed: If the call reverts or cannot be broadcast
        """
        w3, contract = self._bind(signer)

        try:
            tx = contract.functions.fulfillIntent(proof_bytes, intent_hash).build_transaction(
                {'from': signer.address}
            )
        except Exception as e:
            self.logger.error(f"fulfillIntent failed: {e}")
            raise OnChainCallFailed(f"fulfillIntent failed: {str(e)}")

        tx_hash = signer.send_transaction(tx)
        receipt = self._wait(w3, tx_hash, "fulfillIntent")
        self.logger.info(f"Intent fulfilled: {receipt.hash}")
        return receipt

    def _convert_receipt(self, web3_receipt: Web3TxReceipt) -> TxReceipt:
        """
        Convert Web3 receipt to our TxReceipt model
        """
        receipt_dict: Dict[str, Any] = dict(web3_receipt)

        for key, value in list(receipt_dict.items()):
            if isinstance(value, (bytes, bytearray)):
                receipt_dict[key] = '0x' + bytes(value).hex()
            elif key == 'logs':
                receipt_dict[key] = [dict(log) for log in value]

        return TxReceipt.model_validate(receipt_dict)
