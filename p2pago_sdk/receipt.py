"""
Independent verification of direct payments via node JSON-RPC.
"""
import logging
from typing import Any, Dict, List, Optional

import requests

from .chains import ERC20_TRANSFER_TOPIC, SUPPORTED_CHAINS, ChainConfig
from .exceptions import InvalidAddress, NoRpcEndpoint, RpcRequestError


def address_to_topic(address: str) -> str:
    """
    Left-pad a 20-byte address to a 32-byte log topic.

    Raises:
        InvalidAddress: If the address is not exactly 40 hex characters
    """
    hex_part = address[2:] if address.startswith('0x') else address
    hex_part = hex_part.lower()
    if len(hex_part) != 40 or any(c not in "0123456789abcdef" for c in hex_part):
        raise InvalidAddress(address)
    return '0x' + hex_part.rjust(64, '0')


class PaymentReceiptVerifier:
    """
    Confirms that a transaction succeeded and delivered value to a recipient.

    Native transfers are checked against the transaction's ``to`` and
    ``value``; token transfers against the receipt's ERC20 Transfer logs.
    """

    def __init__(
        self,
        chains: Optional[Dict[int, ChainConfig]] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.chains = chains if chains is not None else SUPPORTED_CHAINS
        self.session = session or requests.Session()
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self._request_id = 0

    def rpc_url_for(self, chain_id: int, rpc_url: Optional[str] = None) -> str:
        """
        Raises:
            NoRpcEndpoint: If no override is given and the chain has no endpoint
        """
        if rpc_url:
            return rpc_url
        chain = self.chains.get(chain_id)
        if chain is None or not chain.rpc_url:
            raise NoRpcEndpoint(chain_id)
        return chain.rpc_url

    def rpc_call(self, url: str, method: str, params: List[Any]) -> Optional[Any]:
        """
        Issue one JSON-RPC 2.0 request

        Returns:
            The ``result`` member, or None when absent

        Raises:
            RpcRequestError: On a non-2xx response or a JSON-RPC error object
        """
        self._request_id += 1
        try:
            response = self.session.post(
                url,
                json={"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            self.logger.error(f"RPC request {method} failed: {e}")
            raise RpcRequestError(f"RPC request failed: {str(e)}")

        if not response.ok:
            raise RpcRequestError(f"RPC request failed: {response.status_code}", status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise RpcRequestError(f"Invalid JSON-RPC response: {str(e)}", status_code=response.status_code)

        if payload.get("error"):
            error = payload["error"]
            message = error.get("message") if isinstance(error, dict) else None
            raise RpcRequestError(message or "RPC error")
        return payload.get("result")

    def verify(
        self,
        tx_hash: str,
        chain_id: int,
        recipient_address: str,
        token_address: Optional[str] = None,
        rpc_url: Optional[str] = None
    ) -> bool:
        """
        Verify that a transaction paid the recipient

        Args:
            tx_hash: Transaction hash
            chain_id: Chain the transaction was sent on
            recipient_address: Expected recipient
            token_address: ERC20 token; when omitted the native value is checked
            rpc_url: Endpoint override for this chain

        Returns:
            True only if the transaction succeeded and the recipient was paid

        Raises:
            NoRpcEndpoint: If no endpoint is known for the chain
            InvalidAddress: If the recipient is malformed (token mode)
            RpcRequestError: If the node request fails
        """
        url = self.rpc_url_for(chain_id, rpc_url)

        receipt = self.rpc_call(url, "eth_getTransactionReceipt", [tx_hash])
        if not receipt or not receipt.get("status"):
            return False
        if receipt["status"] != "0x1":
            self.logger.debug(f"Transaction {tx_hash} failed with status {receipt['status']}")
            return False

        if token_address:
            recipient_topic = address_to_topic(recipient_address)
            token = token_address.lower()
            for log in receipt.get("logs") or []:
                topics = log.get("topics") or []
                if (
                    str(log.get("address", "")).lower() == token
                    and len(topics) > 2
                    and topics[0] == ERC20_TRANSFER_TOPIC
                    and topics[2].lower() == recipient_topic
                ):
                    return True
            return False

        tx = self.rpc_call(url, "eth_getTransactionByHash", [tx_hash])
        if not tx or not tx.get("to") or not tx.get("value"):
            return False
        if int(tx["value"], 16) == 0:
            return False
        return tx["to"].lower() == recipient_address.lower()


def verify_payment_tx(
    tx_hash: str,
    chain_id: int,
    recipient_address: str,
    token_address: Optional[str] = None,
    rpc_url: Optional[str] = None
) -> bool:
    """Verify a direct payment against the built-in chain registry."""
    return PaymentReceiptVerifier().verify(tx_hash, chain_id, recipient_address, token_address, rpc_url)
