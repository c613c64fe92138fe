"""
Signing capability used for escrow calls and direct transfers.
"""
import logging
from typing import Any, Dict, Optional, Protocol

from eth_account import Account
from eth_account.signers.base import BaseAccount
from web3 import Web3
from web3.exceptions import Web3Exception

from .exceptions import OnChainCallFailed


class Signer(Protocol):
    """Protocol for signers: an address plus the ability to broadcast a transaction"""
    address: str

    def send_transaction(self, transaction: Dict[str, Any]) -> str:
        """Sign and broadcast, returning the 0x transaction hash"""
        ...


class TransactionSigner(Protocol):
    """Protocol for custom key holders (hardware wallets, KMS)"""
    address: str

    def sign_transaction(self, transaction_dict: Dict[str, Any]) -> Any:
        """Sign transaction and return signed tx object"""
        ...


def _to_hex(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return '0x' + bytes(value).hex()
    text = str(value)
    return text if text.startswith('0x') else '0x' + text


class Web3Signer:
    """
    Signer bound to a web3 connection.

    Fills in nonce, gas and gas price, signs locally (private key or custom
    key holder) and broadcasts with ``eth_sendRawTransaction``.
    """

    DEFAULT_GAS = 300000

    def __init__(
        self,
        w3: Web3,
        priv_key: Optional[str] = None,
        signer: Optional[TransactionSigner] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Args:
            w3: Connected Web3 instance
            priv_key: Ethereum private key (optional if signer provided)
            signer: Custom key holder (optional if priv_key provided)
            logger: Optional logger instance

        Raises:
            ValueError: If neither priv_key nor signer is provided
        """
        if not priv_key and not signer:
            raise ValueError("Either priv_key or signer must be provided")

        self.w3 = w3
        self.account: Optional[BaseAccount] = Account.from_key(priv_key) if priv_key else None
        self.signer = signer
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_rpc_url(cls, rpc_url: str, priv_key: str, **kwargs) -> "Web3Signer":
        """Create a signer on a fresh HTTP connection."""
        return cls(Web3(Web3.HTTPProvider(rpc_url)), priv_key=priv_key, **kwargs)

    @property
    def address(self) -> str:
        if self.account:
            return self.account.address
        return self.signer.address

    def prepare_transaction(self, transaction: Dict[str, Any]) -> Dict[str, Any]:
        """Fill in from, nonce, gas and gasPrice where missing."""
        tx = dict(transaction)
        tx.setdefault('from', self.address)
        tx.setdefault('value', 0)
        if 'nonce' not in tx:
            tx['nonce'] = self.w3.eth.get_transaction_count(self.address)
        if 'chainId' not in tx:
            tx['chainId'] = self.w3.eth.chain_id
        if 'gas' not in tx:
            try:
                # 10% buffer over the estimate
                tx['gas'] = int(self.w3.eth.estimate_gas(tx) * 1.1)
                self.logger.debug(f"Estimated gas: {tx['gas']}")
            except Web3Exception as e:
                tx['gas'] = self.DEFAULT_GAS
                self.logger.warning(f"Gas estimation failed, using default: {tx['gas']}. Error: {e}")
        if 'gasPrice' not in tx and 'maxFeePerGas' not in tx:
            tx['gasPrice'] = self.w3.eth.gas_price
        return tx

    def send_transaction(self, transaction: Dict[str, Any]) -> str:
        """
        Sign and broadcast a transaction

        Args:
            transaction: Transaction fields; at least ``to`` and ``value`` or ``data``

        Returns:
            Transaction hash as 0x hex string

        Raises:
            OnChainCallFailed: If any step before the node accepts the transaction fails
        """
        try:
            tx = self.prepare_transaction(transaction)
        except Exception as e:
            self.logger.error(f"Transaction preparation failed: {e}")
            raise OnChainCallFailed(f"Failed to prepare transaction: {str(e)}")

        try:
            if self.account:
                signed_tx = self.account.sign_transaction(tx)
            else:
                signed_tx = self.signer.sign_transaction(tx)
        except Exception as e:
            self.logger.error(f"Transaction signing failed: {e}")
            raise OnChainCallFailed(f"Failed to sign transaction: {str(e)}")

        try:
            tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        except Exception as e:
            self.logger.error(f"Failed to send transaction: {e}")
            raise OnChainCallFailed(f"Failed to send transaction: {str(e)}")

        tx_hash_hex = _to_hex(tx_hash)
        self.logger.info(f"Transaction sent: {tx_hash_hex}")
        return tx_hash_hex
