"""
Payment settlement orchestration.

The off-chain-fiat flow runs Quoted -> Verified -> Signaled -> Proven ->
Fulfilled. Each stage returns an immutable record carrying what the next
stage needs. A failing stage raises its own exception unchanged and nothing
is retried; a failed flow is restarted from a fresh quote because quotes and
deposits move. The one supported resumption is the split mode: start()
stops after Signaled so the app can show "pay $X to Y", and complete()
proves and fulfills later from the intent hash and payment method.
"""
import functools
import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Optional, Union

from eth_abi import encode
from web3 import Web3

from .agent import AgentHost
from .api import IntentVerifier, QuoteService
from .chains import NATIVE_TOKEN_ADDRESS
from .config import Settings
from .constants import BASE_CHAIN_ID
from .escrow import EscrowClient
from .exceptions import InvalidAddress
from .models import Quote, QuoteIntent, VerifiedIntent
from .proof import ProofGenerator
from .resolver import AddressResolver, default_provider_factory, is_address
from .signer import Signer

VerifyIntentFn = Callable[[QuoteIntent], VerifiedIntent]

# transfer(address,uint256)
ERC20_TRANSFER_SELECTOR = bytes.fromhex("a9059cbb")


def encode_erc20_transfer(to: str, amount: int) -> str:
    """Calldata for ERC20 transfer(to, amount) as 0x hex."""
    args = encode(['address', 'uint256'], [Web3.to_checksum_address(to), amount])
    return '0x' + (ERC20_TRANSFER_SELECTOR + args).hex()


class SettlementStage(str, Enum):
    QUOTED = "quoted"
    VERIFIED = "verified"
    SIGNALED = "signaled"
    PROVEN = "proven"
    FULFILLED = "fulfilled"
    SENT = "sent"


@dataclass(frozen=True)
class Quoted:
    recipient: str
    quote: Quote
    stage: SettlementStage = SettlementStage.QUOTED


@dataclass(frozen=True)
class Verified:
    quote: Quote
    verified_intent: VerifiedIntent
    stage: SettlementStage = SettlementStage.VERIFIED


@dataclass(frozen=True)
class Signaled:
    intent_hash: str
    quote: Quote
    stage: SettlementStage = SettlementStage.SIGNALED

    @property
    def payee_address(self) -> str:
        return self.quote.payee_address

    @property
    def platform(self) -> str:
        return self.quote.payment_method


@dataclass(frozen=True)
class Proven:
    intent_hash: str
    platform: str
    proof_bytes: str
    stage: SettlementStage = SettlementStage.PROVEN


@dataclass(frozen=True)
class Fulfilled:
    intent_hash: str
    tx_hash: str
    stage: SettlementStage = SettlementStage.FULFILLED


@dataclass(frozen=True)
class Sent:
    tx_hash: str
    recipient: str
    amount: int
    chain_id: int
    token_address: Optional[str] = None
    stage: SettlementStage = SettlementStage.SENT


class PaymentSettlementOrchestrator:
    """
    Drives a payment from quote to settlement.

    Args:
        signer: Signing capability; escrow stages need one bound to a connection
        verify_intent: Callable that turns a quote intent into a verified intent,
            e.g. ``RemoteIntentVerifier(url)`` or ``functools.partial(IntentVerifier().verify, api_key=key)``
        resolver: Address resolver
        quote_service: Quote client
        escrow: Escrow contract client
        proof_generator: Proof generator; needed for the prove stage
        logger: Optional logger instance
    """

    def __init__(
        self,
        signer: Signer,
        verify_intent: Optional[VerifyIntentFn] = None,
        resolver: Optional[AddressResolver] = None,
        quote_service: Optional[QuoteService] = None,
        escrow: Optional[EscrowClient] = None,
        proof_generator: Optional[ProofGenerator] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.signer = signer
        self.verify_intent = verify_intent
        self.resolver = resolver or AddressResolver()
        self.quote_service = quote_service or QuoteService()
        self.escrow = escrow or EscrowClient()
        self.proof_generator = proof_generator or ProofGenerator(None)
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_settings(
        cls,
        signer: Signer,
        settings: Optional[Settings] = None,
        verify_intent: Optional[VerifyIntentFn] = None,
        agent_host: Optional[AgentHost] = None,
        name_provider: Optional[Any] = None
    ) -> "PaymentSettlementOrchestrator":
        """
        Build an orchestrator and its clients from settings.

        With an API key in the settings and no verify_intent, intents are
        verified directly against the API (trusted backends only).
        """
        settings = settings or Settings.from_env()
        api_base_url = settings.api_base_url
        if verify_intent is None and settings.api_key is not None:
            verifier = IntentVerifier(api_base_url, timeout=settings.timeout)
            verify_intent = functools.partial(verifier.verify, api_key=settings.api_key.get_secret_value())

        return cls(
            signer=signer,
            verify_intent=verify_intent,
            resolver=AddressResolver(
                provider=name_provider,
                provider_factory=functools.partial(default_provider_factory, settings.mainnet_rpc_url)
            ),
            quote_service=QuoteService(api_base_url, timeout=settings.timeout),
            escrow=EscrowClient(settings.escrow_address),
            proof_generator=ProofGenerator(agent_host)
        )

    # Off-chain-fiat path, one method per stage

    def quote(
        self,
        recipient: str,
        amount_usd: Union[int, float, str, Decimal],
        platform: Optional[str] = None,
        chain_id: Optional[int] = None,
        destination_token: Optional[str] = None
    ) -> Quoted:
        resolved = self.resolver.resolve(recipient)
        quote = self.quote_service.get_quote(
            resolved,
            amount_usd,
            self.signer.address,
            platform=platform,
            chain_id=chain_id,
            destination_token=destination_token
        )
        return Quoted(recipient=resolved, quote=quote)

    def verify(self, quoted: Quoted, verify_intent: Optional[VerifyIntentFn] = None) -> Verified:
        """
        Canonicalize the intent's destination, then have it verified.

        The gating service signs over toAddress, so an alias left in place
        here would not match the address the escrow sees.
        """
        verify_fn = verify_intent or self.verify_intent
        if verify_fn is None:
            raise ValueError("verify_intent must be provided to verify an intent")

        intent = quoted.quote.intent
        to_address = self.resolver.resolve(intent.to_address)
        canonical_intent = intent.model_copy(update={"to_address": to_address})
        verified = verify_fn(canonical_intent)
        return Verified(quote=quoted.quote, verified_intent=verified)

    def signal(self, verified: Verified) -> Signaled:
        recipient = verified.verified_intent.intent_data.recipient_address
        if not is_address(recipient):
            raise InvalidAddress(recipient)
        intent_hash = self.escrow.signal_intent(self.signer, verified.verified_intent)
        self.logger.info(
            f"Intent {intent_hash} signaled; pay {verified.quote.fiat_amount_formatted} "
            f"via {verified.quote.payment_method}"
        )
        return Signaled(intent_hash=intent_hash, quote=verified.quote)

    def prove(self, intent_hash: str, platform: str, proof_index: int = 0) -> Proven:
        proof_bytes = self.proof_generator.generate_proof(intent_hash, platform, proof_index)
        return Proven(intent_hash=intent_hash, platform=platform, proof_bytes=proof_bytes)

    def fulfill(self, proven: Proven) -> Fulfilled:
        receipt = self.escrow.fulfill_intent(self.signer, proven.proof_bytes, proven.intent_hash)
        return Fulfilled(intent_hash=proven.intent_hash, tx_hash=receipt.hash)

    # Composite flows

    def start(
        self,
        recipient: str,
        amount_usd: Union[int, float, str, Decimal],
        platform: Optional[str] = None,
        chain_id: Optional[int] = None,
        verify_intent: Optional[VerifyIntentFn] = None
    ) -> Signaled:
        """Quote, verify and signal; the caller then has the payer send the fiat payment."""
        quoted = self.quote(recipient, amount_usd, platform=platform, chain_id=chain_id)
        verified = self.verify(quoted, verify_intent)
        return self.signal(verified)

    def complete(self, intent_hash: str, platform: str, proof_index: int = 0) -> Fulfilled:
        """Prove the fiat payment and release the escrow for a signaled intent."""
        return self.fulfill(self.prove(intent_hash, platform, proof_index))

    def run(
        self,
        recipient: str,
        amount_usd: Union[int, float, str, Decimal],
        platform: Optional[str] = None,
        chain_id: Optional[int] = None,
        verify_intent: Optional[VerifyIntentFn] = None
    ) -> Fulfilled:
        """Execute every stage in order."""
        signaled = self.start(recipient, amount_usd, platform, chain_id, verify_intent)
        return self.complete(signaled.intent_hash, signaled.platform)

    # Direct-transfer path

    def send_direct(
        self,
        recipient: str,
        amount: int,
        token_address: Optional[str] = None,
        chain_id: int = BASE_CHAIN_ID
    ) -> Sent:
        """
        Send a native or ERC20 transfer straight to the recipient

        Args:
            recipient: Address or name
            amount: Amount in the token's smallest unit (wei for native)
            token_address: ERC20 token; None or the zero address sends native value
            chain_id: Chain the signer is connected to

        Returns:
            Sent record with the transaction hash
        """
        resolved = Web3.to_checksum_address(self.resolver.resolve(recipient))
        if token_address and token_address.lower() != NATIVE_TOKEN_ADDRESS:
            data = encode_erc20_transfer(resolved, int(amount))
            tx = {'to': Web3.to_checksum_address(token_address), 'value': 0, 'data': data}
        else:
            token_address = None
            tx = {'to': resolved, 'value': int(amount)}

        tx_hash = self.signer.send_transaction(tx)
        return Sent(
            tx_hash=tx_hash,
            recipient=resolved,
            amount=int(amount),
            chain_id=chain_id,
            token_address=token_address
        )
