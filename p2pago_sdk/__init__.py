"""
p2pago SDK - settle fiat payments against the ZKP2P escrow.
"""
from .version import __version__
from .exceptions import (
    P2PagoError,
    ResolutionUnavailable,
    NameNotFound,
    QuoteUnavailable,
    VerificationFailed,
    InvalidSigner,
    OnChainCallFailed,
    AgentUnavailable,
    ConnectionDeclined,
    NoRpcEndpoint,
    InvalidAddress,
    MalformedChallengeBody,
    RpcRequestError,
)
from .models import (
    Quote,
    QuoteIntent,
    VerifiedIntent,
    TxReceipt,
    PaymentRecord,
    PaymentStatus,
    PaymentRequiredBody,
    PaymentProof,
)
from .chains import (
    SUPPORTED_CHAINS,
    NATIVE_TOKEN_ADDRESS,
    ERC20_TRANSFER_TOPIC,
    ChainConfig,
    TokenConfig,
    get_supported_chains,
)
from .config import Settings
from .constants import ESCROW_ADDRESS, BASE_CHAIN_ID, USDC_ADDRESS, VERIFIERS
from .resolver import AddressResolver, Web3NameProvider, is_address
from .api import QuoteService, IntentVerifier, RemoteIntentVerifier, to_exact_fiat_amount
from .signer import Signer, Web3Signer
from .escrow import EscrowClient
from .agent import (
    AgentState,
    LocalAgentHost,
    ExtensionAvailabilityWaiter,
    detect_agent,
    wait_for_agent,
)
from .proof import ProofGenerator, encode_proof, decode_proof
from .orchestration import (
    PaymentSettlementOrchestrator,
    SettlementStage,
    Quoted,
    Verified,
    Signaled,
    Proven,
    Fulfilled,
    Sent,
)
from .challenge import PaymentRequiredHandler, is_payment_required_body, is_payment_proof
from .receipt import PaymentReceiptVerifier, address_to_topic, verify_payment_tx
from .payments import (
    JsonFileStorage,
    MemoryStorage,
    record_payment,
    get_payment_status,
    storage_key,
)

__all__ = [
    "__version__",
    "P2PagoError",
    "ResolutionUnavailable",
    "NameNotFound",
    "QuoteUnavailable",
    "VerificationFailed",
    "InvalidSigner",
    "OnChainCallFailed",
    "AgentUnavailable",
    "ConnectionDeclined",
    "NoRpcEndpoint",
    "InvalidAddress",
    "MalformedChallengeBody",
    "RpcRequestError",
    "Quote",
    "QuoteIntent",
    "VerifiedIntent",
    "TxReceipt",
    "PaymentRecord",
    "PaymentStatus",
    "PaymentRequiredBody",
    "PaymentProof",
    "SUPPORTED_CHAINS",
    "NATIVE_TOKEN_ADDRESS",
    "ERC20_TRANSFER_TOPIC",
    "ChainConfig",
    "TokenConfig",
    "get_supported_chains",
    "Settings",
    "ESCROW_ADDRESS",
    "BASE_CHAIN_ID",
    "USDC_ADDRESS",
    "VERIFIERS",
    "AddressResolver",
    "Web3NameProvider",
    "is_address",
    "QuoteService",
    "IntentVerifier",
    "RemoteIntentVerifier",
    "to_exact_fiat_amount",
    "Signer",
    "Web3Signer",
    "EscrowClient",
    "AgentState",
    "LocalAgentHost",
    "ExtensionAvailabilityWaiter",
    "detect_agent",
    "wait_for_agent",
    "ProofGenerator",
    "encode_proof",
    "decode_proof",
    "PaymentSettlementOrchestrator",
    "SettlementStage",
    "Quoted",
    "Verified",
    "Signaled",
    "Proven",
    "Fulfilled",
    "Sent",
    "PaymentRequiredHandler",
    "is_payment_required_body",
    "is_payment_proof",
    "PaymentReceiptVerifier",
    "address_to_topic",
    "verify_payment_tx",
    "JsonFileStorage",
    "MemoryStorage",
    "record_payment",
    "get_payment_status",
    "storage_key",
]
