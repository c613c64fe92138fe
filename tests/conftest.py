"""
Pytest fixtures for the p2pago SDK tests.
"""
import pytest
from unittest.mock import MagicMock
from web3 import Web3
from web3.providers.rpc import HTTPProvider

from p2pago_sdk.agent import LocalAgentHost
from p2pago_sdk.api import QuoteService
from p2pago_sdk.escrow import EscrowClient
from p2pago_sdk.models import Quote, VerifiedIntent
from p2pago_sdk.orchestration import PaymentSettlementOrchestrator
from p2pago_sdk.proof import ProofGenerator
from p2pago_sdk.resolver import AddressResolver

# Constants for testing
TEST_API_URL = "https://api.example.com/v1"
TEST_VERIFY_URL = "https://backend.example.com/verify"
TEST_RPC_URL = "https://rpc.example.com"
TEST_PRIV_KEY = "0x0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"
TEST_SENDER = "0x1111111111111111111111111111111111111111"
TEST_RECIPIENT = "0x2222222222222222222222222222222222222222"
TEST_STEALTH = "0x3333333333333333333333333333333333333333"
TEST_VERIFIER = "0x9a733B55a875D0DB4915c6B36350b24F8AB99dF5"
TEST_INTENT_HASH = "0x" + "ab" * 32
TEST_TX_HASH = "0x" + "cd" * 32
TEST_SETTLE_HASH = "0x" + "ef" * 32
TEST_NAME = "p2pago.fkey.id"


@pytest.fixture(autouse=True)
def _patch_http_provider(monkeypatch):
    """
    Stub every Web3 HTTP call so no DNS / network traffic is triggered.
    """
    def _dummy(self, method, params=None, _=None):
        if method in {"eth_chainId"}:
            return {"jsonrpc": "2.0", "id": 1, "result": "0x2105"}  # Base
        if method in {"eth_gasPrice"}:
            return {"jsonrpc": "2.0", "id": 1, "result": "0x3b9aca00"}  # 1 gwei
        return {"jsonrpc": "2.0", "id": 1, "result": "0x0"}

    monkeypatch.setattr(HTTPProvider, "make_request", _dummy, raising=True)


class StaticNameProvider:
    """Name provider returning a fixed mapping and counting lookups"""

    def __init__(self, names=None):
        self.names = dict(names or {})
        self.calls = []

    def resolve_name(self, name):
        self.calls.append(name)
        return self.names.get(name)


class RecordingSigner:
    """Signer that records transactions instead of broadcasting them"""

    def __init__(self, w3=None, address=TEST_SENDER, tx_hashes=None):
        self.w3 = w3
        self.address = address
        self.sent = []
        self._hashes = list(tx_hashes or [TEST_TX_HASH])

    def send_transaction(self, transaction):
        self.sent.append(transaction)
        return self._hashes[min(len(self.sent) - 1, len(self._hashes) - 1)]


class FakeAgent:
    """Signing agent double following the PeerAuth call sequence"""

    def __init__(self, approve=True, notary_request=None, status="connected"):
        self.approve = approve
        self.status = status
        self.notary_request = notary_request if notary_request is not None else {
            "url": "https://venmo.com/api/stories",
            "amount": "5.00",
            "signature": "0xfeed",
        }
        self.generate_calls = []
        self.fetch_calls = []

    def check_connection_status(self):
        return self.status

    def request_connection(self):
        return self.approve

    def generate_proof(self, intent_hash, original_index, platform):
        self.generate_calls.append((intent_hash, original_index, platform))
        return {"proofId": "proof-1", "platform": platform}

    def fetch_proof_by_id(self, proof_id):
        self.fetch_calls.append(proof_id)
        return {"notaryRequest": self.notary_request}


def make_quote_item(to_address=TEST_RECIPIENT, payment_method="venmo"):
    return {
        "fiatAmount": "5000000",
        "fiatAmountFormatted": "$5.00",
        "tokenAmount": "4990000",
        "tokenAmountFormatted": "4.99 USDC",
        "paymentMethod": payment_method,
        "payeeAddress": "@alice-venmo",
        "conversionRate": "1.002",
        "intent": {
            "depositId": "42",
            "processorName": payment_method,
            "amount": "4990000",
            "toAddress": to_address,
            "payeeDetails": "0x" + "11" * 32,
            "fiatCurrencyCode": "0x" + "22" * 32,
            "chainId": "8453",
        },
    }


def make_verified_intent(recipient=TEST_RECIPIENT):
    return {
        "signedIntent": "0xsigned",
        "intentData": {
            "depositId": "42",
            "tokenAmount": "4990000",
            "recipientAddress": recipient,
            "verifierAddress": TEST_VERIFIER,
            "currencyCodeHash": "0x" + "22" * 32,
            "gatingServiceSignature": "0x" + "33" * 65,
        },
    }


@pytest.fixture
def quote():
    return Quote.model_validate(make_quote_item())


@pytest.fixture
def verified_intent():
    return VerifiedIntent.model_validate(make_verified_intent())


@pytest.fixture
def mock_w3():
    """
    Mock Web3 connection with an escrow contract whose signalIntent returns
    TEST_INTENT_HASH and whose transactions are mined successfully.
    """
    w3 = MagicMock(spec=Web3)
    eth = MagicMock()

    contract = MagicMock()
    signal_fn = MagicMock()
    signal_fn.call.return_value = bytes.fromhex(TEST_INTENT_HASH[2:])
    signal_fn.build_transaction.side_effect = lambda params: {**params, "to": "escrow", "data": "0x01"}
    fulfill_fn = MagicMock()
    fulfill_fn.build_transaction.side_effect = lambda params: {**params, "to": "escrow", "data": "0x02"}
    contract.functions.signalIntent.return_value = signal_fn
    contract.functions.fulfillIntent.return_value = fulfill_fn
    eth.contract.return_value = contract

    def wait_for_receipt(tx_hash, **kwargs):
        return {
            "transactionHash": bytes.fromhex(tx_hash[2:]),
            "blockNumber": 12345,
            "blockHash": bytes.fromhex("abcdef1234567890" * 4),
            "status": 1,
            "gasUsed": 85000,
            "from": TEST_SENDER,
            "to": "0xCA38607D85E8F6294Dc10728669605E6664C2D70",
            "logs": [],
        }

    eth.wait_for_transaction_receipt = MagicMock(side_effect=wait_for_receipt)
    w3.eth = eth
    return w3


@pytest.fixture
def signer(mock_w3):
    return RecordingSigner(w3=mock_w3, tx_hashes=[TEST_TX_HASH, TEST_SETTLE_HASH])


@pytest.fixture
def agent():
    return FakeAgent()


@pytest.fixture
def agent_host(agent):
    return LocalAgentHost(agent)


@pytest.fixture
def name_provider():
    return StaticNameProvider({TEST_NAME: TEST_STEALTH})


@pytest.fixture
def orchestrator(signer, agent_host, name_provider):
    return PaymentSettlementOrchestrator(
        signer=signer,
        verify_intent=MagicMock(return_value=VerifiedIntent.model_validate(make_verified_intent())),
        resolver=AddressResolver(provider=name_provider, provider_factory=None),
        quote_service=QuoteService(TEST_API_URL),
        escrow=EscrowClient(),
        proof_generator=ProofGenerator(agent_host),
    )
