"""
Tests for PaymentSettlementOrchestrator.
"""
import pytest
from unittest.mock import MagicMock

from web3 import Web3

from p2pago_sdk.agent import LocalAgentHost
from p2pago_sdk.exceptions import (
    AgentUnavailable,
    InvalidAddress,
    NameNotFound,
    QuoteUnavailable,
    VerificationFailed,
)
from p2pago_sdk.models import VerifiedIntent
from p2pago_sdk.orchestration import (
    Fulfilled,
    PaymentSettlementOrchestrator,
    Quoted,
    SettlementStage,
    Signaled,
    encode_erc20_transfer,
)
from p2pago_sdk.proof import ProofGenerator, decode_proof
from p2pago_sdk.resolver import AddressResolver
from tests.conftest import (
    StaticNameProvider,
    TEST_API_URL,
    TEST_INTENT_HASH,
    TEST_NAME,
    TEST_RECIPIENT,
    TEST_SENDER,
    TEST_SETTLE_HASH,
    TEST_STEALTH,
    TEST_TX_HASH,
    make_quote_item,
    make_verified_intent,
)

QUOTE_URL = f"{TEST_API_URL}/quote/exact-fiat"
TOKEN = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"


@pytest.fixture
def quote_ok(requests_mock):
    return requests_mock.post(QUOTE_URL, json={
        "success": True,
        "responseObject": {"quotes": [make_quote_item(to_address=TEST_NAME)]},
    })


def test_run_settles_payment(orchestrator, quote_ok, signer, agent, name_provider):
    fulfilled = orchestrator.run(TEST_NAME, 5)

    assert isinstance(fulfilled, Fulfilled)
    assert fulfilled.stage == SettlementStage.FULFILLED
    assert fulfilled.intent_hash == TEST_INTENT_HASH
    assert fulfilled.tx_hash == TEST_SETTLE_HASH

    body = quote_ok.last_request.json()
    assert body["recipient"] == TEST_STEALTH
    assert body["user"] == TEST_SENDER
    assert body["exactFiatAmount"] == "5000000"

    assert len(signer.sent) == 2
    assert agent.generate_calls == [(TEST_INTENT_HASH, 0, "venmo")]


def test_verify_receives_canonical_destination(orchestrator, quote_ok):
    """An alias in the quote's toAddress is resolved before verification"""
    quoted = orchestrator.quote(TEST_NAME, 5)
    assert quoted.quote.intent.to_address == TEST_NAME

    verified = orchestrator.verify(quoted)

    sent_intent = orchestrator.verify_intent.call_args[0][0]
    assert sent_intent.to_address == TEST_STEALTH
    assert sent_intent.deposit_id == "42"
    assert quoted.quote.intent.to_address == TEST_NAME
    assert verified.stage == SettlementStage.VERIFIED


def test_names_are_resolved_on_every_lookup(orchestrator, quote_ok, name_provider):
    orchestrator.run(TEST_NAME, 5)
    assert name_provider.calls == [TEST_NAME, TEST_NAME]


def test_verify_override_wins(orchestrator, quote_ok):
    override = MagicMock(return_value=VerifiedIntent.model_validate(make_verified_intent()))

    orchestrator.start(TEST_NAME, 5, verify_intent=override)

    override.assert_called_once()
    orchestrator.verify_intent.assert_not_called()


def test_verify_without_verifier(signer, quote, name_provider):
    orchestrator = PaymentSettlementOrchestrator(
        signer,
        resolver=AddressResolver(provider=name_provider, provider_factory=None),
    )

    with pytest.raises(ValueError, match="verify_intent"):
        orchestrator.verify(Quoted(recipient=TEST_RECIPIENT, quote=quote))


def test_signal_refuses_alias_recipient(orchestrator, quote_ok, signer):
    orchestrator.verify_intent.return_value = VerifiedIntent.model_validate(
        make_verified_intent(recipient=TEST_NAME)
    )

    with pytest.raises(InvalidAddress):
        orchestrator.start(TEST_NAME, 5)

    assert signer.sent == []


def test_quote_failure_stops_flow(orchestrator, requests_mock, signer):
    requests_mock.post(QUOTE_URL, status_code=500, text="down")

    with pytest.raises(QuoteUnavailable):
        orchestrator.run(TEST_RECIPIENT, 5)

    assert requests_mock.call_count == 1
    orchestrator.verify_intent.assert_not_called()
    assert signer.sent == []


def test_verification_failure_stops_flow(orchestrator, quote_ok, signer):
    orchestrator.verify_intent.side_effect = VerificationFailed("rejected", status_code=400)

    with pytest.raises(VerificationFailed):
        orchestrator.run(TEST_NAME, 5)

    orchestrator.verify_intent.assert_called_once()
    assert signer.sent == []


def test_unresolvable_recipient(orchestrator, requests_mock):
    with pytest.raises(NameNotFound):
        orchestrator.run("nobody.eth", 5)

    assert requests_mock.call_count == 0


def test_missing_agent_after_signal(orchestrator, quote_ok, signer):
    orchestrator.proof_generator = ProofGenerator(LocalAgentHost())

    with pytest.raises(AgentUnavailable):
        orchestrator.run(TEST_NAME, 5)

    # the intent stays signaled on-chain; nothing else is sent
    assert len(signer.sent) == 1


def test_split_mode(orchestrator, quote_ok, signer, agent):
    signaled = orchestrator.start(TEST_NAME, 5, platform="venmo")

    assert isinstance(signaled, Signaled)
    assert signaled.intent_hash == TEST_INTENT_HASH
    assert signaled.payee_address == "@alice-venmo"
    assert signaled.platform == "venmo"
    assert len(signer.sent) == 1
    assert agent.generate_calls == []

    fulfilled = orchestrator.complete(signaled.intent_hash, signaled.platform, proof_index=1)

    assert fulfilled.tx_hash == TEST_SETTLE_HASH
    assert agent.generate_calls == [(TEST_INTENT_HASH, 1, "venmo")]


def test_prove_encodes_agent_proof(orchestrator, agent):
    proven = orchestrator.prove(TEST_INTENT_HASH, "cashapp")

    assert proven.stage == SettlementStage.PROVEN
    assert proven.platform == "cashapp"
    assert '"signature":"0xfeed"' in decode_proof(proven.proof_bytes)


def test_stage_records_are_immutable(orchestrator, quote_ok):
    quoted = orchestrator.quote(TEST_RECIPIENT, 5)
    with pytest.raises(AttributeError):
        quoted.recipient = TEST_SENDER


def test_send_direct_native(orchestrator, signer):
    sent = orchestrator.send_direct(TEST_NAME, 10 ** 16)

    assert signer.sent == [{'to': TEST_STEALTH, 'value': 10 ** 16}]
    assert sent.tx_hash == TEST_TX_HASH
    assert sent.recipient == TEST_STEALTH
    assert sent.token_address is None
    assert sent.chain_id == 8453


@pytest.mark.parametrize("token", [None, "0x0000000000000000000000000000000000000000"])
def test_send_direct_native_token_aliases(orchestrator, signer, token):
    orchestrator.send_direct(TEST_RECIPIENT, 1, token_address=token)
    assert signer.sent[0] == {'to': TEST_RECIPIENT, 'value': 1}


def test_send_direct_erc20(orchestrator, signer):
    sent = orchestrator.send_direct(TEST_RECIPIENT, 5_000_000, token_address=TOKEN.lower(), chain_id=10)

    tx = signer.sent[0]
    assert tx['to'] == Web3.to_checksum_address(TOKEN)
    assert tx['value'] == 0
    assert tx['data'] == encode_erc20_transfer(TEST_RECIPIENT, 5_000_000)
    assert sent.token_address == TOKEN.lower()
    assert sent.chain_id == 10


def test_encode_erc20_transfer():
    data = encode_erc20_transfer(TEST_RECIPIENT, 5_000_000)

    assert data.startswith("0xa9059cbb")
    assert len(data) == 2 + 8 + 128
    assert data[10:74] == "0" * 24 + TEST_RECIPIENT[2:]
    assert int(data[74:], 16) == 5_000_000


def test_unresolved_name_blocks_direct_send(signer):
    orchestrator = PaymentSettlementOrchestrator(
        signer,
        resolver=AddressResolver(provider=StaticNameProvider(), provider_factory=None),
    )

    with pytest.raises(NameNotFound):
        orchestrator.send_direct("missing.eth", 1)

    assert signer.sent == []


@pytest.mark.parametrize("recipient", ["lower.fkey.id", "0xabcdef0123456789abcdef0123456789abcdef01"])
def test_send_direct_native_checksums_recipient(signer, recipient):
    lowercase = "0xabcdef0123456789abcdef0123456789abcdef01"
    orchestrator = PaymentSettlementOrchestrator(
        signer,
        resolver=AddressResolver(provider=StaticNameProvider({"lower.fkey.id": lowercase}), provider_factory=None),
    )

    sent = orchestrator.send_direct(recipient, 1)

    assert signer.sent == [{'to': Web3.to_checksum_address(lowercase), 'value': 1}]
    assert sent.recipient == Web3.to_checksum_address(lowercase)
    assert sent.recipient != lowercase
