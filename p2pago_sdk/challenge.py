"""
Client side of the 402 Payment Required contract (v1).

A server answers 402 with a PaymentRequiredBody; the client pays (directly
in crypto, or through the ZKP2P fiat flow when the server allows it) and
retries with the resulting PaymentProof.
"""
import logging
import re
from typing import Any, Optional, Union

from pydantic import ValidationError

from .api import RemoteIntentVerifier
from .constants import DEFAULT_CHALLENGE_AMOUNT_USD
from .exceptions import MalformedChallengeBody
from .models import PaymentProof, PaymentRequiredBody
from .orchestration import PaymentSettlementOrchestrator

_NON_NUMERIC = re.compile(r"[^0-9.]")
_LEADING_NUMBER = re.compile(r"\d+(?:\.\d+)?|\.\d+")


def parse_payment_required_body(body: Any) -> PaymentRequiredBody:
    """
    Raises:
        MalformedChallengeBody: If paymentRequired, recipient or chainId is missing or mistyped
    """
    if not isinstance(body, dict):
        raise MalformedChallengeBody("Invalid 402 body: expected a JSON object")
    try:
        return PaymentRequiredBody.model_validate(body)
    except ValidationError as e:
        raise MalformedChallengeBody(
            f"Invalid 402 body: missing paymentRequired, recipient, or chainId ({e.error_count()} errors)"
        )


def is_payment_required_body(body: Any) -> bool:
    try:
        parse_payment_required_body(body)
    except MalformedChallengeBody:
        return False
    return True


def is_payment_proof(proof: Any) -> bool:
    if not isinstance(proof, dict):
        return False
    try:
        PaymentProof.model_validate(proof)
    except ValidationError:
        return False
    return True


def parse_amount_usd(amount_formatted: Optional[str]) -> str:
    """Extract the USD amount from a display string such as "$5.00"."""
    if not amount_formatted:
        return str(DEFAULT_CHALLENGE_AMOUNT_USD)
    # "$1,000.00" -> "1000.00"; "Pay $5.00." -> "5.00"
    match = _LEADING_NUMBER.match(_NON_NUMERIC.sub("", amount_formatted))
    return match.group(0) if match else str(DEFAULT_CHALLENGE_AMOUNT_USD)


def parse_amount_wei(amount_wei: Optional[Union[str, int]]) -> int:
    """
    Read amountWei as an integer; decimal or 0x-prefixed strings and JSON numbers are accepted.

    Raises:
        MalformedChallengeBody: If the value is not a non-negative integer
    """
    if amount_wei is None or amount_wei == "":
        return 0
    try:
        if isinstance(amount_wei, int):
            value = amount_wei
        else:
            text = amount_wei.strip()
            value = int(text, 16) if text.lower().startswith("0x") else int(text)
    except ValueError:
        raise MalformedChallengeBody(f"Invalid 402 body: amountWei is not an integer ({amount_wei!r})")
    if value < 0:
        raise MalformedChallengeBody(f"Invalid 402 body: amountWei is negative ({amount_wei!r})")
    return value


class PaymentRequiredHandler:
    """Pays a 402 challenge and produces the proof to retry with."""

    def __init__(self, orchestrator: PaymentSettlementOrchestrator, logger: Optional[logging.Logger] = None):
        self.orchestrator = orchestrator
        self.logger = logger or logging.getLogger(__name__)

    def handle(self, body: Any, use_zkp2p: bool = False, verify_url: Optional[str] = None) -> PaymentProof:
        """
        Pay a 402 challenge

        Args:
            body: Parsed 402 response body
            use_zkp2p: Prefer the fiat flow when the server enables it
            verify_url: Backend verify endpoint; the body's zkp2p.verifyUrl wins

        Returns:
            PaymentProof for the retried request

        Raises:
            MalformedChallengeBody: If the body is invalid; raised before any network call
        """
        challenge = parse_payment_required_body(body)
        amount_wei = parse_amount_wei(challenge.amount_wei)
        recipient = self.orchestrator.resolver.resolve(challenge.recipient)

        zkp2p = challenge.zkp2p
        zkp2p_verify_url = (zkp2p.verify_url if zkp2p else None) or verify_url
        if use_zkp2p and zkp2p is not None and zkp2p.enabled and zkp2p_verify_url:
            return self._pay_zkp2p(challenge, recipient, zkp2p_verify_url)

        return self._pay_crypto(challenge, recipient, amount_wei)

    def _pay_crypto(self, challenge: PaymentRequiredBody, recipient: str, amount_wei: int) -> PaymentProof:
        sent = self.orchestrator.send_direct(recipient, amount_wei, chain_id=challenge.chain_id)
        return PaymentProof(
            type="crypto",
            chain_id=challenge.chain_id,
            tx_hash=sent.tx_hash,
            recipient=recipient,
            amount=str(challenge.amount_wei) if challenge.amount_wei not in (None, "") else None
        )

    def _pay_zkp2p(self, challenge: PaymentRequiredBody, recipient: str, verify_url: str) -> PaymentProof:
        amount_usd = parse_amount_usd(challenge.amount_formatted)
        self.logger.info(f"Paying 402 challenge via ZKP2P: ${amount_usd} to {recipient}")
        fulfilled = self.orchestrator.run(
            recipient,
            amount_usd,
            chain_id=challenge.chain_id,
            verify_intent=RemoteIntentVerifier(verify_url)
        )
        return PaymentProof(
            type="zkp2p",
            chain_id=challenge.chain_id,
            tx_hash=fulfilled.tx_hash,
            recipient=recipient
        )
