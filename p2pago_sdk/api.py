"""
REST clients for the ZKP2P quote and intent-verification endpoints.

QuoteService is safe to call from anywhere. IntentVerifier needs the
long-lived API key and belongs on a trusted backend; browser-like or
untrusted callers should use RemoteIntentVerifier against their own backend.
"""
import logging
import math
import urllib.parse
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Union

import requests
from pydantic import ValidationError
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .constants import (
    BASE_CHAIN_ID,
    DEFAULT_FIAT_CURRENCY,
    DEFAULT_PAYMENT_PLATFORMS,
    USDC_ADDRESS,
    ZKP2P_API_BASE_URL,
)
from .exceptions import QuoteUnavailable, VerificationFailed
from .models import Quote, QuoteIntent, QuoteResponse, VerifiedIntent, VerifyIntentResponse

_MILLIONTHS = Decimal(1_000_000)


def to_exact_fiat_amount(amount_usd: Union[int, float, str, Decimal]) -> str:
    """
    Convert a USD amount to an integer string of millionths (5 -> "5000000").

    The amount is read through its decimal text so float representation
    error does not leak into the result; halves round up.

    Raises:
        ValueError: If the amount is not a finite non-negative number
    """
    if isinstance(amount_usd, float) and not math.isfinite(amount_usd):
        raise ValueError(f"Amount must be finite, got: {amount_usd}")
    try:
        value = Decimal(str(amount_usd).strip())
    except InvalidOperation:
        raise ValueError(f"Amount must be a number, got: {amount_usd!r}")
    if not value.is_finite():
        raise ValueError(f"Amount must be finite, got: {amount_usd}")
    if value < 0:
        raise ValueError(f"Amount must not be negative, got: {amount_usd}")
    return str(int((value * _MILLIONTHS).quantize(Decimal(1), rounding=ROUND_HALF_UP)))


def validate_url(url_name: str, url: str) -> None:
    """
    Require https unless the host is local.

    Raises:
        ValueError: If the URL uses another scheme for a remote host
    """
    parsed = urllib.parse.urlparse(url)
    host = parsed.hostname or ''
    is_local = host in ('localhost', '127.0.0.1')
    if parsed.scheme != 'https' and not is_local:
        raise ValueError(f"{url_name} must use https:// for security (got: {parsed.scheme}://)")


def build_session(retry_count: int = 0) -> requests.Session:
    """
    Create an HTTP session.

    Quote and verify calls are not idempotent, so the default is no retries;
    callers retry whole stages instead.
    """
    session = requests.Session()
    retries = Retry(
        total=retry_count,
        backoff_factor=0.5,
        status_forcelist=[500, 502, 503, 504],
        allowed_methods=["GET", "POST"],
        raise_on_status=False,
    )
    session.mount("http://", HTTPAdapter(max_retries=retries))
    session.mount("https://", HTTPAdapter(max_retries=retries))
    return session


class ApiClient:
    """Shared HTTP plumbing for the ZKP2P REST endpoints"""

    def __init__(
        self,
        base_url: str = ZKP2P_API_BASE_URL,
        session: Optional[requests.Session] = None,
        retry_count: int = 0,
        timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Args:
            base_url: API base URL (e.g. "https://api.zkp2p.xyz/v1")
            session: Optional pre-configured requests session
            retry_count: Transport-level retries for 5xx responses
            timeout: Request timeout in seconds; None waits indefinitely
            logger: Optional logger instance

        Raises:
            ValueError: If base_url is not https (unless localhost/127.0.0.1)
        """
        validate_url("base_url", base_url)
        self.base_url = base_url.rstrip('/')
        self.session = session or build_session(retry_count)
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

    def _post(self, path: str, body: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> requests.Response:
        return self.session.post(
            f"{self.base_url}{path}",
            json=body,
            headers=headers,
            timeout=self.timeout
        )

    @staticmethod
    def _sanitize_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
        """Redact payee details and signatures for logging"""
        result = dict(payload)
        for key in ("payeeDetails", "gatingServiceSignature", "signedIntent"):
            if key in result:
                result[key] = f"[REDACTED - {len(str(result[key]))} chars]"
        return result


class QuoteService(ApiClient):
    """Client for the /quote/exact-fiat endpoint"""

    def build_quote_request(
        self,
        recipient: str,
        amount_usd: Union[int, float, str, Decimal],
        sender_address: str,
        platform: Optional[str] = None,
        chain_id: Optional[int] = None,
        destination_token: Optional[str] = None
    ) -> Dict[str, Any]:
        """Build the quote request body."""
        platforms: List[str] = [platform.lower()] if platform else list(DEFAULT_PAYMENT_PLATFORMS)
        return {
            "paymentPlatforms": platforms,
            "fiatCurrency": DEFAULT_FIAT_CURRENCY,
            "user": sender_address,
            "recipient": recipient,
            "destinationChainId": chain_id if chain_id is not None else BASE_CHAIN_ID,
            "destinationToken": destination_token or USDC_ADDRESS,
            "exactFiatAmount": to_exact_fiat_amount(amount_usd),
        }

    def get_quote(
        self,
        recipient: str,
        amount_usd: Union[int, float, str, Decimal],
        sender_address: str,
        platform: Optional[str] = None,
        chain_id: Optional[int] = None,
        destination_token: Optional[str] = None
    ) -> Quote:
        """
        Fetch a quote for an exact fiat amount

        Args:
            recipient: Resolved recipient address
            amount_usd: Fiat amount in USD
            sender_address: Payer's wallet address
            platform: Payment platform (e.g. "venmo"); defaults to venmo and cashapp
            chain_id: Destination chain; defaults to Base
            destination_token: Destination token; defaults to USDC on Base

        Returns:
            The first quote offered

        Raises:
            QuoteUnavailable: On a non-2xx response or when no quote is offered
        """
        body = self.build_quote_request(
            recipient, amount_usd, sender_address, platform, chain_id, destination_token
        )
        self.logger.debug(f"Requesting quote: {body}")

        response = self._post("/quote/exact-fiat", body)
        if not response.ok:
            self.logger.error(f"Quote request failed: {response.status_code}")
            raise QuoteUnavailable(
                f"ZKP2P quote failed: {response.status_code} {response.text}",
                status_code=response.status_code,
                response_text=response.text
            )

        try:
            envelope = QuoteResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise QuoteUnavailable(
                f"Invalid quote response: {str(e)}",
                status_code=response.status_code,
                response_text=response.text
            )

        if not envelope.success or envelope.response_object is None or not envelope.response_object.quotes:
            raise QuoteUnavailable(
                "ZKP2P quote returned no quotes",
                status_code=response.status_code,
                response_text=response.text
            )

        quote = envelope.response_object.quotes[0]
        self.logger.info(
            f"Quote via {quote.payment_method}: {quote.fiat_amount_formatted} -> {quote.token_amount_formatted}"
        )
        return quote


class IntentVerifier(ApiClient):
    """
    Client for the /verify/intent endpoint.

    The API key is sent only in the ``x-api-key`` header and is never logged.
    """

    @staticmethod
    def build_verify_request(intent: QuoteIntent) -> Dict[str, Any]:
        """Build the verify request body from a quote intent."""
        body = {
            "processorName": intent.processor_name,
            "depositId": intent.deposit_id,
            "tokenAmount": intent.amount,
            "payeeDetails": intent.payee_details,
            "toAddress": intent.to_address,
            "fiatCurrencyCode": intent.fiat_currency_code,
            "chainId": intent.chain_id,
        }
        return body

    def verify(self, intent: QuoteIntent, api_key: str) -> VerifiedIntent:
        """
        Have the gating service authorize an intent

        Args:
            intent: Quote intent whose toAddress is already an address
            api_key: ZKP2P API key

        Returns:
            The verified intent

        Raises:
            ValueError: If no API key is given
            VerificationFailed: On a non-2xx response, success=false or a missing payload
        """
        if not api_key:
            raise ValueError("api_key must be provided")

        body = self.build_verify_request(intent)
        self.logger.debug(f"Verifying intent: {self._sanitize_payload(body)}")

        response = self._post(
            "/verify/intent",
            body,
            headers={"x-api-key": api_key}
        )
        if not response.ok:
            self.logger.error(f"Verify intent request failed: {response.status_code}")
            raise VerificationFailed(
                f"ZKP2P verify intent failed: {response.status_code} {response.text}",
                status_code=response.status_code,
                response_text=response.text
            )

        try:
            envelope = VerifyIntentResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise VerificationFailed(
                f"Invalid verify intent response: {str(e)}",
                status_code=response.status_code
            )

        if not envelope.success or envelope.response_object is None:
            raise VerificationFailed("ZKP2P verify intent failed", status_code=response.status_code)

        return envelope.response_object


class RemoteIntentVerifier:
    """
    Verifies intents through an application backend that holds the API key.

    The backend receives the quote intent as JSON and may answer with either
    the bare verified intent or the ``{"responseObject": ...}`` envelope.
    """

    def __init__(
        self,
        verify_url: str,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None
    ):
        validate_url("verify_url", verify_url)
        self.verify_url = verify_url
        self.session = session or build_session()
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

    def verify(self, intent: QuoteIntent) -> VerifiedIntent:
        """
        Raises:
            VerificationFailed: On a non-2xx response or an unrecognized payload
        """
        response = self.session.post(self.verify_url, json=intent.to_wire(), timeout=self.timeout)
        if not response.ok:
            self.logger.error(f"Backend verify failed: {response.status_code}")
            raise VerificationFailed(
                f"Verify intent failed: {response.status_code}",
                status_code=response.status_code,
                response_text=response.text
            )

        try:
            data = response.json()
            if isinstance(data, dict) and data.get("responseObject"):
                data = data["responseObject"]
            return VerifiedIntent.model_validate(data)
        except (ValueError, ValidationError) as e:
            raise VerificationFailed(
                f"Invalid verify intent response: {str(e)}",
                status_code=response.status_code
            )

    __call__ = verify
