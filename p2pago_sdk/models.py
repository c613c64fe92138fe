"""
Data models for the p2pago SDK.

Wire names are camelCase; every model accepts either the wire alias or the
Python field name and serializes back with ``model_dump(by_alias=True)``.
"""
from datetime import datetime, timezone
from typing import Dict, Any, Optional, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr, field_validator

# Numeric identifiers arrive as strings or integers and are passed on verbatim
NumericId = Union[StrictStr, StrictInt]


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; a trailing Z or a missing offset means UTC."""
    moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        """Serialize with wire (camelCase) names, dropping unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)


class QuoteIntent(_WireModel):
    """Payment-intent descriptor returned with a quote"""
    deposit_id: NumericId = Field(..., alias="depositId")
    processor_name: str = Field(..., alias="processorName")
    amount: NumericId
    to_address: str = Field(..., alias="toAddress")
    payee_details: str = Field(..., alias="payeeDetails")
    processor_intent_data: Optional[Dict[str, Any]] = Field(None, alias="processorIntentData")
    fiat_currency_code: str = Field(..., alias="fiatCurrencyCode")
    chain_id: NumericId = Field(..., alias="chainId")


class Quote(_WireModel):
    """A single fiat to token conversion quote"""
    fiat_amount: str = Field(..., alias="fiatAmount")
    fiat_amount_formatted: str = Field(..., alias="fiatAmountFormatted")
    token_amount: str = Field(..., alias="tokenAmount")
    token_amount_formatted: str = Field(..., alias="tokenAmountFormatted")
    payment_method: str = Field(..., alias="paymentMethod")
    payee_address: str = Field(..., alias="payeeAddress")
    conversion_rate: str = Field(..., alias="conversionRate")
    intent: QuoteIntent

    @property
    def platform(self) -> str:
        return self.payment_method


class QuotesPayload(_WireModel):
    quotes: List[Quote] = Field(default_factory=list)


class QuoteResponse(_WireModel):
    """Envelope of the /quote/exact-fiat endpoint"""
    success: bool = False
    response_object: Optional[QuotesPayload] = Field(None, alias="responseObject")


class IntentData(_WireModel):
    deposit_id: NumericId = Field(..., alias="depositId")
    token_amount: NumericId = Field(..., alias="tokenAmount")
    recipient_address: str = Field(..., alias="recipientAddress")
    verifier_address: str = Field(..., alias="verifierAddress")
    currency_code_hash: str = Field(..., alias="currencyCodeHash")
    gating_service_signature: str = Field(..., alias="gatingServiceSignature")


class VerifiedIntent(_WireModel):
    """Intent authorized by the gating service, ready for signalIntent"""
    signed_intent: str = Field(..., alias="signedIntent")
    intent_data: IntentData = Field(..., alias="intentData")


class VerifyIntentResponse(_WireModel):
    """Envelope of the /verify/intent endpoint"""
    success: bool = False
    response_object: Optional[VerifiedIntent] = Field(None, alias="responseObject")


class TxReceipt(_WireModel):
    """Transaction receipt from the blockchain"""
    hash: str = Field(..., alias="transactionHash")
    block_number: int = Field(..., alias="blockNumber")
    block_hash: Optional[str] = Field(None, alias="blockHash")
    status: int
    gas_used: int = Field(0, alias="gasUsed")
    from_address: Optional[str] = Field(None, alias="from")
    to_address: Optional[str] = Field(None, alias="to")
    logs: List[Dict[str, Any]] = Field(default_factory=list)


class PaymentRecord(_WireModel):
    """Last successful payment for an account"""
    last_payment_at: str = Field(..., alias="lastPaymentAt")
    tx_hash: Optional[str] = Field(None, alias="txHash")
    amount: Optional[str] = None
    chain_id: Optional[int] = Field(None, alias="chainId")

    @field_validator("last_payment_at")
    @classmethod
    def _must_be_iso_timestamp(cls, value: str) -> str:
        parse_timestamp(value)
        return value


class PaymentStatus(_WireModel):
    valid: bool
    last_payment_at: Optional[str] = Field(None, alias="lastPaymentAt")
    expired_at: Optional[str] = Field(None, alias="expiredAt")


class Zkp2pOptions(_WireModel):
    enabled: Optional[bool] = None
    verify_url: Optional[str] = Field(None, alias="verifyUrl")


class PaymentRequiredBody(_WireModel):
    """402 Payment Required body (contract v1, additive changes only)"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    payment_required: StrictBool = Field(..., alias="paymentRequired")
    recipient: StrictStr
    chain_id: StrictInt = Field(..., alias="chainId")
    amount_wei: Optional[Union[StrictStr, StrictInt]] = Field(None, alias="amountWei")
    amount_formatted: Optional[str] = Field(None, alias="amountFormatted")
    label: Optional[str] = None
    zkp2p: Optional[Zkp2pOptions] = None

    @field_validator("payment_required")
    @classmethod
    def _must_be_true(cls, value: bool) -> bool:
        if value is not True:
            raise ValueError("paymentRequired must be true")
        return value


class PaymentProof(_WireModel):
    """Proof of payment returned to the challenging server on retry (contract v1)"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: Literal["crypto", "zkp2p"]
    chain_id: StrictInt = Field(..., alias="chainId")
    tx_hash: StrictStr = Field(..., alias="txHash")
    recipient: Optional[str] = None
    amount: Optional[str] = None
