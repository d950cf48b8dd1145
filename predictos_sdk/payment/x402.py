"""
x402 payment handshake.

A payment-gated provider answers the first request with HTTP 402 and a
base64-encoded JSON challenge in the ``payment-required`` header. The client
picks the option for its settlement network, signs an EIP-3009
``TransferWithAuthorization`` as EIP-712 typed data, and resends the request
with the signed payload base64-encoded in the ``PAYMENT-SIGNATURE`` header.

Nonces come from ``secrets``; there is no local replay cache, the settlement
layer rejects a reused authorization.
"""
import base64
import binascii
import json
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Union

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_account.signers.base import BaseAccount
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from web3 import Web3

from ..gateway.exceptions import (
    PaymentChallengeMalformedError, SigningFailureError, UnsupportedNetworkError
)
from ..utils import truncate_middle

logger = logging.getLogger(__name__)

PAYMENT_REQUIRED_HEADER = "payment-required"
PAYMENT_SIGNATURE_HEADER = "PAYMENT-SIGNATURE"

DEFAULT_X402_VERSION = 2
DEFAULT_MAX_TIMEOUT_SECONDS = 300
# Authorizations are back-dated to tolerate clock skew with the facilitator
VALID_AFTER_SKEW_SECONDS = 600
USDC_DECIMALS = 6

DEFAULT_TOKEN_NAME = "USD Coin"
DEFAULT_TOKEN_VERSION = "2"

# EIP-3009 TransferWithAuthorization types for EIP-712 signing
EIP712_DOMAIN_TYPE = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]
TRANSFER_WITH_AUTHORIZATION_TYPE = [
    {"name": "from", "type": "address"},
    {"name": "to", "type": "address"},
    {"name": "value", "type": "uint256"},
    {"name": "validAfter", "type": "uint256"},
    {"name": "validBefore", "type": "uint256"},
    {"name": "nonce", "type": "bytes32"},
]


class PaymentRequirement(BaseModel):
    """One accepted payment option from a 402 challenge"""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    scheme: str = "exact"
    network: str
    asset: str
    amount: Optional[str] = None
    max_amount_required: Optional[str] = Field(None, alias="maxAmountRequired")
    pay_to: str = Field(..., alias="payTo")
    max_timeout_seconds: Optional[int] = Field(None, alias="maxTimeoutSeconds", ge=0)
    extra: Optional[Dict[str, Any]] = None
    x402_version: int = Field(DEFAULT_X402_VERSION, alias="x402Version")

    @property
    def atomic_amount(self) -> str:
        """Amount in atomic units: exact amount, else the maximum, else "0"."""
        return self.amount or self.max_amount_required or "0"

    @property
    def timeout_seconds(self) -> int:
        return self.max_timeout_seconds or DEFAULT_MAX_TIMEOUT_SECONDS

    @property
    def token_name(self) -> str:
        return (self.extra or {}).get("name") or DEFAULT_TOKEN_NAME

    @property
    def token_version(self) -> str:
        return (self.extra or {}).get("version") or DEFAULT_TOKEN_VERSION


class PaymentAuthorization(BaseModel):
    """EIP-3009 transfer authorization. Signed once, used once."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    from_address: str = Field(..., alias="from")
    to: str
    value: str
    valid_after: int = Field(..., alias="validAfter")
    valid_before: int = Field(..., alias="validBefore")
    # 0x-prefixed hex of 32 random bytes
    nonce: str

    def to_wire(self) -> Dict[str, str]:
        """Header representation: every numeric field as a decimal string."""
        return {
            "from": self.from_address,
            "to": self.to,
            "value": self.value,
            "validAfter": str(self.valid_after),
            "validBefore": str(self.valid_before),
            "nonce": self.nonce,
        }


@dataclass
class SignedPayment:
    """Result of a completed handshake, ready to attach to the paid request"""
    header: str
    authorization: PaymentAuthorization
    signature: str
    requirement: PaymentRequirement


def _decode_challenge(header_value: str) -> Dict[str, Any]:
    try:
        decoded = base64.b64decode(header_value)
        parsed = json.loads(decoded)
    except (binascii.Error, ValueError) as e:
        raise PaymentChallengeMalformedError(f"Failed to parse payment requirements: {e}")
    if not isinstance(parsed, dict):
        raise PaymentChallengeMalformedError(
            f"Failed to parse payment requirements: expected a JSON object, got {type(parsed).__name__}"
        )
    return parsed


def parse_payment_required(
    header_value: Optional[str],
    network: str,
    aliases: Iterable[str] = ("base",)
) -> PaymentRequirement:
    """
    Select the payment option for the settlement network from a 402 challenge.

    Args:
        header_value: Raw ``payment-required`` header value
        network: Chain-qualified network id, e.g. "eip155:8453"
        aliases: Bare network names also accepted, e.g. "base"

    Returns:
        The matching PaymentRequirement, carrying the challenge's x402 version

    Raises:
        PaymentChallengeMalformedError: If the header is missing or undecodable
        UnsupportedNetworkError: If no option matches the network
    """
    if not header_value:
        raise PaymentChallengeMalformedError("Provider returned 402 but no payment-required header found")

    parsed = _decode_challenge(header_value)
    accepts = parsed.get("accepts") or [parsed]
    if not isinstance(accepts, list):
        raise PaymentChallengeMalformedError("Failed to parse payment requirements: 'accepts' is not a list")

    accepted_networks = {network, *aliases}
    for option in accepts:
        if not isinstance(option, dict) or option.get("network") not in accepted_networks:
            continue
        try:
            requirement = PaymentRequirement.model_validate(option)
        except ValidationError as e:
            raise PaymentChallengeMalformedError(f"Failed to parse payment requirements: {e}")
        return requirement.model_copy(
            update={"x402_version": parsed.get("x402Version") or DEFAULT_X402_VERSION}
        )

    offered = [o.get("network") for o in accepts if isinstance(o, dict)]
    raise UnsupportedNetworkError(
        f"Provider does not accept {network} payments (offered: {offered})"
    )


def create_nonce() -> str:
    """Random 32-byte nonce as 0x-prefixed hex."""
    return "0x" + secrets.token_bytes(32).hex()


def build_authorization(
    requirement: PaymentRequirement,
    from_address: str,
    now: Optional[int] = None
) -> PaymentAuthorization:
    """
    Build an unsigned transfer authorization for ``requirement``.

    Args:
        requirement: Selected payment option
        from_address: Payer wallet address
        now: Current epoch seconds (defaults to wall clock)

    Returns:
        PaymentAuthorization valid from ``now - 600`` until
        ``now + requirement.timeout_seconds``
    """
    if now is None:
        now = int(time.time())
    return PaymentAuthorization(
        from_address=from_address,
        to=requirement.pay_to,
        value=requirement.atomic_amount,
        valid_after=now - VALID_AFTER_SKEW_SECONDS,
        valid_before=now + requirement.timeout_seconds,
        nonce=create_nonce(),
    )


def _resolve_account(signer: Union[str, BaseAccount]) -> BaseAccount:
    if isinstance(signer, BaseAccount):
        return signer
    try:
        return Account.from_key(signer)
    except Exception as e:
        # Never echo key material
        raise SigningFailureError(f"Invalid wallet key: {type(e).__name__}") from None


def typed_data_for(
    authorization: PaymentAuthorization,
    requirement: PaymentRequirement,
    chain_id: int
) -> Dict[str, Any]:
    """Full EIP-712 message for a TransferWithAuthorization."""
    return {
        "types": {
            "EIP712Domain": EIP712_DOMAIN_TYPE,
            "TransferWithAuthorization": TRANSFER_WITH_AUTHORIZATION_TYPE,
        },
        "primaryType": "TransferWithAuthorization",
        "domain": {
            "name": requirement.token_name,
            "version": requirement.token_version,
            "chainId": chain_id,
            "verifyingContract": Web3.to_checksum_address(requirement.asset),
        },
        "message": {
            "from": Web3.to_checksum_address(authorization.from_address),
            "to": Web3.to_checksum_address(authorization.to),
            "value": int(authorization.value),
            "validAfter": authorization.valid_after,
            "validBefore": authorization.valid_before,
            "nonce": Web3.to_bytes(hexstr=authorization.nonce),
        },
    }


def sign_authorization(
    signer: Union[str, BaseAccount],
    authorization: PaymentAuthorization,
    requirement: PaymentRequirement,
    chain_id: int
) -> str:
    """
    Sign ``authorization`` as EIP-712 typed data.

    Args:
        signer: Hex private key or an eth_account account
        authorization: Authorization to sign
        requirement: Payment option supplying the token domain
        chain_id: Settlement chain id

    Returns:
        0x-prefixed signature hex

    Raises:
        SigningFailureError: If the key or any signed field is invalid
    """
    account = _resolve_account(signer)
    try:
        signable = encode_typed_data(full_message=typed_data_for(authorization, requirement, chain_id))
        signed = account.sign_message(signable)
    except Exception as e:
        logger.error(f"Payment signing failed: {type(e).__name__}: {e}")
        raise SigningFailureError(f"Failed to sign payment authorization: {e}") from e
    return Web3.to_hex(signed.signature)


def encode_payment_payload(
    requirement: PaymentRequirement,
    authorization: PaymentAuthorization,
    signature: str,
    resource_url: str,
    description: str = "BlockRun AI Chat Completion"
) -> str:
    """Serialize the paid-retry payload to base64 JSON."""
    payload = {
        "x402Version": requirement.x402_version,
        "resource": {
            "url": resource_url,
            "description": description,
            "mimeType": "application/json",
        },
        "accepted": {
            "scheme": requirement.scheme or "exact",
            "network": requirement.network,
            "asset": requirement.asset,
            "amount": requirement.atomic_amount,
            "payTo": requirement.pay_to,
            "maxTimeoutSeconds": requirement.timeout_seconds,
            "extra": requirement.extra or {},
        },
        "payload": {
            "authorization": authorization.to_wire(),
            "signature": signature,
        },
    }
    return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")


def create_payment_header(
    signer: Union[str, BaseAccount],
    requirement: PaymentRequirement,
    resource_url: str,
    chain_id: int,
    now: Optional[int] = None
) -> SignedPayment:
    """
    Mint, sign and encode one payment authorization.

    Args:
        signer: Hex private key or an eth_account account
        requirement: Selected payment option
        resource_url: URL of the resource being paid for
        chain_id: Settlement chain id
        now: Current epoch seconds (defaults to wall clock)

    Returns:
        SignedPayment holding the header value to send

    Raises:
        SigningFailureError: If signing fails
    """
    account = _resolve_account(signer)
    authorization = build_authorization(requirement, account.address, now=now)
    signature = sign_authorization(account, authorization, requirement, chain_id)
    logger.debug(
        f"Signed payment authorization from {truncate_middle(account.address)} "
        f"to {truncate_middle(requirement.pay_to)} for {requirement.atomic_amount} atomic units"
    )
    header = encode_payment_payload(requirement, authorization, signature, resource_url)
    return SignedPayment(
        header=header,
        authorization=authorization,
        signature=signature,
        requirement=requirement,
    )


def format_usdc_cost(atomic_units: str) -> str:
    """
    Format a USDC amount in atomic units as dollars.

    ``"1500"`` becomes ``"$0.001500"``; unparseable input gives ``"Unknown"``.
    """
    try:
        amount = int(atomic_units)
    except (TypeError, ValueError):
        return "Unknown"
    return f"${amount / 10 ** USDC_DECIMALS:.6f}"
