"""
x402 payment handshake support.
"""
from .x402 import (
    PAYMENT_REQUIRED_HEADER, PAYMENT_SIGNATURE_HEADER,
    PaymentAuthorization, PaymentRequirement, SignedPayment,
    build_authorization, create_payment_header, format_usdc_cost,
    parse_payment_required, sign_authorization
)

__all__ = [
    "PAYMENT_REQUIRED_HEADER",
    "PAYMENT_SIGNATURE_HEADER",
    "PaymentRequirement",
    "PaymentAuthorization",
    "SignedPayment",
    "parse_payment_required",
    "build_authorization",
    "sign_authorization",
    "create_payment_header",
    "format_usdc_cost",
]
