"""
Caller input validation and the JSON body sent to the STK push endpoint.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from .config import MpesaConfig
from .credentials import Credentials
from .errors import ValidationError

__all__ = [
    "MAX_AMOUNT",
    "MIN_AMOUNT",
    "TRANSACTION_TYPE",
    "PaymentRequest",
    "build_stk_push_payload",
    "normalize_amount",
    "normalize_phone_number",
]

TRANSACTION_TYPE = "CustomerPayBillOnline"

_MSISDN_PATTERN = re.compile(r"^254[17]\d{8}$")

# Daraja accepts whole shillings up to the per-transaction ceiling.
MIN_AMOUNT = 1
MAX_AMOUNT = 250000
_MAX_AMOUNT_CHARS = 32


@dataclass(frozen=True)
class PaymentRequest:
    phone_number: Any
    amount: Any
    account_reference: Optional[str] = None
    transaction_description: Optional[str] = None


def normalize_phone_number(raw: Any) -> str:
    """
    Return ``raw`` as a Safaricom MSISDN (``2547XXXXXXXX`` or ``2541XXXXXXXX``).

    Local ``07``/``01`` numbers and a leading ``+`` are accepted.
    """
    if raw is None or isinstance(raw, bool):
        raise ValidationError("phoneNumber is required")
    phone = re.sub(r"[\s-]", "", str(raw))
    if not phone:
        raise ValidationError("phoneNumber is required")
    if phone.startswith("+"):
        phone = phone[1:]
    if phone.startswith("0") and len(phone) == 10:
        phone = "254" + phone[1:]
    if not _MSISDN_PATTERN.match(phone):
        raise ValidationError(
            f"phoneNumber '{raw}' is not a valid MSISDN (expected 2547XXXXXXXX)",
            detail={"field": "phoneNumber"},
        )
    return phone


def _amount_out_of_range() -> ValidationError:
    return ValidationError(
        f"amount must be between {MIN_AMOUNT} and {MAX_AMOUNT}",
        detail={"field": "amount"},
    )


def normalize_amount(raw: Any) -> Decimal:
    """
    Return ``raw`` as a whole number of shillings within the per-push limit.

    Range checks run before any integer conversion, so inputs such as
    ``"1e999999999"`` are rejected without being expanded.
    """
    if raw is None or raw == "":
        raise ValidationError("amount is required", detail={"field": "amount"})
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str, Decimal)):
        raise ValidationError("amount must be a number", detail={"field": "amount"})
    if isinstance(raw, int) and not MIN_AMOUNT <= raw <= MAX_AMOUNT:
        raise _amount_out_of_range()
    if isinstance(raw, str) and len(raw.strip()) > _MAX_AMOUNT_CHARS:
        raise _amount_out_of_range()
    try:
        amount = Decimal(str(raw).strip())
    except InvalidOperation as exc:
        raise ValidationError(
            f"amount must be a number, got '{raw}'", detail={"field": "amount"}
        ) from exc
    if not amount.is_finite():
        raise ValidationError("amount must be a finite number", detail={"field": "amount"})
    if not MIN_AMOUNT <= amount <= MAX_AMOUNT:
        raise _amount_out_of_range()
    if amount != amount.to_integral_value():
        raise ValidationError(
            "amount must be a whole number of shillings", detail={"field": "amount"}
        )
    return amount


def build_stk_push_payload(
    config: MpesaConfig,
    credentials: Credentials,
    *,
    phone_number: str,
    amount: Decimal,
    account_reference: str,
    transaction_description: str,
) -> Dict[str, Any]:
    """Build the ``processrequest`` body; the phone both pays and is prompted."""
    return {
        "BusinessShortCode": credentials.short_code,
        "Password": credentials.password,
        "Timestamp": credentials.timestamp,
        "TransactionType": TRANSACTION_TYPE,
        "Amount": int(amount),
        "PartyA": phone_number,
        "PartyB": config.business_short_code,
        "PhoneNumber": phone_number,
        "CallBackURL": config.callback_url,
        "AccountReference": account_reference,
        "TransactionDesc": transaction_description,
    }
