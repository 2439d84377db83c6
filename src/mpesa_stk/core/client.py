"""
HTTP client for the Lipa na M-Pesa Online (STK push) endpoint.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from .config import MpesaConfig
from .credentials import build_credentials
from .errors import SubmissionError
from .payloads import (
    PaymentRequest,
    build_stk_push_payload,
    normalize_amount,
    normalize_phone_number,
)
from .tokens import Clock, TokenCache, utc_now

__all__ = [
    "PaymentSubmissionResult",
    "StkPushClient",
    "submit_payment",
]


def _decode_body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


def _mask_msisdn(phone_number: str) -> str:
    return "*" * max(len(phone_number) - 4, 0) + phone_number[-4:]


@dataclass(frozen=True)
class PaymentSubmissionResult:
    merchant_request_id: Optional[str]
    checkout_request_id: Optional[str]
    response_code: str
    response_description: Optional[str]
    customer_message: Optional[str]
    raw: Dict[str, Any]

    @property
    def accepted(self) -> bool:
        return self.response_code == "0"

    @classmethod
    def from_response(cls, payload: Dict[str, Any]) -> "PaymentSubmissionResult":
        return cls(
            merchant_request_id=payload.get("MerchantRequestID"),
            checkout_request_id=payload.get("CheckoutRequestID"),
            response_code=str(payload["ResponseCode"]),
            response_description=payload.get("ResponseDescription"),
            customer_message=payload.get("CustomerMessage"),
            raw=payload,
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "merchantRequestId": self.merchant_request_id,
            "checkoutRequestId": self.checkout_request_id,
            "responseCode": self.response_code,
            "responseDescription": self.response_description,
            "customerMessage": self.customer_message,
        }


class StkPushClient:
    """
    Submits push payment requests on behalf of one configured merchant.

    The client owns a :class:`TokenCache`; share one instance between threads
    to share the cached token.
    """

    def __init__(
        self,
        config: MpesaConfig,
        *,
        session: Optional[requests.Session] = None,
        clock: Clock = utc_now,
        token_cache: Optional[TokenCache] = None,
    ) -> None:
        self.config = config
        self.session = session or requests.Session()
        self.clock = clock
        self.tokens = token_cache or TokenCache(config, session=self.session, clock=clock)

    def submit(
        self,
        request: PaymentRequest,
        *,
        timeout: Optional[float] = None,
    ) -> PaymentSubmissionResult:
        """
        Validate ``request`` and send a single STK push for it.

        A non-zero ``ResponseCode`` is returned as a normal result; check
        :attr:`PaymentSubmissionResult.accepted`. Transport failures raise
        :class:`SubmissionError`.
        """
        phone_number = normalize_phone_number(request.phone_number)
        amount = normalize_amount(request.amount)
        account_reference = request.account_reference or self.config.account_reference
        description = request.transaction_description or self.config.transaction_description

        token = self.tokens.get_token(timeout=timeout)
        # Timestamp is taken only after the token is in hand.
        credentials = build_credentials(
            self.config.business_short_code, self.config.passkey, self.clock()
        )
        payload = build_stk_push_payload(
            self.config,
            credentials,
            phone_number=phone_number,
            amount=amount,
            account_reference=account_reference,
            transaction_description=description,
        )
        return self._post(payload, token.value, timeout)

    def push(
        self,
        phone_number: Any,
        amount: Any,
        *,
        account_reference: Optional[str] = None,
        transaction_description: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> PaymentSubmissionResult:
        return self.submit(
            PaymentRequest(
                phone_number=phone_number,
                amount=amount,
                account_reference=account_reference,
                transaction_description=transaction_description,
            ),
            timeout=timeout,
        )

    def _post(
        self,
        payload: Dict[str, Any],
        access_token: str,
        timeout: Optional[float],
    ) -> PaymentSubmissionResult:
        url = self.config.stk_push_url
        logging.info(
            "Submitting STK push of %s for %s to %s",
            payload["Amount"],
            _mask_msisdn(payload["PhoneNumber"]),
            url,
        )
        try:
            response = self.session.post(
                url,
                json=payload,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=timeout if timeout is not None else self.config.request_timeout_seconds,
            )
        except requests.RequestException as exc:
            logging.warning("STK push request failed: %s", exc)
            raise SubmissionError(f"STK push request to {url} failed: {exc}") from exc

        body = _decode_body(response)
        if not 200 <= response.status_code < 300:
            logging.warning("STK push rejected with %s: %s", response.status_code, body)
            raise SubmissionError(
                f"Provider responded with {response.status_code}",
                status_code=response.status_code,
                body=body,
            )

        if not isinstance(body, dict) or "ResponseCode" not in body:
            raise SubmissionError(
                "Provider returned a malformed STK push response",
                status_code=response.status_code,
                body=body,
            )

        result = PaymentSubmissionResult.from_response(body)
        if result.accepted:
            logging.info("STK push accepted: %s", result.checkout_request_id)
        else:
            logging.warning(
                "STK push rejected by provider with code %s: %s",
                result.response_code,
                result.response_description,
            )
        return result


def submit_payment(
    config: MpesaConfig,
    request: PaymentRequest,
    *,
    session: Optional[requests.Session] = None,
    clock: Clock = utc_now,
    timeout: Optional[float] = None,
) -> PaymentSubmissionResult:
    """
    One-shot helper that builds a throwaway client and submits ``request``.
    """
    client = StkPushClient(config, session=session, clock=clock)
    return client.submit(request, timeout=timeout)
