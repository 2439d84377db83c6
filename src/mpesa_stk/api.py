"""
Public, high-level helpers for sending STK push requests.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

import requests

from .core.client import PaymentSubmissionResult, StkPushClient
from .core.config import MpesaConfig, MpesaParameters, load_mpesa_config
from .core.tokens import Clock, utc_now

__all__ = [
    "create_stk_client",
    "send_stk_push",
]


def create_stk_client(
    *,
    config: Optional[MpesaConfig] = None,
    session: Optional[requests.Session] = None,
    clock: Clock = utc_now,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    parameters: Optional[MpesaParameters] = None,
) -> StkPushClient:
    """
    Construct a :class:`StkPushClient`.

    Callers can either supply a ready-made :class:`MpesaConfig` or let the
    helper assemble one from environment data.
    """
    if config is not None:
        if any(item for item in (overrides, base, parameters)):
            raise ValueError(
                "Provide either a pre-built MpesaConfig or environment parameters, not both."
            )
        cfg = config
    else:
        cfg = load_mpesa_config(
            env_file=env_file,
            overrides=overrides,
            base=base,
            parameters=parameters,
        )
    return StkPushClient(cfg, session=session, clock=clock)


def send_stk_push(
    phone_number: Any,
    amount: Any,
    *,
    account_reference: Optional[str] = None,
    transaction_description: Optional[str] = None,
    client: Optional[StkPushClient] = None,
    config: Optional[MpesaConfig] = None,
    session: Optional[requests.Session] = None,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    timeout: Optional[float] = None,
) -> PaymentSubmissionResult:
    """
    Send one push payment request, building a client if none is given.

    Reuse a long-lived ``client`` where possible so the access token is cached
    between calls.
    """
    if client is None:
        client = create_stk_client(
            config=config,
            session=session,
            env_file=env_file,
            overrides=overrides,
        )
    return client.push(
        phone_number,
        amount,
        account_reference=account_reference,
        transaction_description=transaction_description,
        timeout=timeout,
    )
