"""
Public facade for the M-Pesa STK push helper package.

The most useful pieces are re-exported here so integrators can
``from mpesa_stk import ...`` without navigating the package.
"""

from .api import create_stk_client, send_stk_push
from .core import (
    AccessToken,
    AuthenticationError,
    ConfigurationError,
    Credentials,
    MpesaConfig,
    MpesaEnvironment,
    MpesaError,
    MpesaParameters,
    PaymentRequest,
    PaymentSubmissionResult,
    StkPushClient,
    SubmissionError,
    TokenCache,
    ValidationError,
    build_credentials,
    build_environment,
    build_stk_push_payload,
    load_env_file,
    load_mpesa_config,
    submit_payment,
)

__all__ = (
    "AccessToken",
    "AuthenticationError",
    "ConfigurationError",
    "Credentials",
    "MpesaConfig",
    "MpesaEnvironment",
    "MpesaError",
    "MpesaParameters",
    "PaymentRequest",
    "PaymentSubmissionResult",
    "StkPushClient",
    "SubmissionError",
    "TokenCache",
    "ValidationError",
    "build_credentials",
    "build_environment",
    "build_stk_push_payload",
    "create_stk_client",
    "load_env_file",
    "load_mpesa_config",
    "send_stk_push",
    "submit_payment",
)
