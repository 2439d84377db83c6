"""
Core primitives for building and submitting STK push requests.
"""

from .client import PaymentSubmissionResult, StkPushClient, submit_payment
from .config import BASE_URLS, MpesaConfig, MpesaParameters, load_mpesa_config
from .credentials import Credentials, build_credentials, format_timestamp
from .environment import MpesaEnvironment, build_environment, load_env_file, read_env_file
from .errors import (
    AuthenticationError,
    ConfigurationError,
    MpesaError,
    SubmissionError,
    ValidationError,
)
from .payloads import (
    TRANSACTION_TYPE,
    PaymentRequest,
    build_stk_push_payload,
    normalize_amount,
    normalize_phone_number,
)
from .tokens import AccessToken, TokenCache, basic_auth_header, utc_now

__all__ = [
    "BASE_URLS",
    "TRANSACTION_TYPE",
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
    "basic_auth_header",
    "build_credentials",
    "build_environment",
    "build_stk_push_payload",
    "format_timestamp",
    "load_env_file",
    "load_mpesa_config",
    "normalize_amount",
    "normalize_phone_number",
    "read_env_file",
    "submit_payment",
    "utc_now",
]
