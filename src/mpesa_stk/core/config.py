"""
Configuration objects and helpers for the Daraja STK push client.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import urlparse

from .environment import build_environment
from .errors import ConfigurationError

__all__ = [
    "BASE_URLS",
    "MpesaConfig",
    "MpesaParameters",
    "load_mpesa_config",
]

BASE_URLS = {
    "sandbox": "https://sandbox.safaricom.co.ke",
    "production": "https://api.safaricom.co.ke",
}

_PARAMETER_TO_ENV_KEY = {
    "consumer_key": "MPESA_CONSUMER_KEY",
    "consumer_secret": "MPESA_CONSUMER_SECRET",
    "business_short_code": "MPESA_BUSINESS_SHORT_CODE",
    "passkey": "MPESA_PASSKEY",
    "callback_url": "MPESA_CALLBACK_URL",
    "environment": "MPESA_ENVIRONMENT",
    "base_url": "MPESA_BASE_URL",
    "request_timeout_seconds": "MPESA_REQUEST_TIMEOUT_SECONDS",
    "token_safety_margin_seconds": "MPESA_TOKEN_SAFETY_MARGIN_SECONDS",
    "account_reference": "MPESA_ACCOUNT_REFERENCE",
    "transaction_description": "MPESA_TRANSACTION_DESC",
    "port": "PORT",
    "allowed_origins": "ALLOWED_ORIGINS",
}


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(frozen=True)
class MpesaParameters:
    """
    Explicit parameter bundle for constructing :class:`MpesaConfig`.

    Anything left as ``None`` is read from the environment instead.
    """

    consumer_key: Optional[str] = None
    consumer_secret: Optional[str] = None
    business_short_code: Optional[str | int] = None
    passkey: Optional[str] = None
    callback_url: Optional[str] = None
    environment: Optional[str] = None
    base_url: Optional[str] = None
    request_timeout_seconds: Optional[float | int | str] = None
    token_safety_margin_seconds: Optional[float | int | str] = None
    account_reference: Optional[str] = None
    transaction_description: Optional[str] = None
    port: Optional[int | str] = None
    allowed_origins: Optional[str] = None

    def as_overrides(self) -> Dict[str, str]:
        overrides: Dict[str, str] = {}
        for field_name, env_key in _PARAMETER_TO_ENV_KEY.items():
            value = getattr(self, field_name)
            if value is None:
                continue
            overrides[env_key] = _stringify(value)
        return overrides


def _collect_parameter_overrides(
    parameters: Optional[MpesaParameters],
    explicit: Mapping[str, Any],
) -> Dict[str, str]:
    overrides: Dict[str, str] = {}
    if parameters is not None:
        overrides.update(parameters.as_overrides())

    for key, value in explicit.items():
        if value is None:
            continue
        try:
            env_key = _PARAMETER_TO_ENV_KEY[key]
        except KeyError as exc:
            raise TypeError(f"Unknown M-Pesa parameter '{key}'") from exc
        overrides[env_key] = _stringify(value)
    return overrides


def _required(values: Mapping[str, str], key: str) -> str:
    value = (values.get(key) or "").strip()
    if not value:
        raise ConfigurationError(f"{key} must be provided")
    return value


def _seconds(values: Mapping[str, str], key: str, default: str, *, allow_zero: bool = False) -> float:
    raw = values.get(key) or default
    try:
        number = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{key} must be a number, got '{raw}'") from exc
    if not math.isfinite(number):
        raise ConfigurationError(f"{key} must be a finite number, got '{raw}'")
    if number < 0 or (number == 0 and not allow_zero):
        bound = "must not be negative" if allow_zero else "must be greater than zero"
        raise ConfigurationError(f"{key} {bound}")
    return number


def _normalize_url(raw_url: str, key: str) -> str:
    parsed = urlparse(raw_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationError(f"{key} must be an absolute http(s) URL")
    return raw_url.rstrip("/")


@dataclass(frozen=True)
class MpesaConfig:
    consumer_key: str = field(repr=False)
    consumer_secret: str = field(repr=False)
    business_short_code: str
    passkey: str = field(repr=False)
    callback_url: str
    environment: str = "sandbox"
    base_url: str = BASE_URLS["sandbox"]
    request_timeout_seconds: float = 30.0
    token_safety_margin_seconds: float = 30.0
    account_reference: str = "BuySasa online shop"
    transaction_description: str = "Payment"
    port: int = 3000
    allowed_origins: Tuple[str, ...] = ("*",)

    @property
    def token_url(self) -> str:
        return f"{self.base_url}/oauth/v1/generate"

    @property
    def stk_push_url(self) -> str:
        return f"{self.base_url}/mpesa/stkpush/v1/processrequest"

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> "MpesaConfig":
        consumer_key = _required(values, "MPESA_CONSUMER_KEY")
        consumer_secret = _required(values, "MPESA_CONSUMER_SECRET")
        passkey = _required(values, "MPESA_PASSKEY")

        short_code = _required(values, "MPESA_BUSINESS_SHORT_CODE")
        if not short_code.isdigit():
            raise ConfigurationError("MPESA_BUSINESS_SHORT_CODE must contain digits only")

        callback_url = _normalize_url(
            _required(values, "MPESA_CALLBACK_URL"), "MPESA_CALLBACK_URL"
        )

        environment = (values.get("MPESA_ENVIRONMENT") or "sandbox").strip().lower()
        if environment not in BASE_URLS:
            raise ConfigurationError(
                f"MPESA_ENVIRONMENT must be 'sandbox' or 'production', got '{environment}'"
            )

        base_url_raw = (values.get("MPESA_BASE_URL") or "").strip()
        base_url = (
            _normalize_url(base_url_raw, "MPESA_BASE_URL")
            if base_url_raw
            else BASE_URLS[environment]
        )

        request_timeout = _seconds(values, "MPESA_REQUEST_TIMEOUT_SECONDS", "30")
        safety_margin = _seconds(
            values, "MPESA_TOKEN_SAFETY_MARGIN_SECONDS", "30", allow_zero=True
        )

        port_raw = values.get("PORT") or "3000"
        try:
            port = int(port_raw)
        except ValueError as exc:
            raise ConfigurationError(f"PORT must be an integer, got '{port_raw}'") from exc
        if not 0 <= port <= 65535:
            raise ConfigurationError("PORT must be between 0 and 65535")

        origins = (values.get("ALLOWED_ORIGINS") or "*").split(",")
        allowed_origins = tuple(origin.strip() for origin in origins if origin.strip()) or ("*",)

        return cls(
            consumer_key=consumer_key,
            consumer_secret=consumer_secret,
            business_short_code=short_code,
            passkey=passkey,
            callback_url=callback_url,
            environment=environment,
            base_url=base_url,
            request_timeout_seconds=request_timeout,
            token_safety_margin_seconds=safety_margin,
            account_reference=values.get("MPESA_ACCOUNT_REFERENCE") or "BuySasa online shop",
            transaction_description=values.get("MPESA_TRANSACTION_DESC") or "Payment",
            port=port,
            allowed_origins=allowed_origins,
        )

    @classmethod
    def from_env(
        cls,
        *,
        env_file: Optional[str] = ".env",
        overrides: Optional[Mapping[str, str]] = None,
        base: Optional[Mapping[str, str]] = None,
        parameters: Optional[MpesaParameters] = None,
        **explicit: Any,
    ) -> "MpesaConfig":
        parameter_overrides = _collect_parameter_overrides(parameters, explicit)
        merged_overrides = dict(overrides or {})
        merged_overrides.update(parameter_overrides)

        environment = build_environment(
            env_file=env_file,
            base=base,
            overrides=merged_overrides,
        )
        return cls.from_mapping(environment.variables)


def load_mpesa_config(
    *,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    parameters: Optional[MpesaParameters] = None,
    consumer_key: Optional[str] = None,
    consumer_secret: Optional[str] = None,
    business_short_code: Optional[str | int] = None,
    passkey: Optional[str] = None,
    callback_url: Optional[str] = None,
    environment: Optional[str] = None,
    base_url: Optional[str] = None,
    request_timeout_seconds: Optional[float | int | str] = None,
    token_safety_margin_seconds: Optional[float | int | str] = None,
    account_reference: Optional[str] = None,
    transaction_description: Optional[str] = None,
    port: Optional[int | str] = None,
    allowed_origins: Optional[str] = None,
) -> MpesaConfig:
    """
    Convenience wrapper that mirrors :meth:`MpesaConfig.from_env`.

    Settings may come from environment variables, a ``.env`` file, direct
    keyword arguments, or any combination. Keyword arguments win over
    ``overrides``, which win over the environment.
    """
    return MpesaConfig.from_env(
        env_file=env_file,
        overrides=overrides,
        base=base,
        parameters=parameters,
        consumer_key=consumer_key,
        consumer_secret=consumer_secret,
        business_short_code=business_short_code,
        passkey=passkey,
        callback_url=callback_url,
        environment=environment,
        base_url=base_url,
        request_timeout_seconds=request_timeout_seconds,
        token_safety_margin_seconds=token_safety_margin_seconds,
        account_reference=account_reference,
        transaction_description=transaction_description,
        port=port,
        allowed_origins=allowed_origins,
    )
