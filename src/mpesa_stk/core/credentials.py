"""
Per-request credentials for Lipa na M-Pesa Online.

Daraja authenticates every push request with a password derived from the
business short code, the passkey and a timestamp in Nairobi local time. The
provider rejects stale timestamps, so credentials are rebuilt for each call.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from .errors import ConfigurationError

__all__ = [
    "EAST_AFRICA_TIME",
    "TIMESTAMP_FORMAT",
    "Credentials",
    "build_credentials",
    "format_timestamp",
]

# Kenya observes no daylight saving time.
EAST_AFRICA_TIME = timezone(timedelta(hours=3), "EAT")
TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


@dataclass(frozen=True)
class Credentials:
    short_code: str
    passkey: str = field(repr=False)
    timestamp: str
    password: str = field(repr=False)


def format_timestamp(now: datetime) -> str:
    """Render ``now`` as ``YYYYMMDDHHmmss`` in East Africa Time.

    Naive datetimes are taken to be UTC.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(EAST_AFRICA_TIME).strftime(TIMESTAMP_FORMAT)


def build_credentials(short_code: str, passkey: str, now: datetime) -> Credentials:
    if not short_code:
        raise ConfigurationError("Business short code must not be empty")
    if not passkey:
        raise ConfigurationError("Passkey must not be empty")

    timestamp = format_timestamp(now)
    raw = f"{short_code}{passkey}{timestamp}".encode("utf-8")
    password = base64.b64encode(raw).decode("ascii")
    return Credentials(
        short_code=short_code,
        passkey=passkey,
        timestamp=timestamp,
        password=password,
    )
