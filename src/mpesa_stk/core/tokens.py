"""
OAuth access-token cache for the Daraja API.
"""

from __future__ import annotations

import base64
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator, Optional

import requests

from .config import MpesaConfig
from .errors import AuthenticationError

__all__ = [
    "AccessToken",
    "Clock",
    "TokenCache",
    "basic_auth_header",
    "utc_now",
]

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def basic_auth_header(consumer_key: str, consumer_secret: str) -> str:
    encoded = base64.b64encode(f"{consumer_key}:{consumer_secret}".encode("utf-8"))
    return "Basic " + encoded.decode("ascii")


@dataclass(frozen=True)
class AccessToken:
    value: str = field(repr=False)
    expires_at: datetime

    def is_expired(self, now: datetime, margin: timedelta = timedelta(0)) -> bool:
        return now >= self.expires_at - margin


class TokenCache:
    """
    Single-entry cache for the client-credentials bearer token.

    The token is refreshed when missing or within ``safety_margin`` of its
    expiry. Refreshes are serialised by a lock, so concurrent callers either
    wait for the refresh in flight or get the token it committed.
    """

    def __init__(
        self,
        config: MpesaConfig,
        *,
        session: Optional[requests.Session] = None,
        clock: Clock = utc_now,
    ) -> None:
        self.config = config
        self.session = session or requests.Session()
        self.clock = clock
        self.safety_margin = timedelta(seconds=config.token_safety_margin_seconds)
        self._token: Optional[AccessToken] = None
        self._lock = threading.Lock()

    @property
    def cached(self) -> Optional[AccessToken]:
        return self._token

    def clear(self) -> None:
        with self._lock:
            self._token = None

    def get_token(self, *, timeout: Optional[float] = None) -> AccessToken:
        with self._locked(timeout):
            token = self._token
            if token is not None and not token.is_expired(self.clock(), self.safety_margin):
                return token
            return self._refresh_locked(timeout)

    def refresh(self, *, timeout: Optional[float] = None) -> AccessToken:
        """Fetch a new token unconditionally and cache it."""
        with self._locked(timeout):
            return self._refresh_locked(timeout)

    @contextmanager
    def _locked(self, timeout: Optional[float]) -> Iterator[None]:
        # A caller's timeout also bounds the wait for a refresh already in flight.
        if not self._lock.acquire(timeout=-1 if timeout is None else timeout):
            raise AuthenticationError(
                f"Timed out after {timeout}s waiting for an access token refresh"
            )
        try:
            yield
        finally:
            self._lock.release()

    def _refresh_locked(self, timeout: Optional[float]) -> AccessToken:
        # Never hand out a token past its claimed expiry, even if refresh fails.
        self._token = None
        token = self._fetch(timeout)
        self._token = token
        return token

    def _fetch(self, timeout: Optional[float]) -> AccessToken:
        url = self.config.token_url
        logging.info("Requesting M-Pesa access token from %s", url)
        try:
            response = self.session.get(
                url,
                params={"grant_type": "client_credentials"},
                headers={
                    "Authorization": basic_auth_header(
                        self.config.consumer_key, self.config.consumer_secret
                    )
                },
                timeout=timeout if timeout is not None else self.config.request_timeout_seconds,
            )
        except requests.RequestException as exc:
            logging.warning("Access token request failed: %s", exc)
            raise AuthenticationError(f"Token request to {url} failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            logging.warning("Token endpoint responded with %s", response.status_code)
            raise AuthenticationError(
                f"Token endpoint responded with {response.status_code}",
                detail=response.text,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise AuthenticationError(
                f"Failed to parse JSON from token endpoint at {url}",
                detail=response.text,
            ) from exc

        if not isinstance(payload, dict):
            raise AuthenticationError("Token endpoint returned a non-object body", detail=payload)

        value = payload.get("access_token")
        if not isinstance(value, str) or not value:
            raise AuthenticationError("Token response is missing access_token", detail=payload)

        try:
            expires_in = int(payload.get("expires_in"))
        except (TypeError, ValueError) as exc:
            raise AuthenticationError(
                "Token response has an invalid expires_in", detail=payload
            ) from exc
        if expires_in <= 0:
            raise AuthenticationError("Token response has an invalid expires_in", detail=payload)

        expires_at = self.clock() + timedelta(seconds=expires_in)
        logging.info("Obtained M-Pesa access token valid for %ss", expires_in)
        return AccessToken(value=value, expires_at=expires_at)
