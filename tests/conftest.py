from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest
import requests

from mpesa_stk import MpesaConfig


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: Optional[str] = None) -> None:
        self.status_code = status_code
        self._payload = payload
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    """Records outbound calls and replays queued responses or errors."""

    def __init__(self) -> None:
        self.get_responses: List[Any] = []
        self.post_responses: List[Any] = []
        self.calls: List[Dict[str, Any]] = []

    def _next(self, queue: List[Any]) -> FakeResponse:
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": "GET", "url": url, **kwargs})
        return self._next(self.get_responses)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": "POST", "url": url, **kwargs})
        return self._next(self.post_responses)

    def calls_to(self, method: str) -> List[Dict[str, Any]]:
        return [call for call in self.calls if call["method"] == method]


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


def token_response(value: str = "tok123", expires_in: Any = 3599) -> FakeResponse:
    return FakeResponse(200, {"access_token": value, "expires_in": expires_in})


def push_response(code: str = "0", checkout_id: str = "ws_CO_1") -> FakeResponse:
    return FakeResponse(
        200,
        {
            "MerchantRequestID": "29115-34620561-1",
            "CheckoutRequestID": checkout_id,
            "ResponseCode": code,
            "ResponseDescription": "Success. Request accepted for processing",
            "CustomerMessage": "Success. Request accepted for processing",
        },
    )


@pytest.fixture
def config() -> MpesaConfig:
    return MpesaConfig(
        consumer_key="key",
        consumer_secret="secret",
        business_short_code="174379",
        passkey="passkey",
        callback_url="https://example.com/callback",
    )


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def clock() -> FakeClock:
    # 09:30:15 UTC is 12:30:15 in Nairobi.
    return FakeClock(datetime(2024, 5, 17, 9, 30, 15, tzinfo=timezone.utc))


@pytest.fixture
def network_error() -> Exception:
    return requests.ConnectionError("connection refused")
