import base64
import threading

import pytest

from mpesa_stk import AuthenticationError, TokenCache
from mpesa_stk.core.tokens import basic_auth_header

from conftest import FakeResponse, token_response


def test_basic_auth_header_encodes_key_and_secret():
    header = basic_auth_header("key", "secret")

    assert header.startswith("Basic ")
    assert base64.b64decode(header[len("Basic "):]) == b"key:secret"


def test_fetches_token_with_client_credentials(config, session, clock):
    session.get_responses.append(token_response())
    cache = TokenCache(config, session=session, clock=clock)

    token = cache.get_token()

    assert token.value == "tok123"
    call = session.calls[0]
    assert call["url"] == "https://sandbox.safaricom.co.ke/oauth/v1/generate"
    assert call["params"] == {"grant_type": "client_credentials"}
    assert call["headers"]["Authorization"] == basic_auth_header("key", "secret")
    assert call["timeout"] == config.request_timeout_seconds


def test_token_is_reused_until_expiry(config, session, clock):
    session.get_responses.extend([token_response("first"), token_response("second")])
    cache = TokenCache(config, session=session, clock=clock)

    first = cache.get_token()
    clock.advance(1)
    again = cache.get_token()

    assert again.value == "first"
    assert len(session.calls) == 1

    clock.advance(3599)
    refreshed = cache.get_token()

    assert refreshed.value == "second"
    assert len(session.calls) == 2
    assert first.expires_at < refreshed.expires_at


def test_refreshes_inside_safety_margin(config, session, clock):
    session.get_responses.extend([token_response("first", 60), token_response("second")])
    cache = TokenCache(config, session=session, clock=clock)

    cache.get_token()
    clock.advance(31)

    assert cache.get_token().value == "second"


def test_expires_in_may_be_a_string(config, session, clock):
    session.get_responses.append(token_response(expires_in="3599"))
    cache = TokenCache(config, session=session, clock=clock)

    token = cache.get_token()

    assert (token.expires_at - clock()).total_seconds() == 3599


@pytest.mark.parametrize(
    "response",
    [
        FakeResponse(401, {"errorCode": "401.002.01", "errorMessage": "Invalid credentials"}),
        FakeResponse(200, None, text="<html>oops</html>"),
        FakeResponse(200, {"expires_in": 3599}),
        FakeResponse(200, {"access_token": "tok", "expires_in": "soon"}),
        FakeResponse(200, ["not", "an", "object"]),
    ],
)
def test_bad_token_responses_raise_authentication_error(config, session, clock, response):
    session.get_responses.append(response)
    cache = TokenCache(config, session=session, clock=clock)

    with pytest.raises(AuthenticationError):
        cache.get_token()
    assert cache.cached is None


def test_network_error_raises_authentication_error(config, session, clock, network_error):
    session.get_responses.append(network_error)
    cache = TokenCache(config, session=session, clock=clock)

    with pytest.raises(AuthenticationError):
        cache.get_token()


def test_failed_refresh_discards_previous_token(config, session, clock, network_error):
    session.get_responses.extend([token_response("first"), network_error])
    cache = TokenCache(config, session=session, clock=clock)

    cache.get_token()
    with pytest.raises(AuthenticationError):
        cache.refresh()

    assert cache.cached is None


def test_clear_forces_refetch(config, session, clock):
    session.get_responses.extend([token_response("first"), token_response("second")])
    cache = TokenCache(config, session=session, clock=clock)

    cache.get_token()
    cache.clear()

    assert cache.get_token().value == "second"


def test_concurrent_callers_share_one_refresh(config, session, clock):
    session.get_responses.append(token_response("shared"))
    cache = TokenCache(config, session=session, clock=clock)
    results = []

    def worker():
        results.append(cache.get_token().value)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results == ["shared"] * 8
    assert len(session.calls) == 1


class _SlowTokenSession:
    """Token endpoint that blocks until released, to hold a refresh in flight."""

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()
        self.calls = 0

    def get(self, url, **kwargs):
        self.calls += 1
        self.entered.set()
        self.release.wait(5)
        return token_response("slow")


def test_timeout_bounds_wait_for_refresh_in_flight(config, clock):
    slow = _SlowTokenSession()
    cache = TokenCache(config, session=slow, clock=clock)
    holder = threading.Thread(target=cache.get_token)
    holder.start()
    try:
        assert slow.entered.wait(5)

        with pytest.raises(AuthenticationError, match="Timed out"):
            cache.get_token(timeout=0.05)
    finally:
        slow.release.set()
        holder.join(5)

    assert slow.calls == 1
    assert cache.get_token(timeout=0.05).value == "slow"
