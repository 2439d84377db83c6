import base64
from datetime import datetime, timedelta, timezone

import pytest

from mpesa_stk import ConfigurationError, build_credentials
from mpesa_stk.core.credentials import format_timestamp


def test_timestamp_uses_nairobi_time():
    now = datetime(2024, 5, 17, 9, 30, 15, tzinfo=timezone.utc)

    assert format_timestamp(now) == "20240517123015"


def test_naive_datetime_is_treated_as_utc():
    assert format_timestamp(datetime(2024, 12, 31, 22, 0, 0)) == "20250101010000"


def test_timestamp_is_zero_padded():
    now = datetime(2024, 1, 2, 0, 3, 4, tzinfo=timezone(timedelta(hours=3)))

    assert format_timestamp(now) == "20240102000304"


@pytest.mark.parametrize(
    "now",
    [
        datetime(2024, 1, 1, tzinfo=timezone.utc),
        datetime(1999, 12, 31, 23, 59, 59, tzinfo=timezone.utc),
        datetime(2031, 7, 4, 5, 6, 7, tzinfo=timezone(timedelta(hours=-5))),
    ],
)
def test_password_decodes_to_shortcode_passkey_timestamp(now):
    creds = build_credentials("174379", "bfb279f9aa9bdbcf", now)

    assert len(creds.timestamp) == 14
    assert creds.timestamp.isdigit()
    decoded = base64.b64decode(creds.password).decode("utf-8")
    assert decoded == "174379" + "bfb279f9aa9bdbcf" + creds.timestamp


def test_calls_one_second_apart_differ():
    now = datetime(2024, 5, 17, 9, 30, 15, tzinfo=timezone.utc)

    first = build_credentials("174379", "passkey", now)
    second = build_credentials("174379", "passkey", now + timedelta(seconds=1))

    assert first.timestamp != second.timestamp
    assert first.password != second.password


@pytest.mark.parametrize("short_code,passkey", [("", "passkey"), ("174379", "")])
def test_empty_inputs_are_configuration_errors(short_code, passkey):
    with pytest.raises(ConfigurationError):
        build_credentials(short_code, passkey, datetime.now(timezone.utc))


def test_repr_hides_secrets():
    creds = build_credentials("174379", "topsecret", datetime.now(timezone.utc))

    assert "topsecret" not in repr(creds)
    assert creds.password not in repr(creds)
