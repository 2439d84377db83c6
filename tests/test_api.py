import pytest

from mpesa_stk import create_stk_client, send_stk_push

from conftest import push_response, token_response


def test_send_stk_push_with_prebuilt_config(config, session):
    session.get_responses.append(token_response())
    session.post_responses.append(push_response(checkout_id="ws_CO_42"))

    result = send_stk_push(
        "254708374149",
        5,
        account_reference="INV-1",
        config=config,
        session=session,
    )

    assert result.checkout_request_id == "ws_CO_42"
    assert session.calls_to("POST")[0]["json"]["AccountReference"] == "INV-1"


def test_create_client_from_environment_data(session):
    client = create_stk_client(
        session=session,
        env_file=None,
        base={
            "MPESA_CONSUMER_KEY": "key",
            "MPESA_CONSUMER_SECRET": "secret",
            "MPESA_BUSINESS_SHORT_CODE": "174379",
            "MPESA_PASSKEY": "passkey",
            "MPESA_CALLBACK_URL": "https://example.com/callback",
        },
    )

    assert client.config.business_short_code == "174379"
    assert client.tokens.session is session


def test_config_and_environment_parameters_are_exclusive(config):
    with pytest.raises(ValueError):
        create_stk_client(config=config, overrides={"PORT": "1"})
