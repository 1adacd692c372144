# Kissmetrics SQL Adapter
# File: tests/test_sanity.py
# Version: v1

"""Config, credentials and connection-context basics."""

import base64

from kissmetrics_sql.auth import build_context, encode_basic_token
from kissmetrics_sql.config import DEFAULT_API_URL, KissmetricsConfig


def test_config_from_env_defaults() -> None:
    config = KissmetricsConfig.from_env()
    assert config.api_url == DEFAULT_API_URL
    assert config.poll_interval_seconds == 2.0
    assert config.page_limit == 10000
    assert config.max_poll_attempts == 0
    assert config.user is None


def test_config_from_env_clamps_page_limit(monkeypatch) -> None:
    monkeypatch.setenv("KISSMETRICS_PAGE_LIMIT", "50000")
    monkeypatch.setenv("KISSMETRICS_MAX_POLL_ATTEMPTS", "not-a-number")
    config = KissmetricsConfig.from_env()
    assert config.page_limit == 10000
    assert config.max_poll_attempts == 0


def test_server_config_overlays_credentials() -> None:
    base = KissmetricsConfig(api_url="https://example.test/v3")
    config = KissmetricsConfig.from_server_config({"user": "ann", "password": "pw"}, base=base)
    assert config.user == "ann"
    assert config.password == "pw"
    assert config.api_url == "https://example.test/v3"
    assert "pw" not in str(config.redacted())


def test_encode_basic_token() -> None:
    token = encode_basic_token("ann", "s3cret")
    assert base64.b64decode(token).decode() == "ann:s3cret"
    assert encode_basic_token("ann", "s3cret") == token


def test_missing_credentials_yield_no_token() -> None:
    assert encode_basic_token(None, "pw") is None
    assert encode_basic_token("ann", None) is None
    assert encode_basic_token("", "") is None


def test_context_is_unauthenticated_without_credentials() -> None:
    context = build_context(KissmetricsConfig(user="ann"), product_id="42")
    assert context.authenticated is False
    assert context.product_id == "42"

    context = build_context(KissmetricsConfig(user="ann", password="pw", product_id="7"))
    assert context.authenticated is True
    assert context.product_id == "7"


def test_host_credentials_do_not_fall_back_to_environment(monkeypatch) -> None:
    monkeypatch.setenv("KISSMETRICS_USER", "env-user")
    monkeypatch.setenv("KISSMETRICS_PASSWORD", "env-pw")

    partial = KissmetricsConfig.from_server_config({"user": "ann"})
    assert partial.user == "ann"
    assert partial.password is None
    assert build_context(partial).authenticated is False

    no_host = KissmetricsConfig.from_server_config({})
    assert (no_host.user, no_host.password) == ("env-user", "env-pw")
