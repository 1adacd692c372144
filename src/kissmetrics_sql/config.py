# Kissmetrics SQL Adapter
# File: config.py
# Version: v1

"""Configuration loading for the Kissmetrics SQL adapter."""

from __future__ import annotations

from dataclasses import dataclass, replace
import os
from typing import Any, Mapping

DEFAULT_API_URL = "https://query.kissmetrics.com/v3"

# The query API refuses larger pages.
MAX_PAGE_LIMIT = 10000


def _parse_bool_env(name: str, default: bool = False) -> bool:
    """Parse a boolean-like environment variable.

    Accepts 1/0, true/false, yes/no, on/off (case-insensitive).
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "on"}


def _parse_int_env(
    name: str,
    default: int,
    min_value: int | None = None,
    max_value: int | None = None,
) -> int:
    """Parse an int environment variable with clamping and safe fallback."""
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        value = int(default)
    else:
        try:
            value = int(str(raw).strip())
        except ValueError:
            value = int(default)

    if min_value is not None and value < min_value:
        value = min_value
    if max_value is not None and value > max_value:
        value = max_value

    return value


def _parse_float_env(name: str, default: float, min_value: float = 0.0) -> float:
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        return float(default)
    try:
        value = float(str(raw).strip())
    except ValueError:
        return float(default)
    return max(value, min_value)


@dataclass(frozen=True)
class KissmetricsConfig:
    """Settings needed to talk to the Kissmetrics query API.

    Polling bounds of 0 mean "no bound": the job is polled until the
    service reports completion.
    """

    api_url: str = DEFAULT_API_URL
    user: str | None = None
    password: str | None = None
    product_id: str | None = None
    mock_mode: bool = False

    verify_tls: bool = True
    http_timeout_seconds: float = 30.0
    page_limit: int = MAX_PAGE_LIMIT

    poll_interval_seconds: float = 2.0
    max_poll_attempts: int = 0
    max_wait_seconds: float = 0.0

    # Per-product event / property catalogs
    cache_ttl_seconds: int = 300
    cache_max_entries: int = 64

    @property
    def base_url(self) -> str:
        return self.api_url.rstrip("/")

    @classmethod
    def from_env(cls) -> "KissmetricsConfig":
        """Create configuration from environment variables."""
        return cls(
            api_url=os.getenv("KISSMETRICS_API_URL") or DEFAULT_API_URL,
            user=os.getenv("KISSMETRICS_USER"),
            password=os.getenv("KISSMETRICS_PASSWORD"),
            product_id=os.getenv("KISSMETRICS_PRODUCT_ID"),
            mock_mode=_parse_bool_env("KISSMETRICS_MOCK_MODE", default=False),
            verify_tls=_parse_bool_env("KISSMETRICS_VERIFY_TLS", default=True),
            http_timeout_seconds=_parse_float_env(
                "KISSMETRICS_HTTP_TIMEOUT_SECONDS", default=30.0, min_value=1.0
            ),
            page_limit=_parse_int_env(
                "KISSMETRICS_PAGE_LIMIT",
                default=MAX_PAGE_LIMIT,
                min_value=1,
                max_value=MAX_PAGE_LIMIT,
            ),
            poll_interval_seconds=_parse_float_env(
                "KISSMETRICS_POLL_INTERVAL_SECONDS", default=2.0
            ),
            max_poll_attempts=_parse_int_env(
                "KISSMETRICS_MAX_POLL_ATTEMPTS", default=0, min_value=0
            ),
            max_wait_seconds=_parse_float_env("KISSMETRICS_MAX_WAIT_SECONDS", default=0.0),
            cache_ttl_seconds=_parse_int_env(
                "KISSMETRICS_CACHE_TTL_SECONDS", default=300, min_value=0, max_value=86400
            ),
            cache_max_entries=_parse_int_env(
                "KISSMETRICS_CACHE_MAX_ENTRIES", default=64, min_value=0, max_value=10000
            ),
        )

    @classmethod
    def from_server_config(
        cls,
        server_config: Mapping[str, Any],
        base: "KissmetricsConfig | None" = None,
    ) -> "KissmetricsConfig":
        """Overlay a host ``server.config`` mapping on top of ``base``.

        Host credentials replace the base credentials as a pair: a host
        entry naming only ``user`` stays unauthenticated. An entry with
        neither key keeps the base (environment) credentials. The
        optional keys below let a host override the API location.
        """
        base = base or cls.from_env()
        overrides: dict[str, Any] = {}
        if "user" in server_config or "password" in server_config:
            overrides["user"] = server_config.get("user") or None
            overrides["password"] = server_config.get("password") or None
        if server_config.get("apiUrl"):
            overrides["api_url"] = str(server_config["apiUrl"])
        if "verifyTls" in server_config:
            overrides["verify_tls"] = bool(server_config["verifyTls"])
        return replace(base, **overrides)

    def redacted(self) -> dict[str, Any]:
        """Loggable view of the config without secrets."""
        return {
            "api_url": self.api_url,
            "user_configured": bool(self.user),
            "password_configured": bool(self.password),
            "product_id": self.product_id,
            "mock_mode": self.mock_mode,
            "verify_tls": self.verify_tls,
            "page_limit": self.page_limit,
            "poll_interval_seconds": self.poll_interval_seconds,
            "max_poll_attempts": self.max_poll_attempts,
            "max_wait_seconds": self.max_wait_seconds,
        }
