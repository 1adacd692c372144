# Kissmetrics SQL Adapter
# File: tests/conftest.py
# Version: v1

from __future__ import annotations

import pytest

_ENV_VARS = [
    "KISSMETRICS_API_URL",
    "KISSMETRICS_USER",
    "KISSMETRICS_PASSWORD",
    "KISSMETRICS_PRODUCT_ID",
    "KISSMETRICS_MOCK_MODE",
    "KISSMETRICS_POLL_INTERVAL_SECONDS",
    "KISSMETRICS_MAX_POLL_ATTEMPTS",
    "KISSMETRICS_MAX_WAIT_SECONDS",
    "KISSMETRICS_PAGE_LIMIT",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep a developer's real credentials out of every test."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
