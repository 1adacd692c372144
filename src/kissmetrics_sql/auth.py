# Kissmetrics SQL Adapter
# File: auth.py
# Version: v1

"""HTTP Basic credentials for the Kissmetrics query API."""

from __future__ import annotations

import base64
from typing import Optional

from .config import KissmetricsConfig
from .models import ConnectionContext


def encode_basic_token(user: Optional[str], password: Optional[str]) -> Optional[str]:
    """Return base64(user:password), or None if either part is missing."""
    if not user or not password:
        return None
    raw_credentials = f"{user}:{password}"
    return base64.b64encode(raw_credentials.encode("utf-8")).decode("ascii")


def authorization_headers(token: str) -> dict[str, str]:
    return {
        "Authorization": f"Basic {token}",
        "Accept": "application/json",
    }


def build_context(
    config: KissmetricsConfig,
    product_id: Optional[str] = None,
) -> ConnectionContext:
    """Resolve the connection context once, at connect time."""
    return ConnectionContext(
        token=encode_basic_token(config.user, config.password),
        product_id=product_id or config.product_id,
    )
