# Kissmetrics SQL Adapter
# File: __init__.py
# Version: v1

"""Top-level package for the Kissmetrics SQL adapter."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from .adapter import CLIENTS, KissmetricsAdapter, connect

__all__ = ["__version__", "CLIENTS", "KissmetricsAdapter", "connect"]


def _resolve_version() -> str:
    """Resolve installed distribution version.

    Falls back to a default when running from a source checkout.
    """
    try:
        return version("kissmetrics-sql-adapter")
    except PackageNotFoundError:
        return "0.1.0"


__version__ = _resolve_version()
