# Kissmetrics SQL Adapter
# File: tools/__init__.py
# Version: v1

"""MCP tools exposing the Kissmetrics adapter."""

from __future__ import annotations

from . import tasks

__all__ = ["tasks"]
