# Kissmetrics SQL Adapter
# File: classifier.py
# Version: v1

"""Best-effort statement classification used to label query results."""

from __future__ import annotations

import logging
from typing import List

import sqlparse

logger = logging.getLogger(__name__)

READ_COMMANDS = frozenset({"SELECT"})


def identify_commands(query_text: str) -> List[str]:
    """Return the statement kinds found in ``query_text`` (e.g. ``["SELECT"]``).

    Statements sqlparse cannot type are skipped. Never raises: any parse
    failure yields an empty list and execution carries on unlabelled.
    """
    try:
        statements = sqlparse.parse(query_text or "")
    except Exception as exc:  # noqa: BLE001
        logger.debug("Could not classify query: %s", exc)
        return []

    commands: List[str] = []
    for statement in statements:
        kind = statement.get_type()
        if kind and kind != "UNKNOWN":
            commands.append(kind)
    return commands


def is_read_command(command: str | None) -> bool:
    return command in READ_COMMANDS
