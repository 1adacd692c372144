# Kissmetrics SQL Adapter
# File: identifiers.py
# Version: v1

"""Identifier quoting for the query API's SQL dialect."""

from __future__ import annotations

import re

_ARRAY_SUFFIX = re.compile(r"^(.*?)(\[[0-9]+\])$", re.DOTALL)


def wrap_identifier(value: str) -> str:
    """Double-quote ``value``, leaving ``*`` and a trailing ``[n]`` unquoted.

    >>> wrap_identifier('a"b')
    '"a""b"'
    >>> wrap_identifier('col[0]')
    '"col"[0]'
    """
    if value == "*":
        return value
    matched = _ARRAY_SUFFIX.match(value)
    if matched:
        return wrap_identifier(matched.group(1)) + matched.group(2)
    escaped = value.replace('"', '""')
    return f'"{escaped}"'


def get_query_select_top(table: str, limit: int) -> str:
    return f"SELECT * FROM {wrap_identifier(table)} LIMIT {limit}"
