# Kissmetrics SQL Adapter
# File: normalizer.py
# Version: v1

"""Reshape raw query-job records into a host-friendly tabular result.

Kissmetrics records are schema-less: each row carries only the keys
relevant to its event. Two encodings are resolved here:

- ``prop_mod*`` keys hold a JSON object ``{"<property index>": value}``.
  The value is stored under the property's display name; unknown
  indices keep the original key.
- ``event`` holds an event index and is replaced with the event's display
  name (empty string when unknown).

The field list is the ordered union of every normalized row's keys.
Nothing in this module performs IO.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .catalog import index_catalog, resolve_entry
from .classifier import is_read_command
from .models import CatalogEntry, Field, Row, TabularResult

logger = logging.getLogger(__name__)

PROP_MOD_MARKER = "prop_mod"


def is_prop_mod_key(key: str) -> bool:
    return PROP_MOD_MARKER in key


def decode_prop_mod(raw: Any) -> Optional[Tuple[str, Any]]:
    """Return ``(index, value)`` from a property-modification cell.

    None when the cell is not a single-key JSON object.
    """
    if isinstance(raw, (str, bytes, bytearray)):
        try:
            raw = json.loads(raw)
        except ValueError:
            return None
    if not isinstance(raw, dict) or not raw:
        return None
    index = next(iter(raw))
    return str(index), raw[index]


def normalize_row(
    row: Row,
    properties: Dict[int, CatalogEntry],
    events: Dict[int, CatalogEntry],
    log: logging.Logger = logger,
) -> Row:
    """Resolve property-modification keys and the event index of one row.

    Output keys keep the position of the key they came from. A resolved
    property name overrides a plain key of the same name.
    """
    out: Row = {}
    from_property: set[str] = set()

    for key, value in row.items():
        if not is_prop_mod_key(key):
            if key not in from_property:
                out[key] = value
            continue

        decoded = decode_prop_mod(value)
        if decoded is None:
            log.debug("Leaving undecodable %s cell as-is: %r", key, value)
            out[key] = value
            continue

        index, prop_value = decoded
        prop = resolve_entry(properties, index, fallback_name=key)
        if prop.og_name is None:
            log.debug("Unknown property index %s in %s", index, key)
        if prop.name in out and prop.name not in from_property and prop.name != key:
            log.debug("Property %s overwrites existing column value", prop.name)
        out[prop.name] = prop_value
        from_property.add(prop.name)

    if out.get("event") is not None:
        event = resolve_entry(events, out["event"], fallback_name="")
        out["event"] = event.name

    return out


def infer_fields(rows: Iterable[Any]) -> List[str]:
    """Ordered, de-duplicated union of the keys of ``rows``.

    >>> infer_fields([{"a": 1, "b": 2}, {"a": 1, "c": 3}])
    ['a', 'b', 'c']
    """
    seen: Dict[str, None] = {}
    for row in rows:
        if isinstance(row, dict):
            for key in row:
                seen.setdefault(key, None)
    return list(seen)


def normalize_result(
    data: Any,
    command: Optional[str],
    events: Sequence[CatalogEntry] = (),
    properties: Sequence[CatalogEntry] = (),
    log: logging.Logger = logger,
) -> TabularResult:
    """Build the tabular result for a raw job payload.

    ``command`` is the classified statement kind, if any. Without one a
    list payload is labelled ``SELECT``.
    """
    is_list = isinstance(data, list)
    is_select = is_read_command(command) if command else is_list

    props_by_index = index_catalog(properties)
    events_by_index = index_catalog(events)

    rows: List[Any] = []
    if is_list:
        for row in data:
            if isinstance(row, dict):
                rows.append(normalize_row(row, props_by_index, events_by_index, log))
            else:
                rows.append(row)

    row_count = len(data) if is_list else None

    return TabularResult(
        fields=[Field(name=name) for name in infer_fields(rows)],
        command=command or ("SELECT" if is_select else None),
        rows=rows,
        row_count=(row_count or 0) if is_select else None,
        affected_rows=row_count if not is_select else None,
    )
