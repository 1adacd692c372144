# Kissmetrics SQL Adapter
# File: catalog.py
# Version: v1

"""Event / property catalogs: loading, display names and lookup."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence

from .models import CatalogEntry


def format_display_name(name: str, index: int) -> str:
    """Display name used by the host, e.g. ``"Signed Up (12)"``."""
    return f"{name} ({index})"


def parse_catalog(raw_items: Iterable[Any]) -> List[CatalogEntry]:
    """Turn a products API ``data`` list into display-ready entries.

    Hidden entries are dropped; ``og_name`` keeps the stored name.
    """
    entries: List[CatalogEntry] = []
    for item in raw_items or []:
        if not isinstance(item, dict) or not item.get("visible"):
            continue
        try:
            index = int(item["index"])
        except (KeyError, TypeError, ValueError):
            continue

        og_name = str(item.get("name") or "")
        entries.append(
            CatalogEntry(
                index=index,
                name=format_display_name(og_name, index),
                og_name=og_name,
                visible=True,
                raw=item,
            )
        )
    return entries


def index_catalog(entries: Sequence[CatalogEntry]) -> Dict[int, CatalogEntry]:
    """Map index -> entry. The first entry wins on duplicate indices."""
    by_index: Dict[int, CatalogEntry] = {}
    for entry in entries:
        by_index.setdefault(entry.index, entry)
    return by_index


def resolve_entry(
    by_index: Dict[int, CatalogEntry],
    index: Any,
    fallback_name: str = "",
) -> CatalogEntry:
    """Look up ``index``; synthesize a stand-in entry if nothing matches."""
    key = _coerce_index(index)
    if key is not None and key in by_index:
        return by_index[key]
    return CatalogEntry(
        index=key if key is not None else -1,
        name=fallback_name,
        og_name=None,
        visible=False,
    )


def _coerce_index(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None
