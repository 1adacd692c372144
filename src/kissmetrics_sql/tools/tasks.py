# Kissmetrics SQL Adapter
# File: tools/tasks.py
# Version: v1
#
# NOTE: This module is the single place where adapter operations are
# shaped into JSON-friendly results and exposed as MCP tools. The stdio
# transport simply calls `register_tools(server)` to wire these up.

from __future__ import annotations

import time
from dataclasses import asdict, replace
from typing import Any, Dict, List, Optional

from ..adapter import CLIENTS, KissmetricsAdapter, connect
from ..cache import TTLCache
from ..config import KissmetricsConfig
from ..models import CatalogEntry
from .mock_api import MockQueryApi


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _make_error(
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Small, LLM-friendly error shape used by diagnostics."""
    err: Dict[str, Any] = {"code": code, "message": message}
    if details:
        err["details"] = details
    return err


_MOCK_API: MockQueryApi | None = None

_CACHE: TTLCache | None = None
_CACHE_SIGNATURE: tuple | None = None


def _get_cache(cfg: KissmetricsConfig) -> TTLCache:
    """Lazily create (or re-create) the catalog cache shared by all tasks.

    A change of cache settings, API location, account or mock mode starts
    a fresh cache.
    """
    global _CACHE, _CACHE_SIGNATURE

    signature = (
        int(cfg.cache_ttl_seconds),
        int(cfg.cache_max_entries),
        cfg.base_url,
        cfg.user,
        cfg.mock_mode,
    )
    if _CACHE is None or _CACHE_SIGNATURE != signature:
        _CACHE = TTLCache(ttl_seconds=signature[0], max_entries=signature[1])
        _CACHE_SIGNATURE = signature
    return _CACHE


def _make_adapter(cfg: Optional[KissmetricsConfig] = None) -> KissmetricsAdapter:
    """Create an adapter from environment variables.

    In KISSMETRICS_MOCK_MODE the adapter talks to an in-process mock API
    with placeholder credentials.

    Callers should invoke this with *no arguments* so tests can replace
    it with a no-arg lambda.
    """
    global _MOCK_API

    cfg = cfg or KissmetricsConfig.from_env()
    if cfg.mock_mode:
        if _MOCK_API is None:
            _MOCK_API = MockQueryApi()
        cfg = replace(
            cfg,
            user=cfg.user or "mock-user",
            password=cfg.password or "mock-password",
            product_id=cfg.product_id or "1001",
        )
        return connect(
            {}, None, config=cfg, transport=_MOCK_API.transport(), cache=_get_cache(cfg)
        )

    return connect({}, None, config=cfg, cache=_get_cache(cfg))


def _catalog_items(entries: List[CatalogEntry]) -> List[Dict[str, Any]]:
    return [
        {"index": e.index, "name": e.name, "og_name": e.og_name}
        for e in entries
    ]


# ---------------------------------------------------------------------------
# Core async tasks (library-style)
# ---------------------------------------------------------------------------


async def list_databases() -> Dict[str, Any]:
    adapter = _make_adapter()
    products = await adapter.list_databases()
    return {"databases": [{"id": p.id, "name": p.name} for p in products]}


async def list_tables() -> Dict[str, Any]:
    adapter = _make_adapter()
    tables = await adapter.list_tables()
    return {"tables": [t.name for t in tables]}


async def list_columns(table: str = "records") -> Dict[str, Any]:
    adapter = _make_adapter()
    columns = await adapter.list_table_columns(table=table)
    return {
        "table": table,
        "columns": [{"name": c.column_name, "type": c.data_type} for c in columns],
    }


async def list_routines() -> Dict[str, Any]:
    adapter = _make_adapter()
    routines = await adapter.list_routines()
    return {"routines": [asdict(r) for r in routines]}


async def list_events(product_id: Optional[str] = None) -> Dict[str, Any]:
    adapter = _make_adapter()
    entries = await adapter.list_events(product_id)
    return {
        "product_id": product_id or adapter.context.product_id,
        "events": _catalog_items(entries),
    }


async def list_properties(product_id: Optional[str] = None) -> Dict[str, Any]:
    adapter = _make_adapter()
    entries = await adapter.list_properties(product_id)
    return {
        "product_id": product_id or adapter.context.product_id,
        "properties": _catalog_items(entries),
    }


async def execute_query(query: str, product_id: Optional[str] = None) -> Dict[str, Any]:
    adapter = _make_adapter()
    started = time.time()
    results = await adapter.execute_query(query, product_id=product_id)
    return {
        "results": [r.to_dict() for r in results],
        "meta": {
            "product_id": product_id or adapter.context.product_id,
            "authenticated": adapter.context.authenticated,
            "elapsed_ms": int((time.time() - started) * 1000),
        },
    }


async def select_top(table: str = "records", limit: int = 100) -> Dict[str, Any]:
    return {"query": KissmetricsAdapter.get_query_select_top(table, limit)}


async def diagnostics() -> Dict[str, Any]:
    started = time.time()
    cfg = KissmetricsConfig.from_env()

    checks: List[Dict[str, Any]] = []
    overall_ok = True

    t0 = time.time()
    try:
        adapter = _make_adapter()
    except Exception as exc:  # pragma: no cover
        return {
            "ok": False,
            "config": cfg.redacted(),
            "checks": [
                {
                    "name": "adapter_init",
                    "ok": False,
                    "error": _make_error("CONFIG_ERROR", str(exc)),
                    "elapsed_ms": int((time.time() - t0) * 1000),
                }
            ],
            "meta": {"elapsed_ms": int((time.time() - started) * 1000)},
        }
    checks.append(
        {"name": "adapter_init", "ok": True, "error": None, "elapsed_ms": int((time.time() - t0) * 1000)}
    )

    authenticated = adapter.context.authenticated
    checks.append(
        {
            "name": "credentials",
            "ok": authenticated,
            "error": None
            if authenticated
            else _make_error("CONFIG_ERROR", "KISSMETRICS_USER / KISSMETRICS_PASSWORD are not set."),
        }
    )
    overall_ok = overall_ok and authenticated

    if authenticated:
        t0 = time.time()
        try:
            products = await adapter.list_databases()
            checks.append(
                {
                    "name": "list_databases",
                    "ok": True,
                    "count": len(products),
                    "error": None,
                    "elapsed_ms": int((time.time() - t0) * 1000),
                }
            )
        except Exception as exc:
            overall_ok = False
            checks.append(
                {
                    "name": "list_databases",
                    "ok": False,
                    "error": _make_error("BACKEND_ERROR", str(exc)),
                    "elapsed_ms": int((time.time() - t0) * 1000),
                }
            )

    return {
        "ok": overall_ok,
        "mock_mode": cfg.mock_mode,
        "config": cfg.redacted(),
        "checks": checks,
        "meta": {
            "elapsed_ms": int((time.time() - started) * 1000),
            "cache": adapter.cache.stats(),
            "clients": [asdict(c) for c in CLIENTS],
        },
    }


# ---------------------------------------------------------------------------
# MCP tool registration
# ---------------------------------------------------------------------------


def register_tools(server: Any) -> None:
    """Register MCP tools on an MCP Server-like instance."""
    if server is None or not hasattr(server, "tool"):
        raise ValueError(
            "register_tools(server) expects an MCP Server-like object that exposes a .tool() decorator."
        )

    @server.tool(name="kissmetrics_list_databases", description="List Kissmetrics products that accept SQL queries.")
    async def mcp_list_databases() -> Dict[str, Any]:
        return await list_databases()

    @server.tool(name="kissmetrics_list_tables", description="List the tables exposed by the Kissmetrics adapter.")
    async def mcp_list_tables() -> Dict[str, Any]:
        return await list_tables()

    @server.tool(name="kissmetrics_list_columns", description="List the fixed columns of the Kissmetrics records table.")
    async def mcp_list_columns(table: str = "records") -> Dict[str, Any]:
        return await list_columns(table=table)

    @server.tool(name="kissmetrics_list_routines", description="List built-in Kissmetrics SQL functions.")
    async def mcp_list_routines() -> Dict[str, Any]:
        return await list_routines()

    @server.tool(name="kissmetrics_list_events", description="List visible events of a Kissmetrics product.")
    async def mcp_list_events(product_id: Optional[str] = None) -> Dict[str, Any]:
        return await list_events(product_id=product_id)

    @server.tool(name="kissmetrics_list_properties", description="List visible properties of a Kissmetrics product.")
    async def mcp_list_properties(product_id: Optional[str] = None) -> Dict[str, Any]:
        return await list_properties(product_id=product_id)

    @server.tool(
        name="kissmetrics_execute_query",
        description="Run a SQL statement as a Kissmetrics query job and return tabular results.",
    )
    async def mcp_execute_query(query: str, product_id: Optional[str] = None) -> Dict[str, Any]:
        return await execute_query(query=query, product_id=product_id)

    @server.tool(name="kissmetrics_select_top", description="Build a SELECT ... LIMIT statement for a table.")
    async def mcp_select_top(table: str = "records", limit: int = 100) -> Dict[str, Any]:
        return await select_top(table=table, limit=limit)

    @server.tool(name="kissmetrics_diagnostics", description="Check configuration and connectivity to Kissmetrics.")
    async def mcp_diagnostics() -> Dict[str, Any]:
        return await diagnostics()
