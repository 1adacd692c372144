# Kissmetrics SQL Adapter
# File: tests/test_adapter.py
# Version: v1
#
# End-to-end tests of the host-facing facade. A small in-memory API is
# served through httpx.MockTransport; polling runs with a zero interval.

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List

import httpx
import pytest

from kissmetrics_sql import CLIENTS, connect
from kissmetrics_sql.adapter import KissmetricsAdapter
from kissmetrics_sql.cache import TTLCache
from kissmetrics_sql.config import KissmetricsConfig
from kissmetrics_sql.errors import RemoteServiceError, UnsupportedOperationError
from kissmetrics_sql.models import ConnectionContext, Product

SERVER = {"config": {"user": "ann", "password": "pw"}}
CONFIG = KissmetricsConfig(poll_interval_seconds=0)


class _FakeApi:
    """Records requests and answers like the v3 query API."""

    def __init__(self, rows: List[Dict[str, Any]], polls_to_complete: int = 2) -> None:
        self.rows = rows
        self.polls_to_complete = polls_to_complete
        self.requests: List[httpx.Request] = []
        self.polls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/v3/products":
            return httpx.Response(200, json={"data": [{"id": 1, "name": "Shop"}, {"id": 2, "name": "Legacy"}]})
        if path.endswith("/events"):
            return httpx.Response(
                200,
                json={"data": [{"index": 5, "name": "Purchased", "visible": True}]},
            )
        if path.endswith("/properties"):
            return httpx.Response(
                200,
                json={"data": [{"index": 7, "name": "Plan", "visible": True}]},
            )
        if path == "/v3/queries" and request.method == "POST":
            body = json.loads(request.content)
            if body["product_id"] == "2":
                return httpx.Response(403, json={"error": "forbidden"})
            return httpx.Response(201, json={"id": "q1"})
        if path == "/v3/queries/q1":
            self.polls += 1
            done = self.polls >= self.polls_to_complete
            return httpx.Response(200, json={"completed": done, "data": self.rows if done else None})
        return httpx.Response(404)

    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]


def _connect(api: _FakeApi, server=SERVER, database=None) -> KissmetricsAdapter:
    return connect(
        server,
        database or {"database": "1"},
        config=CONFIG,
        transport=httpx.MockTransport(api),
    )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_execute_query_end_to_end():
    rows = [
        {"person": 1, "event": 5},
        {"person": 2, "event": 5, "prop_mod_1": json.dumps({"7": "Pro"})},
    ]
    api = _FakeApi(rows)
    adapter = _connect(api)

    results = await adapter.execute_query("SELECT * FROM records")

    assert len(results) == 1
    result = results[0]
    assert result.command == "SELECT"
    assert result.row_count == 2
    assert result.field_names == ["person", "event", "Plan (7)"]
    assert result.rows[0] == {"person": 1, "event": "Purchased (5)"}
    assert result.rows[1] == {"person": 2, "event": "Purchased (5)", "Plan (7)": "Pro"}
    assert api.polls == 2
    submit = next(r for r in api.requests if r.method == "POST")
    assert json.loads(submit.content)["product_id"] == "1"


@pytest.mark.asyncio
async def test_catalogs_are_cached_per_product():
    api = _FakeApi([{"event": 5}], polls_to_complete=1)
    adapter = _connect(api)

    await adapter.execute_query("SELECT * FROM records")
    api.polls = 0
    await adapter.execute_query("SELECT * FROM records")

    assert api.paths().count("/v3/products/1/events") == 1
    assert api.paths().count("/v3/products/1/properties") == 1
    assert adapter.cache.stats()["hits"] >= 2


@pytest.mark.asyncio
async def test_supplied_catalogs_skip_catalog_requests():
    api = _FakeApi([{"event": 5}], polls_to_complete=1)
    adapter = _connect(api)

    results = await adapter.query("SELECT * FROM records", events=[], properties=[])

    assert results[0].rows == [{"event": ""}]
    assert not any(p.endswith("/events") or p.endswith("/properties") for p in api.paths())


@pytest.mark.asyncio
async def test_catalog_failure_aborts_before_job_submission():
    api = _FakeApi([{"event": 5}], polls_to_complete=1)

    def _handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/events"):
            api.requests.append(request)
            return httpx.Response(500, text="catalog unavailable")
        return api(request)

    adapter = connect(SERVER, {"database": "1"}, config=CONFIG, transport=httpx.MockTransport(_handler))
    with pytest.raises(RemoteServiceError) as excinfo:
        await adapter.execute_query("SELECT * FROM records")

    assert excinfo.value.status_code == 500
    assert not any(r.method == "POST" for r in api.requests)
    assert api.polls == 0


@pytest.mark.asyncio
async def test_unclassifiable_query_still_runs():
    api = _FakeApi([{"a": 1}], polls_to_complete=1)
    adapter = _connect(api)

    results = await adapter.execute_query("whatever this is", events=[], properties=[])

    assert results[0].command == "SELECT"
    assert results[0].row_count == 1


@pytest.mark.asyncio
async def test_unauthenticated_operations_return_empty_without_network():
    api = _FakeApi([{"a": 1}])
    adapter = _connect(api, server={"config": {"user": "ann"}})

    assert adapter.context.authenticated is False
    assert await adapter.execute_query("SELECT 1") == []
    assert await adapter.list_databases() == []
    assert await adapter.list_events("1") == []
    assert await adapter.list_properties("1") == []
    assert api.requests == []


@pytest.mark.asyncio
async def test_remote_errors_propagate():
    def _handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text="bad credentials")

    adapter = connect(SERVER, {"database": "1"}, config=CONFIG, transport=httpx.MockTransport(_handler))
    with pytest.raises(RemoteServiceError) as excinfo:
        await adapter.execute_query("SELECT 1")
    assert excinfo.value.status_code == 401


# ---------------------------------------------------------------------------
# Databases
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_list_databases_excludes_forbidden_products():
    api = _FakeApi([])
    adapter = _connect(api)

    products = await adapter.list_databases()

    assert [p.id for p in products] == ["1"]
    assert api.paths().count("/v3/queries") == 2


class _BarrierClient:
    """Every probe blocks until all probes have started."""

    def __init__(self, product_ids: List[str], forbidden: set) -> None:
        self.config = CONFIG
        self.product_ids = product_ids
        self.forbidden = forbidden
        self.started = 0
        self.all_started = asyncio.Event()

    async def list_products(self, token):
        return [Product(id=pid, name=pid) for pid in self.product_ids]

    async def probe_product(self, product_id, token):
        self.started += 1
        if self.started == len(self.product_ids):
            self.all_started.set()
        await asyncio.wait_for(self.all_started.wait(), timeout=1.0)
        return product_id not in self.forbidden


@pytest.mark.asyncio
async def test_entitlement_probes_run_concurrently():
    client = _BarrierClient(["a", "b", "c"], forbidden={"b"})
    adapter = KissmetricsAdapter(ConnectionContext(token="t"), client)

    products = await adapter.list_databases()

    assert [p.id for p in products] == ["a", "c"]


# ---------------------------------------------------------------------------
# Static metadata
# ---------------------------------------------------------------------------


def _run(coro):
    return asyncio.run(coro)


def test_static_metadata_answers():
    adapter = _connect(_FakeApi([]))

    assert [t.name for t in _run(adapter.list_tables())] == ["records"]
    columns = _run(adapter.list_table_columns(table="records"))
    assert len(columns) == 16
    assert (columns[0].column_name, columns[0].data_type) == ("timestamp_ms", "LONG")
    assert ("event", "INT") in [(c.column_name, c.data_type) for c in columns]

    routines = _run(adapter.list_routines())
    assert routines[0].routine_name == "is_alias()"
    assert {r.routine_type for r in routines} == {"FUNCTION"}

    for empty in (
        adapter.list_views(),
        adapter.list_table_triggers("records"),
        adapter.list_table_indexes(table="records"),
        adapter.list_schemas(),
        adapter.get_table_references("records"),
        adapter.get_table_keys(table="records"),
        adapter.get_table_create_script("records"),
        adapter.get_view_create_script("v"),
        adapter.get_routine_create_script("r"),
    ):
        assert _run(empty) == []

    assert adapter.wrap_identifier("col[0]") == '"col"[0]'
    assert _run(adapter.disconnect()) is None


def test_unsupported_operations_fail_loudly():
    adapter = _connect(_FakeApi([]))

    with pytest.raises(NotImplementedError):
        adapter.run_query_sync("SELECT 1")
    with pytest.raises(UnsupportedOperationError):
        _run(adapter.truncate_all_tables("1"))


def test_client_descriptor_disables_unsupported_features():
    descriptor = CLIENTS[0]
    assert descriptor.key == "kissmetrics"
    assert {"server:ssl", "server:ssh", "cancelQuery", "scriptCreateTable"} <= set(descriptor.disabled_features)


def test_cache_ttl_expiry():
    now = [0.0]
    cache = TTLCache(ttl_seconds=10, max_entries=2, clock=lambda: now[0])

    cache.set("a", 1)
    assert cache.get("a") == 1
    now[0] = 11.0
    assert cache.get("a") is None

    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("c", 3)
    assert cache.get("a") is None
    assert cache.stats()["evictions"] == 1


def test_connect_accepts_null_config_member():
    adapter = connect(
        {"config": None, "user": "ann", "password": "pw"},
        {"database": "1"},
        config=CONFIG,
        transport=httpx.MockTransport(_FakeApi([])),
    )
    assert adapter.context.authenticated is True
    assert adapter.context.product_id == "1"
