# Kissmetrics SQL Adapter
# File: adapter.py
# Version: v1
"""Database-client facade over the Kissmetrics query API.

Kissmetrics has no relational catalog, so most metadata operations return
fixed answers: one ``records`` table with a fixed column layout, a list
of built-in functions, and empty lists for views, triggers, indexes,
schemas and create scripts. Products are exposed as databases.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Mapping, Optional, Sequence

import httpx

from .auth import build_context
from .cache import TTLCache
from .classifier import identify_commands
from .client import KissmetricsClient
from .config import KissmetricsConfig
from .errors import UnsupportedOperationError
from .executor import AsyncQueryExecutor
from .identifiers import get_query_select_top, wrap_identifier
from .models import (
    CatalogEntry,
    ClientDescriptor,
    Column,
    ConnectionContext,
    Product,
    Routine,
    Table,
    TabularResult,
)
from .normalizer import normalize_result

module_logger = logging.getLogger(__name__)

CLIENTS: List[ClientDescriptor] = [
    ClientDescriptor(
        key="kissmetrics",
        name="Kissmetrics",
        disabled_features=[
            "server:ssl",
            "server:socketPath",
            "server:schema",
            "server:host",
            "server:port",
            "server:domain",
            "scriptCreateTable",
            "cancelQuery",
            "server:ssh",
        ],
    ),
]

RECORDS_TABLE = "records"

RECORD_COLUMNS: List[Column] = [
    Column("timestamp_ms", "LONG"),
    Column("person", "INT"),
    Column("year", "INT"),
    Column("month", "INT"),
    Column("orig_person", "INT"),
    Column("dest_person", "INT"),
    Column("event", "INT"),
    Column("person_id", "STRING"),
    Column("email", "STRING"),
    Column("remote_ip", "STRING"),
    Column("channel", "STRING"),
    Column("channel_source", "STRING"),
    Column("channel_with_source", "STRING"),
    Column("previous_page", "STRING"),
    Column("referrer", "STRING"),
    Column("new_vs_returning", "STRING"),
]

BUILTIN_FUNCTIONS: List[Routine] = [
    Routine("is_alias()"),
    Routine("is_set()"),
    Routine("is_event(nameOrID)"),
    Routine("property_value(nameOrID)"),
    Routine("numeric_property_value(nameOrID)"),
    Routine("has_property(nameOrID)"),
]


class KissmetricsAdapter:
    """The operation set a SQL client host drives for one connection."""

    def __init__(
        self,
        context: ConnectionContext,
        client: KissmetricsClient,
        logger: Optional[logging.Logger] = None,
        executor: Optional[AsyncQueryExecutor] = None,
        cache: Optional[TTLCache] = None,
    ) -> None:
        self.context = context
        self.client = client
        self.config = client.config
        self.logger = logger or module_logger
        self.executor = executor or AsyncQueryExecutor(client, self.config, logger=self.logger)
        self.cache = cache if cache is not None else TTLCache(
            ttl_seconds=self.config.cache_ttl_seconds,
            max_entries=self.config.cache_max_entries,
        )

    # ------------------------------------------------------------------
    # Identifiers
    # ------------------------------------------------------------------

    @staticmethod
    def wrap_identifier(value: str) -> str:
        return wrap_identifier(value)

    @staticmethod
    def get_query_select_top(table: str, limit: int) -> str:
        return get_query_select_top(table, limit)

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    async def disconnect(self) -> None:
        """Nothing to release: every call opens its own HTTP client."""
        self.cache.clear()

    # ------------------------------------------------------------------
    # Static metadata
    # ------------------------------------------------------------------

    async def list_tables(self, database: Optional[str] = None) -> List[Table]:
        return [Table(name=RECORDS_TABLE)]

    async def list_views(self) -> List[Any]:
        return []

    async def list_routines(self) -> List[Routine]:
        return list(BUILTIN_FUNCTIONS)

    async def list_table_columns(
        self, database: Optional[str] = None, table: Optional[str] = None
    ) -> List[Column]:
        return list(RECORD_COLUMNS)

    async def list_table_triggers(self, table: Optional[str] = None) -> List[Any]:
        return []

    async def list_table_indexes(
        self, database: Optional[str] = None, table: Optional[str] = None
    ) -> List[Any]:
        return []

    async def list_schemas(self) -> List[Any]:
        return []

    async def get_table_references(self, table: Optional[str] = None) -> List[Any]:
        return []

    async def get_table_keys(
        self, database: Optional[str] = None, table: Optional[str] = None
    ) -> List[Any]:
        return []

    async def get_table_create_script(self, table: Optional[str] = None) -> List[str]:
        return []

    async def get_view_create_script(self, view: Optional[str] = None) -> List[str]:
        return []

    async def get_routine_create_script(self, routine: Optional[str] = None) -> List[str]:
        return []

    async def truncate_all_tables(self, database: Optional[str] = None) -> None:
        raise UnsupportedOperationError("Kissmetrics records cannot be truncated.")

    # ------------------------------------------------------------------
    # Products and catalogs
    # ------------------------------------------------------------------

    async def list_databases(self) -> List[Product]:
        """Products the credentials may run SQL queries against.

        Every product is probed concurrently; products answering the probe
        with HTTP 403 are left out.
        """
        if not self.context.authenticated:
            return []

        token = self.context.token or ""
        products = await self.client.list_products(token)
        entitled = await asyncio.gather(
            *(self.client.probe_product(p.id, token) for p in products)
        )
        for product, ok in zip(products, entitled):
            if not ok:
                self.logger.debug("Product %s is not entitled to SQL queries", product.id)
        return [p for p, ok in zip(products, entitled) if ok]

    async def list_events(self, product_id: Optional[str] = None) -> List[CatalogEntry]:
        return await self._catalog("events", product_id)

    async def list_properties(self, product_id: Optional[str] = None) -> List[CatalogEntry]:
        return await self._catalog("properties", product_id)

    async def _catalog(self, kind: str, product_id: Optional[str]) -> List[CatalogEntry]:
        product = product_id or self.context.product_id
        if not self.context.authenticated or not product:
            return []

        cache_key = (kind, self.config.base_url, product)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        token = self.context.token or ""
        if kind == "events":
            entries = await self.client.list_events(product, token)
        else:
            entries = await self.client.list_properties(product, token)
        self.cache.set(cache_key, entries)
        return entries

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def execute_query(
        self,
        query_text: str,
        product_id: Optional[str] = None,
        events: Optional[Sequence[CatalogEntry]] = None,
        properties: Optional[Sequence[CatalogEntry]] = None,
    ) -> List[TabularResult]:
        """Run ``query_text`` as a query job and return one tabular result.

        Catalogs not supplied by the caller are loaded for the product
        before the job is submitted, so a catalog failure never wastes a job.
        """
        commands = identify_commands(query_text)
        if not self.context.authenticated:
            return []

        product = product_id or self.context.product_id
        if events is None:
            events = await self.list_events(product)
        if properties is None:
            properties = await self.list_properties(product)

        data = await self.executor.run(query_text, self.context, product)

        command = commands[0] if commands else None
        return [normalize_result(data, command, events, properties, log=self.logger)]

    async def query(
        self,
        query_text: str,
        product_id: Optional[str] = None,
        events: Optional[Sequence[CatalogEntry]] = None,
        properties: Optional[Sequence[CatalogEntry]] = None,
    ) -> List[TabularResult]:
        return await self.execute_query(query_text, product_id, events, properties)

    def run_query_sync(self, query_text: str) -> Any:
        """Queries only run through the job protocol."""
        raise UnsupportedOperationError(
            '"query" function is not implemented by the kissmetrics client.'
        )


def connect(
    server_config: Mapping[str, Any],
    database_config: Optional[Mapping[str, Any]] = None,
    *,
    config: Optional[KissmetricsConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    logger: Optional[logging.Logger] = None,
    cache: Optional[TTLCache] = None,
) -> KissmetricsAdapter:
    """Create an adapter for a host connection.

    ``server_config`` is the host's server entry (its ``config`` member is
    used when present); ``database_config["database"]`` names the default
    product. Pass ``cache`` to share catalogs across adapters.
    """
    log = logger or module_logger
    server_settings = server_config.get("config") or server_config
    cfg = KissmetricsConfig.from_server_config(server_settings, base=config)
    log.debug("Connecting to Kissmetrics: %s", cfg.redacted())

    product_id = (database_config or {}).get("database") or None
    context = build_context(cfg, product_id=product_id)
    if not context.authenticated:
        log.debug("No Kissmetrics credentials; queries will return no data")

    client = KissmetricsClient(config=cfg, transport=transport)
    return KissmetricsAdapter(context, client, logger=log, cache=cache)
