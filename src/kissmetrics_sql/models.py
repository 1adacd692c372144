# Kissmetrics SQL Adapter
# File: models.py
# Version: v1

"""Domain models used by the Kissmetrics SQL adapter."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

# A raw record from the query API. Keys vary per event.
Row = Dict[str, Any]


@dataclass(frozen=True)
class ConnectionContext:
    """Resolved credentials and target product for one adapter instance.

    A context without a token is the "unauthenticated" state: every
    data-bearing operation degrades to an empty result.
    """

    token: Optional[str] = None
    product_id: Optional[str] = None

    @property
    def authenticated(self) -> bool:
        return bool(self.token)


@dataclass
class CatalogEntry:
    """An event or property as listed by the products API.

    ``name`` is the display name (``"<og_name> (<index>)"`` once loaded
    through :mod:`kissmetrics_sql.catalog`), ``og_name`` the name as stored
    by the service.
    """

    index: int
    name: str
    og_name: Optional[str] = None
    visible: bool = True

    # Raw JSON payload from the API, for debugging / advanced use.
    raw: Optional[Dict[str, Any]] = None


@dataclass
class Product:
    """A Kissmetrics product, exposed to the host as a database."""

    id: str
    name: str

    # Raw JSON payload from the API, for debugging / advanced use.
    raw: Optional[Dict[str, Any]] = None


class JobState(str, Enum):
    SUBMITTED = "submitted"
    POLLING = "polling"
    COMPLETE = "complete"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass
class JobStatus:
    """One status response for a query job."""

    completed: bool
    data: Any = None
    failed: bool = False
    error: Optional[str] = None


@dataclass
class QueryJob:
    """An in-flight query job; only the executor's poll loop mutates it."""

    id: str
    product_id: Optional[str]
    state: JobState = JobState.SUBMITTED
    attempts: int = 0
    completed: bool = False
    data: Any = None

    @property
    def finished(self) -> bool:
        return self.state in (JobState.COMPLETE, JobState.FAILED, JobState.TIMED_OUT)


@dataclass
class Field:
    name: str


@dataclass
class TabularResult:
    """Relational shape handed back to the host for one statement."""

    fields: List[Field]
    command: Optional[str]
    rows: List[Row]
    row_count: Optional[int] = None
    affected_rows: Optional[int] = None

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    def to_dict(self) -> Dict[str, Any]:
        """Render the host's result shape."""
        return {
            "fields": [{"name": f.name} for f in self.fields],
            "command": self.command,
            "rows": self.rows,
            "rowCount": self.row_count,
            "affectedRows": self.affected_rows,
        }


@dataclass
class Table:
    name: str


@dataclass
class Column:
    column_name: str
    data_type: str


@dataclass
class Routine:
    routine_name: str
    routine_type: str = "FUNCTION"


@dataclass
class ClientDescriptor:
    """Static description of a database client for the host registry."""

    key: str
    name: str
    disabled_features: List[str] = field(default_factory=list)
