# Kissmetrics SQL Adapter
# File: tools/mock_api.py
# Version: v1

"""In-process stand-in for the Kissmetrics query API.

Activated when KISSMETRICS_MOCK_MODE is truthy. Served through
``httpx.MockTransport`` so the real client, executor and normalizer run
unchanged against canned responses.
"""

from __future__ import annotations

import itertools
import json
from typing import Any, Dict, List

import httpx

MOCK_PRODUCTS: List[Dict[str, Any]] = [
    {"id": "1001", "name": "Mock Storefront"},
    {"id": "1002", "name": "Mock Legacy (no SQL)"},
]

NOT_ENTITLED = {"1002"}

MOCK_EVENTS: List[Dict[str, Any]] = [
    {"index": 1, "name": "Visited Site", "visible": True},
    {"index": 2, "name": "Signed Up", "visible": True},
    {"index": 3, "name": "Internal Ping", "visible": False},
]

MOCK_PROPERTIES: List[Dict[str, Any]] = [
    {"index": 7, "name": "Plan", "visible": True},
    {"index": 8, "name": "Coupon", "visible": True},
]

MOCK_ROWS: List[Dict[str, Any]] = [
    {"timestamp_ms": 1700000000000, "person": 11, "event": 1},
    {"timestamp_ms": 1700000050000, "person": 11, "event": 2, "prop_mod_1": json.dumps({"7": "Pro"})},
    {"timestamp_ms": 1700000090000, "person": 12, "event": 2, "prop_mod_1": json.dumps({"9": "SPRING"})},
]


class MockQueryApi:
    """Request handler; each job reports completion on its second poll."""

    polls_to_complete = 2

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._polls: Dict[str, int] = {}
        self.requests: List[str] = []

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(f"{request.method} {request.url.path}")
        parts = [p for p in request.url.path.split("/") if p]
        if "products" in parts:
            parts = parts[parts.index("products"):]
            if parts == ["products"]:
                return httpx.Response(200, json={"data": MOCK_PRODUCTS})
            if len(parts) == 3 and parts[2] == "events":
                return httpx.Response(200, json={"data": MOCK_EVENTS})
            if len(parts) == 3 and parts[2] == "properties":
                return httpx.Response(200, json={"data": MOCK_PROPERTIES})

        if "queries" in parts:
            parts = parts[parts.index("queries"):]
            if request.method == "POST" and parts == ["queries"]:
                body = json.loads(request.content or b"{}")
                if str(body.get("product_id")) in NOT_ENTITLED:
                    return httpx.Response(403, json={"error": "SQL is not enabled"})
                job_id = f"mock-job-{next(self._ids)}"
                self._polls[job_id] = 0
                return httpx.Response(201, json={"id": job_id})
            if request.method == "GET" and len(parts) == 2 and parts[1] in self._polls:
                job_id = parts[1]
                self._polls[job_id] += 1
                if self._polls[job_id] < self.polls_to_complete:
                    return httpx.Response(200, json={"id": job_id, "completed": False})
                return httpx.Response(
                    200, json={"id": job_id, "completed": True, "data": MOCK_ROWS}
                )

        return httpx.Response(404, json={"error": f"no mock for {request.url.path}"})
