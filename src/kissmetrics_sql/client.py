# Kissmetrics SQL Adapter
# File: client.py
# Version: v1
"""Low-level async client for the Kissmetrics query API (v3).

Implements:

- get() for arbitrary JSON GET endpoints
- list_products(), list_events(), list_properties() for discovery
- submit() / poll_status() for the asynchronous query-job protocol
- probe_product() to detect whether a product is entitled to SQL queries
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
from httpx import HTTPStatusError, RequestError

from .auth import authorization_headers
from .catalog import parse_catalog
from .config import KissmetricsConfig
from .errors import RemoteServiceError
from .models import CatalogEntry, JobStatus, Product


@dataclass
class KissmetricsClient:
    """Wrapper around the Kissmetrics products and queries endpoints.

    ``transport`` is handed to every ``httpx.AsyncClient`` and exists so
    tests (and the mock mode) can serve responses in-process.
    """

    config: KissmetricsConfig
    transport: Optional[httpx.AsyncBaseTransport] = None

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.config.http_timeout_seconds,
            verify=self.config.verify_tls,
            transport=self.transport,
        )

    def url(self, path: str) -> str:
        return f"{self.config.base_url}/{path.lstrip('/')}"

    async def _request(
        self,
        method: str,
        path: str,
        token: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
        job_id: Optional[str] = None,
    ) -> Any:
        url = self.url(path)
        async with self._http_client() as http_client:
            try:
                response = await http_client.request(
                    method,
                    url,
                    params=params,
                    json=json_body,
                    headers=authorization_headers(token),
                )
            except RequestError as exc:
                raise RemoteServiceError(
                    f"Error calling Kissmetrics API at '{method} {url}': {exc}",
                    endpoint=url,
                    job_id=job_id,
                ) from exc

            try:
                response.raise_for_status()
            except HTTPStatusError as exc:
                status = response.status_code
                body_preview = response.text[:500]
                job_part = f" for query job '{job_id}'" if job_id else ""
                raise RemoteServiceError(
                    f"Kissmetrics API call '{method} {url}'{job_part} failed "
                    f"(HTTP {status}). Response snippet: {body_preview}",
                    endpoint=url,
                    status_code=status,
                    job_id=job_id,
                    body=body_preview,
                ) from exc

        return response.json()

    # ------------------------------------------------------------------
    # Generic
    # ------------------------------------------------------------------

    async def get(self, path: str, token: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET ``path`` relative to the API root and return parsed JSON."""
        return await self._request("GET", path, token, params=params)

    # ------------------------------------------------------------------
    # Products, events, properties
    # ------------------------------------------------------------------

    async def list_products(self, token: str) -> List[Product]:
        payload = await self.get("products", token)
        raw_products = payload.get("data") if isinstance(payload, dict) else payload

        products: List[Product] = []
        if isinstance(raw_products, list):
            for item in raw_products:
                if not isinstance(item, dict) or item.get("id") is None:
                    continue
                product_id = str(item["id"])
                products.append(
                    Product(
                        id=product_id,
                        name=str(item.get("name") or product_id),
                        raw=item,
                    )
                )
        return products

    async def list_events(self, product_id: str, token: str) -> List[CatalogEntry]:
        payload = await self.get(
            f"products/{product_id}/events",
            token,
            params={"limit": self.config.page_limit},
        )
        return parse_catalog(_data_list(payload))

    async def list_properties(self, product_id: str, token: str) -> List[CatalogEntry]:
        payload = await self.get(
            f"products/{product_id}/properties",
            token,
            params={"limit": self.config.page_limit},
        )
        return parse_catalog(_data_list(payload))

    async def probe_product(self, product_id: str, token: str) -> bool:
        """Submit an empty statement to see whether the product may query.

        HTTP 403 means the product is not entitled; any other response,
        successful or not, counts as entitled.
        """
        url = self.url("queries")
        async with self._http_client() as http_client:
            try:
                response = await http_client.post(
                    url,
                    json=_query_body(product_id, ""),
                    headers=authorization_headers(token),
                )
            except RequestError as exc:
                raise RemoteServiceError(
                    f"Error probing product '{product_id}' at '{url}': {exc}",
                    endpoint=url,
                ) from exc
        return response.status_code != 403

    # ------------------------------------------------------------------
    # Query jobs
    # ------------------------------------------------------------------

    async def submit(self, product_id: Optional[str], statement: str, token: str) -> str:
        """Start a SQL query job and return its id."""
        payload = await self._request(
            "POST",
            "queries",
            token,
            json_body=_query_body(product_id, statement),
        )
        job_id = payload.get("id") if isinstance(payload, dict) else None
        if job_id is None:
            raise RemoteServiceError(
                "Kissmetrics API did not return a query id for the submitted "
                f"statement. Response: {str(payload)[:500]}",
                endpoint=self.url("queries"),
            )
        return str(job_id)

    async def poll_status(self, job_id: str, token: str) -> JobStatus:
        """Fetch the status (and, once complete, the rows) of a query job."""
        payload = await self._request(
            "GET",
            f"queries/{job_id}",
            token,
            params={"limit": self.config.page_limit},
            job_id=job_id,
        )
        if not isinstance(payload, dict):
            raise RemoteServiceError(
                f"Unexpected status response for query job '{job_id}': "
                f"expected JSON object, got {type(payload).__name__}.",
                endpoint=self.url(f"queries/{job_id}"),
                job_id=job_id,
            )

        error = payload.get("error")
        return JobStatus(
            completed=bool(payload.get("completed")),
            data=payload.get("data"),
            failed=bool(payload.get("failed")) or bool(error),
            error=str(error) if error else None,
        )


def _query_body(product_id: Optional[str], statement: str) -> Dict[str, Any]:
    return {
        "product_id": product_id,
        "query_type": "sql",
        "query_params": {"statement": statement},
    }


def _data_list(payload: Any) -> List[Any]:
    data = payload.get("data") if isinstance(payload, dict) else payload
    return data if isinstance(data, list) else []
