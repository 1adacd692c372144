# demo_execute_query.py
# Version: v1

r"""
Demo: run a SQL statement against Kissmetrics through the MCP task layer.

Usage (bash):

  export KISSMETRICS_USER=...
  export KISSMETRICS_PASSWORD=...
  export KISSMETRICS_PRODUCT_ID=12345

  python demo_execute_query.py

  # Offline, against the in-process mock API:
  KISSMETRICS_MOCK_MODE=1 KISSMETRICS_POLL_INTERVAL_SECONDS=0 python demo_execute_query.py

  # Custom statement:
  KISSMETRICS_TEST_QUERY="SELECT person, event FROM records LIMIT 5" python demo_execute_query.py
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Dict, List

from kissmetrics_sql.tools.tasks import execute_query, list_databases

QUERY = os.environ.get("KISSMETRICS_TEST_QUERY", "SELECT * FROM records LIMIT 10")
PRODUCT = os.environ.get("KISSMETRICS_PRODUCT_ID") or None


async def main() -> None:
    logging.basicConfig(level=os.environ.get("KISSMETRICS_LOG_LEVEL", "INFO"))

    databases = await list_databases()
    print("Products with SQL access:", databases["databases"])

    print(f"\nRunning: {QUERY}")
    out: Dict[str, Any] = await execute_query(QUERY, product_id=PRODUCT)

    results: List[Dict[str, Any]] = out.get("results", []) or []
    print("Meta:", out.get("meta"))
    if not results:
        print("\nNo results - are KISSMETRICS_USER / KISSMETRICS_PASSWORD set?")
        return

    result = results[0]
    print("Command:", result["command"])
    print("Fields:", [f["name"] for f in result["fields"]])
    print("Row count:", result["rowCount"])
    for i, row in enumerate(result["rows"][:10], start=1):
        print(f"  Row {i}:", row)


if __name__ == "__main__":
    asyncio.run(main())
