# Kissmetrics SQL Adapter
# File: transports/stdio_server.py
# Version: v1

"""STDIO entrypoint behind the ``kissmetrics-sql-mcp`` console command.

Creates a FastMCP server, registers the Kissmetrics tools and runs the
built-in stdio transport. Logs go to stderr so they never mix with the
protocol stream.
"""

from __future__ import annotations

import logging
import os

from mcp.server.fastmcp import FastMCP

from ..tools import tasks


def main() -> None:
    """Synchronous entrypoint for console_scripts."""
    logging.basicConfig(
        level=os.getenv("KISSMETRICS_LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    mcp = FastMCP("kissmetrics-sql-mcp")
    tasks.register_tools(mcp)
    mcp.run()


if __name__ == "__main__":
    main()
