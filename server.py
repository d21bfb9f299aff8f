"""FastMCP entry point exposing the documentation reviewer as tools."""

from __future__ import annotations

import argparse
import logging
from typing import Optional

from fastmcp import FastMCP

from docreview.config import SERVER_HOST, SERVER_NAME, SERVER_PORT, SERVER_VERSION
from docreview.mcp_tools import register_tools

# ── Logging ──────────────────────────────────────────────────────────────────
# Provider calls, token usage and dropped reviews from docreview.* show up
# on the server's stderr.

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
    datefmt="%H:%M:%S",
)
# Keep client library noise at WARNING
for _name in ("botocore", "boto3", "urllib3", "httpx", "openai"):
    logging.getLogger(_name).setLevel(logging.WARNING)


def create_server() -> FastMCP:
    """Create and configure the FastMCP server instance."""
    mcp = FastMCP(
        name=SERVER_NAME,
        version=SERVER_VERSION,
    )
    register_tools(mcp)
    return mcp


# Module-level server instance (used by FastMCP CLI and stdio transport)
mcp = create_server()


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point; streamable HTTP by default, stdio for local MCP clients."""
    parser = argparse.ArgumentParser(description="Documentation review MCP server")
    parser.add_argument("--transport", choices=("streamable-http", "stdio"), default="streamable-http")
    parser.add_argument("--host", default=SERVER_HOST)
    parser.add_argument("--port", type=int, default=SERVER_PORT)
    args = parser.parse_args(argv)

    log = logging.getLogger(__name__)
    try:
        if args.transport == "stdio":
            log.info("Starting %s v%s on stdio", SERVER_NAME, SERVER_VERSION)
            mcp.run(transport="stdio")
        else:
            log.info("Starting %s v%s on %s:%d", SERVER_NAME, SERVER_VERSION, args.host, args.port)
            mcp.run(transport="streamable-http", host=args.host, port=args.port)
    except OSError as e:
        log.error("Server failed to start: %s", e)
        raise SystemExit(1) from e


if __name__ == "__main__":
    main()
