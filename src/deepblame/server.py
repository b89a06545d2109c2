"""
GitHub DeepBlame MCP server.

Two-step workflow for an assistant digging into a file's history:
1. github_list_prs_for_file, once per commit page, to collect PR numbers.
2. github_get_pr_details with all collected numbers, resending
   `remaining_pr_numbers` until it comes back empty.
"""

from __future__ import annotations

import asyncio
from typing import Any

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from . import __version__
from .config import load_dotenv, load_settings
from .logging_config import get_logger, setup_logging
from .tools import TOOLS, call_tool, render_result

SERVER_NAME = "github_deep_blame"

logger = get_logger(__name__)


def build_server() -> Server:
    server: Server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [
            types.Tool(
                name=spec.name,
                description=spec.description,
                inputSchema=spec.input_schema(),
            )
            for spec in TOOLS.values()
        ]

    @server.call_tool()
    async def handle_call_tool(
        name: str, arguments: dict[str, Any] | None
    ) -> list[types.TextContent]:
        # The pipeline is blocking and strictly sequential; keep it off the event loop.
        try:
            result = await asyncio.to_thread(call_tool, name, arguments)
        except Exception as exc:
            logger.warning("%s failed: %s", name, exc)
            raise
        return [types.TextContent(type="text", text=render_result(result))]

    return server


async def serve() -> None:
    server = build_server()
    async with stdio_server() as (read_stream, write_stream):
        logger.info("GitHub DeepBlame MCP Server running on stdio")
        await server.run(
            read_stream, write_stream, server.create_initialization_options()
        )


def main() -> int:
    try:
        load_dotenv(".env")
        setup_logging(load_settings().log_level)
        asyncio.run(serve())
    except KeyboardInterrupt:
        return 130
    except Exception:
        logger.exception("Fatal error in main()")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
