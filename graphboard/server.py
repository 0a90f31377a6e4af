"""Main MCP server implementation for graph boards."""

import asyncio
import json
import logging
from typing import Dict, Optional

from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions
from mcp.types import TextContent, Tool

from .config.settings import LOG_LEVEL
from .core.board_store import BoardStore
from .managers.interaction_controller import InteractionController
from .tools.board_tools import BoardTools

# Configure logging
logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO))
logger = logging.getLogger(__name__)


class GraphBoardMCPServer:
    """MCP Server for editing and laying out board graphs."""

    def __init__(self, store: Optional[BoardStore] = None):
        """Initialize the MCP server with an empty board registry."""
        self.boards: Dict[str, InteractionController] = {}
        self.board_tools = BoardTools(self.boards, store)

        # Create MCP server instance
        self.server = Server("graphboard-mcp")

        # Register handlers
        self._register_handlers()

    def _register_handlers(self):
        """Register all MCP handlers."""

        @self.server.list_tools()
        async def handle_list_tools() -> list[Tool]:
            """List all available tools."""
            return self.board_tools.get_tools()

        @self.server.call_tool()
        async def handle_call_tool(name: str, arguments: dict) -> list[TextContent]:
            """Route tool calls to appropriate handlers."""
            return [TextContent(type="text", text=json.dumps(await self.call_tool(name, arguments), indent=2))]

    async def call_tool(self, name: str, arguments: Optional[dict]) -> dict:
        """Dispatch a tool call by name prefix."""
        arguments = arguments or {}
        try:
            if name.startswith("board_"):
                return await self.board_tools.handle_tool(name, arguments)
            raise ValueError(f"Unknown tool: {name}")
        except Exception as e:
            logger.error(f"Error executing tool {name}: {e}")
            return {
                "error": str(e),
                "tool": name,
                "arguments": arguments
            }

    async def run(self):
        """Run the MCP server."""
        from mcp.server.stdio import stdio_server

        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                InitializationOptions(
                    server_name="graphboard-mcp",
                    server_version="0.1.0",
                    capabilities=self.server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={}
                    )
                )
            )


def main():
    """Main entry point for the MCP server."""
    server = GraphBoardMCPServer()
    asyncio.run(server.run())


if __name__ == "__main__":
    main()
