"""MCP server exposing registry discovery queries to MCP clients."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from mcp_discovery.config import DiscoveryConfig
from mcp_discovery.errors import DiscoveryError
from mcp_discovery.query import QueryEngine
from mcp_discovery.storage import RegistryCache

logger = logging.getLogger(__name__)

server = Server("mcp-discovery")

_state: dict[str, object] = {}


def _string_args(**props: str) -> dict:
	return {
		"type": "object",
		"properties": {name: {"type": "string", "description": desc} for name, desc in props.items()},
		"required": list(props),
	}


# -- Tool definitions --

TOOLS = [
	Tool(
		name="list_servers",
		description="List every MCP server in the registry with its tool count and descriptor size.",
		inputSchema={"type": "object", "properties": {}},
	),
	Tool(
		name="list_tools",
		description="List the tools of one server with their one-line summaries.",
		inputSchema=_string_args(server="Server name as shown by list_servers"),
	),
	Tool(
		name="find_tool",
		description="Find every server that has a tool with exactly this name.",
		inputSchema=_string_args(tool="Exact tool name"),
	),
	Tool(
		name="search_tools",
		description="Case-insensitive search over tool names, summaries and descriptions.",
		inputSchema=_string_args(keyword="Substring to look for"),
	),
	Tool(
		name="tool_detail",
		description="Full detail for one tool: description, required/optional parameters and endpoint.",
		inputSchema=_string_args(server="Server name", tool="Tool name"),
	),
	Tool(
		name="registry_stats",
		description="Registry generation time and tool counts per server.",
		inputSchema={"type": "object", "properties": {}},
	),
]


def configure(registry_path: str | Path, config: DiscoveryConfig | None = None) -> None:
	"""Point the server at a registry file."""
	_state["cache"] = RegistryCache(registry_path)
	_state["config"] = config or DiscoveryConfig()


def _get_engine() -> QueryEngine:
	cache = _state.get("cache")
	if not isinstance(cache, RegistryCache):
		raise RuntimeError("MCP server not configured; call configure() first")
	return QueryEngine(cache.get())


def _get_config() -> DiscoveryConfig:
	config = _state.get("config")
	return config if isinstance(config, DiscoveryConfig) else DiscoveryConfig()


@server.list_tools()
async def list_tools() -> list[Tool]:
	return TOOLS


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
	try:
		result = _dispatch(name, arguments or {}, _get_engine(), _get_config())
	except DiscoveryError as e:
		result = {"error": str(e), "kind": type(e).__name__}
	except Exception as e:
		logger.exception("Tool %s failed", name)
		result = {"error": str(e), "kind": type(e).__name__}
	return [TextContent(type="text", text=json.dumps(result, indent=2))]


def _dispatch(name: str, args: dict, engine: QueryEngine, config: DiscoveryConfig) -> dict:
	missing = [a for a in _required_args(name) if not args.get(a)]
	if missing:
		return {"error": f"Missing argument(s) for {name}: {', '.join(missing)}"}

	if name == "list_servers":
		servers = engine.list_servers()
		return {"servers": [asdict(s) for s in servers], "count": len(servers)}
	elif name == "list_tools":
		tools = engine.list_tools(args["server"])
		return {"server": args["server"], "tools": [asdict(t) for t in tools], "count": len(tools)}
	elif name == "find_tool":
		matches = engine.find_by_name(args["tool"])
		return {"tool": args["tool"], "matches": [asdict(m) for m in matches], "count": len(matches)}
	elif name == "search_tools":
		matches = engine.search(args["keyword"])
		return {"keyword": args["keyword"], "matches": [asdict(m) for m in matches], "count": len(matches)}
	elif name == "tool_detail":
		detail = engine.detail(args["server"], args["tool"])
		result = detail.to_dict()
		result["url"] = config.proxy.endpoint_url(detail.endpoint)
		return result
	elif name == "registry_stats":
		return asdict(engine.stats())
	else:
		return {"error": f"Unknown tool: {name}"}


def _required_args(name: str) -> list[str]:
	for tool in TOOLS:
		if tool.name == name:
			return list(tool.inputSchema.get("required", []))
	return []


def run_mcp_server(registry_path: str | Path, config: DiscoveryConfig | None = None) -> None:
	"""Entry point for `mcp-tools --mcp`."""
	import asyncio

	configure(registry_path, config)
	logger.info("Serving registry %s over MCP stdio", registry_path)

	async def _run():
		async with stdio_server() as (read_stream, write_stream):
			await server.run(read_stream, write_stream, server.create_initialization_options())

	asyncio.run(_run())
