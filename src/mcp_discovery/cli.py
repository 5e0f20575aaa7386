"""CLI interface for mcp-discovery.

Two entry points:

* ``mcp-registry`` builds the registry from the descriptor store and
  publishes it.
* ``mcp-tools`` answers discovery queries against the published registry.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any

from mcp_discovery.builder import generate_registry
from mcp_discovery.config import DiscoveryConfig, load_config, validate_config
from mcp_discovery.errors import ConfigError, DiscoveryError
from mcp_discovery.query import QueryEngine, RegistryStats, ServerSummary, ToolDetail, ToolMatch, ToolSummary
from mcp_discovery.storage import load_registry

logger = logging.getLogger(__name__)

QUERY_EPILOG = """\
Examples:
  mcp-tools                                    # List all servers
  mcp-tools --server github                    # List GitHub tools
  mcp-tools --tool get_me                      # Find "get_me" tool
  mcp-tools --search "repository"              # Search for repository-related tools
  mcp-tools --detail github get_authenticated_user  # Full tool details
"""


class UsageError(DiscoveryError):
	"""Malformed command line."""

	exit_code = 2


class _Parser(argparse.ArgumentParser):
	"""ArgumentParser that raises instead of printing usage and exiting."""

	def error(self, message: str) -> None:  # type: ignore[override]
		raise UsageError(f"{message}. Use --help for usage information")


def _setup_logging(verbose: bool, default_level: int) -> None:
	logging.basicConfig(
		level=logging.DEBUG if verbose else default_level,
		format="%(asctime)s %(levelname)s %(name)s: %(message)s",
		datefmt="%H:%M:%S",
		stream=sys.stderr,
		force=True,
	)


# -- mcp-tools --


def build_parser() -> argparse.ArgumentParser:
	parser = _Parser(
		prog="mcp-tools",
		description="Query the MCP tools registry for tool discovery.",
		epilog=QUERY_EPILOG,
		formatter_class=argparse.RawDescriptionHelpFormatter,
	)
	mode = parser.add_mutually_exclusive_group()
	mode.add_argument("--server", metavar="SERVER", help="List all tools for a specific server")
	mode.add_argument("--tool", metavar="TOOL_NAME", help="Find tools matching name across all servers")
	mode.add_argument("--search", metavar="KEYWORD", help="Search tool names and descriptions")
	mode.add_argument(
		"--detail", nargs=2, metavar=("SERVER", "TOOL"),
		help="Show full details for a specific tool",
	)
	mode.add_argument("--stats", action="store_true", help="Show registry statistics")
	mode.add_argument("--mcp", action="store_true", help="Serve registry queries over MCP (stdio)")

	parser.add_argument("--config", default=None, help="Config file path (default: mcp-discovery.toml if present)")
	parser.add_argument("--registry", default=None, help="Registry file (overrides config)")
	parser.add_argument("--json", action="store_true", dest="json_output", help="JSON output")
	parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
	return parser


def render_servers(servers: list[ServerSummary]) -> str:
	lines = ["Available MCP Servers:", ""]
	lines += [f"  {s.name} ({s.tool_count} tools, {s.size_display})" for s in servers]
	lines += ["", "Use --server <name> to see tools for a specific server"]
	return "\n".join(lines)


def render_tools(server: str, tools: list[ToolSummary]) -> str:
	lines = [f"Tools for '{server}' server:", ""]
	for t in tools:
		lines += [f"  {t.name}", f"    {t.summary}"]
	lines += ["", f"Use --detail {server} <tool> for full tool details"]
	return "\n".join(lines)


def _render_matches(matches: list[ToolMatch]) -> list[str]:
	lines = []
	for m in matches:
		lines += [f"  {m.server}/{m.tool}", f"    {m.summary}"]
	return lines


def render_find(tool: str, matches: list[ToolMatch]) -> str:
	lines = [f"Searching for tool: {tool}", ""]
	if not matches:
		lines += [f"  No tools found matching: {tool}", "", "Try --search to search descriptions"]
	else:
		lines += _render_matches(matches)
		lines += ["", f"Use --detail <server> {tool} for full details"]
	return "\n".join(lines)


def render_search(keyword: str, matches: list[ToolMatch]) -> str:
	lines = [f"Searching for: {keyword}", ""]
	if not matches:
		lines.append(f"  No tools found containing: {keyword}")
	else:
		lines += _render_matches(matches)
		lines += ["", "Use --detail <server> <tool> for full details"]
	return "\n".join(lines)


def _param_list(names: list[str]) -> list[str]:
	return [f"  - {n}" for n in names] if names else ["  (none)"]


def render_detail(detail: ToolDetail, base_url: str) -> str:
	lines = [
		f"Tool Details: {detail.server}/{detail.tool}",
		"=========================================",
		"",
		f"Summary: {detail.summary}",
		"",
		"Description:",
		detail.description,
		"",
		"Required Parameters:",
		*_param_list(detail.required_params),
		"",
		"Optional Parameters:",
		*_param_list(detail.optional_params),
		"",
		"Parameter Details:",
	]
	for name, param in detail.params.items():
		lines += [f"  {name}:", f"    Type: {param.type}"]
		if param.title:
			lines.append(f"    Title: {param.title}")
	lines += [
		"",
		"Endpoint:",
		f"  POST {base_url.rstrip('/')}/{detail.endpoint}",
	]
	return "\n".join(lines)


def render_stats(stats: RegistryStats) -> str:
	lines = [
		"Registry Statistics:",
		"",
		f"Generated: {stats.generated_at}",
		f"Total Servers: {stats.total_servers}",
		f"Total Tools: {stats.total_tools}",
		"",
		"Tools by Server:",
	]
	lines += [f"  {name}: {count} tools" for name, count in stats.tools_by_server]
	return "\n".join(lines)


def _to_json(value: Any) -> str:
	return json.dumps(value, indent=2, ensure_ascii=False)


def run_query(args: argparse.Namespace, engine: QueryEngine, config: DiscoveryConfig) -> str:
	"""Run the query selected by ``args`` and return the rendered output."""
	if args.server is not None:
		tools = engine.list_tools(args.server)
		if args.json_output:
			return _to_json({"server": args.server, "tools": [asdict(t) for t in tools]})
		return render_tools(args.server, tools)

	if args.tool is not None:
		matches = engine.find_by_name(args.tool)
		if args.json_output:
			return _to_json({"tool": args.tool, "matches": [asdict(m) for m in matches]})
		return render_find(args.tool, matches)

	if args.search is not None:
		matches = engine.search(args.search)
		if args.json_output:
			return _to_json({"keyword": args.search, "matches": [asdict(m) for m in matches]})
		return render_search(args.search, matches)

	if args.detail is not None:
		server, tool = args.detail
		detail = engine.detail(server, tool)
		if args.json_output:
			data = detail.to_dict()
			data["url"] = config.proxy.endpoint_url(detail.endpoint)
			return _to_json(data)
		return render_detail(detail, config.proxy.base_url)

	if args.stats:
		stats = engine.stats()
		if args.json_output:
			return _to_json(asdict(stats))
		return render_stats(stats)

	servers = engine.list_servers()
	if args.json_output:
		return _to_json({"servers": [asdict(s) for s in servers]})
	return render_servers(servers)


def _registry_path(args: argparse.Namespace, config: DiscoveryConfig) -> Path:
	return Path(args.registry) if args.registry else config.registry.output_path


def main(argv: list[str] | None = None) -> int:
	"""Entry point for ``mcp-tools``."""
	parser = build_parser()
	try:
		args = parser.parse_args(argv)
	except UsageError as e:
		print(f"Error: {e}", file=sys.stderr)
		return e.exit_code
	_setup_logging(args.verbose, logging.WARNING)

	try:
		config = load_config(args.config)
		registry_path = _registry_path(args, config)
		if args.mcp:
			from mcp_discovery.mcp_server import run_mcp_server

			run_mcp_server(registry_path, config)
			return 0
		engine = QueryEngine(load_registry(registry_path))
		output = run_query(args, engine, config)
	except DiscoveryError as e:
		print(f"Error: {e}", file=sys.stderr)
		return e.exit_code

	print(output)
	return 0


# -- mcp-registry --


def build_generate_parser() -> argparse.ArgumentParser:
	parser = _Parser(
		prog="mcp-registry",
		description="Create a compact registry of MCP tools from per-server OpenAPI descriptors.",
	)
	parser.add_argument("output", nargs="?", default=None, help="Registry output path (overrides config)")
	parser.add_argument("--config", default=None, help="Config file path (default: mcp-discovery.toml if present)")
	parser.add_argument("--servers-dir", default=None, help="Descriptor directory (overrides config)")
	parser.add_argument("--suffix", default=None, help="Descriptor filename suffix (overrides config)")
	parser.add_argument("--workers", type=int, default=None, help="Parallel extraction threads")
	parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
	return parser


def _apply_generate_overrides(args: argparse.Namespace, config: DiscoveryConfig) -> None:
	if args.output:
		config.registry.output = args.output
	if args.servers_dir:
		config.registry.servers_dir = args.servers_dir
	if args.suffix:
		config.registry.spec_suffix = args.suffix
	if args.workers is not None:
		config.registry.workers = args.workers


def generate_main(argv: list[str] | None = None) -> int:
	"""Entry point for ``mcp-registry``."""
	parser = build_generate_parser()
	try:
		args = parser.parse_args(argv)
	except UsageError as e:
		print(f"Error: {e}", file=sys.stderr)
		return e.exit_code
	_setup_logging(args.verbose, logging.INFO)

	try:
		config = load_config(args.config)
		_apply_generate_overrides(args, config)
		issues = validate_config(config)
		errors = [msg for level, msg in issues if level == "error"]
		for level, msg in issues:
			if level == "warning":
				logger.warning("Config: %s", msg)
		if errors:
			raise ConfigError("; ".join(errors))
		report = generate_registry(
			config.registry.servers_path,
			config.registry.output_path,
			suffix=config.registry.spec_suffix,
			workers=config.registry.workers,
		)
	except DiscoveryError as e:
		print(f"Error: {e}", file=sys.stderr)
		return e.exit_code

	if report.diagnostics:
		skipped = ", ".join(d.source for d in report.diagnostics)
		logger.warning("%d descriptor(s) skipped: %s", len(report.diagnostics), skipped)
	return 0


if __name__ == "__main__":
	sys.exit(main())
