"""Read-only discovery queries over a loaded registry."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import asdict, dataclass, field
from typing import Any

from mcp_discovery.errors import ServerNotFound, ToolNotFound
from mcp_discovery.models import ParamInfo, Registry, ServerEntry, ToolRecord


def matches_keyword(keyword: str, fields: Iterable[str]) -> bool:
	"""Case-insensitive substring match of ``keyword`` against any of ``fields``."""
	needle = keyword.casefold()
	return any(needle in value.casefold() for value in fields)


@dataclass
class ServerSummary:
	name: str
	tool_count: int
	size_display: str


@dataclass
class ToolSummary:
	name: str
	summary: str


@dataclass
class ToolMatch:
	server: str
	tool: str
	summary: str


@dataclass
class ToolDetail:
	server: str
	tool: str
	summary: str
	description: str
	required_params: list[str]
	optional_params: list[str]
	params: dict[str, ParamInfo]
	endpoint: str

	def to_dict(self) -> dict[str, Any]:
		data = asdict(self)
		data["params"] = {name: p.to_dict() for name, p in self.params.items()}
		return data


@dataclass
class RegistryStats:
	generated_at: str
	total_servers: int
	total_tools: int
	tools_by_server: list[tuple[str, int]] = field(default_factory=list)


class QueryEngine:
	"""Answers discovery queries. Never mutates the registry it wraps.

	Sorting is always ascending lexical order on the mapping key. ``find_by_name``
	and ``search`` return an empty list when nothing matches; only a missing
	server or tool in a directed lookup raises.
	"""

	def __init__(self, registry: Registry) -> None:
		self._registry = registry

	@property
	def registry(self) -> Registry:
		return self._registry

	def _server(self, server: str) -> ServerEntry:
		entry = self._registry.servers.get(server)
		if entry is None:
			raise ServerNotFound(server)
		return entry

	def _sorted_servers(self) -> list[ServerEntry]:
		return [self._registry.servers[name] for name in sorted(self._registry.servers)]

	def list_servers(self) -> list[ServerSummary]:
		return [
			ServerSummary(name=s.name, tool_count=s.tool_count, size_display=s.size_display)
			for s in self._sorted_servers()
		]

	def list_tools(self, server: str) -> list[ToolSummary]:
		entry = self._server(server)
		return [
			ToolSummary(name=name, summary=entry.tools[name].summary)
			for name in sorted(entry.tools)
		]

	def find_by_name(self, tool: str) -> list[ToolMatch]:
		"""Every server holding a tool keyed exactly ``tool``, in server order."""
		return [
			ToolMatch(server=s.name, tool=tool, summary=s.tools[tool].summary)
			for s in self._sorted_servers()
			if tool in s.tools
		]

	def search(self, keyword: str) -> list[ToolMatch]:
		"""Tools whose name, summary or description contain ``keyword``, ignoring case.

		One match per tool regardless of how many of its fields matched.
		"""
		matches = []
		for s in self._sorted_servers():
			for name in sorted(s.tools):
				record = s.tools[name]
				if matches_keyword(keyword, _searchable_fields(record)):
					matches.append(ToolMatch(server=s.name, tool=name, summary=record.summary))
		return matches

	def detail(self, server: str, tool: str) -> ToolDetail:
		entry = self._server(server)
		record = entry.tools.get(tool)
		if record is None:
			raise ToolNotFound(server, tool)
		return ToolDetail(
			server=server,
			tool=tool,
			summary=record.summary,
			description=record.description,
			required_params=list(record.required_params),
			optional_params=list(record.optional_params),
			params=dict(record.params),
			endpoint=f"{server}/{tool}",
		)

	def stats(self) -> RegistryStats:
		servers = self._sorted_servers()
		return RegistryStats(
			generated_at=self._registry.generated_at,
			total_servers=len(servers),
			total_tools=sum(s.tool_count for s in servers),
			tools_by_server=[(s.name, s.tool_count) for s in servers],
		)


def _searchable_fields(record: ToolRecord) -> tuple[str, str, str]:
	return (record.name, record.summary, record.description)
