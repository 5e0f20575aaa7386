"""Data models for descriptor documents and the compact tool registry.

Two layers live here:

* pydantic schemas for the JSON that crosses the process boundary (the
  per-server descriptor documents read from the store, and the published
  registry file read back by the query side);
* frozen dataclasses for the in-memory registry that the builder produces
  and the query engine reads.

Defaulting (empty strings, lists, maps) happens once, while converting from
the first layer to the second.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, Field, field_validator

from mcp_discovery.constants import JSON_CONTENT_TYPE, REGISTRY_COMMENT, REGISTRY_USAGE

ParamType = str | list[str] | None


def _none_to_empty(value: Any, default: Any) -> Any:
	return default if value is None else value


# -- Descriptor document (input) --


class PropertySchema(BaseModel, extra="ignore"):
	"""One property of a request schema. Only type and title are kept."""

	type: ParamType = None
	title: str | None = None


class ObjectSchema(BaseModel, extra="ignore"):
	properties: dict[str, PropertySchema] = Field(default_factory=dict)
	required: list[str] = Field(default_factory=list)

	@field_validator("properties", mode="before")
	@classmethod
	def _properties_default(cls, v: Any) -> Any:
		return _none_to_empty(v, {})

	@field_validator("required", mode="before")
	@classmethod
	def _required_default(cls, v: Any) -> Any:
		return _none_to_empty(v, [])


class SchemaRef(BaseModel, extra="ignore"):
	ref: str | None = Field(default=None, alias="$ref")


class MediaType(BaseModel, extra="ignore"):
	schema_: SchemaRef | None = Field(default=None, alias="schema")


class RequestBody(BaseModel, extra="ignore"):
	content: dict[str, MediaType] = Field(default_factory=dict)

	@field_validator("content", mode="before")
	@classmethod
	def _content_default(cls, v: Any) -> Any:
		return _none_to_empty(v, {})


class Operation(BaseModel, extra="ignore"):
	summary: str | None = None
	description: str | None = None
	request_body: RequestBody | None = Field(default=None, alias="requestBody")

	@property
	def schema_ref(self) -> str:
		"""The JSON request body's ``$ref``, or ``""`` when there is none."""
		if self.request_body is None:
			return ""
		media = self.request_body.content.get(JSON_CONTENT_TYPE)
		if media is None or media.schema_ is None:
			return ""
		return media.schema_.ref or ""


class PathItem(BaseModel, extra="ignore"):
	post: Operation | None = None


class Components(BaseModel, extra="ignore"):
	"""Schemas stay raw; only the ones a request body references are validated."""

	schemas: dict[str, Any] = Field(default_factory=dict)

	@field_validator("schemas", mode="before")
	@classmethod
	def _schemas_default(cls, v: Any) -> Any:
		return _none_to_empty(v, {})


class DescriptorDocument(BaseModel, extra="ignore"):
	"""The subset of an OpenAPI document the extractor reads."""

	paths: dict[str, PathItem] = Field(default_factory=dict)
	components: Components = Field(default_factory=Components)

	@field_validator("paths", mode="before")
	@classmethod
	def _paths_default(cls, v: Any) -> Any:
		return _none_to_empty(v, {})

	@field_validator("components", mode="before")
	@classmethod
	def _components_default(cls, v: Any) -> Any:
		return _none_to_empty(v, {})


# -- In-memory registry --


@dataclass(frozen=True)
class ParamInfo:
	# type may be a list (OpenAPI 3.1 unions), so instances are not hashable
	__hash__ = None

	type: ParamType = None
	title: str | None = None

	def to_dict(self) -> dict[str, Any]:
		data: dict[str, Any] = {"type": self.type}
		if self.title is not None:
			data["title"] = self.title
		return data


@dataclass(frozen=True)
class ToolRecord:
	"""Discoverable metadata for one tool.

	``optional_params`` is kept in ascending order; ``required_params`` keeps
	the order the schema declared.
	Instances are unhashable since ``params`` is a read-only mapping view.
	"""

	__hash__ = None

	name: str
	summary: str = ""
	description: str = ""
	schema_ref: str = ""
	required_params: tuple[str, ...] = ()
	optional_params: tuple[str, ...] = ()
	params: Mapping[str, ParamInfo] = field(default_factory=dict)

	def __post_init__(self) -> None:
		object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

	def to_dict(self) -> dict[str, Any]:
		return {
			"summary": self.summary,
			"description": self.description,
			"schema_ref": self.schema_ref,
			"required_params": list(self.required_params),
			"optional_params": list(self.optional_params),
			"params": {name: p.to_dict() for name, p in self.params.items()},
		}


@dataclass(frozen=True)
class ServerEntry:
	__hash__ = None

	name: str
	source_ref: str = ""
	size_display: str = ""
	tools: Mapping[str, ToolRecord] = field(default_factory=dict)

	def __post_init__(self) -> None:
		object.__setattr__(self, "tools", MappingProxyType(dict(self.tools)))

	@property
	def tool_count(self) -> int:
		return len(self.tools)

	def to_dict(self) -> dict[str, Any]:
		return {
			"spec_file": self.source_ref,
			"spec_size": self.size_display,
			"tool_count": self.tool_count,
			"tools": {name: t.to_dict() for name, t in self.tools.items()},
		}


@dataclass(frozen=True)
class Registry:
	"""Compact index over every descriptor in the store. Never mutated."""

	__hash__ = None

	generated_at: str
	source_dir: str
	servers: Mapping[str, ServerEntry] = field(default_factory=dict)

	def __post_init__(self) -> None:
		object.__setattr__(self, "servers", MappingProxyType(dict(self.servers)))

	@property
	def total_tools(self) -> int:
		return sum(s.tool_count for s in self.servers.values())

	def to_dict(self) -> dict[str, Any]:
		return {
			"_comment": REGISTRY_COMMENT,
			"_usage": REGISTRY_USAGE,
			"generated_at": self.generated_at,
			"servers_dir": self.source_dir,
			"servers": {name: s.to_dict() for name, s in self.servers.items()},
		}


@dataclass(frozen=True)
class Diagnostic:
	"""A descriptor document skipped during a build."""

	server: str
	source: str
	reason: str


# -- Published registry (read back from disk) --


class PublishedParam(BaseModel, extra="ignore"):
	type: ParamType = None
	title: str | None = None


class PublishedTool(BaseModel, extra="ignore"):
	summary: str = ""
	description: str = ""
	schema_ref: str = ""
	required_params: list[str] = Field(default_factory=list)
	optional_params: list[str] = Field(default_factory=list)
	params: dict[str, PublishedParam] = Field(default_factory=dict)


class PublishedServer(BaseModel, extra="ignore"):
	spec_file: str = ""
	spec_size: str = ""
	tool_count: int = 0
	tools: dict[str, PublishedTool] = Field(default_factory=dict)


class PublishedRegistry(BaseModel, extra="ignore"):
	generated_at: str
	servers_dir: str = ""
	servers: dict[str, PublishedServer] = Field(default_factory=dict)

	def to_registry(self) -> Registry:
		servers = {}
		for server_name, server in self.servers.items():
			tools = {
				tool_name: ToolRecord(
					name=tool_name,
					summary=tool.summary,
					description=tool.description,
					schema_ref=tool.schema_ref,
					required_params=tuple(tool.required_params),
					optional_params=tuple(tool.optional_params),
					params={
						p_name: ParamInfo(type=p.type, title=p.title)
						for p_name, p in tool.params.items()
					},
				)
				for tool_name, tool in server.tools.items()
			}
			servers[server_name] = ServerEntry(
				name=server_name,
				source_ref=server.spec_file,
				size_display=server.spec_size,
				tools=tools,
			)
		return Registry(
			generated_at=self.generated_at,
			source_dir=self.servers_dir,
			servers=servers,
		)
