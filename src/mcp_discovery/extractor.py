"""Extract compact tool records from one OpenAPI descriptor document."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from mcp_discovery.constants import SCHEMA_REF_PREFIX
from mcp_discovery.errors import InvalidInputDocument
from mcp_discovery.models import (
	DescriptorDocument,
	Diagnostic,
	ObjectSchema,
	Operation,
	ParamInfo,
	ToolRecord,
)

logger = logging.getLogger(__name__)


def parse_descriptor(raw: bytes | str, server: str) -> DescriptorDocument:
	"""Parse raw descriptor bytes into a DescriptorDocument.

	Raises:
		InvalidInputDocument: If the bytes are not JSON, or the JSON does not
			have the shape of an OpenAPI document (e.g. ``paths`` is a list).
	"""
	try:
		data = json.loads(raw)
	except (json.JSONDecodeError, UnicodeDecodeError) as exc:
		raise InvalidInputDocument(server, f"invalid JSON: {exc}") from exc
	if not isinstance(data, dict):
		raise InvalidInputDocument(server, f"expected a JSON object, got {type(data).__name__}")
	try:
		return DescriptorDocument.model_validate(data)
	except ValidationError as exc:
		first = exc.errors()[0]
		loc = ".".join(str(part) for part in first["loc"])
		reason = f"unexpected structure at {loc}: {first['msg']} ({exc.error_count()} validation errors)"
		raise InvalidInputDocument(server, reason) from exc


def schema_name_from_ref(ref: str) -> str:
	"""Strip the components namespace from a ``$ref``; other refs pass through unchanged."""
	return ref.removeprefix(SCHEMA_REF_PREFIX)


def resolve_schema(document: DescriptorDocument, ref: str) -> ObjectSchema | None:
	"""Look up and validate the request schema a ``$ref`` points at.

	None means "no schema": the ref is empty, names no schema, or names a
	schema whose properties/required do not have the expected shape.
	"""
	name = schema_name_from_ref(ref)
	if not name:
		return None
	raw = document.components.schemas.get(name)
	if raw is None:
		return None
	try:
		return ObjectSchema.model_validate(raw)
	except ValidationError as exc:
		logger.warning("Schema %r is malformed, treating as no schema: %s", name, exc.errors()[0]["msg"])
		return None


def tool_name_from_path(path: str) -> str:
	return path.removeprefix("/")


def extract_tool(name: str, operation: Operation | None, document: DescriptorDocument) -> ToolRecord:
	"""Build one ToolRecord. Parameter fields are all-or-nothing on schema resolution."""
	if operation is None:
		return ToolRecord(name=name)

	ref = operation.schema_ref
	summary = operation.summary or ""
	description = operation.description or ""
	schema = resolve_schema(document, ref)
	if schema is None:
		if ref:
			logger.debug("Tool %s: schema ref %r does not resolve", name, ref)
		return ToolRecord(name=name, summary=summary, description=description, schema_ref=ref)

	required = tuple(schema.required)
	required_set = set(required)
	optional = tuple(sorted(p for p in schema.properties if p not in required_set))
	params = {
		p_name: ParamInfo(type=prop.type, title=prop.title)
		for p_name, prop in schema.properties.items()
	}
	return ToolRecord(
		name=name,
		summary=summary,
		description=description,
		schema_ref=ref,
		required_params=required,
		optional_params=optional,
		params=params,
	)


def extract(document: DescriptorDocument) -> list[ToolRecord]:
	"""Extract one ToolRecord per operation path, in document order.

	Paths that map to the same tool name (``/a`` and ``a``) keep the first
	one; later duplicates are dropped with a warning.
	"""
	tools: dict[str, ToolRecord] = {}
	for path, item in document.paths.items():
		name = tool_name_from_path(path)
		if name in tools:
			logger.warning("Duplicate tool name %r from path %r, keeping the first definition", name, path)
			continue
		tools[name] = extract_tool(name, item.post, document)
	return list(tools.values())


def extract_bytes(raw: bytes, server: str, source: str) -> tuple[list[ToolRecord], list[Diagnostic]]:
	"""Extract descriptor bytes already read from the store.

	Returns the extracted tools plus diagnostics. Bytes that cannot be parsed
	yield no tools and exactly one diagnostic.
	"""
	try:
		document = parse_descriptor(raw, server)
	except InvalidInputDocument as exc:
		return [], [Diagnostic(server=server, source=source, reason=exc.reason)]
	return extract(document), []


def extract_file(path: Path, server: str) -> tuple[list[ToolRecord], list[Diagnostic]]:
	"""Read and extract a descriptor file. An unreadable file yields one diagnostic."""
	try:
		raw = path.read_bytes()
	except OSError as exc:
		return [], [Diagnostic(server=server, source=path.name, reason=f"unreadable: {exc}")]
	return extract_bytes(raw, server, path.name)
