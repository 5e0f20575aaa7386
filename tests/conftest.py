"""Shared pytest fixtures and factory functions for mcp-discovery tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from mcp_discovery.builder import build_registry
from mcp_discovery.models import Registry
from mcp_discovery.query import QueryEngine
from mcp_discovery.storage import write_registry

SUFFIX = "-openapi.json"


def make_tool(**overrides: Any) -> dict[str, Any]:
	"""Tool spec for make_descriptor with sensible defaults, overridable via kwargs."""
	defaults: dict[str, Any] = {
		"summary": "Test tool",
		"description": "",
		"properties": {},
		"required": [],
	}
	defaults.update(overrides)
	return defaults


def make_descriptor(tools: dict[str, dict[str, Any]]) -> dict[str, Any]:
	"""Build an OpenAPI document shaped like the proxy's output.

	Each tool spec may set summary, description, properties and required;
	a tool spec with ``schema=False`` gets no request body.
	"""
	paths: dict[str, Any] = {}
	schemas: dict[str, Any] = {}
	for name, spec in tools.items():
		post: dict[str, Any] = {"operationId": f"tool_{name}_post"}
		if spec.get("summary") is not None:
			post["summary"] = spec["summary"]
		if spec.get("description"):
			post["description"] = spec["description"]
		if spec.get("schema", True):
			schema_name = f"{name}_form_model"
			post["requestBody"] = {
				"content": {
					"application/json": {"schema": {"$ref": f"#/components/schemas/{schema_name}"}},
				},
				"required": True,
			}
			schemas[schema_name] = {
				"type": "object",
				"title": schema_name,
				"properties": spec.get("properties", {}),
				"required": spec.get("required", []),
			}
		paths[f"/{name}"] = {"post": post}
	return {
		"openapi": "3.1.0",
		"info": {"title": "test", "version": "1.0.0"},
		"paths": paths,
		"components": {"schemas": schemas},
	}


def write_descriptor(
	directory: Path,
	server: str,
	document: dict[str, Any] | str,
	size: int | None = None,
) -> Path:
	"""Write a descriptor file, padding with trailing whitespace up to ``size`` bytes."""
	text = document if isinstance(document, str) else json.dumps(document, indent=2)
	if size is not None:
		length = len(text.encode("utf-8"))
		assert length <= size, f"descriptor for {server} is already {length} bytes"
		text += " " * (size - length)
	path = directory / f"{server}{SUFFIX}"
	path.write_text(text, encoding="utf-8")
	return path


GIT_TOOLS = {
	"git_status": make_tool(
		summary="Git Status",
		description="Shows the working tree status",
		properties={"repo_path": {"type": "string", "title": "Repo Path"}},
		required=["repo_path"],
	),
	"git_log": make_tool(
		summary="Git Log",
		description="Shows the commit logs",
		properties={
			"repo_path": {"type": "string", "title": "Repo Path"},
			"max_count": {"type": "integer", "title": "Max Count"},
		},
		required=["repo_path"],
	),
	"git_diff": make_tool(
		summary="Git Diff",
		description="Shows differences between branches or commits",
		properties={
			"target": {"type": "string", "title": "Target"},
			"repo_path": {"type": "string", "title": "Repo Path"},
			"context_lines": {"type": "integer"},
		},
		required=["target", "repo_path"],
	),
}

FETCH_TOOLS = {
	"fetch": make_tool(
		summary="Fetch",
		description="Fetches a URL from the internet and extracts its contents as markdown.",
		properties={
			"url": {"type": "string", "title": "Url"},
			"max_length": {"type": "integer", "title": "Max Length"},
			"raw": {"type": "boolean", "title": "Raw"},
		},
		required=["url"],
	),
}


@pytest.fixture()
def servers_dir(tmp_path: Path) -> Path:
	"""Descriptor store with ``fetch`` (1 tool, 2000 bytes) and ``git`` (3 tools, 11000 bytes)."""
	directory = tmp_path / "servers"
	directory.mkdir()
	write_descriptor(directory, "fetch", make_descriptor(FETCH_TOOLS), size=2000)
	write_descriptor(directory, "git", make_descriptor(GIT_TOOLS), size=11000)
	return directory


@pytest.fixture()
def registry(servers_dir: Path) -> Registry:
	return build_registry(servers_dir).registry


@pytest.fixture()
def engine(registry: Registry) -> QueryEngine:
	return QueryEngine(registry)


@pytest.fixture()
def registry_file(tmp_path: Path, registry: Registry) -> Path:
	"""Published registry built from the ``servers_dir`` fixture."""
	path = tmp_path / "registry" / "registry.json"
	write_registry(registry, path)
	return path
