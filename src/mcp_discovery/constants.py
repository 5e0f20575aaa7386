"""Default locations, naming conventions and size thresholds."""

from __future__ import annotations

DEFAULT_CONFIG = "mcp-discovery.toml"
DEFAULT_SERVERS_DIR = "servers"
DEFAULT_REGISTRY_FILE = "registry/registry.json"
DEFAULT_SPEC_SUFFIX = "-openapi.json"
DEFAULT_PROXY_URL = "http://localhost:8000"

SCHEMA_REF_PREFIX = "#/components/schemas/"
JSON_CONTENT_TYPE = "application/json"

# Size display thresholds (bytes). Comparison is strict, division truncates.
MEGABYTE = 1_048_576
KILOBYTE = 1024

GENERATED_AT_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

REGISTRY_COMMENT = "DO NOT READ THIS FILE DIRECTLY. Use mcp-tools as the interface."
REGISTRY_USAGE = "Run: mcp-tools --help"
