"""TOML configuration loader for mcp-discovery."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from mcp_discovery.constants import (
	DEFAULT_CONFIG,
	DEFAULT_PROXY_URL,
	DEFAULT_REGISTRY_FILE,
	DEFAULT_SERVERS_DIR,
	DEFAULT_SPEC_SUFFIX,
)
from mcp_discovery.errors import ConfigError


@dataclass
class RegistryConfig:
	"""Descriptor store and published registry locations."""

	servers_dir: str = DEFAULT_SERVERS_DIR
	output: str = DEFAULT_REGISTRY_FILE
	spec_suffix: str = DEFAULT_SPEC_SUFFIX
	workers: int = 1

	@property
	def servers_path(self) -> Path:
		return Path(os.path.expanduser(self.servers_dir))

	@property
	def output_path(self) -> Path:
		return Path(os.path.expanduser(self.output))


@dataclass
class ProxyConfig:
	"""HTTP proxy the tools are served from. Only used to render endpoint URLs."""

	base_url: str = DEFAULT_PROXY_URL

	def endpoint_url(self, endpoint: str) -> str:
		return f"{self.base_url.rstrip('/')}/{endpoint}"


@dataclass
class DiscoveryConfig:
	"""Top-level mcp-discovery configuration."""

	registry: RegistryConfig = field(default_factory=RegistryConfig)
	proxy: ProxyConfig = field(default_factory=ProxyConfig)


def _build_registry(data: dict[str, Any]) -> RegistryConfig:
	rc = RegistryConfig()
	for key in ("servers_dir", "output", "spec_suffix"):
		if key in data:
			setattr(rc, key, str(data[key]))
	if "workers" in data:
		rc.workers = int(data["workers"])
	return rc


def _build_proxy(data: dict[str, Any]) -> ProxyConfig:
	pc = ProxyConfig()
	if "base_url" in data:
		pc.base_url = str(data["base_url"])
	return pc


def apply_env_overrides(config: DiscoveryConfig, environ: dict[str, str] | None = None) -> DiscoveryConfig:
	"""Apply SERVERS_DIR, REGISTRY_DIR, REGISTRY_FILE and MCPO_PORT overrides.

	REGISTRY_FILE wins over REGISTRY_DIR when both are set.
	"""
	env = os.environ if environ is None else environ
	if env.get("SERVERS_DIR"):
		config.registry.servers_dir = env["SERVERS_DIR"]
	if env.get("REGISTRY_DIR"):
		config.registry.output = str(Path(env["REGISTRY_DIR"]) / Path(config.registry.output).name)
	if env.get("REGISTRY_FILE"):
		config.registry.output = env["REGISTRY_FILE"]
	if env.get("MCPO_PORT"):
		config.proxy.base_url = f"http://localhost:{env['MCPO_PORT']}"
	return config


def load_config(path: str | Path | None = None, environ: dict[str, str] | None = None) -> DiscoveryConfig:
	"""Load an mcp-discovery.toml config file, then apply environment overrides.

	Args:
		path: Path to the TOML config file. When None, ``mcp-discovery.toml``
			in the working directory is used if present; otherwise defaults apply.
		environ: Environment mapping (defaults to ``os.environ``).

	Returns:
		Parsed DiscoveryConfig.

	Raises:
		ConfigError: If an explicitly requested file doesn't exist, or the
			file is not valid TOML.
	"""
	if path is None:
		config_path = Path(DEFAULT_CONFIG)
		if not config_path.exists():
			return apply_env_overrides(DiscoveryConfig(), environ)
	else:
		config_path = Path(path)
		if not config_path.exists():
			raise ConfigError(f"Config file not found: {config_path}")

	try:
		with open(config_path, "rb") as f:
			data = tomllib.load(f)
	except tomllib.TOMLDecodeError as exc:
		raise ConfigError(f"Invalid TOML in {config_path}: {exc}") from exc
	except OSError as exc:
		raise ConfigError(f"Cannot read config {config_path}: {exc}") from exc

	dc = DiscoveryConfig()
	try:
		if "registry" in data:
			dc.registry = _build_registry(data["registry"])
		if "proxy" in data:
			dc.proxy = _build_proxy(data["proxy"])
	except (TypeError, ValueError) as exc:
		raise ConfigError(f"Invalid value in {config_path}: {exc}") from exc
	return apply_env_overrides(dc, environ)


def validate_config(config: DiscoveryConfig) -> list[tuple[str, str]]:
	"""Perform semantic validation of a loaded DiscoveryConfig.

	Returns a list of (level, message) tuples where level is 'error' or 'warning'.
	"""
	issues: list[tuple[str, str]] = []

	if config.registry.workers < 1:
		issues.append(("error", f"registry.workers must be >= 1, got {config.registry.workers}"))
	if not config.registry.spec_suffix:
		issues.append(("error", "registry.spec_suffix must not be empty"))
	if not config.registry.output:
		issues.append(("error", "registry.output must not be empty"))
	if not config.registry.servers_path.is_dir():
		issues.append(("warning", f"registry.servers_dir does not exist: {config.registry.servers_dir}"))

	if not config.proxy.base_url.startswith(("http://", "https://")):
		issues.append(("warning", f"proxy.base_url has no http(s) scheme: {config.proxy.base_url}"))

	return issues
