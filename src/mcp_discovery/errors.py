"""Error taxonomy for registry builds and discovery queries."""

from __future__ import annotations


class DiscoveryError(Exception):
	"""Base class. ``exit_code`` is the CLI status reported for this error kind."""

	exit_code = 1


class ConfigError(DiscoveryError):
	"""Config file missing (when explicitly requested) or not valid TOML."""

	exit_code = 1


class InvalidInputDocument(DiscoveryError):
	"""A single descriptor document could not be parsed. Never fatal to a build."""

	def __init__(self, server: str, reason: str) -> None:
		super().__init__(f"Invalid descriptor for '{server}': {reason}")
		self.server = server
		self.reason = reason


class NoInputError(DiscoveryError):
	"""No valid descriptor documents were found; nothing is published."""

	exit_code = 6


class RegistryUnavailable(DiscoveryError):
	"""No published registry exists, or it cannot be read or parsed."""

	exit_code = 3


class ServerNotFound(DiscoveryError):
	exit_code = 4

	def __init__(self, server: str) -> None:
		super().__init__(f"Server not found: {server}")
		self.server = server


class ToolNotFound(DiscoveryError):
	exit_code = 5

	def __init__(self, server: str, tool: str) -> None:
		super().__init__(f"Tool not found: {server}/{tool}")
		self.server = server
		self.tool = tool
