"""Publish and load the registry file."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path

from pydantic import ValidationError

from mcp_discovery.errors import RegistryUnavailable
from mcp_discovery.models import PublishedRegistry, Registry

logger = logging.getLogger(__name__)


def _current_umask() -> int:
	umask = os.umask(0)
	os.umask(umask)
	return umask


def write_registry(registry: Registry, path: str | Path) -> int:
	"""Atomically publish a registry as pretty-printed JSON.

	The JSON is written to a temp file in the destination directory and
	renamed over ``path``, so readers see either the old file or the new one.

	Returns:
		Size of the published file in bytes.
	"""
	dest = Path(path)
	dest.parent.mkdir(parents=True, exist_ok=True)
	payload = json.dumps(registry.to_dict(), indent=2, ensure_ascii=False) + "\n"

	fd, tmp_name = tempfile.mkstemp(prefix=f".{dest.name}.", suffix=".tmp", dir=dest.parent)
	try:
		# mkstemp creates 0600; publish with the mode a plain open() would give
		os.fchmod(fd, 0o666 & ~_current_umask())
		with os.fdopen(fd, "w", encoding="utf-8") as f:
			f.write(payload)
			f.flush()
			os.fsync(f.fileno())
		os.replace(tmp_name, dest)
	except BaseException:
		Path(tmp_name).unlink(missing_ok=True)
		raise
	size = dest.stat().st_size
	logger.debug("Published registry to %s (%d bytes)", dest, size)
	return size


def load_registry(path: str | Path) -> Registry:
	"""Load a published registry.

	Raises:
		RegistryUnavailable: If the file is missing, unreadable, not JSON, or
			not shaped like a registry.
	"""
	registry_path = Path(path)
	if not registry_path.is_file():
		raise RegistryUnavailable(f"Registry not found: {registry_path}. Generate it first with mcp-registry")
	try:
		with open(registry_path, encoding="utf-8") as f:
			data = json.load(f)
	except OSError as exc:
		raise RegistryUnavailable(f"Cannot read registry {registry_path}: {exc}") from exc
	except (json.JSONDecodeError, UnicodeDecodeError) as exc:
		raise RegistryUnavailable(f"Registry is not valid JSON: {registry_path}: {exc}") from exc
	try:
		published = PublishedRegistry.model_validate(data)
	except ValidationError as exc:
		raise RegistryUnavailable(
			f"Registry has unexpected structure: {registry_path} ({exc.error_count()} validation errors)",
		) from exc
	return published.to_registry()


class RegistryCache:
	"""Holds a loaded registry and reloads it when the published file changes.

	Rebuilds replace the file with a rename, so a change in (mtime, size,
	inode) is enough to detect a new registry.
	"""

	def __init__(self, path: str | Path) -> None:
		self._path = Path(path)
		self._lock = threading.Lock()
		self._registry: Registry | None = None
		self._stamp: tuple[int, int, int] | None = None

	@property
	def path(self) -> Path:
		return self._path

	def _current_stamp(self) -> tuple[int, int, int] | None:
		try:
			st = self._path.stat()
		except OSError:
			return None
		return (st.st_mtime_ns, st.st_size, st.st_ino)

	def get(self) -> Registry:
		stamp = self._current_stamp()
		with self._lock:
			if self._registry is not None and stamp is not None and stamp == self._stamp:
				return self._registry
			registry = load_registry(self._path)
			if self._registry is not None:
				logger.info("Registry changed on disk, reloaded %s", self._path)
			self._registry = registry
			self._stamp = stamp
			return registry

	def invalidate(self) -> None:
		with self._lock:
			self._registry = None
			self._stamp = None
