"""Build the compact tool registry from a directory of descriptor documents.

One pass over ``<servers_dir>/*<suffix>``: every file is extracted on its
own, bad files are skipped with a diagnostic, and the surviving servers are
merged into a single Registry keyed by server name. Extraction of separate
files is independent, so it can be spread over a thread pool; results are
merged on the calling thread once every worker has finished.
"""

from __future__ import annotations

import concurrent.futures
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from mcp_discovery.constants import DEFAULT_SPEC_SUFFIX, GENERATED_AT_FORMAT, KILOBYTE, MEGABYTE
from mcp_discovery.errors import NoInputError
from mcp_discovery.extractor import extract_bytes
from mcp_discovery.models import Diagnostic, Registry, ServerEntry
from mcp_discovery.storage import write_registry

logger = logging.getLogger(__name__)


@dataclass
class DescriptorFile:
	server: str
	path: Path
	size: int = 0


@dataclass
class ServerResult:
	"""Outcome of extracting one descriptor file."""

	descriptor: DescriptorFile
	entry: ServerEntry | None = None
	diagnostics: list[Diagnostic] = field(default_factory=list)
	size: int = 0


@dataclass
class BuildReport:
	registry: Registry
	diagnostics: list[Diagnostic] = field(default_factory=list)
	source_bytes: int = 0
	registry_bytes: int = 0
	output_path: Path | None = None

	@property
	def savings_percent(self) -> int:
		return savings_percent(self.source_bytes, self.registry_bytes)


def format_size(size: int) -> str:
	"""Human-readable size with truncating division: 2048 -> '2K', 500 -> '500B'."""
	if size > MEGABYTE:
		return f"{size // MEGABYTE}M"
	if size > KILOBYTE:
		return f"{size // KILOBYTE}K"
	return f"{size}B"


def savings_percent(source_bytes: int, registry_bytes: int) -> int:
	"""Percentage of bytes saved by reading the registry instead of every descriptor."""
	if source_bytes <= 0:
		return 0
	return (source_bytes - registry_bytes) * 100 // source_bytes


def _now_stamp() -> str:
	return datetime.now(timezone.utc).strftime(GENERATED_AT_FORMAT)


def discover_descriptors(servers_dir: str | Path, suffix: str = DEFAULT_SPEC_SUFFIX) -> list[DescriptorFile]:
	"""List descriptor files in the store, sorted by server name.

	Raises:
		NoInputError: If the directory does not exist.
	"""
	directory = Path(servers_dir)
	if not directory.is_dir():
		raise NoInputError(f"Servers directory not found: {directory}")

	found = []
	for path in directory.iterdir():
		if not path.is_file() or not path.name.endswith(suffix):
			continue
		server = path.name[: -len(suffix)]
		if not server:
			continue
		found.append(DescriptorFile(server=server, path=path, size=path.stat().st_size))
	found.sort(key=lambda d: d.server)
	return found


def process_descriptor(descriptor: DescriptorFile) -> ServerResult:
	"""Extract one descriptor file into a ServerEntry (or diagnostics if it is invalid).

	The file is read once; the recorded size is that of the bytes extracted,
	not of the earlier directory listing.
	"""
	logger.info("Processing %s (%s)...", descriptor.server, descriptor.path.name)
	try:
		raw = descriptor.path.read_bytes()
	except OSError as exc:
		diag = Diagnostic(server=descriptor.server, source=descriptor.path.name, reason=f"unreadable: {exc}")
		logger.warning("Skipping %s: %s", diag.source, diag.reason)
		return ServerResult(descriptor=descriptor, diagnostics=[diag])

	tools, diagnostics = extract_bytes(raw, descriptor.server, descriptor.path.name)
	if diagnostics:
		for diag in diagnostics:
			logger.warning("Skipping %s: %s", diag.source, diag.reason)
		return ServerResult(descriptor=descriptor, diagnostics=diagnostics, size=len(raw))

	entry = ServerEntry(
		name=descriptor.server,
		source_ref=descriptor.path.name,
		size_display=format_size(len(raw)),
		tools={t.name: t for t in tools},
	)
	logger.info("  Extracted %d tools from %s", entry.tool_count, descriptor.server)
	return ServerResult(descriptor=descriptor, entry=entry, size=len(raw))


def _run_extraction(descriptors: list[DescriptorFile], workers: int) -> list[ServerResult]:
	if workers <= 1 or len(descriptors) <= 1:
		return [process_descriptor(d) for d in descriptors]
	with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as pool:
		return list(pool.map(process_descriptor, descriptors))


def build_registry(
	servers_dir: str | Path,
	suffix: str = DEFAULT_SPEC_SUFFIX,
	workers: int = 1,
) -> BuildReport:
	"""Build an in-memory Registry from every descriptor in ``servers_dir``.

	Args:
		servers_dir: Descriptor store directory.
		suffix: Descriptor filename suffix; the server name is the filename
			without it.
		workers: Number of extraction threads. 1 runs sequentially.

	Returns:
		BuildReport with the registry, per-file diagnostics, and the total
		descriptor byte count. Nothing is written to disk.

	Raises:
		NoInputError: If the directory is missing, holds no descriptors, or
			none of its descriptors could be parsed.
	"""
	descriptors = discover_descriptors(servers_dir, suffix)
	if not descriptors:
		raise NoInputError(f"No descriptor files (*{suffix}) found in {servers_dir}")
	logger.info("Found %d descriptor(s) to process", len(descriptors))

	results = _run_extraction(descriptors, workers)

	servers: dict[str, ServerEntry] = {}
	diagnostics: list[Diagnostic] = []
	for result in results:
		diagnostics.extend(result.diagnostics)
		if result.entry is not None:
			servers[result.entry.name] = result.entry

	if not servers:
		raise NoInputError(
			f"None of the {len(descriptors)} descriptor file(s) in {servers_dir} could be parsed",
		)

	registry = Registry(
		generated_at=_now_stamp(),
		source_dir=str(servers_dir),
		servers=dict(sorted(servers.items())),
	)
	return BuildReport(
		registry=registry,
		diagnostics=diagnostics,
		source_bytes=sum(r.size for r in results),
	)


def generate_registry(
	servers_dir: str | Path,
	output: str | Path,
	suffix: str = DEFAULT_SPEC_SUFFIX,
	workers: int = 1,
) -> BuildReport:
	"""Build the registry and atomically publish it to ``output``.

	On NoInputError nothing is written and any previously published registry
	stays in place.
	"""
	report = build_registry(servers_dir, suffix=suffix, workers=workers)
	report.output_path = Path(output)
	report.registry_bytes = write_registry(report.registry, report.output_path)

	logger.info("Registry generated successfully")
	logger.info("  Output: %s", report.output_path)
	logger.info(
		"  Servers: %d, tools: %d, skipped: %d",
		len(report.registry.servers), report.registry.total_tools, len(report.diagnostics),
	)
	logger.info("  Total descriptor size: %dK", report.source_bytes // KILOBYTE)
	logger.info("  Registry size: %dK", report.registry_bytes // KILOBYTE)
	logger.info("  Token savings: ~%d%%", report.savings_percent)
	return report
