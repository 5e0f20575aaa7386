"""Tests for CLI argument parsing and commands."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import make_descriptor, write_descriptor
from mcp_discovery.cli import build_generate_parser, build_parser, generate_main, main


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
	for var in ("SERVERS_DIR", "REGISTRY_DIR", "REGISTRY_FILE", "MCPO_PORT"):
		monkeypatch.delenv(var, raising=False)
	monkeypatch.chdir(tmp_path)


class TestArgParsing:
	def test_no_args_lists_servers(self) -> None:
		args = build_parser().parse_args([])
		assert args.server is None
		assert args.tool is None
		assert args.detail is None
		assert args.stats is False

	def test_detail_takes_two_values(self) -> None:
		args = build_parser().parse_args(["--detail", "git", "git_status"])
		assert args.detail == ["git", "git_status"]

	def test_modes_are_exclusive(self, capsys: pytest.CaptureFixture[str]) -> None:
		assert main(["--server", "git", "--stats"]) == 2
		err = capsys.readouterr().err
		assert err.startswith("Error: ")
		assert len(err.strip().splitlines()) == 1

	def test_unknown_option(self, capsys: pytest.CaptureFixture[str]) -> None:
		assert main(["--bogus"]) == 2
		captured = capsys.readouterr()
		assert captured.out == ""
		assert "Use --help" in captured.err

	def test_missing_detail_argument(self) -> None:
		assert main(["--detail", "git"]) == 2

	def test_generate_defaults(self) -> None:
		args = build_generate_parser().parse_args([])
		assert args.output is None
		assert args.workers is None

	def test_generate_positional_output(self) -> None:
		args = build_generate_parser().parse_args(["custom/registry.json", "--workers", "3"])
		assert args.output == "custom/registry.json"
		assert args.workers == 3


class TestQueryCommands:
	def test_list_servers(self, registry_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
		assert main(["--registry", str(registry_file)]) == 0
		out = capsys.readouterr().out
		assert "  fetch (1 tools, 1K)" in out
		assert "  git (3 tools, 10K)" in out
		assert out.index("fetch") < out.index("git (")

	def test_list_tools(self, registry_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
		assert main(["--registry", str(registry_file), "--server", "git"]) == 0
		out = capsys.readouterr().out
		assert "Tools for 'git' server:" in out
		assert "  git_status\n    Git Status" in out

	def test_list_tools_unknown_server(self, registry_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
		assert main(["--registry", str(registry_file), "--server", "nope"]) == 4
		captured = capsys.readouterr()
		assert captured.out == ""
		assert captured.err.strip() == "Error: Server not found: nope"

	def test_find_tool(self, registry_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
		assert main(["--registry", str(registry_file), "--tool", "git_status"]) == 0
		out = capsys.readouterr().out
		assert "  git/git_status\n    Git Status" in out

	def test_find_tool_no_results_is_success(self, registry_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
		assert main(["--registry", str(registry_file), "--tool", "nonexistent"]) == 0
		assert "No tools found matching: nonexistent" in capsys.readouterr().out

	def test_search(self, registry_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
		assert main(["--registry", str(registry_file), "--search", "STATUS"]) == 0
		assert "git/git_status" in capsys.readouterr().out

	def test_search_no_results(self, registry_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
		assert main(["--registry", str(registry_file), "--search", "kubernetes"]) == 0
		assert "No tools found containing: kubernetes" in capsys.readouterr().out

	def test_detail(self, registry_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
		assert main(["--registry", str(registry_file), "--detail", "git", "git_diff"]) == 0
		out = capsys.readouterr().out
		assert "Tool Details: git/git_diff" in out
		assert "Required Parameters:\n  - target\n  - repo_path" in out
		assert "Optional Parameters:\n  - context_lines" in out
		assert "  context_lines:\n    Type: integer\n" in out
		assert "    Title: Target" in out
		assert "POST http://localhost:8000/git/git_diff" in out

	def test_detail_no_optional_params(self, registry_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
		assert main(["--registry", str(registry_file), "--detail", "git", "git_status"]) == 0
		assert "Optional Parameters:\n  (none)" in capsys.readouterr().out

	def test_detail_uses_proxy_port(
		self, registry_file: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch,
	) -> None:
		monkeypatch.setenv("MCPO_PORT", "9100")
		assert main(["--registry", str(registry_file), "--detail", "fetch", "fetch"]) == 0
		assert "POST http://localhost:9100/fetch/fetch" in capsys.readouterr().out

	def test_detail_unknown_tool(self, registry_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
		assert main(["--registry", str(registry_file), "--detail", "git", "nonexistent"]) == 5
		captured = capsys.readouterr()
		assert captured.out == ""
		assert captured.err.strip() == "Error: Tool not found: git/nonexistent"

	def test_detail_unknown_server(self, registry_file: Path) -> None:
		assert main(["--registry", str(registry_file), "--detail", "nope", "git_status"]) == 4

	def test_stats(self, registry_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
		assert main(["--registry", str(registry_file), "--stats"]) == 0
		out = capsys.readouterr().out
		assert "Total Servers: 2" in out
		assert "Total Tools: 4" in out
		assert "  git: 3 tools" in out

	def test_missing_registry(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
		assert main(["--registry", str(tmp_path / "none.json")]) == 3
		assert capsys.readouterr().err.startswith("Error: Registry not found")

	def test_registry_from_env(
		self, registry_file: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch,
	) -> None:
		monkeypatch.setenv("REGISTRY_FILE", str(registry_file))
		assert main(["--stats"]) == 0
		assert "Total Tools: 4" in capsys.readouterr().out


class TestJsonOutput:
	def test_list_servers_json(self, registry_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
		assert main(["--registry", str(registry_file), "--json"]) == 0
		data = json.loads(capsys.readouterr().out)
		assert data["servers"] == [
			{"name": "fetch", "tool_count": 1, "size_display": "1K"},
			{"name": "git", "tool_count": 3, "size_display": "10K"},
		]

	def test_find_json_empty(self, registry_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
		assert main(["--registry", str(registry_file), "--json", "--tool", "missing"]) == 0
		assert json.loads(capsys.readouterr().out)["matches"] == []

	def test_detail_json(self, registry_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
		assert main(["--registry", str(registry_file), "--json", "--detail", "git", "git_diff"]) == 0
		data = json.loads(capsys.readouterr().out)
		assert data["endpoint"] == "git/git_diff"
		assert data["url"] == "http://localhost:8000/git/git_diff"
		assert data["params"]["context_lines"] == {"type": "integer"}

	def test_stats_json(self, registry_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
		assert main(["--registry", str(registry_file), "--json", "--stats"]) == 0
		data = json.loads(capsys.readouterr().out)
		assert data["total_tools"] == 4
		assert data["tools_by_server"] == [["fetch", 1], ["git", 3]]


class TestGenerateCommand:
	def test_generates_registry(self, servers_dir: Path, tmp_path: Path) -> None:
		output = tmp_path / "reg" / "registry.json"
		assert generate_main([str(output), "--servers-dir", str(servers_dir)]) == 0
		assert json.loads(output.read_text())["servers"]["git"]["tool_count"] == 3

	def test_uses_config_file(self, servers_dir: Path, tmp_path: Path) -> None:
		config = tmp_path / "mcp-discovery.toml"
		config.write_text(f'[registry]\nservers_dir = "{servers_dir.as_posix()}"\noutput = "built.json"\n')
		assert generate_main(["--config", str(config)]) == 0
		assert (tmp_path / "built.json").exists()

	def test_default_paths(self, servers_dir: Path, tmp_path: Path) -> None:
		assert servers_dir == tmp_path / "servers"
		assert generate_main([]) == 0
		assert (tmp_path / "registry" / "registry.json").exists()

	def test_skips_malformed_document(self, servers_dir: Path, tmp_path: Path) -> None:
		write_descriptor(servers_dir, "broken", "{ nope")
		output = tmp_path / "registry.json"
		assert generate_main([str(output), "--servers-dir", str(servers_dir)]) == 0
		assert set(json.loads(output.read_text())["servers"]) == {"fetch", "git"}

	def test_no_descriptors(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
		empty = tmp_path / "empty"
		empty.mkdir()
		output = tmp_path / "registry.json"
		assert generate_main([str(output), "--servers-dir", str(empty)]) == 6
		assert not output.exists()
		assert "No descriptor files" in capsys.readouterr().err

	def test_missing_servers_dir(self, tmp_path: Path) -> None:
		assert generate_main(["--servers-dir", str(tmp_path / "nope")]) == 6

	def test_invalid_workers(self, servers_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
		assert generate_main(["--servers-dir", str(servers_dir), "--workers", "0"]) == 1
		assert "workers" in capsys.readouterr().err

	def test_parallel_workers(self, servers_dir: Path, tmp_path: Path) -> None:
		for i in range(3):
			write_descriptor(servers_dir, f"extra{i}", make_descriptor({}))
		output = tmp_path / "registry.json"
		assert generate_main([str(output), "--servers-dir", str(servers_dir), "--workers", "4"]) == 0
		assert len(json.loads(output.read_text())["servers"]) == 5

	def test_missing_config(self, tmp_path: Path) -> None:
		assert generate_main(["--config", str(tmp_path / "nope.toml")]) == 1
