"""Tests for the cdnresolve command line."""

import json
from unittest.mock import patch

import pytest

from cdnresolve.cli import build_config, main, parse_args
from cdnresolve.constants import ExitCodes
from cdnresolve.errors import TransportError
from cdnresolve.prober import ENDING_VARIANTS

UNPKG = "https://unpkg.com"


@pytest.fixture
def react_cdn(transport):
    transport.add_json(f"{UNPKG}/react@latest/package.json", {"name": "react", "version": "18.2.0", "main": "index.js"})
    transport.add(f"{UNPKG}/react@18.2.0/index.js", "export default {};")
    return transport


def _run(transport, argv):
    with patch("cdnresolve.resolver.create_transport", return_value=transport):
        return main(argv)


class TestParseArgs:
    """Tests for argument parsing and config overrides."""

    def test_alias_pairs_and_overrides(self, tmp_path):
        """Repeated --alias flags and --cdn override the config file."""
        cfg = tmp_path / "build.yml"
        cfg.write_text("cdn: esm.sh\nalias:\n  a: b\n", encoding="utf-8")
        args = parse_args([
            "resolve", "react",
            "-c", str(cfg),
            "--cdn", "skypack",
            "--alias", "react=preact/compat",
            "--alias", "react-dom=preact/compat",
        ])
        config = build_config(args)
        assert config.origin == "https://cdn.skypack.dev/"
        assert config.alias == {"a": "b", "react": "preact/compat", "react-dom": "preact/compat"}
        assert config.polyfill is False

    def test_bad_alias_is_rejected(self):
        """--alias needs NAME=SPEC."""
        with pytest.raises(SystemExit):
            parse_args(["resolve", "react", "--alias", "react"])

    def test_package_json_flag(self, tmp_path):
        """--package-json replaces the root manifest."""
        pkg = tmp_path / "package.json"
        pkg.write_text('{"name": "app", "dependencies": {"react": "17.0.2"}}', encoding="utf-8")
        config = build_config(parse_args(["graph", "app", "--package-json", str(pkg), "--polyfill"]))
        assert config.root_manifest.dependencies == {"react": "17.0.2"}
        assert config.polyfill is True


class TestMain:
    """Tests for exit codes and output."""

    def test_resolve_prints_json(self, react_cdn, capsys, restore_logging):
        """Results are printed as JSON and the exit code is success."""
        code = _run(react_cdn, ["resolve", "react", "--loglevel", "ERROR"])
        out = json.loads(capsys.readouterr().out)
        assert code == ExitCodes.SUCCESS.value
        assert out["results"][0]["url"] == f"{UNPKG}/react@18.2.0/index.js"
        assert out["results"][0]["version"] == "18.2.0"

    def test_output_file(self, react_cdn, tmp_path, restore_logging):
        """-o writes the JSON to a file."""
        target = tmp_path / "out.json"
        code = _run(react_cdn, ["graph", "react", "-o", str(target), "--loglevel", "ERROR"])
        data = json.loads(target.read_text(encoding="utf-8"))
        assert code == ExitCodes.SUCCESS.value
        assert data["entries"] == {"react": f"{UNPKG}/react@18.2.0/index.js"}

    def test_unresolvable_exit_code(self, transport, capsys, restore_logging):
        """Resolution failures exit with RESOLUTION_ERROR."""
        code = _run(transport, ["resolve", "does-not-exist", "--loglevel", "CRITICAL"])
        out = json.loads(capsys.readouterr().out)
        assert code == ExitCodes.RESOLUTION_ERROR.value
        assert "does-not-exist" in out["results"][0]["error"]

    def test_connection_failure_exit_code(self, transport, capsys, restore_logging):
        """When only the network failed, the exit code says so."""
        base = "https://raw.githubusercontent.com/u/r"
        for suffix in ENDING_VARIANTS:
            transport.fail(base + suffix, TransportError("connection refused"))
        code = _run(transport, ["resolve", "github:u/r", "--loglevel", "CRITICAL"])
        capsys.readouterr()
        assert code == ExitCodes.CONNECTION_ERROR.value

    def test_warnings_exit_code(self, transport, capsys, restore_logging):
        """--error-on-warnings turns warnings into a non-zero exit."""
        transport.add(f"{UNPKG}/nomanifest@latest", "")
        argv = ["resolve", "nomanifest", "--loglevel", "CRITICAL"]
        assert _run(transport, argv) == ExitCodes.SUCCESS.value
        assert _run(transport, argv + ["--error-on-warnings"]) == ExitCodes.EXIT_WARNINGS.value
        capsys.readouterr()

    def test_invalid_config_exit_code(self, tmp_path, restore_logging):
        """A broken config file exits with FILE_ERROR."""
        cfg = tmp_path / "bad.yml"
        cfg.write_text("polyfill: maybe\n", encoding="utf-8")
        assert main(["resolve", "react", "-c", str(cfg), "--loglevel", "CRITICAL"]) == ExitCodes.FILE_ERROR.value
