"""Tests for the hookstate command-line interface.

This module tests:
- Global options and store selection
- Value parsing and JSON output
- Counter and list commands
- Namespaces
- Error reporting
"""

import json

import yaml
from click.testing import CliRunner

from hookstate.cli import cli
from hookstate.state import PersistentState


class TestCLIEntryPoint:
    """Test the main CLI entry point."""

    def test_cli_help_flag(self):
        result = CliRunner().invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "Inspect and edit persistent hook state" in result.output
        assert "Commands:" in result.output

    def test_cli_version_flag(self):
        result = CliRunner().invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "hookstate version" in result.output

    def test_missing_path_is_reported(self):
        result = CliRunner().invoke(cli, ["--storage", "sqlite", "keys"])

        assert result.exit_code == 1
        assert "Error opening state store" in result.output

    def test_config_file(self, tmp_path):
        store = tmp_path / "state.json"
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({"storage": "file", "path": str(store)}))

        result = CliRunner().invoke(cli, ["--config", str(config_file), "set", "a", "1"])

        assert result.exit_code == 0
        assert json.loads(store.read_text())["a"]["value"] == 1

    def test_environment(self, tmp_path):
        store = tmp_path / "state.json"
        env = {"HOOKSTATE_STORAGE": "file", "HOOKSTATE_PATH": str(store)}

        result = CliRunner().invoke(cli, ["incr", "hits"], env=env)

        assert result.exit_code == 0
        assert json.loads(store.read_text())["hits"]["value"] == 1


class TestValueCommands:
    """get/set/delete/keys."""

    def test_set_and_get(self, cli_runner):
        assert cli_runner.invoke(["set", "config", '{"retries": 3}']).exit_code == 0

        result = cli_runner.invoke(["get", "config"])

        assert result.exit_code == 0
        assert json.loads(result.output) == {"retries": 3}

    def test_set_keeps_json_types(self, cli_runner, store_path):
        cli_runner.invoke(["set", "count", "42"])
        cli_runner.invoke(["set", "flag", "true"])
        cli_runner.invoke(["set", "name", "alice"])
        cli_runner.invoke(["set", "text", "42", "--string"])

        with PersistentState(storage="sqlite", path=store_path) as state:
            assert state.get("count") == 42
            assert state.get("flag") is True
            assert state.get("name") == "alice"
            assert state.get("text") == "42"

    def test_get_pretty(self, cli_runner):
        cli_runner.invoke(["set", "config", '{"a": 1}'])

        result = cli_runner.invoke(["get", "config", "--pretty"])

        assert result.exit_code == 0
        assert '  "a": 1' in result.output

    def test_get_missing_key(self, cli_runner):
        result = cli_runner.invoke(["get", "missing"])

        assert result.exit_code == 1
        assert "Key not found: missing" in result.output

    def test_delete(self, cli_runner):
        cli_runner.invoke(["set", "key", "1"])

        assert cli_runner.invoke(["delete", "key"]).exit_code == 0
        assert cli_runner.invoke(["get", "key"]).exit_code == 1

    def test_delete_missing_key_succeeds(self, cli_runner):
        assert cli_runner.invoke(["delete", "missing"]).exit_code == 0

    def test_keys(self, cli_runner):
        cli_runner.invoke(["set", "b", "1"])
        cli_runner.invoke(["set", "a", "2"])
        cli_runner.invoke(["--namespace", "session-1", "set", "c", "3"])

        result = cli_runner.invoke(["keys"])

        assert result.exit_code == 0
        assert result.output.splitlines() == ["a", "b"]


class TestCounterAndListCommands:
    """incr/decr/append/prepend."""

    def test_incr_three_times(self, cli_runner):
        for _ in range(3):
            result = cli_runner.invoke(["incr", "counter"])

        assert result.output.strip() == "3"

    def test_incr_by_and_decr(self, cli_runner):
        cli_runner.invoke(["incr", "counter", "--by", "10"])

        result = cli_runner.invoke(["decr", "counter", "--by", "4"])

        assert result.output.strip() == "6"

    def test_append_and_prepend(self, cli_runner):
        cli_runner.invoke(["append", "items", "first"])
        cli_runner.invoke(["append", "items", "second"])

        result = cli_runner.invoke(["prepend", "items", "zeroth"])

        assert result.exit_code == 0
        assert json.loads(result.output) == ["zeroth", "first", "second"]

    def test_type_mismatch_reported(self, cli_runner):
        cli_runner.invoke(["set", "name", "alice"])

        result = cli_runner.invoke(["incr", "name"])

        assert result.exit_code == 1
        assert "Error:" in result.output
        assert cli_runner.invoke(["get", "name"]).output.strip() == '"alice"'

    def test_reserved_key_reported(self, cli_runner):
        result = cli_runner.invoke(["set", "a:b", "1"])

        assert result.exit_code == 1
        assert "Error:" in result.output


class TestNamespaceOption:
    """--namespace scopes every command."""

    def test_namespaced_values(self, cli_runner, store_path):
        cli_runner.invoke(["-n", "session-1", "incr", "turns"])
        cli_runner.invoke(["-n", "session-2", "incr", "turns", "--by", "5"])

        with PersistentState(storage="sqlite", path=store_path) as state:
            assert state.namespace("session-1").get("turns") == 1
            assert state.namespace("session-2").get("turns") == 5
            assert state.get("turns") is None

    def test_clear_namespace(self, cli_runner):
        cli_runner.invoke(["set", "global", "1"])
        cli_runner.invoke(["-n", "session-1", "set", "local", "2"])

        result = cli_runner.invoke(["-n", "session-1", "clear", "--yes"])

        assert result.exit_code == 0
        assert "Cleared namespace 'session-1'" in result.output
        assert cli_runner.invoke(["keys"]).output.splitlines() == ["global"]
        assert cli_runner.invoke(["-n", "session-1", "keys"]).output == ""


class TestClearCommand:
    """clear asks before removing data."""

    def test_clear_cancelled(self, cli_runner):
        cli_runner.invoke(["set", "key", "1"])

        result = cli_runner.invoke(["clear"], input="n\n")

        assert "Cancelled" in result.output
        assert cli_runner.invoke(["keys"]).output.splitlines() == ["key"]

    def test_clear_confirmed(self, cli_runner):
        cli_runner.invoke(["set", "key", "1"])

        result = cli_runner.invoke(["clear"], input="y\n")

        assert result.exit_code == 0
        assert "Cleared the whole store" in result.output
        assert cli_runner.invoke(["keys"]).output == ""


class TestInspectionCommands:
    """dump and stats."""

    def test_dump_json(self, cli_runner):
        cli_runner.invoke(["set", "a", "1"])
        cli_runner.invoke(["append", "log", "[brackets]", "--string"])

        result = cli_runner.invoke(["dump", "--json"])

        assert result.exit_code == 0
        assert json.loads(result.output) == {"a": 1, "log": ["[brackets]"]}

    def test_dump_table(self, cli_runner):
        cli_runner.invoke(["set", "greeting", "hello"])
        cli_runner.invoke(["append", "log", "[brackets]", "--string"])

        result = cli_runner.invoke(["--no-color", "dump"])

        assert result.exit_code == 0
        assert "greeting" in result.output
        assert '"hello"' in result.output
        assert "[brackets]" in result.output

    def test_dump_empty(self, cli_runner):
        result = cli_runner.invoke(["dump"])

        assert result.exit_code == 0
        assert "No keys" in result.output

    def test_stats(self, cli_runner):
        cli_runner.invoke(["set", "a", "1"])
        cli_runner.invoke(["-n", "session-1", "set", "b", "2"])

        result = cli_runner.invoke(["--no-color", "stats"])

        assert result.exit_code == 0
        assert "SQLiteBackend" in result.output
        assert "<root>" in result.output
