"""Unit tests for the CLI."""

import json
import logging
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from schemadrift import __version__
from schemadrift.cli.main import main
from schemadrift.core.schema.registry import SchemaRegistry

AUTH = '{"service":"auth","level":"INFO","code":200}'
AUTH_DRIFTED = '{"service":"auth","level":"INFO","code":200.5}'


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logging.getLogger("schemadrift").handlers.clear()


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def store_arg(temp_dir):
    return f"local:{temp_dir / 'schemas'}"


@pytest.fixture
def record_file(temp_dir):
    def _write(text, name="record.json"):
        path = temp_dir / name
        path.write_text(text, encoding="utf-8")
        return str(path)

    return _write


def test_version(runner):
    result = runner.invoke(main, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_derive(runner, record_file):
    result = runner.invoke(main, ["derive", record_file(AUTH)])

    assert result.exit_code == 0
    assert result.output.strip() == '{"service":"string","level":"string","code":"integer"}'


def test_derive_from_stdin_malformed(runner):
    result = runner.invoke(main, ["derive", "-"], input="not json")

    assert result.exit_code == 0
    assert result.output.strip() == "{}"


def test_check_register_versions_flow(runner, record_file, store_arg):
    auth = record_file(AUTH)
    drifted = record_file(AUTH_DRIFTED, "drifted.json")

    result = runner.invoke(main, ["check", "auth-schema", auth, "--store", store_arg])
    assert result.exit_code == 0
    assert result.output.splitlines()[0] == "NO_PRIOR"

    result = runner.invoke(
        main, ["register", "auth-schema", auth, "--store", store_arg, "--registered-by", "ops"]
    )
    assert result.exit_code == 0
    assert "Registered version 1 for subject 'auth-schema'" in result.output

    result = runner.invoke(main, ["check", "auth-schema", drifted, "--store", store_arg])
    assert result.exit_code == 0
    assert result.output.splitlines()[0] == "DRIFT"
    assert "code:integer->double" in result.output

    result = runner.invoke(main, ["versions", "auth-schema", "--store", store_arg, "--json"])
    assert result.exit_code == 0
    versions = json.loads(result.output)
    assert [v["version"] for v in versions] == [1]
    assert versions[0]["registered_by"] == "ops"

    result = runner.invoke(main, ["subjects", "--store", store_arg])
    assert result.output.split() == ["auth-schema"]


def test_check_json_output(runner, record_file, store_arg):
    result = runner.invoke(
        main, ["check", "auth-schema", record_file(AUTH), "--store", store_arg, "--json"]
    )

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["status"] == "NO_PRIOR"
    assert payload["candidate"] == '{"service":"string","level":"string","code":"integer"}'


def test_versions_empty(runner, store_arg):
    result = runner.invoke(main, ["versions", "missing-schema", "--store", store_arg])

    assert result.exit_code == 0
    assert "No versions found for subject 'missing-schema'" in result.output


def test_process_jsonl(runner, record_file, store_arg):
    path = record_file(
        "\n".join([AUTH, AUTH, AUTH_DRIFTED, "", "not json at all"]) + "\n",
        "records.jsonl",
    )

    result = runner.invoke(
        main, ["process", path, "--store", store_arg, "--concurrency", "1"]
    )

    assert result.exit_code == 0
    rows = [
        json.loads(line)
        for line in result.output.splitlines()
        if line.startswith('{"subject"')
    ]
    assert [r["drift_status"] for r in rows] == ["NO_PRIOR", "MATCH", "DRIFT", "NO_PRIOR"]
    assert [r["schema_version"] for r in rows] == [1, 1, 2, 1]
    assert rows[3]["subject"] == "unknown-schema"
    assert "Records: 4" in result.output


def test_process_with_config_file(runner, record_file, temp_dir):
    config = temp_dir / "registry.yaml"
    config.write_text(
        "name: cli-test\n"
        f"store: \"local:{temp_dir / 'cfg-schemas'}\"\n"
        "registered_by: \"{{ var('owner') }}\"\n"
        "first_sighting: defer\n",
        encoding="utf-8",
    )

    result = runner.invoke(
        main,
        ["process", record_file(AUTH), "--config", str(config), "--vars", "owner=ops"],
    )

    assert result.exit_code == 0
    assert '"registered":false' in result.output
    assert "Run: cli-test" in result.output


def test_invalid_vars_format(runner, record_file, store_arg):
    result = runner.invoke(
        main, ["check", "s", record_file(AUTH), "--store", store_arg, "--vars", "novalue"]
    )

    assert result.exit_code == 1
    assert "Invalid variable format" in result.output


def test_invalid_store_config(runner, record_file):
    result = runner.invoke(main, ["register", "s", record_file(AUTH), "--store", "ftp:nowhere"])

    assert result.exit_code == 1
    assert "Unexpected error" in result.output


def test_subjects_external_requires_config(runner, store_arg):
    result = runner.invoke(main, ["subjects", "--store", store_arg, "--external"])

    assert result.exit_code == 1
    assert "no external registry configured" in result.output


@pytest.mark.parametrize(
    "args",
    [
        ["versions", "auth-schema"],
        ["subjects"],
        ["check", "auth-schema", "RECORD"],
        ["register", "auth-schema", "RECORD"],
        ["process", "RECORD"],
    ],
)
def test_commands_close_the_registry(runner, record_file, store_arg, args):
    record = record_file(AUTH)
    args = [record if a == "RECORD" else a for a in args] + ["--store", store_arg]

    with patch.object(SchemaRegistry, "close", autospec=True) as close:
        result = runner.invoke(main, args)

    assert result.exit_code == 0
    close.assert_called_once()


def test_failed_command_still_closes_the_registry(runner, store_arg):
    with patch.object(SchemaRegistry, "close", autospec=True) as close, patch.object(
        SchemaRegistry, "list_subjects", side_effect=RuntimeError("boom")
    ):
        result = runner.invoke(main, ["subjects", "--store", store_arg])

    assert result.exit_code == 1
    close.assert_called_once()
