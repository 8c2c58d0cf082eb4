"""Smoke tests for the CLI entrypoint."""

import json
import os
from pathlib import Path
from typing import Any

from click.testing import CliRunner

from studyshelf.cli import cli


def _env_with_home(tmp_path: Path) -> dict[str, Any]:
    env = dict(os.environ)
    env["HOME"] = str(tmp_path)
    return env


def _ids_by_name(runner: CliRunner, env: dict[str, Any], query: str = "") -> dict[str, str]:
    result = runner.invoke(cli, ["find", query, "--json"], env=env)
    assert result.exit_code == 0, result.output
    return {item["name"]: item["id"] for item in json.loads(result.output)["items"]}


def test_cli_help_displays_commands() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "StudyShelf keeps your study PDFs" in result.output
    for command in ("ls", "mkdir", "import", "study", "progress", "config"):
        assert command in result.output


def test_ls_shows_seeded_folder(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    result = runner.invoke(cli, ["ls", "--json"], env=env)

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["path"] == []
    assert [item["name"] for item in payload["items"]] == ["Documents"]
    assert (tmp_path / ".studyshelf" / "library" / "items.json").exists()


def test_document_workflow(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    source = tmp_path / "paper.pdf"
    source.write_bytes(b"%PDF-1.7 sample")

    documents = _ids_by_name(runner, env)["Documents"]

    result = runner.invoke(cli, ["import", str(source), "--parent", documents[:8]], env=env)
    assert result.exit_code == 0, result.output
    assert "Imported paper.pdf" in result.output

    paper = _ids_by_name(runner, env, "paper")["paper.pdf"]

    result = runner.invoke(cli, ["path", paper], env=env)
    assert result.output.strip() == "Home / Documents / paper.pdf"

    output = tmp_path / "copy.pdf"
    result = runner.invoke(cli, ["open", paper, "--output", str(output)], env=env)
    assert result.exit_code == 0, result.output
    assert output.read_bytes() == b"%PDF-1.7 sample"

    result = runner.invoke(cli, ["rename", paper, "Reading"], env=env)
    assert "Renamed to Reading.pdf" in result.output

    result = runner.invoke(cli, ["study", paper, "30"], env=env)
    assert result.exit_code == 0, result.output
    assert "10%" in result.output

    result = runner.invoke(cli, ["progress", "--json"], env=env)
    (entry,) = json.loads(result.output)["progress"]
    assert entry["item"]["name"] == "Reading.pdf"
    assert entry["record"]["total_time_spent"] == 30


def test_quiet_suppresses_messages(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    result = runner.invoke(cli, ["--quiet", "mkdir", "--name", "Silent"], env=env)

    assert result.exit_code == 0
    assert result.output == ""
    assert "Silent" in _ids_by_name(runner, env)


def test_rm_orphans_children_and_doctor_reports_them(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    documents = _ids_by_name(runner, env)["Documents"]

    runner.invoke(cli, ["new", "note", "--name", "Todo", "--parent", documents], env=env)
    result = runner.invoke(cli, ["rm", documents, "--json"], env=env)
    assert result.exit_code == 0, result.output
    assert [item["name"] for item in json.loads(result.output)["removed"]] == ["Documents"]

    result = runner.invoke(cli, ["doctor"], env=env)
    assert "1 problem(s) found" in result.output
    assert "orphaned" in result.output
    assert "Todo.notes" in _ids_by_name(runner, env)


def test_mv_into_folder(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    documents = _ids_by_name(runner, env)["Documents"]
    runner.invoke(cli, ["new", "whiteboard", "--name", "Sketch"], env=env)
    sketch = _ids_by_name(runner, env)["Sketch.whiteboard"]

    result = runner.invoke(cli, ["mv", sketch, documents], env=env)

    assert result.exit_code == 0, result.output
    result = runner.invoke(cli, ["ls", documents, "--json"], env=env)
    assert [item["name"] for item in json.loads(result.output)["items"]] == ["Sketch.whiteboard"]

    result = runner.invoke(cli, ["mv", documents, sketch], env=env)
    assert result.exit_code != 0
    assert "not a folder" in result.output


def test_unknown_item_reports_error(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    result = runner.invoke(cli, ["path", "ZZZZ"], env=env)

    assert result.exit_code != 0
    assert "No item matches 'ZZZZ'" in result.output


def test_open_folder_reports_unavailable_json(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    documents = _ids_by_name(runner, env)["Documents"]

    result = runner.invoke(cli, ["open", documents, "--json"], env=env)

    assert result.exit_code == 1
    payload = json.loads(result.output)
    assert payload["error"]["code"] == "unavailable"
