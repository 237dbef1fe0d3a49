"""Tests for CLI commands: help, queue, counts, status, review, exam, config and serve."""

import json
import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

import yaml
from typer.testing import CliRunner

from prepigo.interface.cli import app

runner = CliRunner()


# --- Help ---


def test_cli_help():
    """Test that help text is displayed correctly."""
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "spaced-repetition scheduler" in result.stdout
    assert "queue" in result.stdout
    assert "review" in result.stdout
    assert "config" in result.stdout


# --- Queue ---


def test_queue_json(collection_file):
    result = runner.invoke(app, ["queue", "--collection", str(collection_file), "--json"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert [i["id"] for i in data["items"]] == ["b1", "b2", "b3"]
    assert data["new"] == 2
    assert data["review"] == 1
    # The far-off exam claims one new item a day, ahead of the rest
    assert data["items"][0]["exam"] == "Final"
    assert data["items"][1]["exam"] is None


def test_queue_text_output(collection_file):
    result = runner.invoke(app, ["queue", "bio-cell", "-c", str(collection_file), "--no-exams"])

    assert result.exit_code == 0, result.output
    assert "1 new" in result.stdout
    assert "c1" in result.stdout


def test_queue_unknown_container(collection_file):
    result = runner.invoke(app, ["queue", "nope", "-c", str(collection_file)])

    assert result.exit_code == 1
    assert "Container not found: nope" in result.output


def test_queue_bad_kind(collection_file):
    result = runner.invoke(app, ["queue", "-c", str(collection_file), "--kind", "folder"])
    assert result.exit_code == 1


def test_missing_collection(tmp_path):
    result = runner.invoke(app, ["queue", "-c", str(tmp_path / "absent.yaml")])

    assert result.exit_code == 1
    assert "not found" in result.output


def test_unsupported_collection_format(tmp_path):
    path = tmp_path / "collection.csv"
    path.write_text("id\n")

    result = runner.invoke(app, ["counts", "-c", str(path)])

    assert result.exit_code == 1
    assert "Unsupported collection format" in result.output


# --- Counts ---


def test_counts_text(collection_file):
    result = runner.invoke(app, ["counts", "-c", str(collection_file)])

    assert result.exit_code == 0, result.output
    assert "Biology: new 3, learn 0, due 1" in result.stdout
    assert "  Cells: new 1, learn 0, due 0" in result.stdout


def test_counts_json_for_banks(collection_file):
    result = runner.invoke(app, ["counts", "-c", str(collection_file), "--kind", "bank", "--json"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == [
        {"id": "qb", "name": "Questions", "new": 1, "learn": 0, "due": 0}
    ]


# --- Status / Review ---


def test_status_shows_settings_source(collection_file):
    result = runner.invoke(app, ["status", "c1", "-c", str(collection_file)])

    assert result.exit_code == 0, result.output
    assert "Status:    New" in result.stdout
    assert "sm2 (settings from Cells)" in result.stdout


def test_status_unknown_item(collection_file):
    result = runner.invoke(app, ["status", "zzz", "-c", str(collection_file)])
    assert result.exit_code == 1


def test_review_updates_collection(collection_file):
    result = runner.invoke(app, ["review", "b1", "3", "-c", str(collection_file)])

    assert result.exit_code == 0, result.output
    assert "b1: Good" in result.stdout

    raw = yaml.safe_load(collection_file.read_text())
    assert raw["decks"][0]["items"][0]["srs"]["fsrs"]["state"] == "learning"
    assert raw["introduced_today"]["ids"] == ["b1"]

    status = runner.invoke(app, ["status", "b1", "-c", str(collection_file)])
    assert "Status:    Learning" in status.stdout


def test_review_uses_container_scheduler(collection_file):
    result = runner.invoke(app, ["review", "c1", "4", "-c", str(collection_file)])

    assert result.exit_code == 0, result.output
    raw = yaml.safe_load(collection_file.read_text())
    sm2 = raw["decks"][0]["children"][0]["items"][0]["srs"]["sm2"]
    assert sm2["state"] == "review"
    assert sm2["interval"] == 4


def test_review_rejects_bad_rating(collection_file):
    result = runner.invoke(app, ["review", "b1", "7", "-c", str(collection_file)])

    assert result.exit_code == 1
    assert "Rating must be 1-4" in result.output


# --- Exams ---


def test_exam_progress(collection_file):
    result = runner.invoke(app, ["exam", "progress", "-c", str(collection_file)])

    assert result.exit_code == 0, result.output
    assert "Final: 0/5 (0%)" in result.stdout


def test_exam_plan(collection_file):
    result = runner.invoke(app, ["exam", "plan", "final", "-c", str(collection_file)])

    assert result.exit_code == 0, result.output
    # Five items spread one per day, empty days are not listed
    assert result.stdout.count(": 1 items") == 5


def test_exam_plan_unknown(collection_file):
    result = runner.invoke(app, ["exam", "plan", "midterm", "-c", str(collection_file)])
    assert result.exit_code == 1


# --- Config ---


@patch("prepigo.interface.cli.resolve_config")
def test_config_show_command(mock_resolve_config, tmp_path):
    """Test config show command displays JSON."""
    mock_config = MagicMock()
    mock_config.verbose = 1
    mock_config.log_dir = tmp_path / "logs"
    mock_config.model_dump.return_value = {
        "collection_path": Path("/tmp/collection.yaml"),
        "seed": None,
        "verbose": 1,
    }
    mock_resolve_config.return_value = mock_config

    result = runner.invoke(app, ["config", "show"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["collection_path"] == str(Path("/tmp/collection.yaml"))
    assert data["seed"] is None


def test_config_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("PREPIGO_SEED", "11")
    monkeypatch.setenv("PREPIGO_COLLECTION_PATH", str(tmp_path / "mine.yaml"))

    result = runner.invoke(app, ["config", "show"])

    data = json.loads(result.stdout)
    assert data["seed"] == 11
    assert data["collection_path"] == str((tmp_path / "mine.yaml").resolve())


# --- Server ---


@patch("uvicorn.run")
def test_serve_command(mock_run):
    result = runner.invoke(app, ["serve", "--port", "9000"])
    assert result.exit_code == 0
    mock_run.assert_called_with("prepigo.server:app", host="127.0.0.1", port=9000, reload=False)


# --- Logging ---


def test_verbosity_levels(collection_file, monkeypatch):
    prepigo_logger = logging.getLogger("prepigo")

    runner.invoke(app, ["counts", "-c", str(collection_file)])
    assert prepigo_logger.level == logging.INFO

    runner.invoke(app, ["-v", "counts", "-c", str(collection_file)])
    assert prepigo_logger.level == logging.DEBUG

    monkeypatch.setenv("PREPIGO_VERBOSE", "0")
    runner.invoke(app, ["counts", "-c", str(collection_file)])
    assert prepigo_logger.level == logging.WARNING


def test_debug_records_reach_log_file(collection_file, mock_home):
    result = runner.invoke(app, ["-v", "review", "b1", "3", "-c", str(collection_file)])
    assert result.exit_code == 0, result.output

    log_file = mock_home / ".config/prepigo/logs/prepigo.log"
    assert "Saved review of b1" in log_file.read_text()


def test_logs_command(mock_home):
    result = runner.invoke(app, ["logs"])

    assert result.exit_code == 0
    assert result.stdout.strip() == str(mock_home / ".config/prepigo/logs/prepigo.log")
