"""Tests for the command line interface."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from cie.cli import cli

RECORDS = """\
records:
  - id: r1
    title: Budget meeting
    body: Review the project budget with the client tomorrow.
    source: notes
    created_at: '2024-05-15T09:00:00'
  - id: r2
    title: Budget meeting
    body: Project budget numbers for the client meeting.
    source: notes
    created_at: '2024-05-15T08:00:00'
  - id: r3
    type: image
    title: Receipt
    ocr_text: Grocery store receipt
    source: camera
    created_at: '2024-05-12T18:30:00'
"""


@pytest.fixture
def runner(monkeypatch):
    monkeypatch.setenv("CIE_NLP_BACKEND", "heuristic")
    monkeypatch.setenv("CIE_LOG_LEVEL", "WARNING")
    monkeypatch.setenv("COLUMNS", "200")
    return CliRunner()


def _invoke(runner, *args):
    with runner.isolated_filesystem():
        Path("records.yaml").write_text(RECORDS)
        return runner.invoke(cli, list(args))


def test_init_writes_config_files(runner):
    with runner.isolated_filesystem():
        result = runner.invoke(cli, ["init", "--path", "conf"])
        assert result.exit_code == 0
        assert Path("conf/config.yaml").read_text().startswith("# NLP backend")
        assert "tag_hierarchy" in Path("conf/vocabulary.yaml").read_text()

        again = runner.invoke(cli, ["init", "--path", "conf"])
        assert again.exit_code == 0
        assert "skipped" in again.output


def test_analyze(runner):
    result = _invoke(runner, "analyze", "records.yaml")
    assert result.exit_code == 0, result.output
    assert "business" in result.output


def test_tags(runner):
    result = _invoke(runner, "tags", "records.yaml")
    assert result.exit_code == 0, result.output
    assert "budget" in result.output


def test_tasks_with_schedule(runner):
    result = _invoke(runner, "tasks", "records.yaml", "--schedule")
    assert result.exit_code == 0, result.output
    assert "Time-sensitive" in result.output
    assert "urgency" in result.output


def test_graph_with_insights(runner):
    result = _invoke(runner, "graph", "records.yaml", "--insights")
    assert result.exit_code == 0, result.output
    assert "3 node(s)" in result.output
    assert "From notes" in result.output


def test_search(runner):
    result = _invoke(runner, "search", "budget", "--path", "records.yaml")
    assert result.exit_code == 0, result.output
    assert "Search Results" in result.output


def test_search_rejects_bad_filters(runner):
    result = _invoke(runner, "search", "budget", "--path", "records.yaml", "--min-relevance", "2")
    assert result.exit_code == 1
    assert "min_relevance" in result.output


def test_suggest(runner):
    result = _invoke(runner, "suggest", "bud", "--path", "records.yaml")
    assert result.exit_code == 0, result.output
    assert "budget" in result.output


def test_missing_path(runner):
    result = _invoke(runner, "analyze", "missing.yaml")
    assert result.exit_code == 1
    assert "Path not found" in result.output


def test_config_option(runner):
    with runner.isolated_filesystem():
        Path("records.yaml").write_text(RECORDS)
        Path("custom.yaml").write_text("graph:\n  edge_threshold: 0.99\n")
        result = runner.invoke(cli, ["--config", "custom.yaml", "graph", "records.yaml"])
    assert result.exit_code == 0, result.output
    assert "0 connection(s)" in result.output
