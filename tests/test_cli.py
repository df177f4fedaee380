"""End-to-end tests for the Typer CLI, run offline against a temp store."""

import sys

import pytest
from loguru import logger
from typer.testing import CliRunner

from course_rag.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_logger():
    yield
    # The CLI points loguru at the runner's captured stderr; undo that.
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "embedding:\n"
        "  use_remote: false\n"
        "  batch_delay_seconds: 0\n"
        "store:\n"
        f"  path: {tmp_path / 'store.json'}\n"
        "logging:\n"
        "  level: WARNING\n"
        "  file: null\n",
        encoding="utf-8",
    )
    return str(path)


@pytest.fixture
def syllabus_file(tmp_path, syllabus_text):
    path = tmp_path / "cs101.txt"
    path.write_text(syllabus_text, encoding="utf-8")
    return str(path)


def _run(*args):
    return runner.invoke(app, list(args))


def test_index_then_stats(config_file, syllabus_file):
    indexed = _run("index", syllabus_file, "--config", config_file)

    assert indexed.exit_code == 0, indexed.output
    assert "[OK] cs101" in indexed.output

    stats = _run("stats", "--config", config_file)
    assert stats.exit_code == 0
    assert "Documents : 1" in stats.output


def test_index_with_explicit_id(config_file, syllabus_file):
    assert _run("index", syllabus_file, "--id", "ml-syllabus", "--config", config_file).exit_code == 0

    shown = _run("show", "ml-syllabus", "--config", config_file)

    assert shown.exit_code == 0
    assert '"source": "cs101.txt"' in shown.output
    assert '"contentType": "text/plain"' in shown.output


def test_index_short_file_fails(config_file, tmp_path):
    short = tmp_path / "note.txt"
    short.write_text("Too short.", encoding="utf-8")

    result = _run("index", str(short), "--config", config_file)

    assert result.exit_code == 1
    assert "Indexing failed" in result.output


def test_query_json(config_file, syllabus_file):
    _run("index", syllabus_file, "--config", config_file)

    result = _run("query", "final project", "--document", "cs101", "--top-k", "2", "--json", "--config", config_file)

    assert result.exit_code == 0
    assert '"documentId": "cs101"' in result.output
    assert result.output.count('"chunkId"') == 2


def test_query_empty_store(config_file):
    result = _run("query", "anything", "--config", config_file)

    assert result.exit_code == 0
    assert "No results." in result.output


def test_augment_prints_context(config_file, syllabus_file):
    _run("index", syllabus_file, "--config", config_file)

    result = _run(
        "augment", "Write a quiz.", "--query", "exam", "--document", "cs101", "--chunks", "1",
        "--config", config_file,
    )

    assert result.exit_code == 0
    assert "RELEVANT CONTEXT FROM DOCUMENT:" in result.output
    assert "[Context 1]:" in result.output


def test_topics(config_file, syllabus_file):
    _run("index", syllabus_file, "--config", config_file)

    result = _run("topics", "cs101", "--count", "3", "--config", config_file)

    assert result.exit_code == 0
    assert " 1. " in result.output


def test_show_missing_document(config_file):
    result = _run("show", "nope", "--config", config_file)

    assert result.exit_code == 1
    assert "not found" in result.output


def test_delete_and_clear(config_file, syllabus_file):
    _run("index", syllabus_file, "--config", config_file)

    deleted = _run("delete", "cs101", "--config", config_file)
    assert "Deleted cs101" in deleted.output
    assert "not found" in _run("delete", "cs101", "--config", config_file).output

    _run("index", syllabus_file, "--config", config_file)
    cleared = _run("clear", "--yes", "--config", config_file)
    assert cleared.exit_code == 0
    assert "Documents : 0" in _run("stats", "--config", config_file).output


def test_invalid_config_exits_with_usage_error(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("chunking:\n  overlap: -5\n", encoding="utf-8")

    result = _run("stats", "--config", str(bad))

    assert result.exit_code == 2
