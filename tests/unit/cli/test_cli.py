"""Tests for the Cask CLI."""

from __future__ import annotations

import logging

import orjson
import pytest
from typer.testing import CliRunner

from cask.cli import app
from cask.cli import items_cmd
from cask.container import CaskContainer

runner = CliRunner()

SELECTOR = '{"user": "42"}'


@pytest.fixture(autouse=True)
def restore_root_logging():
    """The CLI callback reconfigures the root logger; undo it after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def cli_container(
    monkeypatch: pytest.MonkeyPatch, hash_cache, document_store
) -> dict[bytes, CaskContainer]:
    """Route CLI commands to one container over the in-memory fakes."""
    containers: dict[bytes, CaskContainer] = {}

    async def open_container(selector: dict) -> CaskContainer:
        key = orjson.dumps(selector, option=orjson.OPT_SORT_KEYS)
        if key not in containers:
            containers[key] = CaskContainer(selector, lambda: document_store, cache=hash_cache)
        return containers[key]

    monkeypatch.setattr(items_cmd, "open_container", open_container)
    return containers


class TestParsing:
    """Tests for argument parsing helpers."""

    def test_parse_value_json(self) -> None:
        assert items_cmd.parse_value('{"a": 1}') == {"a": 1}
        assert items_cmd.parse_value("5") == 5

    def test_parse_value_plain_text(self) -> None:
        assert items_cmd.parse_value("hello world") == "hello world"


class TestItemCommands:
    """Tests for get/set/delete."""

    def test_help(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "get" in result.output
        assert "set" in result.output

    def test_set_then_get(self, cli_container) -> None:
        result = runner.invoke(app, ["set", "profile", '{"name": "Ada"}', "-s", SELECTOR])
        assert result.exit_code == 0, result.output
        assert "Stored profile" in result.output

        result = runner.invoke(app, ["get", "profile.name", "--selector", SELECTOR])
        assert result.exit_code == 0, result.output
        assert orjson.loads(result.output) == "Ada"

    def test_delete(self, cli_container) -> None:
        runner.invoke(app, ["set", "k", "1", "-s", SELECTOR])

        result = runner.invoke(app, ["delete", "k", "-s", SELECTOR])
        assert result.exit_code == 0, result.output

        result = runner.invoke(app, ["get", "k", "-s", SELECTOR])
        assert orjson.loads(result.output) is None

    def test_invalid_selector(self, cli_container) -> None:
        result = runner.invoke(app, ["get", "k", "-s", "not json"])
        assert result.exit_code != 0

    def test_selector_must_be_object(self, cli_container) -> None:
        result = runner.invoke(app, ["get", "k", "-s", "[1, 2]"])
        assert result.exit_code != 0
