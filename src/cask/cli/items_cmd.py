"""CLI commands for reading and writing container fields.

Usage:
    cask get profile.name --selector '{"user": "42"}'
    cask set profile '{"name": "Ada"}' --selector '{"user": "42"}'
    cask delete profile --selector '{"user": "42"}'
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import orjson
import typer

from cask.cache.reachability import ReachabilityMonitor
from cask.cache.redis import close_redis, get_hash_cache
from cask.container import CaskContainer
from cask.errors import CaskError
from cask.persistence.db import close_db
from cask.persistence.documents import get_document_store

T = TypeVar("T")

SELECTOR_HELP = "JSON object identifying the container document"


def parse_selector(raw: str) -> dict[str, Any]:
    try:
        selector = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise typer.BadParameter(f"selector is not valid JSON: {e}") from e
    if not isinstance(selector, dict):
        raise typer.BadParameter("selector must be a JSON object")
    return selector


def parse_value(raw: str) -> Any:
    """Parse VALUE as JSON, falling back to the raw string."""
    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError:
        return raw


async def open_container(selector: dict[str, Any]) -> CaskContainer:
    """Build a container on the configured Redis and document store."""
    cache = get_hash_cache()
    await ReachabilityMonitor(cache.client, cache.reachability).probe()
    return CaskContainer(selector, get_document_store, cache=cache)


def _run(selector: dict[str, Any], operation: Callable[[CaskContainer], Awaitable[T]]) -> T:
    async def runner() -> T:
        try:
            container = await open_container(selector)
            return await operation(container)
        finally:
            await close_redis()
            await close_db()

    try:
        return asyncio.run(runner())
    except CaskError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


def get(
    key: str = typer.Argument(..., help="Dotted field path to read"),
    selector: str = typer.Option(..., "--selector", "-s", help=SELECTOR_HELP),
) -> None:
    """Print the value stored under KEY as JSON."""
    value = _run(parse_selector(selector), lambda container: container.get_item(key))
    typer.echo(orjson.dumps(value, option=orjson.OPT_INDENT_2).decode())


def set_(
    key: str = typer.Argument(..., help="Dotted field path to write"),
    value: str = typer.Argument(..., help="JSON value (plain text is stored as a string)"),
    selector: str = typer.Option(..., "--selector", "-s", help=SELECTOR_HELP),
) -> None:
    """Store VALUE under KEY in the cache and the durable store."""
    parsed = parse_value(value)
    _run(parse_selector(selector), lambda container: container.set_item(key, parsed))
    typer.echo(f"Stored {key}")


def delete(
    key: str = typer.Argument(..., help="Dotted field path to delete"),
    selector: str = typer.Option(..., "--selector", "-s", help=SELECTOR_HELP),
) -> None:
    """Delete KEY and everything beneath it."""
    _run(parse_selector(selector), lambda container: container.delete_item(key))
    typer.echo(f"Deleted {key}")
