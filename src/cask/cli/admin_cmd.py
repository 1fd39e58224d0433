"""Operational CLI commands.

Usage:
    cask init-db
    cask health
"""

from __future__ import annotations

import asyncio

import typer

from cask.cache.redis import close_redis, get_hash_cache
from cask.config import settings
from cask.persistence import db


def init_db() -> None:
    """Create the document table in the configured database."""

    async def runner() -> None:
        try:
            await db.init_db()
        finally:
            await db.close_db()

    if not settings.database_url:
        typer.echo("No database configured (DATABASE_URL is empty)", err=True)
        raise typer.Exit(code=1)
    asyncio.run(runner())
    typer.echo("Database initialized")


def health() -> None:
    """Check Redis and database connectivity."""
    from rich.console import Console

    console = Console()

    async def runner() -> tuple[bool, bool | None]:
        try:
            redis_ok = await get_hash_cache().health_check()
            db_ok = await db.health_check() if settings.database_url else None
            return redis_ok, db_ok
        finally:
            await close_redis()
            await db.close_db()

    redis_ok, db_ok = asyncio.run(runner())

    console.print(f"Redis:    {'[green]ok[/green]' if redis_ok else '[red]unreachable[/red]'}")
    if db_ok is None:
        console.print("Database: [yellow]not configured (fallback map)[/yellow]")
    else:
        console.print(f"Database: {'[green]ok[/green]' if db_ok else '[red]unreachable[/red]'}")

    if not redis_ok or db_ok is False:
        raise typer.Exit(code=1)
