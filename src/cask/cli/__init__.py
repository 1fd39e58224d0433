"""CLI commands for Cask.

Provides command-line access to containers using Typer:
- cask get / set / delete: Read and write container fields
- cask init-db: Create the document table
- cask health: Check Redis and database connectivity

Usage:
    cask --help
    cask set profile '{"name": "Ada"}' --selector '{"user": "42"}'
    cask get profile.name --selector '{"user": "42"}'
"""

import typer

from cask.cli.admin_cmd import health, init_db
from cask.cli.items_cmd import delete, get, set_
from cask.config import settings
from cask.observability.logging import configure_logging

app = typer.Typer(
    name="cask",
    help="Cask: write-through caching containers over Redis and a document store",
    no_args_is_help=True,
)

app.command("get")(get)
app.command("set")(set_)
app.command("delete")(delete)
app.command("init-db")(init_db)
app.command("health")(health)


@app.callback()
def callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Cask: write-through caching containers over Redis and a document store."""
    configure_logging(
        json_format=settings.log_json,
        level="DEBUG" if verbose else settings.log_level,
    )


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
