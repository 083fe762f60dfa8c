"""matrix-chatgpt CLI."""

from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console

from matrix_chatgpt.constants import ENV_LOG_LEVEL
from matrix_chatgpt.errors import ConfigError, LoginError, SyncError

app = typer.Typer(help="matrix-chatgpt: answer Matrix room messages with a chat-completion model")
console = Console(stderr=True)


@app.command()
def version() -> None:
    """Show the current version of matrix-chatgpt."""
    from matrix_chatgpt import __version__

    console.print(f"matrix-chatgpt version: [bold]{__version__}[/bold]")


@app.command()
def run(
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Set the logging level (DEBUG, INFO, WARNING, ERROR) [default: $LOG_LEVEL or INFO]",
        case_sensitive=False,
    ),
    log_file: Path | None = typer.Option(  # noqa: B008
        None,
        "--log-file",
        help="Also append logs to this file",
    ),
) -> None:
    """Log in to Matrix and answer messages until interrupted.

    Credentials are read from the environment (or a .env file):
    MATRIX_USERNAME, MATRIX_PASSWORD and OPENAI_API_KEY are required,
    AUTHORIZED_USERS optionally restricts who the bot answers.
    """
    from matrix_chatgpt.bot import run as run_bot
    from matrix_chatgpt.config import Config
    from matrix_chatgpt.logging_config import setup_logging

    # LOG_LEVEL may come from .env, so it is read after loading it
    load_dotenv()
    setup_logging(level=(log_level or os.getenv(ENV_LOG_LEVEL) or "INFO").upper(), log_file=log_file)

    try:
        config = Config.from_env()
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(code=1) from e

    console.print(f"Starting matrix-chatgpt as [bold]{config.user_id}[/bold]. Press Ctrl+C to stop")
    try:
        asyncio.run(run_bot(config))
    except (LoginError, SyncError) as e:
        console.print(f"[red]Startup failed:[/red] {e}")
        raise typer.Exit(code=1) from e
    except KeyboardInterrupt:
        console.print("Stopped")


def main() -> None:
    """Main entry point that shows help by default."""
    if len(sys.argv) == 1:
        sys.argv.append("--help")

    app()


if __name__ == "__main__":
    main()
