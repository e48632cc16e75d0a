"""
Command-line entry point for the PaperMind reading assistant.
"""

from __future__ import annotations

import asyncio
import signal
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path

import typer
from pydantic import TypeAdapter, ValidationError

from papermind.config import Configuration
from papermind.llm.exceptions import ConfigError, TransportError
from papermind.logging_utils import get_logger, setup_logging
from papermind.prompts import ReadingNote
from papermind.service import AIService

EXIT_CANCELLED = 130

app = typer.Typer(
    name="papermind",
    help="Stream paper explanations and reading reports from a chat-completion API.",
    add_completion=False,
)

logger = get_logger(__name__)

CONFIG_OPTION = typer.Option(None, "--config", help="Path to a YAML config file")


def _print_delta(text: str, _full_text: str) -> None:
    typer.echo(text, nl=False)


async def _run_cancellable(operation: Callable[[], Awaitable[str]]) -> str:
    """Run an operation, cancelling it on SIGINT/SIGTERM."""
    task = asyncio.create_task(operation())

    def signal_handler() -> None:
        logger.info("Received shutdown signal, cancelling stream...")
        task.cancel()

    if sys.platform != "win32":
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, signal_handler)

    try:
        return await task
    finally:
        if sys.platform != "win32":
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.remove_signal_handler(sig)


def _stream(config_path: Path | None, call: Callable[[AIService], Awaitable[str]]) -> None:
    config = Configuration(str(config_path) if config_path else None)
    setup_logging(config.get_logging_config().get("level", "WARNING"))

    async def operation() -> str:
        async with AIService.from_config(config) as service:
            return await call(service)

    try:
        asyncio.run(_run_cancellable(operation))
    except (ConfigError, TransportError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    except asyncio.CancelledError:
        typer.echo("\nCancelled", err=True)
        raise typer.Exit(code=EXIT_CANCELLED) from None

    typer.echo()


@app.command("explain")
def explain(
    context_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Paper text"),
    selection: str = typer.Option(..., "--selection", "-s", help="Highlighted text"),
    config_path: Path | None = CONFIG_OPTION,
) -> None:
    """Explain a highlighted selection in the context of the paper."""
    context = context_file.read_text(encoding="utf-8")
    _stream(
        config_path,
        lambda service: service.get_explanation(context, selection, _print_delta),
    )


@app.command("report")
def report(
    context_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Paper text"),
    notes_file: Path = typer.Argument(
        ..., exists=True, dir_okay=False, help="JSON list of notes"
    ),
    config_path: Path | None = CONFIG_OPTION,
) -> None:
    """Generate a reading report from highlighted notes."""
    context = context_file.read_text(encoding="utf-8")
    try:
        notes = TypeAdapter(list[ReadingNote]).validate_json(
            notes_file.read_bytes()
        )
    except ValidationError as e:
        typer.echo(f"Error: invalid notes file: {e}", err=True)
        raise typer.Exit(code=2) from e

    _stream(
        config_path,
        lambda service: service.generate_report(context, notes, _print_delta),
    )


if __name__ == "__main__":
    app()
