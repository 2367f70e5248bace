"""Command line entry point: list gateway models and smoke-test them."""

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table
from structlog import get_logger

from nexos_compat._version import __version__
from nexos_compat.client import create_nexos_client
from nexos_compat.config.settings import Settings, get_settings
from nexos_compat.core.errors import ConfigurationError, ModelListError
from nexos_compat.core.logging import setup_logging

from .checks import (
    ModelCheckResult,
    check_model,
    fetch_models,
    filter_checkable_models,
    render_markdown,
)


app = typer.Typer(
    name="nexos-compat",
    help="Inspect and smoke-test models behind the nexos.ai gateway",
    rich_markup_mode="rich",
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)

console = Console()
logger = get_logger(__name__)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"nexos-compat {__version__}")
        raise typer.Exit()


def _load_settings() -> Settings:
    try:
        settings = get_settings()
    except ConfigurationError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1) from e
    if settings.api_key is None:
        console.print("[bold red]Error:[/bold red] NEXOS_API_KEY environment variable is not set")
        raise typer.Exit(1)
    return settings


@app.callback()
def app_main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """nexos.ai compatibility tooling."""
    try:
        logging_settings = get_settings().logging
        setup_logging(
            json_logs=logging_settings.json_logs,
            log_level_name=logging_settings.level,
        )
    except ConfigurationError:
        setup_logging()


async def _list_models(settings: Settings) -> list[str]:
    async with create_nexos_client(settings) as client:
        return await fetch_models(client)


@app.command()
def models() -> None:
    """List the models available through the gateway."""
    settings = _load_settings()
    try:
        model_ids = asyncio.run(_list_models(settings))
    except ModelListError as e:
        console.print(f"[bold red]{e}[/bold red]")
        if e.body:
            console.print(e.body)
        raise typer.Exit(1) from e

    if not model_ids:
        console.print("No models found.")
        return

    table = Table(title=f"Available models ({len(model_ids)})")
    table.add_column("Model", style="cyan")
    for model_id in model_ids:
        table.add_row(model_id)
    console.print(table)


async def _run_checks(
    settings: Settings, selected: list[str], stream: bool
) -> list[ModelCheckResult]:
    async with create_nexos_client(settings) as client:
        if not selected:
            selected = filter_checkable_models(await fetch_models(client))
            console.print(f"Found {len(selected)} models to check")

        results = []
        for model in selected:
            with console.status(f"Testing {model}"):
                result = await check_model(client, model, stream=stream)
            console.print(
                f"{model:<40} simple: {'✅' if result.simple.ok else '❌'}  "
                f"tools: {'✅' if result.tools.ok else '❌'}"
            )
            results.append(result)
        return results


@app.command()
def check(
    model: Annotated[
        list[str] | None,
        typer.Option("--model", "-m", help="Model id to check (repeatable); default: all"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write a Markdown report to this file"),
    ] = None,
    stream: Annotated[
        bool, typer.Option("--stream", help="Use streaming chat completions")
    ] = False,
) -> None:
    """Run a simple prompt and a tool-calling prompt against each model."""
    settings = _load_settings()
    try:
        results = asyncio.run(_run_checks(settings, list(model or []), stream))
    except ModelListError as e:
        console.print(f"[bold red]{e}[/bold red]")
        raise typer.Exit(1) from e

    table = Table(title="Summary")
    table.add_column("Test")
    table.add_column("Working", justify="right")
    table.add_column("Total", justify="right")
    table.add_row("Simple prompts", str(sum(r.simple.ok for r in results)), str(len(results)))
    table.add_row("Tool calling", str(sum(r.tools.ok for r in results)), str(len(results)))
    console.print(table)

    if output is not None:
        output.write_text(render_markdown(results), encoding="utf-8")
        console.print(f"Results saved to {output}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
