"""
CLI interface for Clip Insight.

Provides command-line access to classification, grouping and the
prompt library.
"""

import logging
import sys
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from clip_insight.config.loader import AssistantSettings, load_settings
from clip_insight.core.classifier import classify_locally
from clip_insight.core.models import ClassificationResult
from clip_insight.sdk.assistant import ClipAssistant
from clip_insight.storage.repository import initialize_schema

app = typer.Typer()
prompts_app = typer.Typer(help="Manage the reusable prompt library.")
app.add_typer(prompts_app, name="prompts")
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

_state = {"config": None}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _settings() -> AssistantSettings:
    return load_settings(_state["config"])


def _build_assistant() -> ClipAssistant:
    """Build the assistant from settings. Patched in tests."""
    return ClipAssistant.from_settings(_settings())


def _fail(message: str) -> None:
    console.print(f"[red]Error:[/] {message}")
    sys.exit(EXIT_CODE_FAIL)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML settings file"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging"
    ),
):
    """Clip Insight CLI."""
    _configure_logging(verbose)
    _state["config"] = config
    if ctx.invoked_subcommand is None:
        console.print("Clip Insight - Use --help to see available commands")


@app.command()
def init():
    """Initialize the Clip Insight database."""
    try:
        settings = _settings()
        initialize_schema(settings.db_path)
        console.print(f"[green]✓[/] Database initialized at {settings.db_path}")
    except Exception as e:
        _fail(f"initializing database: {e}")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def classify(
    text: str = typer.Argument(..., help="Clipping content, or '-' to read stdin"),
    remote: bool = typer.Option(
        False,
        "--remote",
        "-r",
        help="Also ask the remote model for a category and summary"
    ),
):
    """Classify a clipping locally, optionally via the remote model."""
    if text == "-":
        text = sys.stdin.read()

    category = classify_locally(text)
    console.print(f"Local: {category.emoji} [bold]{category.display_name}[/bold]")
    if not remote:
        sys.exit(EXIT_CODE_PASS)

    try:
        with _build_assistant() as assistant:
            result = _remote_or_explain(assistant, assistant.classify_with_llm, text)
    except Exception as e:
        _fail(str(e))

    if result is None:
        sys.exit(EXIT_CODE_FAIL)
    if not result.success:
        _fail(result.error_message)
    console.print(f"Remote: {result.category.emoji} [bold]{result.category.display_name}[/bold]")
    if result.summary:
        console.print(f"Summary: {result.summary}")
    console.print(f"[dim]{result.latency:.2f}s, ${result.estimated_cost:.6f}[/dim]")
    sys.exit(EXIT_CODE_PASS)


@app.command("test-connection")
def test_connection():
    """Send a trivial request to check the API key and endpoint."""
    try:
        with _build_assistant() as assistant:
            result = _remote_or_explain(assistant, assistant.test_connection)
    except Exception as e:
        _fail(str(e))

    if result is None:
        sys.exit(EXIT_CODE_FAIL)
    if not result.success:
        _fail(result.error_message)
    console.print(f"[green]✓[/] Connection OK ({result.latency:.2f}s)")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def stats():
    """Show request, error and cost counters."""
    try:
        with _build_assistant() as assistant:
            usage = assistant.stats()
            configured = assistant.is_configured
    except Exception as e:
        _fail(str(e))

    table = Table(title="Usage")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("API key configured", "yes" if configured else "no")
    table.add_row("Requests today", str(usage.requests_today))
    table.add_row("Requests this month", str(usage.requests_this_month))
    table.add_row("Errors today", str(usage.errors_today))
    table.add_row("Cost this month", _format_currency(usage.cost_this_month))
    table.add_row(
        "Last request",
        usage.last_request_time.strftime("%Y-%m-%d %H:%M:%S") if usage.last_request_time else "-",
    )
    table.add_row("Last error", usage.last_error or "-")
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def group(
    clippings: List[str] = typer.Argument(..., help="Clippings to group"),
):
    """Ask the remote model to group clippings."""
    try:
        with _build_assistant() as assistant:
            outcome = assistant.suggest_groups(clippings).result()
    except Exception as e:
        _fail(str(e))

    if not outcome.success:
        _fail(outcome.error_message)

    table = Table(title="Suggested groups")
    table.add_column("Group")
    table.add_column("Clippings")
    for suggestion in outcome.groups:
        table.add_row(
            suggestion.label,
            "\n".join(_preview(clippings[index]) for index in suggestion.members),
        )
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


@prompts_app.command("add")
def prompts_add(
    text: str = typer.Argument(..., help="Prompt text"),
    tags: List[str] = typer.Option([], "--tag", "-t", help="Tag (repeatable)"),
):
    """Append a prompt to the library."""
    try:
        with _build_assistant() as assistant:
            assistant.library.add(text, tags)
            position = len(assistant.library) - 1
    except Exception as e:
        _fail(str(e))
    console.print(f"[green]✓[/] Added prompt #{position}")
    sys.exit(EXIT_CODE_PASS)


@prompts_app.command("list")
def prompts_list(
    tags: List[str] = typer.Option([], "--tag", "-t", help="Only prompts with any of these tags"),
):
    """List prompts, optionally filtered by tag."""
    try:
        with _build_assistant() as assistant:
            entries = assistant.library.all()
            wanted = set(assistant.library.matching(tags)) if tags else None
    except Exception as e:
        _fail(str(e))

    table = Table(title="Prompt library")
    table.add_column("#", justify="right")
    table.add_column("Prompt")
    table.add_column("Tags")
    for index, entry in enumerate(entries):
        if wanted is not None and entry not in wanted:
            continue
        table.add_row(str(index), _preview(entry.text), ", ".join(sorted(entry.tags)))
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


@prompts_app.command("remove")
def prompts_remove(
    index: int = typer.Argument(..., help="Position shown by 'prompts list'"),
):
    """Remove the prompt at a position."""
    try:
        with _build_assistant() as assistant:
            removed = assistant.library.remove_at(index)
            size = len(assistant.library)
    except Exception as e:
        _fail(str(e))

    if not removed:
        _fail(f"No prompt at index {index} (library has {size})")
    console.print(f"[green]✓[/] Removed prompt #{index}")
    sys.exit(EXIT_CODE_PASS)


def _remote_or_explain(assistant: ClipAssistant, call, *args) -> Optional[ClassificationResult]:
    """Run a governed call, printing why it was not attempted if so."""
    if not assistant.is_configured:
        console.print("[yellow]No API key configured.[/] Set CLIP_INSIGHT_API_KEY or OPENROUTER_API_KEY.")
        return None
    result = call(*args)
    if result is None:
        wait = assistant.seconds_until_next_request()
        console.print(f"[yellow]Rate limited.[/] Try again in {wait:.1f}s.")
    return result


def _format_currency(amount: float) -> str:
    """Format currency with proper symbols and formatting."""
    return f"${abs(amount):,.4f}"


def _preview(text: str, width: int = 60) -> str:
    flat = " ".join(text.split())
    return flat if len(flat) <= width else flat[:width - 1] + "…"


if __name__ == "__main__":
    app()
