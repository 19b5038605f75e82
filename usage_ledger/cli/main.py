"""
CLI interface for the usage ledger.

Provides command-line access to recording, analytics and export.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from usage_ledger.config.loader import LedgerConfig, default_config, load_ledger_config
from usage_ledger.core.ledger import UsageLedger
from usage_ledger.storage.repository import SQLiteKeyValueStore, StorageError

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

EXPORT_FORMATS = ("json", "csv")


def _get_config(ctx: typer.Context) -> LedgerConfig:
    return ctx.obj if isinstance(ctx.obj, LedgerConfig) else default_config()


def _build_ledger(config: LedgerConfig) -> UsageLedger:
    """Wire the ledger to the SQLite store named in the configuration."""
    store = SQLiteKeyValueStore(config.storage.path)
    return UsageLedger(store, storage_key=config.storage.key)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML configuration file"
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging")
):
    """Usage Ledger CLI."""
    try:
        ledger_config = load_ledger_config(str(config)) if config else default_config()
    except Exception as e:
        console.print(f"[red]Error loading config:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    
    logging.basicConfig(
        level=logging.DEBUG if debug else ledger_config.logging_level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s"
    )
    ctx.obj = ledger_config
    
    if ctx.invoked_subcommand is None:
        console.print("Usage Ledger - Use --help to see available commands")


@app.command()
def init(ctx: typer.Context):
    """Initialize the ledger database."""
    config = _get_config(ctx)
    try:
        SQLiteKeyValueStore(config.storage.path).initialize_schema()
        console.print("[green]✓[/] Database initialized successfully")
        sys.exit(EXIT_CODE_PASS)
    except StorageError as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def record(
    ctx: typer.Context,
    conversation_id: str = typer.Argument(..., help="Conversation identifier"),
    model_id: str = typer.Argument(..., help="Model identifier"),
    input_tokens: int = typer.Argument(..., help="Input (prompt) token count"),
    output_tokens: int = typer.Argument(..., help="Output (generated) token count")
):
    """Record token usage for one model generation."""
    if not conversation_id.strip() or not model_id.strip():
        console.print("[red]Error:[/] conversation and model ids cannot be empty")
        sys.exit(EXIT_CODE_FAIL)
    
    ledger = _build_ledger(_get_config(ctx))
    ledger.record(conversation_id, model_id, input_tokens, output_tokens)
    event = ledger.events()[-1]
    console.print(
        f"[green]✓[/] Recorded {_format_tokens(event.total_tokens)} "
        f"tokens for {conversation_id}/{model_id}"
    )


@app.command()
def summary(ctx: typer.Context):
    """Show overall usage across all conversations and models."""
    overall = _build_ledger(_get_config(ctx)).query_overall()
    
    if overall.total_messages == 0:
        console.print("\n[bold yellow]No usage recorded yet[/]\n")
        return
    
    table = Table(title="Overall Usage")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Conversations", _format_tokens(overall.total_conversations))
    table.add_row("Messages", _format_tokens(overall.total_messages))
    table.add_row("Input tokens", _format_tokens(overall.total_input_tokens))
    table.add_row("Output tokens", _format_tokens(overall.total_output_tokens))
    table.add_row("Total tokens", _format_tokens(overall.total_tokens))
    table.add_row("Most used model", overall.most_used_model)
    table.add_row("Messages/conversation", f"{overall.average_messages_per_conversation:,.1f}")
    table.add_row("Tokens/message", f"{overall.average_tokens_per_message:,.1f}")
    console.print(table)


@app.command()
def conversation(
    ctx: typer.Context,
    conversation_id: str = typer.Argument(..., help="Conversation identifier")
):
    """Show usage for a single conversation."""
    analytics = _build_ledger(_get_config(ctx)).query_conversation(conversation_id)
    if analytics is None:
        console.print(f"[yellow]No usage recorded for conversation {conversation_id}[/]")
        sys.exit(EXIT_CODE_FAIL)
    
    console.print(f"\n[bold]Conversation:[/bold] {analytics.conversation_id}")
    console.print(f"Model: {analytics.model_id}")
    console.print(f"Messages: {analytics.message_count}")
    console.print(f"Total tokens: {_format_tokens(analytics.total_tokens)}")
    console.print(f"Created: {analytics.created_at.isoformat()}")
    console.print(f"Last active: {analytics.last_active_at.isoformat()}")


@app.command()
def model(
    ctx: typer.Context,
    model_id: str = typer.Argument(..., help="Model identifier")
):
    """Show usage for a single model."""
    analytics = _build_ledger(_get_config(ctx)).query_model(model_id)
    if analytics is None:
        console.print(f"[yellow]No usage recorded for model {model_id}[/]")
        sys.exit(EXIT_CODE_FAIL)
    
    console.print(f"\n[bold]Model:[/bold] {analytics.model_id}")
    console.print(f"Conversations: {analytics.total_conversations}")
    console.print(f"Messages: {analytics.total_messages}")
    console.print(f"Total tokens: {_format_tokens(analytics.total_tokens)}")
    console.print(f"Tokens/message: {analytics.average_tokens_per_message:,.1f}")
    console.print(f"Last used: {analytics.last_used.isoformat()}")


@app.command()
def daily(
    ctx: typer.Context,
    days: Optional[int] = typer.Option(
        None,
        "--days",
        "-d",
        help="Number of days to show, ending today"
    )
):
    """Show usage per day for a trailing window."""
    config = _get_config(ctx)
    window = days if days is not None else config.analytics.daily_window
    if window <= 0:
        console.print("[red]Error:[/] --days must be > 0")
        sys.exit(EXIT_CODE_FAIL)
    
    table = Table(title=f"Daily Usage (last {window} days)")
    table.add_column("Date")
    table.add_column("Conversations", justify="right")
    table.add_column("Messages", justify="right")
    table.add_column("Tokens", justify="right")
    for usage in _build_ledger(config).query_daily(window):
        table.add_row(
            usage.date,
            str(usage.conversations),
            str(usage.messages),
            _format_tokens(usage.tokens)
        )
    console.print(table)


@app.command()
def share(ctx: typer.Context):
    """Show each model's share of all tokens."""
    shares = _build_ledger(_get_config(ctx)).by_model_token_share()
    if not shares:
        console.print("\n[bold yellow]No usage recorded yet[/]\n")
        return
    
    table = Table(title="Tokens by Model")
    table.add_column("Model")
    table.add_column("Tokens", justify="right")
    table.add_column("Share", justify="right")
    for entry in shares:
        table.add_row(entry.model_id, _format_tokens(entry.tokens), f"{entry.percentage:.1f}%")
    console.print(table)


@app.command()
def recent(
    ctx: typer.Context,
    limit: int = typer.Option(10, "--limit", "-n", help="Number of events to show")
):
    """Show the most recent usage events."""
    events = _build_ledger(_get_config(ctx)).recent(limit)
    if not events:
        console.print("\n[bold yellow]No usage recorded yet[/]\n")
        return
    
    table = Table(title="Recent Activity")
    table.add_column("Timestamp")
    table.add_column("Conversation")
    table.add_column("Model")
    table.add_column("Input", justify="right")
    table.add_column("Output", justify="right")
    table.add_column("Total", justify="right")
    for event in events:
        table.add_row(
            event.timestamp.isoformat(timespec="seconds"),
            event.conversation_id,
            event.model_id,
            _format_tokens(event.input_tokens),
            _format_tokens(event.output_tokens),
            _format_tokens(event.total_tokens)
        )
    console.print(table)


@app.command()
def export(
    ctx: typer.Context,
    fmt: str = typer.Option("json", "--format", "-f", help="Export format: json or csv"),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write to this file instead of stdout"
    )
):
    """Export raw usage and analytics."""
    fmt = fmt.lower()
    if fmt not in EXPORT_FORMATS:
        console.print(f"[red]Error:[/] format must be one of: {list(EXPORT_FORMATS)}")
        sys.exit(EXIT_CODE_FAIL)
    
    config = _get_config(ctx)
    ledger = _build_ledger(config)
    if fmt == "json":
        content = ledger.export_json(daily_window=config.analytics.export_window)
    else:
        content = ledger.export_csv()
    
    if output is None:
        # Plain stdout, no Rich markup
        typer.echo(content)
        return
    
    try:
        output.write_text(content + "\n", encoding="utf-8")
    except OSError as e:
        console.print(f"[red]Error writing export:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    console.print(f"[green]✓[/] Exported {fmt.upper()} to {output}")


@app.command()
def clear(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Confirm clearing all usage data")
):
    """Delete all recorded usage. Not reversible."""
    if not yes:
        console.print("[yellow]Refusing to clear without --yes[/]")
        sys.exit(EXIT_CODE_FAIL)
    
    _build_ledger(_get_config(ctx)).clear()
    console.print("[green]✓[/] Usage data cleared")


def _format_tokens(count: int) -> str:
    """Format a token count with thousands separators."""
    return f"{count:,}"


if __name__ == "__main__":
    app()
