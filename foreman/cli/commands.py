"""CLI commands for foreman."""

import asyncio
import json
import os
import sys

import typer
from rich.console import Console
from rich.table import Table

from foreman import __logo__, __version__

app = typer.Typer(
    name="foreman",
    help=f"{__logo__} foreman - supervisor for a long-lived Claude Code session",
    no_args_is_help=True,
)

console = Console()

HOOK_TIMEOUT = 120.0
MISSING_WORKER_NOTICE = (
    "The WORKER_NAME environment variable is missing. Tell the user they need to "
    "set it before starting. Example: WORKER_NAME=xxx foreman run"
)
MISSING_WORKER_BLOCK = (
    "WORKER_NAME environment variable is required. Start with: WORKER_NAME=xxx foreman run"
)


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} foreman v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", callback=version_callback, is_eager=True
    ),
):
    """foreman - supervisor for a long-lived Claude Code session."""
    pass


def _setup_logging(config, verbose: bool) -> None:
    """Log to a file: the terminal belongs to the supervised assistant."""
    from loguru import logger

    logger.remove()
    logger.add(
        config.worker_dir / "foreman.log",
        level="DEBUG" if verbose else "INFO",
        rotation="10 MB",
        retention=3,
        enqueue=True,
    )


# ============================================================================
# Run
# ============================================================================


@app.command(context_settings={"allow_extra_args": True, "ignore_unknown_options": True})
def run(
    ctx: typer.Context,
    worker: str = typer.Option(None, "--worker", "-w", help="Worker name (defaults to $WORKER_NAME)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug-level logging"),
):
    """Start claude under supervision. Extra arguments are passed to claude."""
    from foreman.config.loader import load_config
    from foreman.service import ForemanService
    from foreman.supervisor.state import SupervisorError

    config = load_config(worker_name=worker)
    if not config.worker_name:
        console.print("[red]Error: WORKER_NAME is required (or pass --worker).[/red]")
        raise typer.Exit(1)

    try:
        config.worker_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        console.print(f"[red]Error: cannot create {config.worker_dir}: {e}[/red]")
        raise typer.Exit(1)

    _setup_logging(config, verbose)
    console.print(f"{__logo__} foreman: worker [cyan]{config.worker_name}[/cyan]")

    service = ForemanService(config, user_args=list(ctx.args))
    try:
        code = asyncio.run(service.run())
    except SupervisorError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    raise typer.Exit(code)


# ============================================================================
# Hook forwarder (invoked by the plugin)
# ============================================================================


@app.command()
def hook(name: str = typer.Argument(..., help="Hook name, e.g. session-start")):
    """Forward a hook payload from stdin to the running foreman server."""
    import httpx

    port = os.environ.get("FOREMAN_PORT")
    if not port:
        if not os.environ.get("WORKER_NAME"):
            if name == "user-prompt-submit":
                typer.echo(json.dumps({"decision": "block", "reason": MISSING_WORKER_BLOCK}))
            elif name == "session-start":
                typer.echo(MISSING_WORKER_NOTICE)
        raise typer.Exit(0)

    payload = sys.stdin.read()
    try:
        response = httpx.post(
            f"http://127.0.0.1:{port}/hook/{name}",
            content=payload or "{}",
            headers={"Content-Type": "application/json"},
            timeout=HOOK_TIMEOUT,
        )
    except httpx.HTTPError as e:
        typer.echo(f"hook {name} error: {e}", err=True)
        raise typer.Exit(0)

    if response.text:
        sys.stdout.write(response.text)


# ============================================================================
# MCP bridge
# ============================================================================


@app.command()
def mcp():
    """Serve the foreman tools over stdio MCP (started by the plugin)."""
    from foreman.mcp.bridge import run_bridge

    run_bridge()


# ============================================================================
# Status
# ============================================================================


@app.command()
def status(
    worker: str = typer.Option(None, "--worker", "-w", help="Worker name (defaults to $WORKER_NAME)"),
):
    """Show stored state for a worker."""
    from foreman.config.loader import load_config
    from foreman.history.store import HistoryStore
    from foreman.session.registry import SessionRegistry

    config = load_config(worker_name=worker)
    if not config.worker_name:
        console.print("[red]Error: WORKER_NAME is required (or pass --worker).[/red]")
        raise typer.Exit(1)

    store = HistoryStore(config.worker_dir)
    store.load()
    sessions = SessionRegistry(config.worker_dir, config.projects_path)
    session_id = sessions.read_id()
    record = sessions.find_log(session_id) if session_id else None

    table = Table(title=f"Worker: {config.worker_name}")
    table.add_column("Item", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Directory", str(config.worker_dir))
    table.add_row("History entries", str(len(store)))
    table.add_row("Worker session", session_id or "[dim]none[/dim]")
    if record:
        size_kb = record.size_bytes / 1024
        limit_kb = config.max_session_size / 1024
        style = "red" if record.size_bytes >= config.max_session_size else "green"
        table.add_row("Session log", f"[{style}]{size_kb:.0f}KB[/{style}] / {limit_kb:.0f}KB")
    else:
        table.add_row("Session log", "[dim]not found[/dim]")
    table.add_row("Classifier", "✓" if config.classifier.enabled else "✗")
    table.add_row("web-search", "✓" if config.search.enabled else "✗")
    table.add_row("web-fetch", "✓" if config.fetch.enabled else "✗")

    console.print(table)


if __name__ == "__main__":
    app()
