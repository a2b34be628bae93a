"""TUI dashboard command."""

import typer

from predbets.tui.app import run_tui

app = typer.Typer(help="Launch TUI dashboard")


@app.callback(invoke_without_command=True)
def tui(
    ctx: typer.Context,
    refresh: float = typer.Option(1.0, "--refresh", help="Refresh interval in seconds"),
) -> None:
    """Launch the Textual TUI dashboard (live pools and odds)."""
    if ctx.invoked_subcommand is not None:
        return
    settings = ctx.obj["settings"]
    run_tui(settings, refresh_sec=refresh)
