"""Log subcommand: export, stats."""

from __future__ import annotations

import typer

from predbets.storage.db import get_connection, init_schema
from predbets.storage.event_log import log_stats
from predbets.storage.export import export_events_to_parquet

app = typer.Typer(help="BetPlaced event log export and statistics")


@app.command("export")
def export(
    ctx: typer.Context,
    market: str | None = typer.Option(None, "--market", "-m", help="Filter by market ID"),
    output: str = typer.Option("bet_events.parquet", "--output", "-o", help="Output path"),
) -> None:
    """Export bet events to Parquet."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        count = export_events_to_parquet(conn, output, market_id=market)
        typer.echo(f"Exported {count} events to {output}")
    finally:
        conn.close()


@app.command("stats")
def stats(ctx: typer.Context) -> None:
    """Show event log statistics (counts, time range, by market)."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        s = log_stats(conn)
        typer.echo(f"Total events: {s['total_events']}")
        typer.echo(f"Min emitted_at: {s.get('min_emitted_at')}")
        typer.echo(f"Max emitted_at: {s.get('max_emitted_at')}")
        if s.get("by_market"):
            typer.echo("By market (top 20):")
            for row in s["by_market"]:
                typer.echo(f"  {row['market_id']}  {row['count']}  volume={row['volume']}")
    finally:
        conn.close()
