"""Audit command: reconcile pools, bets, event log and escrow."""

from __future__ import annotations

import typer

from predbets.replay.audit import audit_all, audit_market, journal_imbalance
from predbets.storage.db import get_connection, init_schema

app = typer.Typer(help="Reconcile market pools against bets and escrow")


@app.callback(invoke_without_command=True)
def audit(
    ctx: typer.Context,
    market: str | None = typer.Option(None, "--market", "-m", help="Audit one market (default: all)"),
) -> None:
    """Exit 1 if any market or the ledger journal does not reconcile."""
    if ctx.invoked_subcommand is not None:
        return
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        if market:
            report = audit_market(conn, market)
            if report is None:
                typer.echo(f"Market not found: {market}")
                raise typer.Exit(1)
            reports = [report]
        else:
            reports = audit_all(conn)
        imbalance = journal_imbalance(conn)
    finally:
        conn.close()
    failed = False
    for r in reports:
        flag = "OK " if r.ok else "BAD"
        typer.echo(
            f"{flag} {r.market_id}  escrow={r.escrow_balance}  liability={r.outstanding_liability}  residue={r.residue}"
        )
        for issue in r.issues:
            typer.echo(f"      {issue}")
        failed = failed or not r.ok
    typer.echo(f"Ledger journal sum: {imbalance}")
    if failed or imbalance != 0:
        raise typer.Exit(1)
