"""Bets subcommand: place, claim, list, quote."""

from __future__ import annotations

import typer

from predbets.cli.common import service_session

app = typer.Typer(help="Stakes and claims")


@app.command("place")
def place(
    ctx: typer.Context,
    market_id: str = typer.Argument(...),
    vote: str = typer.Option(..., "--vote", "-v", help="yes or no"),
    amount: int = typer.Option(..., "--amount", "-a", help="Stake in base units"),
    caller: str = typer.Option(..., "--as", "-u", help="Bettor identity"),
) -> None:
    """Stake on an outcome. One bet per user per market."""
    with service_session(ctx) as service:
        bet = service.place_bet(caller, market_id, vote, amount)
        m = service.get_market(market_id)
        typer.echo(f"Bet placed: {bet.user} {bet.amount} on {bet.vote.value} in {bet.market_id}")
        typer.echo(f"Pools: yes={m.total_yes}  no={m.total_no}")


@app.command("claim")
def claim(
    ctx: typer.Context,
    market_id: str = typer.Argument(...),
    caller: str = typer.Option(..., "--as", "-u", help="Bettor identity"),
) -> None:
    """Withdraw winnings from a resolved market."""
    with service_session(ctx) as service:
        result = service.claim(caller, market_id)
        b = result.breakdown
        typer.echo(f"Paid {result.payout} to {caller}")
        typer.echo(f"Pool: {b.total_pool}  Fee: {b.fee}  Distributable: {b.distributable}  Winning pool: {b.winning_pool}")


@app.command("list")
def list_bets(
    ctx: typer.Context,
    market: str | None = typer.Option(None, "--market", "-m", help="Filter by market ID"),
    user: str | None = typer.Option(None, "--user", help="Filter by user"),
) -> None:
    """List bets."""
    with service_session(ctx) as service:
        bets = service.list_bets(market_id=market, user=user)
        for b in bets:
            status = f"claimed {b.payout}" if b.claimed else "open"
            typer.echo(f"  {b.market_id[:24]:<24}  {b.user[:16]:<16}  {b.vote.value:<3}  {b.amount}  {status}")
        typer.echo(f"Total: {len(bets)} bets")


@app.command("quote")
def quote(
    ctx: typer.Context,
    market_id: str = typer.Argument(...),
    vote: str = typer.Option(..., "--vote", "-v", help="yes or no"),
    amount: int = typer.Option(..., "--amount", "-a", help="Hypothetical stake"),
) -> None:
    """Projected payout if this stake were placed now and won."""
    with service_session(ctx) as service:
        b = service.quote(market_id, vote, amount)
        typer.echo(f"Projected payout: {b.payout}  (pool {b.total_pool}, fee {b.fee}, winning pool {b.winning_pool})")
