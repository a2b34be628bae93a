"""Markets subcommand: create, list, show, resolve, odds."""

from __future__ import annotations

import typer

from predbets.cli.common import service_session
from predbets.metrics.odds import market_odds
from predbets.models import MarketState
from predbets.storage.event_log import last_bet_event

app = typer.Typer(help="Market lifecycle")


@app.command("create")
def create(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Unique market identifier"),
    admin: str = typer.Option(..., "--as", "-u", help="Admin identity (becomes market owner)"),
    fee_bps: int | None = typer.Option(None, "--fee-bps", help="House fee in basis points (default from config)"),
) -> None:
    """Open a new market."""
    with service_session(ctx) as service:
        market = service.create_market(market_id, admin, fee_basis_points=fee_bps)
        typer.echo(f"Created market {market.market_id} (admin {market.admin}, fee {market.fee_basis_points} bp)")


@app.command("list")
def list_markets(
    ctx: typer.Context,
    state: MarketState | None = typer.Option(None, "--state", help="Filter by state (open, resolved)"),
) -> None:
    """List markets with pool totals."""
    with service_session(ctx) as service:
        markets = service.list_markets(state=state)
        for m in markets:
            winner = m.winner.value if m.winner else "-"
            typer.echo(
                f"  {m.market_id[:24]:<24}  {m.state.value:<8}  winner={winner:<3}  "
                f"yes={m.total_yes}  no={m.total_no}  fee={m.fee_basis_points}bp"
            )
        typer.echo(f"Total: {len(markets)} markets")


@app.command("show")
def show(ctx: typer.Context, market_id: str = typer.Argument(...)) -> None:
    """Show one market and its escrow balance."""
    with service_session(ctx) as service:
        m = service.get_market(market_id)
        typer.echo(f"Market: {m.market_id}")
        typer.echo(f"Admin: {m.admin}  State: {m.state.value}  Winner: {m.winner.value if m.winner else '-'}")
        typer.echo(f"Pools: yes={m.total_yes}  no={m.total_no}  total={m.total_pool}")
        typer.echo(f"Fee: {m.fee_basis_points} bp  Escrow: {service.escrow_balance(market_id)}")
        last = last_bet_event(service.conn, market_id)
        if last is not None:
            typer.echo(f"Last bet: {last.user} {last.amount} on {last.vote.value} (event {last.event_id})")


@app.command("resolve")
def resolve(
    ctx: typer.Context,
    market_id: str = typer.Argument(...),
    winner: str = typer.Option(..., "--winner", "-w", help="yes or no"),
    caller: str = typer.Option(..., "--as", "-u", help="Caller identity (must be the market admin)"),
) -> None:
    """Declare the winning outcome. Final."""
    with service_session(ctx) as service:
        m = service.resolve_market(caller, market_id, winner)
        typer.echo(f"Resolved {m.market_id}: {m.winner.value} wins")


@app.command("odds")
def odds(ctx: typer.Context, market_id: str = typer.Argument(...)) -> None:
    """Implied probabilities and payout multipliers at current pools."""
    with service_session(ctx) as service:
        o = market_odds(service.get_market(market_id))
        typer.echo(f"YES  {o['yes_probability_pct']:6.2f}%  x{o['yes_payout_multiplier']:.4f}")
        typer.echo(f"NO   {o['no_probability_pct']:6.2f}%  x{o['no_payout_multiplier']:.4f}")
        typer.echo(f"Pool: {o['total_pool']}  Fee: {o['fee_basis_points']} bp")
