"""Accounts subcommand: deposit, balance."""

from __future__ import annotations

import typer

from predbets.cli.common import service_session

app = typer.Typer(help="Participant balances")


@app.command("deposit")
def deposit(
    ctx: typer.Context,
    user: str = typer.Argument(...),
    amount: int = typer.Option(..., "--amount", "-a", help="Amount in base units"),
) -> None:
    """Fund a participant's balance."""
    with service_session(ctx) as service:
        balance = service.deposit(user, amount)
        typer.echo(f"Deposited {amount} to {user}. Balance: {balance}")


@app.command("balance")
def balance(ctx: typer.Context, user: str = typer.Argument(...)) -> None:
    """Show a participant's balance."""
    with service_session(ctx) as service:
        typer.echo(f"{user}: {service.balance(user)}")
