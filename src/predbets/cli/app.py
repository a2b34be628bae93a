"""Root CLI app - entry point and command registration."""

from pathlib import Path

import typer

from predbets.config import get_settings
from predbets.config.settings import configure_logging

app = typer.Typer(
    name="predbets",
    help="predbets - Binary prediction market settlement: markets, bets, claims, audit.",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    config_dir: Path | None = typer.Option(
        None, "--config-dir", "-C", help="Config directory (default: ./config or package config)"
    ),
    profile: str | None = typer.Option(
        None, "--profile", "-p", help="Config profile (e.g. dev) to overlay on default.toml"
    ),
) -> None:
    """Configure logging and store options in context."""
    settings = get_settings(profile, config_dir)
    configure_logging(settings)
    ctx.obj = {"settings": settings, "config_dir": config_dir, "profile": profile}


# Subcommands registered from other modules
from predbets.cli import accounts, api_cmd, audit, bets, log, markets, tui_cmd  # noqa: E402

app.add_typer(markets.app, name="markets")
app.add_typer(bets.app, name="bets")
app.add_typer(accounts.app, name="accounts")
app.add_typer(log.app, name="log")
app.add_typer(audit.app, name="audit")
app.add_typer(api_cmd.app, name="api")
app.add_typer(tui_cmd.app, name="tui")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
