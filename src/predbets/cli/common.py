"""Shared CLI plumbing: open a service on the configured database, report rejections."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import typer

from predbets.errors import SettlementError
from predbets.settlement import SettlementService
from predbets.storage.db import get_connection, init_schema


@contextmanager
def service_session(ctx: typer.Context) -> Iterator[SettlementService]:
    """Yield a SettlementService; a SettlementError prints its code and exits 1."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        yield SettlementService(conn, default_fee_basis_points=settings.default_fee_basis_points)
    except SettlementError as e:
        typer.echo(f"Error [{e.code}]: {e.message}", err=True)
        raise typer.Exit(1) from e
    finally:
        conn.close()
