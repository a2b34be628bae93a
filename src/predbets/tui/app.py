"""Textual TUI dashboard - pool totals, odds and settlement progress per market."""

from __future__ import annotations

import time
from typing import Any

from textual.app import App, ComposeResult
from textual.reactive import reactive
from textual.widgets import DataTable, Footer, Header, Static

from predbets.metrics.odds import ProbabilitySeries, market_odds
from predbets.models import Market, MarketState
from predbets.storage.db import get_connection, init_schema
from predbets.storage.event_log import log_stats
from predbets.storage.markets import list_markets

COLUMNS = ("Market", "State", "Yes pool", "No pool", "Yes %", "Trend", "Yes x", "No x", "Winner")


class SummaryPanel(Static):
    """Market counts and bet event totals."""

    open_count = reactive(0)
    resolved_count = reactive(0)
    event_count = reactive(0)
    last_refresh = reactive("-")

    def render(self) -> str:
        return (
            f"[bold]Open[/] {self.open_count}  |  "
            f"Resolved: {self.resolved_count}  |  "
            f"Bets: {self.event_count}  |  "
            f"Updated: {self.last_refresh}"
        )


class MarketTable(DataTable):
    """Table of markets with pools, implied probability and payout multipliers."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._series: dict[str, ProbabilitySeries] = {}

    def on_mount(self) -> None:
        self.add_columns(*COLUMNS)

    def refresh_rows(self, markets: list[Market]) -> None:
        self.clear()
        now = time.time()
        for m in markets:
            series = self._series.setdefault(m.market_id, ProbabilitySeries(maxlen=200))
            series.push(now, m.total_yes, m.total_no)
            change = series.change()
            o = market_odds(m)
            self.add_row(
                m.market_id[:24] + "..." if len(m.market_id) > 24 else m.market_id,
                m.state.value,
                str(m.total_yes),
                str(m.total_no),
                f"{o['yes_probability_pct']:.1f}",
                f"{change:+.1f}" if change is not None else "-",
                f"{o['yes_payout_multiplier']:.3f}",
                f"{o['no_payout_multiplier']:.3f}",
                m.winner.value if m.winner else "-",
            )


class PredBetsTUI(App[None]):
    """predbets TUI - live pools and odds (display only)."""

    TITLE = "predbets"
    BINDINGS = [("q", "quit", "Quit"), ("r", "refresh", "Refresh")]

    def __init__(self, db_path: str, refresh_sec: float = 1.0, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._db_path = db_path
        self._refresh_sec = refresh_sec

    def compose(self) -> ComposeResult:
        yield Header()
        yield SummaryPanel(id="summary")
        yield MarketTable(id="markets")
        yield Footer()

    def on_mount(self) -> None:
        self._refresh()
        self.set_interval(self._refresh_sec, self._refresh)

    def action_refresh(self) -> None:
        self._refresh()

    def _refresh(self) -> None:
        conn = get_connection(self._db_path)
        try:
            markets = list_markets(conn)
            stats = log_stats(conn)
        finally:
            conn.close()
        summary = self.query_one(SummaryPanel)
        summary.open_count = sum(1 for m in markets if m.state == MarketState.OPEN)
        summary.resolved_count = sum(1 for m in markets if m.state == MarketState.RESOLVED)
        summary.event_count = stats["total_events"]
        summary.last_refresh = time.strftime("%H:%M:%S")
        self.query_one(MarketTable).refresh_rows(markets)


def run_tui(settings: Any, refresh_sec: float = 1.0) -> None:
    """Entry point: ensure schema exists and run the dashboard."""
    conn = get_connection(settings.db_path)
    init_schema(conn)
    conn.close()
    app = PredBetsTUI(settings.db_path, refresh_sec=refresh_sec)
    app.run()
