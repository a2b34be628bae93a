"""Replay the bet event log and reconcile pools against bets and escrow."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

from predbets.errors import PayoutArithmeticError
from predbets.ledger import EscrowLedger, escrow_account
from predbets.models import MarketState
from predbets.settlement.payout import compute_fee, payout_for_market
from predbets.storage.bets import list_bets, pool_totals_from_bets, total_paid
from predbets.storage.event_log import list_bet_events
from predbets.storage.markets import get_market, list_markets

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection


def replay_pool_series(conn: DuckDBPyConnection, market_id: str) -> list[tuple[int, int, int]]:
    """
    [(emitted_at, new_total_yes, new_total_no), ...] in emission order.
    Deterministic: same log -> same series. Display only.
    """
    out: list[tuple[int, int, int]] = []
    since_id: int | None = None
    while True:
        batch = list_bet_events(conn, market_id=market_id, since_id=since_id, limit=1000)
        if not batch:
            break
        for ev in batch:
            out.append((ev.emitted_at or 0, ev.new_total_yes, ev.new_total_no))
        since_id = batch[-1].event_id
    return out


@dataclass
class AuditReport:
    """Reconciliation of one market."""

    market_id: str
    state: str
    winner: str | None
    stored_yes: int
    stored_no: int
    bets_yes: int
    bets_no: int
    events_yes: int | None
    events_no: int | None
    escrow_balance: int
    expected_escrow: int
    total_paid: int
    fee: int
    outstanding_liability: int
    residue: int
    issues: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["ok"] = self.ok
        return d


def audit_market(conn: DuckDBPyConnection, market_id: str) -> AuditReport | None:
    """Recompute pools from bets and the event log; compare with stored totals and escrow."""
    market = get_market(conn, market_id)
    if market is None:
        return None
    issues: list[str] = []
    bets_yes, bets_no = pool_totals_from_bets(conn, market_id)
    if (bets_yes, bets_no) != (market.total_yes, market.total_no):
        issues.append(
            f"stored totals ({market.total_yes}, {market.total_no}) != bet sums ({bets_yes}, {bets_no})"
        )

    series = replay_pool_series(conn, market_id)
    events_yes = events_no = None
    if series:
        _, events_yes, events_no = series[-1]
        # The event feed is best-effort; lagging behind is fine, running ahead is not.
        if events_yes > market.total_yes or events_no > market.total_no:
            issues.append("event log totals exceed stored totals")

    paid = total_paid(conn, market_id)
    escrow = EscrowLedger(conn).balance(escrow_account(market_id))
    expected = market.total_pool - paid
    if escrow != expected:
        issues.append(f"escrow balance {escrow} != pool - paid {expected}")

    fee = compute_fee(market.total_pool, market.fee_basis_points)
    liability = 0
    if market.state == MarketState.RESOLVED and market.winner is not None:
        for bet in list_bets(conn, market_id=market_id):
            if bet.vote != market.winner or bet.claimed:
                continue
            try:
                liability += payout_for_market(market, bet.amount).payout
            except PayoutArithmeticError as e:
                issues.append(f"payout for {bet.user} not computable: {e.code}")
        if paid + liability > market.total_pool - fee:
            issues.append("payouts exceed distributable pool")
    else:
        liability = expected

    return AuditReport(
        market_id=market_id,
        state=market.state.value,
        winner=market.winner.value if market.winner else None,
        stored_yes=market.total_yes,
        stored_no=market.total_no,
        bets_yes=bets_yes,
        bets_no=bets_no,
        events_yes=events_yes,
        events_no=events_no,
        escrow_balance=escrow,
        expected_escrow=expected,
        total_paid=paid,
        fee=fee,
        outstanding_liability=liability,
        residue=escrow - liability,
        issues=issues,
    )


def audit_all(conn: DuckDBPyConnection) -> list[AuditReport]:
    """Audit every market, newest first."""
    reports = []
    for market in list_markets(conn):
        report = audit_market(conn, market.market_id)
        if report is not None:
            reports.append(report)
    return reports


def journal_imbalance(conn: DuckDBPyConnection) -> int:
    """Sum of all ledger deltas. Non-zero means value was created or destroyed."""
    return EscrowLedger(conn).journal_sum()
