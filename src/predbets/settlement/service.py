"""Market lifecycle and bet settlement over DuckDB.

Each mutating operation runs inside one transaction and holds the market's
lock for its whole duration, so two operations on the same market or bet
never interleave. Every precondition is checked before the first write; a
failure anywhere rolls the transaction back and re-raises the error.
"""

from __future__ import annotations

import time
import weakref
from contextlib import contextmanager
from dataclasses import dataclass
from threading import Lock
from typing import TYPE_CHECKING, Any, Iterator

import duckdb
import structlog

from predbets.errors import (
    AlreadyClaimed,
    AlreadyResolved,
    AmountOverflow,
    BetNotFound,
    DuplicateBet,
    InvalidAdmin,
    InvalidFee,
    InvalidMarketId,
    InvalidVote,
    MarketClosed,
    MarketNotFound,
    MarketNotResolved,
    SettlementError,
    YouLost,
)
from predbets.ledger import EscrowLedger, escrow_account, user_account
from predbets.ledger.escrow import check_amount
from predbets.models import U64_MAX, Bet, BetPlaced, Market, MarketState, Outcome
from predbets.notify import Notifier
from predbets.settlement.auth import require_owner
from predbets.settlement.payout import BPS_DENOMINATOR, PayoutBreakdown, payout_for_market, quote_payout
from predbets.storage.bets import get_bet, insert_bet, list_bets, mark_claimed
from predbets.storage.db import transaction
from predbets.storage.event_log import append_bet_event
from predbets.storage.markets import get_market, insert_market, list_markets, mark_resolved, update_totals

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)

# Entries live only while an operation holds the lock.
_market_locks: weakref.WeakValueDictionary[str, Lock] = weakref.WeakValueDictionary()
_registry_lock = Lock()


def _market_lock(market_id: str) -> Lock:
    with _registry_lock:
        lock = _market_locks.get(market_id)
        if lock is None:
            lock = _market_locks[market_id] = Lock()
        return lock


def _now_ms() -> int:
    return int(time.time() * 1000)


def parse_vote(vote: Outcome | str) -> Outcome:
    """Accept an Outcome or 'yes'/'no' (case-insensitive)."""
    if isinstance(vote, Outcome):
        return vote
    try:
        return Outcome(str(vote).strip().lower())
    except ValueError as e:
        raise InvalidVote(vote=vote) from e


@dataclass
class ClaimResult:
    """Outcome of a successful claim."""

    bet: Bet
    breakdown: PayoutBreakdown

    @property
    def payout(self) -> int:
        return self.breakdown.payout


class SettlementService:
    """CreateMarket, PlaceBet, ResolveMarket, Claim plus read helpers."""

    def __init__(
        self,
        conn: DuckDBPyConnection,
        default_fee_basis_points: int = 200,
        notifier: Notifier | None = None,
    ) -> None:
        self.conn = conn
        self.default_fee_basis_points = default_fee_basis_points
        self.notifier = notifier
        self.ledger = EscrowLedger(conn)

    @contextmanager
    def _operation(self, op: str, market_id: str | None = None, **context: Any) -> Iterator[None]:
        """Per-market lock + transaction. Rejections are logged once, then re-raised."""
        lock = _market_lock(market_id) if market_id is not None else None
        if lock is not None:
            lock.acquire()
        try:
            with transaction(self.conn):
                yield
        except SettlementError as e:
            log.warning("operation_rejected", op=op, code=e.code, market_id=market_id, **context)
            raise
        finally:
            if lock is not None:
                lock.release()

    def _require_market(self, market_id: str) -> Market:
        market = get_market(self.conn, market_id)
        if market is None:
            raise MarketNotFound(f"Market not found: {market_id}", market_id=market_id)
        return market

    # --- Market lifecycle ---

    def create_market(
        self,
        market_id: str,
        admin: str,
        fee_basis_points: int | None = None,
    ) -> Market:
        """Open a new market owned by admin. Fee defaults to the configured house fee."""
        fee = self.default_fee_basis_points if fee_basis_points is None else fee_basis_points
        with self._operation("create_market", market_id, admin=admin):
            if not isinstance(market_id, str) or not market_id.strip():
                raise InvalidMarketId(market_id=market_id)
            if not isinstance(admin, str) or not admin.strip():
                raise InvalidAdmin(market_id=market_id)
            if isinstance(fee, bool) or not isinstance(fee, int) or not 0 <= fee <= BPS_DENOMINATOR:
                raise InvalidFee(fee_basis_points=fee)
            market = Market(
                market_id=market_id,
                admin=admin,
                fee_basis_points=fee,
                created_at=_now_ms(),
            )
            insert_market(self.conn, market)
        log.info("market_created", market_id=market_id, admin=admin, fee_basis_points=fee)
        return market

    def resolve_market(self, caller: str, market_id: str, winner: Outcome | str) -> Market:
        """Admin-only, exactly once. Open -> Resolved with a fixed winner."""
        with self._operation("resolve_market", market_id, caller=caller):
            market = self._require_market(market_id)
            require_owner(caller, market.admin, "resolve market")
            if market.state != MarketState.OPEN:
                raise AlreadyResolved(market_id=market_id)
            outcome = parse_vote(winner)
            resolved_at = _now_ms()
            mark_resolved(self.conn, market_id, outcome, resolved_at)
        if market.pool_for(outcome) == 0:
            log.warning("market_resolved_empty_winning_pool", market_id=market_id, winner=outcome.value)
        log.info(
            "market_resolved",
            market_id=market_id,
            winner=outcome.value,
            total_yes=market.total_yes,
            total_no=market.total_no,
        )
        return market.model_copy(
            update={"state": MarketState.RESOLVED, "winner": outcome, "resolved_at": resolved_at}
        )

    # --- Bets ---

    def place_bet(self, caller: str, market_id: str, vote: Outcome | str, amount: int) -> Bet:
        """Stake amount on vote. Stake moves into the market escrow in the same transaction."""
        outcome = parse_vote(vote)
        with self._operation("place_bet", market_id, caller=caller, vote=outcome.value):
            market = self._require_market(market_id)
            if not market.is_open:
                raise MarketClosed(market_id=market_id)
            if get_bet(self.conn, market_id, caller) is not None:
                raise DuplicateBet(market_id=market_id, user=caller)
            amount = check_amount(amount)
            new_yes = market.total_yes + (amount if outcome == Outcome.YES else 0)
            new_no = market.total_no + (amount if outcome == Outcome.NO else 0)
            if new_yes + new_no > U64_MAX:
                raise AmountOverflow("Pool total would exceed u64", market_id=market_id)
            self.ledger.transfer(
                user_account(caller),
                escrow_account(market_id),
                amount,
                reason="stake",
                market_id=market_id,
            )
            bet = Bet(market_id=market_id, user=caller, amount=amount, vote=outcome, created_at=_now_ms())
            insert_bet(self.conn, bet)
            update_totals(self.conn, market_id, new_yes, new_no)
        log.info(
            "bet_placed",
            market_id=market_id,
            user=caller,
            vote=outcome.value,
            amount=amount,
            total_yes=new_yes,
            total_no=new_no,
        )
        self._emit(
            BetPlaced(
                market_id=market_id,
                user=caller,
                amount=amount,
                vote=outcome,
                new_total_yes=new_yes,
                new_total_no=new_no,
                emitted_at=_now_ms(),
            )
        )
        return bet

    def _emit(self, event: BetPlaced) -> None:
        """Record and broadcast after commit. Never fails the bet."""
        try:
            event = append_bet_event(self.conn, event)
        except duckdb.Error as e:
            log.warning("bet_event_log_failed", market_id=event.market_id, error=str(e))
        if self.notifier is not None:
            self.notifier.publish(event)

    def claim(self, caller: str, market_id: str, user: str | None = None) -> ClaimResult:
        """Pay out a winning bet once. The bet is (market_id, user), user defaulting to caller."""
        bet_user = caller if user is None else user
        with self._operation("claim", market_id, caller=caller, user=bet_user):
            market = self._require_market(market_id)
            if market.state != MarketState.RESOLVED:
                raise MarketNotResolved(market_id=market_id)
            bet = get_bet(self.conn, market_id, bet_user)
            if bet is None:
                raise BetNotFound(f"No bet by {bet_user} on {market_id}", market_id=market_id, user=bet_user)
            require_owner(caller, bet.user, "claim bet")
            if bet.vote != market.winner:
                raise YouLost(market_id=market_id, user=bet_user)
            if bet.claimed:
                raise AlreadyClaimed(market_id=market_id, user=bet_user)
            breakdown = payout_for_market(market, bet.amount)
            if breakdown.payout > 0:
                self.ledger.transfer(
                    escrow_account(market_id),
                    user_account(caller),
                    breakdown.payout,
                    reason="payout",
                    market_id=market_id,
                )
            claimed_at = _now_ms()
            mark_claimed(self.conn, market_id, bet_user, breakdown.payout, claimed_at)
        log.info(
            "bet_claimed",
            market_id=market_id,
            user=bet_user,
            amount=bet.amount,
            payout=breakdown.payout,
            fee=breakdown.fee,
        )
        settled = bet.model_copy(update={"claimed": True, "payout": breakdown.payout, "claimed_at": claimed_at})
        return ClaimResult(bet=settled, breakdown=breakdown)

    # --- Accounts ---

    def deposit(self, identity: str, amount: int) -> int:
        """Fund a participant's balance. Returns the new balance."""
        with self._operation("deposit", None, user=identity):
            balance = self.ledger.deposit(user_account(identity), amount)
        return balance

    def balance(self, identity: str) -> int:
        return self.ledger.balance(user_account(identity))

    def escrow_balance(self, market_id: str) -> int:
        return self.ledger.balance(escrow_account(market_id))

    # --- Reads ---

    def get_market(self, market_id: str) -> Market:
        return self._require_market(market_id)

    def list_markets(self, state: MarketState | None = None) -> list[Market]:
        return list_markets(self.conn, state=state)

    def get_bet(self, market_id: str, user: str) -> Bet:
        bet = get_bet(self.conn, market_id, user)
        if bet is None:
            raise BetNotFound(f"No bet by {user} on {market_id}", market_id=market_id, user=user)
        return bet

    def list_bets(self, market_id: str | None = None, user: str | None = None) -> list[Bet]:
        return list_bets(self.conn, market_id=market_id, user=user)

    def quote(self, market_id: str, vote: Outcome | str, amount: int) -> PayoutBreakdown:
        """Projected payout for a hypothetical stake placed now."""
        market = self._require_market(market_id)
        return quote_payout(market, parse_vote(vote), check_amount(amount))
