"""Fee-adjusted proportional payout (parimutuel split) in integer arithmetic.

    total_pool    = total_yes + total_no
    fee           = floor(total_pool * fee_basis_points / 10000)
    distributable = total_pool - fee
    winning_pool  = total_yes if winner is yes else total_no
    payout        = floor(amount * distributable / winning_pool)

Python ints do not wrap, so ``amount * distributable`` is exact. Inputs and
results are still held to the unsigned 64-bit range the ledger stores, and any
out-of-range value or a zero winning pool raises instead of producing a
number. Floor rounding means the payouts of all winning bets sum to at most
``distributable``; the remainder stays in escrow with the fee.
"""

from __future__ import annotations

from dataclasses import dataclass

from predbets.errors import AmountOverflow, EmptyWinningPool, InvalidFee, PayoutArithmeticError
from predbets.models import U64_MAX, Market, Outcome

BPS_DENOMINATOR = 10_000


@dataclass(frozen=True)
class PayoutBreakdown:
    """Intermediate values of one payout computation."""

    total_pool: int
    fee: int
    distributable: int
    winning_pool: int
    payout: int


def _require_u64(name: str, value: int) -> int:
    if value < 0 or value > U64_MAX:
        raise AmountOverflow(f"{name} out of u64 range: {value}")
    return value


def compute_fee(total_pool: int, fee_basis_points: int) -> int:
    """House cut of the pool, rounded down."""
    if not 0 <= fee_basis_points <= BPS_DENOMINATOR:
        raise InvalidFee(fee_basis_points=fee_basis_points)
    return total_pool * fee_basis_points // BPS_DENOMINATOR


def compute_payout(
    amount: int,
    total_yes: int,
    total_no: int,
    fee_basis_points: int,
    winner: Outcome,
) -> PayoutBreakdown:
    """Payout for a winning stake of ``amount``."""
    _require_u64("amount", amount)
    _require_u64("total_yes", total_yes)
    _require_u64("total_no", total_no)
    total_pool = _require_u64("total_pool", total_yes + total_no)
    fee = compute_fee(total_pool, fee_basis_points)
    distributable = total_pool - fee
    winning_pool = total_yes if winner == Outcome.YES else total_no
    if winning_pool == 0:
        raise EmptyWinningPool(winner=winner.value)
    if amount > winning_pool:
        raise PayoutArithmeticError(f"Stake {amount} exceeds winning pool {winning_pool}")
    payout = _require_u64("payout", amount * distributable // winning_pool)
    return PayoutBreakdown(
        total_pool=total_pool,
        fee=fee,
        distributable=distributable,
        winning_pool=winning_pool,
        payout=payout,
    )


def payout_for_market(market: Market, amount: int) -> PayoutBreakdown:
    """Payout of a winning stake on a resolved market."""
    if market.winner is None:
        raise PayoutArithmeticError("Market has no winner")
    return compute_payout(amount, market.total_yes, market.total_no, market.fee_basis_points, market.winner)


def quote_payout(market: Market, vote: Outcome, amount: int) -> PayoutBreakdown:
    """Projected payout if ``amount`` were staked on ``vote`` now and ``vote`` won."""
    _require_u64("amount", amount)
    total_yes = market.total_yes + (amount if vote == Outcome.YES else 0)
    total_no = market.total_no + (amount if vote == Outcome.NO else 0)
    return compute_payout(amount, total_yes, total_no, market.fee_basis_points, vote)
