"""Payout arithmetic unit tests."""

import pytest

from predbets.errors import AmountOverflow, EmptyWinningPool, InvalidFee, PayoutArithmeticError
from predbets.models import U64_MAX, Market, Outcome
from predbets.settlement.payout import compute_fee, compute_payout, quote_payout


def test_payout_with_two_percent_fee():
    b = compute_payout(100, total_yes=700, total_no=300, fee_basis_points=200, winner=Outcome.YES)
    assert b.total_pool == 1000
    assert b.fee == 20
    assert b.distributable == 980
    assert b.winning_pool == 700
    assert b.payout == 140


def test_payout_without_fee_sole_winner_takes_pool():
    b = compute_payout(50, total_yes=50, total_no=50, fee_basis_points=0, winner=Outcome.YES)
    assert b.payout == 100


def test_payout_no_side_wins():
    b = compute_payout(300, total_yes=700, total_no=300, fee_basis_points=200, winner=Outcome.NO)
    assert b.winning_pool == 300
    assert b.payout == 980


def test_fee_rounds_down():
    assert compute_fee(999, 200) == 19
    assert compute_fee(49, 200) == 0
    assert compute_fee(1000, 10_000) == 1000


def test_full_fee_pays_nothing():
    b = compute_payout(10, total_yes=10, total_no=10, fee_basis_points=10_000, winner=Outcome.YES)
    assert b.distributable == 0
    assert b.payout == 0


@pytest.mark.parametrize("fee_bps", [-1, 10_001])
def test_fee_out_of_range_rejected(fee_bps):
    with pytest.raises(InvalidFee):
        compute_payout(10, 10, 10, fee_bps, Outcome.YES)


def test_empty_winning_pool_is_an_error_not_a_crash():
    with pytest.raises(EmptyWinningPool) as exc:
        compute_payout(10, total_yes=0, total_no=100, fee_basis_points=200, winner=Outcome.YES)
    assert exc.value.code == "empty_winning_pool"


def test_stake_larger_than_winning_pool_rejected():
    with pytest.raises(PayoutArithmeticError):
        compute_payout(101, total_yes=100, total_no=100, fee_basis_points=0, winner=Outcome.YES)


def test_pool_over_u64_rejected():
    with pytest.raises(AmountOverflow):
        compute_payout(1, total_yes=U64_MAX, total_no=1, fee_basis_points=0, winner=Outcome.YES)


def test_large_stakes_do_not_lose_precision():
    # amount * distributable is far beyond 64 bits here
    total_yes = U64_MAX // 2
    total_no = U64_MAX // 2
    b = compute_payout(total_yes, total_yes, total_no, fee_basis_points=0, winner=Outcome.YES)
    assert b.payout == total_yes + total_no


def test_sum_of_payouts_never_exceeds_distributable():
    stakes = [1, 2, 3, 7, 11, 13, 333]
    total_yes = sum(stakes)
    total_no = 977
    b0 = compute_payout(stakes[0], total_yes, total_no, 250, Outcome.YES)
    paid = sum(compute_payout(s, total_yes, total_no, 250, Outcome.YES).payout for s in stakes)
    assert paid <= b0.distributable
    # floor residue is less than one unit per winning bet
    assert b0.distributable - paid < len(stakes)


def test_quote_includes_the_hypothetical_stake():
    market = Market(market_id="m1", admin="admin", total_yes=600, total_no=300, fee_basis_points=200)
    b = quote_payout(market, Outcome.YES, 100)
    assert b.total_pool == 1000
    assert b.winning_pool == 700
    assert b.payout == 140
