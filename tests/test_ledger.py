"""Escrow ledger: balances, transfers, zero-sum journal."""

import pytest

from predbets.errors import AmountOverflow, ConcurrentModification, InsufficientFunds, InvalidAmount
from predbets.ledger import MINT_ACCOUNT, EscrowLedger, escrow_account, user_account
from predbets.models import U64_MAX
from predbets.storage.db import get_connection, transaction


@pytest.fixture
def ledger(temp_db):
    return EscrowLedger(temp_db)


def test_unknown_account_has_zero_balance(ledger):
    assert ledger.balance(user_account("nobody")) == 0


def test_deposit_books_against_mint(ledger):
    assert ledger.deposit(user_account("alice"), 500) == 500
    assert ledger.deposit(user_account("alice"), 250) == 750
    assert ledger.balance(MINT_ACCOUNT) == 0
    assert ledger.account_journal_sum(MINT_ACCOUNT) == -750
    assert ledger.journal_sum() == 0


def test_transfer_moves_value_under_one_tx(ledger):
    alice, escrow = user_account("alice"), escrow_account("m1")
    ledger.deposit(alice, 100)
    tx_id = ledger.transfer(alice, escrow, 60, reason="stake", market_id="m1")
    assert ledger.balance(alice) == 40
    assert ledger.balance(escrow) == 60
    assert ledger.journal_sum(tx_id) == 0
    entries = ledger.entries(market_id="m1")
    assert [(e["account_id"], e["delta"]) for e in entries] == [(alice, -60), (escrow, 60)]
    assert ledger.account_journal_sum(escrow) == ledger.balance(escrow)


def test_insufficient_funds(ledger):
    alice = user_account("alice")
    ledger.deposit(alice, 10)
    with pytest.raises(InsufficientFunds):
        ledger.transfer(alice, escrow_account("m1"), 11, reason="stake")
    assert ledger.balance(alice) == 10


@pytest.mark.parametrize("amount", [0, -1, U64_MAX + 1, "10"])
def test_invalid_amounts(ledger, amount):
    with pytest.raises(InvalidAmount):
        ledger.deposit(user_account("alice"), amount)


def test_credit_over_u64_rejected(ledger):
    alice = user_account("alice")
    ledger.deposit(alice, U64_MAX)
    with pytest.raises(AmountOverflow):
        ledger.deposit(alice, 1)
    assert ledger.balance(alice) == U64_MAX


def test_rolled_back_transfer_leaves_no_entries(temp_db, ledger):
    alice = user_account("alice")
    ledger.deposit(alice, 100)
    before = len(ledger.entries())
    with pytest.raises(InsufficientFunds):
        with transaction(temp_db):
            ledger.transfer(alice, escrow_account("m1"), 50, reason="stake")
            ledger.transfer(alice, escrow_account("m1"), 60, reason="stake")
    assert ledger.balance(alice) == 100
    assert ledger.balance(escrow_account("m1")) == 0
    assert len(ledger.entries()) == before


def test_write_conflict_maps_to_concurrent_modification(db_path, temp_db, ledger):
    alice = user_account("alice")
    ledger.deposit(alice, 100)
    other = get_connection(db_path)
    try:
        with pytest.raises(ConcurrentModification):
            with transaction(other):
                EscrowLedger(other).balance(alice)
                # a second writer commits to the same balance row first
                with transaction(temp_db):
                    ledger.transfer(alice, escrow_account("m1"), 30, reason="stake")
                EscrowLedger(other).transfer(alice, escrow_account("m2"), 30, reason="stake")
    finally:
        other.close()
    assert ledger.balance(alice) == 70
    assert ledger.balance(escrow_account("m1")) == 30
    assert ledger.balance(escrow_account("m2")) == 0
    assert ledger.journal_sum() == 0
