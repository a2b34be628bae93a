"""Reconciliation of markets against bets, the event log and escrow."""

from predbets.models import Outcome
from predbets.replay.audit import audit_all, audit_market, journal_imbalance, replay_pool_series


def _market_with_bets(service, fund):
    fund("alice", "bob", "carol")
    service.create_market("m1", "admin")
    service.place_bet("alice", "m1", Outcome.YES, 600)
    service.place_bet("bob", "m1", Outcome.NO, 300)
    service.place_bet("carol", "m1", Outcome.YES, 100)


def test_audit_unknown_market(temp_db):
    assert audit_market(temp_db, "nope") is None


def test_audit_open_market_ok(service, fund, temp_db):
    _market_with_bets(service, fund)
    report = audit_market(temp_db, "m1")
    assert report.ok, report.issues
    assert (report.bets_yes, report.bets_no) == (700, 300)
    assert (report.events_yes, report.events_no) == (700, 300)
    assert report.escrow_balance == 1000
    assert report.outstanding_liability == 1000
    assert report.residue == 0


def test_audit_after_settlement_reports_residue(service, fund, temp_db):
    _market_with_bets(service, fund)
    service.resolve_market("admin", "m1", Outcome.YES)
    service.claim("alice", "m1")
    report = audit_market(temp_db, "m1")
    assert report.ok, report.issues
    assert report.total_paid == 840
    assert report.outstanding_liability == 140
    assert report.fee == 20
    assert report.residue == 1000 - 840 - 140
    assert report.to_dict()["ok"] is True


def test_audit_detects_tampered_totals(service, fund, temp_db):
    _market_with_bets(service, fund)
    temp_db.execute("UPDATE markets SET total_yes = 900 WHERE market_id = 'm1'")
    report = audit_market(temp_db, "m1")
    assert not report.ok
    assert any("bet sums" in issue for issue in report.issues)
    assert any("escrow" in issue for issue in report.issues)


def test_audit_all_and_journal(service, fund, temp_db):
    _market_with_bets(service, fund)
    service.create_market("m2", "admin")
    reports = audit_all(temp_db)
    assert {r.market_id for r in reports} == {"m1", "m2"}
    assert all(r.ok for r in reports)
    assert journal_imbalance(temp_db) == 0


def test_replay_pool_series(service, fund, temp_db):
    _market_with_bets(service, fund)
    series = replay_pool_series(temp_db, "m1")
    assert [(yes, no) for _, yes, no in series] == [(600, 0), (600, 300), (700, 300)]
