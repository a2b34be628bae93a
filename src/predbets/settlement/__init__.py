"""Market lifecycle, bet escrow and payout settlement."""

from predbets.settlement.payout import PayoutBreakdown, compute_fee, compute_payout, quote_payout
from predbets.settlement.service import ClaimResult, SettlementService, parse_vote

__all__ = [
    "ClaimResult",
    "PayoutBreakdown",
    "SettlementService",
    "compute_fee",
    "compute_payout",
    "parse_vote",
    "quote_payout",
]
