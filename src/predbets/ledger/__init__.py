"""Escrow ledger: holding accounts and the zero-sum transfer journal."""

from predbets.ledger.escrow import MINT_ACCOUNT, EscrowLedger, escrow_account, user_account

__all__ = ["EscrowLedger", "MINT_ACCOUNT", "escrow_account", "user_account"]
