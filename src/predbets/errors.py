"""Settlement error taxonomy. Every error carries a stable machine-readable code."""

from __future__ import annotations


class SettlementError(Exception):
    """Base for all rejected operations. Nothing is committed when one is raised."""

    code: str = "settlement_error"
    status_code: int = 400
    default_message: str = "Operation rejected."

    def __init__(self, message: str | None = None, **context: object) -> None:
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        return {"detail": self.message, "code": self.code}


# --- State ---
class StateError(SettlementError):
    status_code = 409


class MarketClosed(StateError):
    code = "market_closed"
    default_message = "Market is closed."


class AlreadyResolved(StateError):
    code = "already_resolved"
    default_message = "Market already resolved."


class MarketNotResolved(StateError):
    code = "market_not_resolved"
    default_message = "Market is not resolved yet."


# --- Outcome ---
class OutcomeError(SettlementError):
    status_code = 409


class YouLost(OutcomeError):
    code = "you_lost"
    default_message = "Sorry, you lost."


# --- Idempotency ---
class IdempotencyError(SettlementError):
    status_code = 409


class AlreadyClaimed(IdempotencyError):
    code = "already_claimed"
    default_message = "Already claimed."


class DuplicateBet(IdempotencyError):
    code = "duplicate_bet"
    default_message = "A bet already exists for this user on this market."


class DuplicateMarket(IdempotencyError):
    code = "duplicate_market"
    default_message = "Market already exists."


# --- Authorization ---
class AuthorizationError(SettlementError):
    status_code = 403


class Unauthorized(AuthorizationError):
    code = "unauthorized"
    default_message = "Caller is not allowed to perform this action."


# --- Arithmetic ---
class PayoutArithmeticError(SettlementError):
    code = "arithmetic_error"
    status_code = 422
    default_message = "Amount arithmetic out of range."


class AmountOverflow(PayoutArithmeticError):
    code = "amount_overflow"
    default_message = "Amount exceeds the unsigned 64-bit range."


class EmptyWinningPool(PayoutArithmeticError):
    code = "empty_winning_pool"
    default_message = "Winning pool is empty; payout is undefined."


# --- Validation ---
class ValidationError(SettlementError):
    code = "invalid_request"
    status_code = 422


class InvalidAmount(ValidationError):
    code = "invalid_amount"
    default_message = "Amount must be a positive unsigned 64-bit integer."


class InvalidFee(ValidationError):
    code = "invalid_fee"
    default_message = "fee_basis_points must be between 0 and 10000."


class InvalidMarketId(ValidationError):
    code = "invalid_market_id"
    default_message = "market_id must be a non-empty string."


class InvalidAdmin(ValidationError):
    code = "invalid_admin"
    default_message = "admin must be a non-empty identity."


class InvalidVote(ValidationError):
    code = "invalid_vote"
    default_message = "Vote must be 'yes' or 'no'."


# --- Lookup ---
class NotFoundError(SettlementError):
    status_code = 404


class MarketNotFound(NotFoundError):
    code = "market_not_found"
    default_message = "Market not found."


class BetNotFound(NotFoundError):
    code = "bet_not_found"
    default_message = "Bet not found."


# --- Ledger ---
class LedgerError(SettlementError):
    code = "ledger_error"
    status_code = 409


class InsufficientFunds(LedgerError):
    code = "insufficient_funds"
    default_message = "Insufficient balance."


class ConcurrentModification(LedgerError):
    code = "concurrent_modification"
    default_message = "Record was modified concurrently; resubmit the request."
