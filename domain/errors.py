from __future__ import annotations

from decimal import Decimal
from typing import Optional


class LedgerError(Exception):
    """Base class for every error raised by the ledger."""


class ValidationError(LedgerError):
    """A request was rejected before any balance was touched."""


class InvalidAmount(ValidationError):
    pass


class OutOfBounds(ValidationError):
    def __init__(self, amount: Decimal, min_bet: Decimal, max_bet: Decimal) -> None:
        super().__init__(f"Wager {amount} is outside the limits [{min_bet}, {max_bet}].")
        self.amount = amount
        self.min_bet = min_bet
        self.max_bet = max_bet


class UnknownGame(ValidationError):
    def __init__(self, game_id: str) -> None:
        super().__init__(f"Unknown game: {game_id}")
        self.game_id = game_id


class AccountNotFound(LedgerError):
    def __init__(self, account_id: str) -> None:
        super().__init__(f"Account not found: {account_id}")
        self.account_id = account_id


class InsufficientFunds(LedgerError):
    def __init__(self, account_id: str, balance: Decimal, requested: Decimal) -> None:
        super().__init__(
            f"Account {account_id} has {balance}, cannot debit {requested}."
        )
        self.account_id = account_id
        self.balance = balance
        self.requested = requested


class StoreUnavailable(LedgerError):
    """
    A storage backend could not complete an operation.

    Raised by the database adapters in place of driver-specific errors.
    The settlement engine treats it as transient and retries credits.
    """


class SettlementFailed(LedgerError):
    """
    A wager could not be settled after its stake was debited.

    When `compensated` is true the stake has already been refunded and the
    bettor's balance is as it was before the wager.
    """

    def __init__(
        self,
        bettor_id: str,
        game_id: str,
        amount: Decimal,
        compensated: bool = True,
        cause: Optional[BaseException] = None,
    ) -> None:
        state = "stake refunded" if compensated else "refund failed"
        super().__init__(
            f"Wager of {amount} by {bettor_id} on {game_id} did not settle ({state})."
        )
        self.bettor_id = bettor_id
        self.game_id = game_id
        self.amount = amount
        self.compensated = compensated
        self.cause = cause


class LedgerWriteFailed(LedgerError):
    """The audit record of a completed settlement could not be written."""
