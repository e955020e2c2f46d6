from __future__ import annotations

from decimal import Decimal
from typing import Iterable, List, Optional, Protocol

from .amounts import AmountLike, parse_amount
from .models import Bet, BetResult, Game


class AccountStore(Protocol):
    """
    Single source of truth for live balances.

    Implementations are responsible for:
    - Applying every balance change atomically at the storage layer, so
      concurrent adjustments on one account behave as some serial order.
    - Never letting a balance go below zero.
    - Translating driver errors into `StoreUnavailable`.
    """

    def open_account(self, account_id: str, initial_balance: Decimal = Decimal("0")) -> None:
        """Create the account if it does not exist yet; a no-op otherwise."""

        ...

    def get_balance(self, account_id: str) -> Decimal:
        """Return the current balance, or raise `AccountNotFound`."""

        ...

    def adjust_balance(self, account_id: str, delta: Decimal) -> Decimal:
        """
        Apply `balance += delta` atomically and return the new balance.

        A positive delta creates the account if needed. A negative delta
        that would leave the balance below zero raises `InsufficientFunds`
        and leaves the balance unchanged.
        """

        ...

    def deposit(self, account_id: str, amount: AmountLike) -> Decimal:
        return self.adjust_balance(account_id, parse_amount(amount))

    def withdraw(self, account_id: str, amount: AmountLike) -> Decimal:
        return self.adjust_balance(account_id, -parse_amount(amount))


class GameLimitsProvider(Protocol):
    """
    Read-only view of the game catalog.
    """

    def get_game(self, game_id: str) -> Optional[Game]:
        """Return the game with the given ID, or None if not found."""

        ...

    def list_games(self) -> List[Game]:
        ...


class BetLedger(Protocol):
    """
    Append-only store of settled wagers.

    No update or delete operation is exposed.
    """

    def record_bet(
        self,
        user_id: str,
        game_id: str,
        amount: Decimal,
        result: BetResult,
    ) -> str:
        """Insert a new bet and return its ID. Raises `InvalidAmount` if `amount <= 0`."""

        ...

    def list_bets_for_user(self, user_id: str) -> Iterable[Bet]:
        """
        Most recent first.

        Each iteration over the returned object runs a fresh query.
        """

        ...

    def list_bets_for_game(self, game_id: str) -> Iterable[Bet]:
        ...
