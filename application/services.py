from __future__ import annotations

import logging
import time
import uuid
from decimal import Decimal
from typing import Callable, Iterable, List, Optional

from domain.amounts import AmountLike, parse_amount
from domain.errors import (
    LedgerError,
    LedgerWriteFailed,
    OutOfBounds,
    SettlementFailed,
    StoreUnavailable,
    UnknownGame,
)
from domain.models import Bet, BetResult, Game, SettlementOutcome, SettlementState
from domain.repositories import AccountStore, BetLedger, GameLimitsProvider

from .outcomes import CoinFlipPolicy, OutcomePolicy


logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


class SettlementEngine:
    """
    Validates wagers, moves stakes between accounts and records the result.

    The engine holds no locks of its own. Concurrent settlements on the same
    account are kept consistent by the account store's atomic
    `adjust_balance`, which is the only place a balance changes.

    Collaborators are injected so the engine can run against SQLite,
    Postgres, or the in-memory fakes used in tests.
    """

    def __init__(
        self,
        accounts: AccountStore,
        games: GameLimitsProvider,
        ledger: BetLedger,
        outcome_policy: Optional[OutcomePolicy] = None,
        credit_retries: int = 3,
        retry_delay: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if credit_retries < 0:
            raise ValueError("credit_retries must not be negative.")
        self._accounts = accounts
        self._games = games
        self._ledger = ledger
        self._policy = outcome_policy or CoinFlipPolicy()
        self._credit_retries = credit_retries
        self._retry_delay = retry_delay
        self._sleep = sleep

    # Wallet operations. These are not wagers and bypass the settlement flow.

    def deposit(self, account_id: str, amount: AmountLike) -> Decimal:
        balance = self._accounts.deposit(account_id, amount)
        logger.info("Deposit of %s to %s, balance %s", amount, account_id, balance)
        return balance

    def withdraw(self, account_id: str, amount: AmountLike) -> Decimal:
        balance = self._accounts.withdraw(account_id, amount)
        logger.info("Withdrawal of %s from %s, balance %s", amount, account_id, balance)
        return balance

    def get_balance(self, account_id: str) -> Decimal:
        return self._accounts.get_balance(account_id)

    def list_games(self) -> List[Game]:
        return self._games.list_games()

    def bets_for_user(self, user_id: str) -> Iterable[Bet]:
        return self._ledger.list_bets_for_user(user_id)

    def bets_for_game(self, game_id: str) -> Iterable[Bet]:
        return self._ledger.list_bets_for_game(game_id)

    # Settlement.

    def settle_wager(self, bettor_id: str, game_id: str, amount: AmountLike) -> SettlementOutcome:
        """
        Settle one wager end to end.

        - Validation errors and `InsufficientFunds` are raised before any
          balance changes.
        - If a credit cannot be applied after the configured retries, the
          stake is refunded and `SettlementFailed` is raised.
        - A failure to write the audit record is logged and does not undo
          the fund movement; the returned outcome then has no `bet_id`.
        """

        ref = uuid.uuid4().hex[:8]
        self._log_state(ref, SettlementState.VALIDATING)

        try:
            stake = parse_amount(amount)
            game = self._load_game(game_id, stake)
            balance = self._accounts.adjust_balance(bettor_id, -stake)
        except LedgerError as exc:
            self._log_state(ref, SettlementState.REJECTED)
            logger.info("Wager by %s on %s rejected: %s", bettor_id, game_id, exc)
            raise

        self._log_state(ref, SettlementState.STAKE_DEBITED)

        try:
            result = self._policy.resolve(game)
        except Exception as exc:
            raise self._compensate(ref, bettor_id, game_id, stake, exc) from exc

        if result is BetResult.WIN:
            payout = stake * 2
            credit_to, credit_amount = bettor_id, payout
        else:
            payout = ZERO
            credit_to, credit_amount = game.created_by, stake

        try:
            credited_balance = self._credit(ref, credit_to, credit_amount)
        except Exception as exc:
            raise self._compensate(ref, bettor_id, game_id, stake, exc) from exc

        # A LOSE on one's own game credits the bettor back.
        if credit_to == bettor_id:
            balance = credited_balance

        self._log_state(ref, SettlementState.RESOLVED)
        outcome = SettlementOutcome(
            result=result,
            payout=payout,
            balance=balance,
            state=SettlementState.RESOLVED,
        )

        try:
            outcome.bet_id = self._ledger.record_bet(bettor_id, game_id, stake, result)
        except Exception as exc:
            failure = LedgerWriteFailed(
                f"[{ref}] {result.value} of {stake} by {bettor_id} on {game_id} "
                f"settled but was not recorded: {exc}"
            )
            logger.warning("%s", failure, exc_info=exc)
            return outcome

        outcome.state = SettlementState.RECORDED
        self._log_state(ref, SettlementState.RECORDED)
        logger.info(
            "Wager %s by %s on %s: %s, payout %s",
            outcome.bet_id,
            bettor_id,
            game_id,
            result.value,
            payout,
        )
        return outcome

    def _load_game(self, game_id: str, stake: Decimal) -> Game:
        game = self._games.get_game(game_id)
        if game is None:
            raise UnknownGame(game_id)
        if not game.accepts(stake):
            raise OutOfBounds(stake, game.min_bet, game.max_bet)
        return game

    def _credit(self, ref: str, account_id: str, amount: Decimal) -> Decimal:
        """
        Credit `amount`, retrying `StoreUnavailable` with exponential backoff.

        Any other error, or running out of attempts, propagates.
        """

        attempts = self._credit_retries + 1
        attempt = 1
        while True:
            try:
                return self._accounts.adjust_balance(account_id, amount)
            except StoreUnavailable as exc:
                if attempt >= attempts:
                    raise
                delay = self._retry_delay * (2 ** (attempt - 1))
                logger.warning(
                    "[%s] Credit of %s to %s failed (attempt %d/%d), retrying in %.2fs: %s",
                    ref,
                    amount,
                    account_id,
                    attempt,
                    attempts,
                    delay,
                    exc,
                )
                self._sleep(delay)
                attempt += 1

    def _compensate(
        self,
        ref: str,
        bettor_id: str,
        game_id: str,
        stake: Decimal,
        cause: BaseException,
    ) -> SettlementFailed:
        """Refund the stake and build the error to raise to the caller."""

        try:
            self._credit(ref, bettor_id, stake)
        except Exception as exc:
            logger.critical(
                "[%s] Refund of %s to %s failed after %s; stake is held by the ledger",
                ref,
                stake,
                bettor_id,
                cause,
                exc_info=exc,
            )
            return SettlementFailed(bettor_id, game_id, stake, compensated=False, cause=exc)

        self._log_state(ref, SettlementState.COMPENSATED)
        logger.warning("[%s] Wager by %s on %s refunded: %s", ref, bettor_id, game_id, cause)
        return SettlementFailed(bettor_id, game_id, stake, compensated=True, cause=cause)

    @staticmethod
    def _log_state(ref: str, state: SettlementState) -> None:
        logger.debug("[%s] -> %s", ref, state.value)
