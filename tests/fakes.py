import threading
from datetime import datetime, timezone
from decimal import Decimal
from itertools import count

from domain.amounts import check_delta
from domain.errors import AccountNotFound, InsufficientFunds, InvalidAmount, StoreUnavailable
from domain.models import Bet, BetResult, Game
from domain.repositories import AccountStore, BetLedger, GameLimitsProvider


class InMemoryAccountStore(AccountStore):
    def __init__(self, balances=None):
        self.balances = {k: Decimal(v) for k, v in (balances or {}).items()}
        self._lock = threading.Lock()

    def open_account(self, account_id, initial_balance=Decimal("0")):
        with self._lock:
            self.balances.setdefault(account_id, Decimal(initial_balance))

    def get_balance(self, account_id):
        with self._lock:
            if account_id not in self.balances:
                raise AccountNotFound(account_id)
            return self.balances[account_id]

    def adjust_balance(self, account_id, delta):
        delta = check_delta(delta)
        with self._lock:
            current = self.balances.get(account_id, Decimal("0"))
            if current + delta < 0:
                raise InsufficientFunds(account_id, current, -delta)
            self.balances[account_id] = current + delta
            return self.balances[account_id]


class FlakyAccountStore(InMemoryAccountStore):
    """Fails credits to `flaky_account` with `StoreUnavailable` `failures` times."""

    def __init__(self, balances=None, flaky_account=None, failures=0):
        super().__init__(balances)
        self.flaky_account = flaky_account
        self.failures = failures
        self.failed_calls = 0

    def adjust_balance(self, account_id, delta):
        if account_id == self.flaky_account and delta > 0 and self.failures > 0:
            self.failures -= 1
            self.failed_calls += 1
            raise StoreUnavailable("connection reset")
        return super().adjust_balance(account_id, delta)


class InMemoryGameCatalog(GameLimitsProvider):
    def __init__(self, games=()):
        self.games = {game.id: game for game in games}

    def get_game(self, game_id):
        return self.games.get(game_id)

    def list_games(self):
        return list(self.games.values())


class InMemoryBetLedger(BetLedger):
    def __init__(self):
        self.bets = []
        self._ids = count(1)
        self._lock = threading.Lock()

    def record_bet(self, user_id, game_id, amount, result):
        if amount <= 0:
            raise InvalidAmount("Bet amount must be greater than zero.")
        with self._lock:
            bet = Bet(
                id=str(next(self._ids)),
                user_id=user_id,
                game_id=game_id,
                amount=amount,
                result=result,
                created_at=datetime.now(timezone.utc),
            )
            self.bets.append(bet)
            return bet.id

    def list_bets_for_user(self, user_id):
        return [b for b in reversed(self.bets) if b.user_id == user_id]

    def list_bets_for_game(self, game_id):
        return [b for b in reversed(self.bets) if b.game_id == game_id]


class BrokenBetLedger(InMemoryBetLedger):
    def record_bet(self, user_id, game_id, amount, result):
        raise StoreUnavailable("ledger offline")


class FixedOutcome:
    def __init__(self, result: BetResult):
        self.result = result

    def resolve(self, game):
        return self.result


def make_game(game_id="dice", min_bet="10", max_bet="50", created_by="house"):
    return Game(
        id=game_id,
        min_bet=Decimal(min_bet),
        max_bet=Decimal(max_bet),
        created_by=created_by,
        title=game_id.title(),
    )
