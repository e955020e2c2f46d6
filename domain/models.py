from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class BetResult(str, Enum):
    # PENDING is reserved; settlements are synchronous and never write it.
    PENDING = "PENDING"
    WIN = "WIN"
    LOSE = "LOSE"


class SettlementState(str, Enum):
    VALIDATING = "VALIDATING"
    REJECTED = "REJECTED"
    STAKE_DEBITED = "STAKE_DEBITED"
    RESOLVED = "RESOLVED"
    RECORDED = "RECORDED"
    COMPENSATED = "COMPENSATED"


@dataclass
class Account:
    """
    A balance holder in the ledger.

    Bettors and game creators share the same id namespace, so the same
    account can place wagers on one game and collect lost stakes on another.
    """

    id: str
    balance: Decimal


@dataclass
class Game:
    """
    Wager limits for a game, owned by the game catalog.

    The ledger only reads these fields; `created_by` is the counterparty
    account that collects lost stakes.
    """

    id: str
    min_bet: Decimal
    max_bet: Decimal
    created_by: str
    title: str = ""

    def accepts(self, amount: Decimal) -> bool:
        return self.min_bet <= amount <= self.max_bet


@dataclass(frozen=True)
class Bet:
    """An immutable audit record of one settled wager."""

    id: str
    user_id: str
    game_id: str
    amount: Decimal
    result: BetResult
    created_at: datetime


@dataclass
class SettlementOutcome:
    """Result returned to the caller of `SettlementEngine.settle_wager`."""

    result: BetResult
    payout: Decimal
    balance: Decimal
    state: SettlementState
    bet_id: Optional[str] = None

    @property
    def recorded(self) -> bool:
        return self.bet_id is not None
