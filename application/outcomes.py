from __future__ import annotations

import random
from decimal import Decimal
from typing import Optional, Protocol

from domain.models import BetResult, Game


class OutcomePolicy(Protocol):
    def resolve(self, game: Game) -> BetResult:
        ...


class CoinFlipPolicy:
    """
    Each settlement is an independent Bernoulli trial.

    `win_probability` and the random source are injected so tests can pass
    a seeded `random.Random` or force the outcome with 0 / 1.
    """

    def __init__(
        self,
        win_probability: Decimal = Decimal("0.5"),
        rng: Optional[random.Random] = None,
    ) -> None:
        win_probability = Decimal(str(win_probability))
        if not (Decimal("0") <= win_probability <= Decimal("1")):
            raise ValueError(f"win_probability must be within [0, 1], got {win_probability}")
        self.win_probability = win_probability
        self._rng = rng or random.SystemRandom()

    def resolve(self, game: Game) -> BetResult:
        if self._rng.random() < float(self.win_probability):
            return BetResult.WIN
        return BetResult.LOSE
