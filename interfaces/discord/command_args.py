from __future__ import annotations

from decimal import Decimal
from itertools import islice
from typing import Iterable, List

from domain.amounts import parse_amount
from domain.errors import (
    AccountNotFound,
    InsufficientFunds,
    InvalidAmount,
    LedgerError,
    OutOfBounds,
    SettlementFailed,
    UnknownGame,
)
from domain.models import Bet, BetResult, Game, SettlementOutcome


def parse_amount_arg(raw: str) -> Decimal:
    """
    Parse an amount typed in chat.

    Accepts a leading currency sign and a comma as decimal separator
    ("$12,50" -> 12.50). Raises `InvalidAmount` for anything else.
    """

    text = raw.strip().lstrip("$").replace(",", ".")
    if not text:
        raise InvalidAmount("Please provide an amount.")
    return parse_amount(text)


def format_amount(amount: Decimal) -> str:
    return f"${amount:.2f}"


def describe_error(error: LedgerError) -> str:
    """Turn a ledger error into the message shown to the player."""

    if isinstance(error, OutOfBounds):
        return (
            f"The bet must be between {format_amount(error.min_bet)} "
            f"and {format_amount(error.max_bet)}."
        )
    if isinstance(error, InsufficientFunds):
        return f"Insufficient funds: your balance is {format_amount(error.balance)}."
    if isinstance(error, UnknownGame):
        return f"No game with id `{error.game_id}`. Use !games to see the list."
    if isinstance(error, AccountNotFound):
        return "You have no wallet yet. Use !deposit <amount> to open one."
    if isinstance(error, SettlementFailed):
        if error.compensated:
            return "The bet could not be settled and your stake was returned. Please try again."
        return "The bet could not be settled. Our team has been notified."
    if isinstance(error, InvalidAmount):
        return str(error)
    return "Something went wrong, please try again."


def describe_outcome(outcome: SettlementOutcome, stake: Decimal) -> str:
    """Reply for a settled bet. `payout` includes the returned stake."""

    if outcome.result is BetResult.WIN:
        text = f"You won {format_amount(outcome.payout - stake)}!"
    else:
        text = f"You lost {format_amount(stake)}."
    return f"{text} Balance: {format_amount(outcome.balance)}"


def format_games(games: Iterable[Game]) -> str:
    lines: List[str] = []
    for game in games:
        title = game.title or game.id
        lines.append(
            f"`{game.id}` {title}: min {format_amount(game.min_bet)} / max {format_amount(game.max_bet)}"
        )
    if not lines:
        return "No games available yet."
    return "\n".join(lines)


def format_history(bets: Iterable[Bet], limit: int = 10) -> str:
    lines = [
        f"{bet.created_at:%Y-%m-%d %H:%M} {bet.game_id}: {bet.result.value} {format_amount(bet.amount)}"
        for bet in islice(bets, limit)
    ]
    if not lines:
        return "No bets yet."
    return "\n".join(lines)
