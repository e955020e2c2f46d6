import unittest
from datetime import datetime, timezone
from decimal import Decimal

from domain.errors import (
    InsufficientFunds,
    InvalidAmount,
    OutOfBounds,
    SettlementFailed,
    UnknownGame,
)
from domain.models import Bet, BetResult, SettlementOutcome, SettlementState
from interfaces.discord.command_args import (
    describe_error,
    describe_outcome,
    format_games,
    format_history,
    parse_amount_arg,
)

from fakes import make_game


class ParseAmountArgTests(unittest.TestCase):
    def test_accepts_common_spellings(self):
        self.assertEqual(parse_amount_arg("20"), Decimal("20.00"))
        self.assertEqual(parse_amount_arg(" $12.5 "), Decimal("12.50"))
        self.assertEqual(parse_amount_arg("12,50"), Decimal("12.50"))

    def test_rejects_garbage(self):
        for raw in ("", "$", "ten", "-5", "0", "1e400", "0.001", "1e20", "10000000000000000"):
            with self.subTest(raw=raw):
                with self.assertRaises(InvalidAmount):
                    parse_amount_arg(raw)

    def test_largest_amount_is_accepted(self):
        self.assertEqual(parse_amount_arg("9999999999999999.99"), Decimal("9999999999999999.99"))


class DescribeErrorTests(unittest.TestCase):
    def test_messages(self):
        self.assertIn(
            "$10.00 and $50.00",
            describe_error(OutOfBounds(Decimal("5"), Decimal("10"), Decimal("50"))),
        )
        self.assertIn(
            "$5.00",
            describe_error(InsufficientFunds("alice", Decimal("5"), Decimal("20"))),
        )
        self.assertIn("roulette", describe_error(UnknownGame("roulette")))
        self.assertIn(
            "try again",
            describe_error(SettlementFailed("alice", "dice", Decimal("20"))),
        )
        self.assertNotIn(
            "try again",
            describe_error(SettlementFailed("alice", "dice", Decimal("20"), compensated=False)),
        )


class DescribeOutcomeTests(unittest.TestCase):
    def test_win_reports_net_winnings(self):
        outcome = SettlementOutcome(
            result=BetResult.WIN,
            payout=Decimal("40.00"),
            balance=Decimal("120.00"),
            state=SettlementState.RECORDED,
            bet_id="1",
        )
        self.assertEqual(describe_outcome(outcome, Decimal("20")), "You won $20.00! Balance: $120.00")

    def test_lose_reports_stake(self):
        outcome = SettlementOutcome(
            result=BetResult.LOSE,
            payout=Decimal("0.00"),
            balance=Decimal("80.00"),
            state=SettlementState.RECORDED,
            bet_id="2",
        )
        self.assertEqual(describe_outcome(outcome, Decimal("20")), "You lost $20.00. Balance: $80.00")


class FormattingTests(unittest.TestCase):
    def test_format_games(self):
        self.assertEqual(format_games([]), "No games available yet.")
        text = format_games([make_game("dice", "10", "50")])
        self.assertEqual(text, "`dice` Dice: min $10.00 / max $50.00")

    def test_format_history_limits_output(self):
        bets = [
            Bet(
                id=str(i),
                user_id="alice",
                game_id="dice",
                amount=Decimal("10"),
                result=BetResult.WIN,
                created_at=datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc),
            )
            for i in range(15)
        ]
        lines = format_history(bets, limit=3).splitlines()
        self.assertEqual(len(lines), 3)
        self.assertEqual(lines[0], "2024-05-01 12:30 dice: WIN $10.00")
        self.assertEqual(format_history([]), "No bets yet.")


if __name__ == "__main__":
    unittest.main()
