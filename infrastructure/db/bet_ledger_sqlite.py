from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterator, List

from domain.amounts import from_minor_units, to_minor_units
from domain.errors import InvalidAmount, StoreUnavailable
from domain.models import Bet, BetResult
from domain.repositories import BetLedger


_COLUMNS = "id, user_id, game_id, amount, result, created_at"


class _BetQuery:
    """
    Lazy view over a bet query.

    Nothing runs until the view is iterated, and every iteration runs the
    query again, so two consumers never share a cursor.
    """

    def __init__(self, ledger: "SqliteBetLedger", column: str, value: str) -> None:
        self._ledger = ledger
        self._column = column
        self._value = value

    def __iter__(self) -> Iterator[Bet]:
        return iter(self._ledger._fetch(self._column, self._value))


class SqliteBetLedger(BetLedger):
    """
    SQLite-backed implementation of `BetLedger`.

    Owns the `bets` table. Triggers reject UPDATE and DELETE so the table
    stays append-only even for code that bypasses this class.
    """

    def __init__(self, db_path: str, timeout: float = 5.0) -> None:
        self._db_path = db_path
        self._timeout = timeout
        self._ensure_table()

    def _get_connection(self) -> sqlite3.Connection:
        return sqlite3.connect(self._db_path, timeout=self._timeout)

    def _ensure_table(self) -> None:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS bets (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    game_id TEXT NOT NULL,
                    amount INTEGER NOT NULL CHECK (amount > 0),
                    result TEXT NOT NULL CHECK (result IN ('PENDING', 'WIN', 'LOSE')),
                    created_at TEXT NOT NULL
                )
                """
            )
            cur.execute("CREATE INDEX IF NOT EXISTS bets_user_id ON bets (user_id)")
            cur.execute("CREATE INDEX IF NOT EXISTS bets_game_id ON bets (game_id)")
            cur.execute(
                """
                CREATE TRIGGER IF NOT EXISTS bets_no_update
                BEFORE UPDATE ON bets
                BEGIN
                    SELECT RAISE(ABORT, 'bets are append-only');
                END
                """
            )
            cur.execute(
                """
                CREATE TRIGGER IF NOT EXISTS bets_no_delete
                BEFORE DELETE ON bets
                BEGIN
                    SELECT RAISE(ABORT, 'bets are append-only');
                END
                """
            )
            conn.commit()

    @staticmethod
    def _to_domain(row: sqlite3.Row) -> Bet:
        return Bet(
            id=str(row[0]),
            user_id=row[1],
            game_id=row[2],
            amount=from_minor_units(row[3]),
            result=BetResult(row[4]),
            created_at=datetime.fromisoformat(row[5]),
        )

    def record_bet(
        self,
        user_id: str,
        game_id: str,
        amount: Decimal,
        result: BetResult,
    ) -> str:
        if amount <= 0:
            raise InvalidAmount("Bet amount must be greater than zero.")

        created_at = datetime.now(timezone.utc).isoformat()
        try:
            with self._get_connection() as conn:
                cur = conn.cursor()
                cur.execute(
                    """
                    INSERT INTO bets (user_id, game_id, amount, result, created_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (user_id, game_id, to_minor_units(amount), BetResult(result).value, created_at),
                )
                conn.commit()
                return str(cur.lastrowid)
        except sqlite3.OperationalError as exc:
            raise StoreUnavailable(str(exc)) from exc

    def list_bets_for_user(self, user_id: str) -> _BetQuery:
        return _BetQuery(self, "user_id", user_id)

    def list_bets_for_game(self, game_id: str) -> _BetQuery:
        return _BetQuery(self, "game_id", game_id)

    def _fetch(self, column: str, value: str) -> List[Bet]:
        # `column` is one of the two literals above, never user input.
        try:
            with self._get_connection() as conn:
                cur = conn.cursor()
                cur.execute(
                    f"SELECT {_COLUMNS} FROM bets WHERE {column} = ? ORDER BY id DESC",
                    (value,),
                )
                rows = cur.fetchall()
        except sqlite3.OperationalError as exc:
            raise StoreUnavailable(str(exc)) from exc
        return [self._to_domain(row) for row in rows]
