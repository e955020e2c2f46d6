from __future__ import annotations

from decimal import Decimal
from typing import Iterator, List

import psycopg2

from domain.errors import InvalidAmount, StoreUnavailable
from domain.models import Bet, BetResult
from domain.repositories import BetLedger


class _BetQuery:
    """Lazy, restartable view: each iteration runs the query again."""

    def __init__(self, ledger: "PostgresBetLedger", column: str, value: str) -> None:
        self._ledger = ledger
        self._column = column
        self._value = value

    def __iter__(self) -> Iterator[Bet]:
        return iter(self._ledger._fetch(self._column, self._value))


class PostgresBetLedger(BetLedger):
    """
    Postgres-backed implementation of `BetLedger`.

    IDs come from a BIGSERIAL column; `created_at` is set by the database.
    """

    def __init__(self, db_params: dict) -> None:
        self._db_params = db_params
        self._ensure_table()

    def _get_connection(self):
        try:
            return psycopg2.connect(**self._db_params)
        except psycopg2.OperationalError as exc:
            raise StoreUnavailable(str(exc)) from exc

    def _ensure_table(self) -> None:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    CREATE TABLE IF NOT EXISTS bets (
                        id BIGSERIAL PRIMARY KEY,
                        user_id TEXT NOT NULL,
                        game_id TEXT NOT NULL,
                        amount NUMERIC(18, 2) NOT NULL CHECK (amount > 0),
                        result TEXT NOT NULL CHECK (result IN ('PENDING', 'WIN', 'LOSE')),
                        created_at TIMESTAMPTZ NOT NULL DEFAULT now()
                    )
                    """
                )
                cur.execute("CREATE INDEX IF NOT EXISTS bets_user_id ON bets (user_id)")
                cur.execute("CREATE INDEX IF NOT EXISTS bets_game_id ON bets (game_id)")
                conn.commit()

    @staticmethod
    def _to_domain(row: tuple) -> Bet:
        return Bet(
            id=str(row[0]),
            user_id=row[1],
            game_id=row[2],
            amount=Decimal(row[3]),
            result=BetResult(row[4]),
            created_at=row[5],
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

        try:
            with self._get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        INSERT INTO bets (user_id, game_id, amount, result)
                        VALUES (%s, %s, %s, %s)
                        RETURNING id
                        """,
                        (user_id, game_id, amount, BetResult(result).value),
                    )
                    bet_id = cur.fetchone()[0]
                    conn.commit()
                    return str(bet_id)
        except (psycopg2.OperationalError, psycopg2.InterfaceError) as exc:
            raise StoreUnavailable(str(exc)) from exc

    def list_bets_for_user(self, user_id: str) -> _BetQuery:
        return _BetQuery(self, "user_id", user_id)

    def list_bets_for_game(self, game_id: str) -> _BetQuery:
        return _BetQuery(self, "game_id", game_id)

    def _fetch(self, column: str, value: str) -> List[Bet]:
        try:
            with self._get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        f"""
                        SELECT id, user_id, game_id, amount, result, created_at
                        FROM bets
                        WHERE {column} = %s
                        ORDER BY id DESC
                        """,
                        (value,),
                    )
                    rows = cur.fetchall()
        except (psycopg2.OperationalError, psycopg2.InterfaceError) as exc:
            raise StoreUnavailable(str(exc)) from exc
        return [self._to_domain(row) for row in rows]
