from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

import psycopg2

from domain.amounts import check_delta
from domain.errors import InvalidAmount, StoreUnavailable
from domain.models import Game
from domain.repositories import GameLimitsProvider


class PostgresGameCatalog(GameLimitsProvider):
    """Postgres-backed game catalog (`games` table)."""

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
                    CREATE TABLE IF NOT EXISTS games (
                        id TEXT PRIMARY KEY,
                        title TEXT NOT NULL DEFAULT '',
                        min_bet NUMERIC(18, 2) NOT NULL,
                        max_bet NUMERIC(18, 2) NOT NULL,
                        created_by TEXT NOT NULL
                    )
                    """
                )
                conn.commit()

    @staticmethod
    def _to_domain(row: tuple) -> Game:
        return Game(
            id=str(row[0]),
            title=row[1],
            min_bet=Decimal(row[2]),
            max_bet=Decimal(row[3]),
            created_by=row[4],
        )

    def add_game(self, game: Game) -> None:
        if game.min_bet <= 0 or game.min_bet > game.max_bet:
            raise InvalidAmount(
                f"Invalid limits for game {game.id}: [{game.min_bet}, {game.max_bet}]"
            )
        min_bet = check_delta(game.min_bet)
        max_bet = check_delta(game.max_bet)
        try:
            with self._get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        INSERT INTO games (id, title, min_bet, max_bet, created_by)
                        VALUES (%s, %s, %s, %s, %s)
                        ON CONFLICT (id) DO UPDATE SET
                            title = EXCLUDED.title,
                            min_bet = EXCLUDED.min_bet,
                            max_bet = EXCLUDED.max_bet,
                            created_by = EXCLUDED.created_by
                        """,
                        (game.id, game.title, min_bet, max_bet, game.created_by),
                    )
                    conn.commit()
        except (psycopg2.OperationalError, psycopg2.InterfaceError) as exc:
            raise StoreUnavailable(str(exc)) from exc

    def get_game(self, game_id: str) -> Optional[Game]:
        try:
            with self._get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        SELECT id, title, min_bet, max_bet, created_by
                        FROM games
                        WHERE id = %s
                        """,
                        (game_id,),
                    )
                    row = cur.fetchone()
        except (psycopg2.OperationalError, psycopg2.InterfaceError) as exc:
            raise StoreUnavailable(str(exc)) from exc
        if not row:
            return None
        return self._to_domain(row)

    def list_games(self) -> List[Game]:
        try:
            with self._get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        "SELECT id, title, min_bet, max_bet, created_by FROM games ORDER BY title, id"
                    )
                    rows = cur.fetchall()
        except (psycopg2.OperationalError, psycopg2.InterfaceError) as exc:
            raise StoreUnavailable(str(exc)) from exc
        return [self._to_domain(row) for row in rows]
