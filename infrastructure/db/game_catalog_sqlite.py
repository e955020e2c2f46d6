from __future__ import annotations

import sqlite3
from typing import List, Optional

from domain.amounts import from_minor_units, to_minor_units
from domain.errors import InvalidAmount, StoreUnavailable
from domain.models import Game
from domain.repositories import GameLimitsProvider


class SqliteGameCatalog(GameLimitsProvider):
    """
    SQLite-backed game catalog.

    The settlement engine only reads from it; `add_game` exists so the
    surrounding application (and tests) can seed games.
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
                CREATE TABLE IF NOT EXISTS games (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL DEFAULT '',
                    min_bet INTEGER NOT NULL,
                    max_bet INTEGER NOT NULL,
                    created_by TEXT NOT NULL
                )
                """
            )
            conn.commit()

    @staticmethod
    def _to_domain(row: sqlite3.Row) -> Game:
        return Game(
            id=str(row[0]),
            title=row[1],
            min_bet=from_minor_units(row[2]),
            max_bet=from_minor_units(row[3]),
            created_by=row[4],
        )

    def add_game(self, game: Game) -> None:
        if game.min_bet <= 0 or game.min_bet > game.max_bet:
            raise InvalidAmount(
                f"Invalid limits for game {game.id}: [{game.min_bet}, {game.max_bet}]"
            )
        row = (
            game.id,
            game.title,
            to_minor_units(game.min_bet),
            to_minor_units(game.max_bet),
            game.created_by,
        )
        try:
            with self._get_connection() as conn:
                cur = conn.cursor()
                cur.execute(
                    """
                    INSERT OR REPLACE INTO games (id, title, min_bet, max_bet, created_by)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    row,
                )
                conn.commit()
        except sqlite3.OperationalError as exc:
            raise StoreUnavailable(str(exc)) from exc

    def get_game(self, game_id: str) -> Optional[Game]:
        try:
            with self._get_connection() as conn:
                cur = conn.cursor()
                cur.execute(
                    "SELECT id, title, min_bet, max_bet, created_by FROM games WHERE id = ?",
                    (game_id,),
                )
                row = cur.fetchone()
        except sqlite3.OperationalError as exc:
            raise StoreUnavailable(str(exc)) from exc
        if not row:
            return None
        return self._to_domain(row)

    def list_games(self) -> List[Game]:
        try:
            with self._get_connection() as conn:
                cur = conn.cursor()
                cur.execute("SELECT id, title, min_bet, max_bet, created_by FROM games ORDER BY title, id")
                rows = cur.fetchall()
        except sqlite3.OperationalError as exc:
            raise StoreUnavailable(str(exc)) from exc
        return [self._to_domain(row) for row in rows]
