from __future__ import annotations

import logging
from decimal import Decimal

import psycopg2

from domain.amounts import MAX_AMOUNT, check_delta
from domain.errors import AccountNotFound, InsufficientFunds, InvalidAmount, StoreUnavailable
from domain.repositories import AccountStore


logger = logging.getLogger(__name__)


class PostgresAccountStore(AccountStore):
    """
    Postgres-backed implementation of `AccountStore`.

    Every adjustment is a single statement: an upsert for credits and a
    conditional `UPDATE ... RETURNING` for debits. Postgres row locking
    serialises concurrent statements on the same account.
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
                    CREATE TABLE IF NOT EXISTS accounts (
                        id TEXT PRIMARY KEY,
                        balance NUMERIC(18, 2) NOT NULL DEFAULT 0 CHECK (balance >= 0)
                    )
                    """
                )
                conn.commit()

    def open_account(self, account_id: str, initial_balance: Decimal = Decimal("0")) -> None:
        initial = check_delta(initial_balance)
        if initial < 0:
            raise ValueError("initial_balance must not be negative.")
        try:
            with self._get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        INSERT INTO accounts (id, balance)
                        VALUES (%s, %s)
                        ON CONFLICT (id) DO NOTHING
                        """,
                        (account_id, initial),
                    )
                    conn.commit()
        except (psycopg2.OperationalError, psycopg2.InterfaceError) as exc:
            raise StoreUnavailable(str(exc)) from exc

    def get_balance(self, account_id: str) -> Decimal:
        try:
            with self._get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT balance FROM accounts WHERE id = %s", (account_id,))
                    row = cur.fetchone()
        except (psycopg2.OperationalError, psycopg2.InterfaceError) as exc:
            raise StoreUnavailable(str(exc)) from exc
        if not row:
            raise AccountNotFound(account_id)
        return Decimal(row[0])

    def adjust_balance(self, account_id: str, delta: Decimal) -> Decimal:
        delta = check_delta(delta)
        try:
            with self._get_connection() as conn:
                with conn.cursor() as cur:
                    if delta >= 0:
                        cur.execute(
                            """
                            INSERT INTO accounts (id, balance)
                            VALUES (%s, %s)
                            ON CONFLICT (id)
                            DO UPDATE SET balance = accounts.balance + EXCLUDED.balance
                            RETURNING balance
                            """,
                            (account_id, delta),
                        )
                    else:
                        cur.execute(
                            """
                            UPDATE accounts
                            SET balance = balance + %s
                            WHERE id = %s AND balance + %s >= 0
                            RETURNING balance
                            """,
                            (delta, account_id, delta),
                        )
                    row = cur.fetchone()
                    if row is None:
                        cur.execute("SELECT balance FROM accounts WHERE id = %s", (account_id,))
                        current = cur.fetchone()
                    conn.commit()
        except psycopg2.DataError as exc:
            raise InvalidAmount(
                f"Balance of {account_id} would exceed {MAX_AMOUNT}: {exc}"
            ) from exc
        except (psycopg2.OperationalError, psycopg2.InterfaceError) as exc:
            logger.warning("Balance update for %s failed: %s", account_id, exc)
            raise StoreUnavailable(str(exc)) from exc

        if row is None:
            balance = Decimal(current[0]) if current else Decimal("0.00")
            raise InsufficientFunds(account_id, balance, -delta)
        return Decimal(row[0])
