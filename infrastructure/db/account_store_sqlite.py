from __future__ import annotations

import logging
import sqlite3
from decimal import Decimal

from domain.amounts import MAX_AMOUNT, from_minor_units, to_minor_units
from domain.errors import AccountNotFound, InsufficientFunds, InvalidAmount, StoreUnavailable
from domain.repositories import AccountStore


logger = logging.getLogger(__name__)


class SqliteAccountStore(AccountStore):
    """
    SQLite-backed implementation of `AccountStore`.

    Owns the `accounts` table. Balances are stored as integer cents, and
    every adjustment runs in a `BEGIN IMMEDIATE` transaction with a
    conditional `UPDATE`, so concurrent writers (threads or processes)
    are serialised by SQLite's write lock rather than by the caller.
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
                CREATE TABLE IF NOT EXISTS accounts (
                    id TEXT PRIMARY KEY,
                    balance INTEGER NOT NULL DEFAULT 0
                        CHECK (balance >= 0 AND balance <= {max_balance})
                )
                """.format(max_balance=to_minor_units(MAX_AMOUNT))
            )
            conn.commit()

    def open_account(self, account_id: str, initial_balance: Decimal = Decimal("0")) -> None:
        initial = to_minor_units(Decimal(initial_balance))
        if initial < 0:
            raise ValueError("initial_balance must not be negative.")
        try:
            with self._get_connection() as conn:
                conn.execute(
                    "INSERT OR IGNORE INTO accounts (id, balance) VALUES (?, ?)",
                    (account_id, initial),
                )
        except sqlite3.OperationalError as exc:
            raise StoreUnavailable(str(exc)) from exc

    def get_balance(self, account_id: str) -> Decimal:
        try:
            with self._get_connection() as conn:
                cur = conn.cursor()
                cur.execute("SELECT balance FROM accounts WHERE id = ?", (account_id,))
                row = cur.fetchone()
        except sqlite3.OperationalError as exc:
            raise StoreUnavailable(str(exc)) from exc
        if not row:
            raise AccountNotFound(account_id)
        return from_minor_units(row[0])

    def adjust_balance(self, account_id: str, delta: Decimal) -> Decimal:
        minor = to_minor_units(delta)
        try:
            with self._get_connection() as conn:
                cur = conn.cursor()
                # Take the write lock up front so the read below sees our own update.
                cur.execute("BEGIN IMMEDIATE")
                if minor >= 0:
                    cur.execute(
                        "INSERT OR IGNORE INTO accounts (id, balance) VALUES (?, 0)",
                        (account_id,),
                    )
                cur.execute(
                    """
                    UPDATE accounts
                    SET balance = balance + ?
                    WHERE id = ? AND balance + ? >= 0
                    """,
                    (minor, account_id, minor),
                )
                updated = cur.rowcount
                cur.execute("SELECT balance FROM accounts WHERE id = ?", (account_id,))
                row = cur.fetchone()
        except (sqlite3.IntegrityError, OverflowError) as exc:
            raise InvalidAmount(
                f"Balance of {account_id} would exceed {MAX_AMOUNT}: {exc}"
            ) from exc
        except sqlite3.OperationalError as exc:
            logger.warning("Balance update for %s failed: %s", account_id, exc)
            raise StoreUnavailable(str(exc)) from exc

        balance = from_minor_units(row[0]) if row else Decimal("0.00")
        if updated != 1:
            raise InsufficientFunds(account_id, balance, -delta)
        return balance
