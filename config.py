from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional

from dotenv import load_dotenv


_PG_KEYS = {
    "PGHOST": "host",
    "PGPORT": "port",
    "PGDATABASE": "dbname",
    "PGUSER": "user",
    "PGPASSWORD": "password",
}


def _float(env: Mapping[str, str], name: str, default: str) -> float:
    raw = env.get(name, default)
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _int(env: Mapping[str, str], name: str, default: str) -> int:
    raw = env.get(name, default)
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass
class Settings:
    backend: str = "sqlite"
    db_path: str = "ledger.db"
    sqlite_timeout: float = 5.0
    pg_params: dict = field(default_factory=dict)
    win_probability: Decimal = Decimal("0.5")
    credit_retries: int = 3
    credit_retry_delay: float = 0.1
    settle_timeout: float = 10.0
    discord_token: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        `.env` is loaded first when reading the real environment. Tests pass
        a plain dict instead.
        """

        if env is None:
            load_dotenv()
            env = os.environ

        backend = env.get("LEDGER_BACKEND", "sqlite").lower()
        if backend not in ("sqlite", "postgres"):
            raise ValueError(f"LEDGER_BACKEND must be 'sqlite' or 'postgres', got {backend!r}")

        raw_probability = env.get("WIN_PROBABILITY", "0.5")
        try:
            win_probability = Decimal(raw_probability)
        except InvalidOperation:
            raise ValueError(f"WIN_PROBABILITY must be a number, got {raw_probability!r}") from None
        if not (Decimal("0") <= win_probability <= Decimal("1")):
            raise ValueError("WIN_PROBABILITY must be within [0, 1].")

        credit_retries = _int(env, "CREDIT_RETRIES", "3")
        if credit_retries < 0:
            raise ValueError("CREDIT_RETRIES must not be negative.")

        return cls(
            backend=backend,
            db_path=env.get("DB_PATH", "ledger.db"),
            sqlite_timeout=_float(env, "SQLITE_TIMEOUT", "5.0"),
            pg_params={
                param: env[key] for key, param in _PG_KEYS.items() if env.get(key)
            },
            win_probability=win_probability,
            credit_retries=credit_retries,
            credit_retry_delay=_float(env, "CREDIT_RETRY_DELAY", "0.1"),
            settle_timeout=_float(env, "SETTLE_TIMEOUT", "10.0"),
            discord_token=env.get("DISCORD_TOKEN") or None,
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )
