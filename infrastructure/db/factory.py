from __future__ import annotations

from typing import Tuple

from application.outcomes import CoinFlipPolicy
from application.services import SettlementEngine
from config import Settings
from domain.repositories import AccountStore, BetLedger, GameLimitsProvider


def build_stores(settings: Settings) -> Tuple[AccountStore, GameLimitsProvider, BetLedger]:
    """Create the account store, game catalog and bet ledger for the configured backend."""

    if settings.backend == "postgres":
        from infrastructure.db.account_store_postgres import PostgresAccountStore
        from infrastructure.db.bet_ledger_postgres import PostgresBetLedger
        from infrastructure.db.game_catalog_postgres import PostgresGameCatalog

        return (
            PostgresAccountStore(settings.pg_params),
            PostgresGameCatalog(settings.pg_params),
            PostgresBetLedger(settings.pg_params),
        )

    from infrastructure.db.account_store_sqlite import SqliteAccountStore
    from infrastructure.db.bet_ledger_sqlite import SqliteBetLedger
    from infrastructure.db.game_catalog_sqlite import SqliteGameCatalog

    return (
        SqliteAccountStore(settings.db_path, timeout=settings.sqlite_timeout),
        SqliteGameCatalog(settings.db_path, timeout=settings.sqlite_timeout),
        SqliteBetLedger(settings.db_path, timeout=settings.sqlite_timeout),
    )


def build_engine(settings: Settings) -> SettlementEngine:
    accounts, games, ledger = build_stores(settings)
    return SettlementEngine(
        accounts,
        games,
        ledger,
        outcome_policy=CoinFlipPolicy(settings.win_probability),
        credit_retries=settings.credit_retries,
        retry_delay=settings.credit_retry_delay,
    )
