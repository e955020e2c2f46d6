import unittest
from decimal import Decimal

from config import Settings


class SettingsTests(unittest.TestCase):
    def test_defaults(self):
        settings = Settings.from_env({})
        self.assertEqual(settings.backend, "sqlite")
        self.assertEqual(settings.db_path, "ledger.db")
        self.assertEqual(settings.win_probability, Decimal("0.5"))
        self.assertEqual(settings.credit_retries, 3)
        self.assertEqual(settings.pg_params, {})
        self.assertIsNone(settings.discord_token)

    def test_postgres_params(self):
        settings = Settings.from_env(
            {
                "LEDGER_BACKEND": "Postgres",
                "PGHOST": "db.internal",
                "PGDATABASE": "ledger",
                "PGUSER": "app",
                "PGPASSWORD": "",
                "CREDIT_RETRIES": "5",
                "LOG_LEVEL": "debug",
            }
        )
        self.assertEqual(settings.backend, "postgres")
        self.assertEqual(
            settings.pg_params,
            {"host": "db.internal", "dbname": "ledger", "user": "app"},
        )
        self.assertEqual(settings.credit_retries, 5)
        self.assertEqual(settings.log_level, "DEBUG")

    def test_invalid_values(self):
        for env in (
            {"LEDGER_BACKEND": "mysql"},
            {"WIN_PROBABILITY": "2"},
            {"WIN_PROBABILITY": "half"},
            {"CREDIT_RETRIES": "-1"},
            {"CREDIT_RETRIES": "three"},
            {"SQLITE_TIMEOUT": "soon"},
        ):
            with self.subTest(env=env):
                with self.assertRaises(ValueError):
                    Settings.from_env(env)


if __name__ == "__main__":
    unittest.main()
