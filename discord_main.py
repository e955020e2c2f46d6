import logging

from config import Settings
from infrastructure.db.factory import build_engine
from interfaces.discord.handlers import create_discord_bot


def main() -> None:
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not settings.discord_token:
        raise RuntimeError("DISCORD_TOKEN environment variable is not set.")

    engine = build_engine(settings)

    bot = create_discord_bot(engine, settle_timeout=settings.settle_timeout)
    bot.run(settings.discord_token, log_handler=None)


if __name__ == "__main__":
    main()
