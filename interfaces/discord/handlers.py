from __future__ import annotations

import asyncio
import logging
from functools import partial

import discord
from discord.ext import commands

from application.services import SettlementEngine
from domain.errors import LedgerError

from .command_args import (
    describe_error,
    describe_outcome,
    format_amount,
    format_games,
    format_history,
    parse_amount_arg,
)


logger = logging.getLogger(__name__)


def _account_id(user: discord.abc.User) -> str:
    return f"discord:{user.id}"


def create_discord_bot(engine: SettlementEngine, settle_timeout: float = 10.0) -> commands.Bot:
    """
    Configure and return a Discord bot exposing the wallet:
    balance, deposit, withdraw, list games, bet and bet history.

    Engine calls block on the database, so they run in worker threads.
    """

    intents = discord.Intents.default()
    intents.message_content = True

    # Disable the default help command so we can provide our own `!help`.
    bot = commands.Bot(command_prefix="!", intents=intents, help_command=None)

    async def run(func, *args):
        return await asyncio.to_thread(partial(func, *args))

    @bot.event
    async def on_ready():
        logger.info("Discord bot logged in as %s (id=%s)", bot.user, bot.user.id)

    @bot.command(name="help")
    async def help_cmd(ctx: commands.Context):
        await ctx.send(
            "!balance                  - show your balance\n"
            "!deposit <amount>         - add funds to your wallet\n"
            "!withdraw <amount>        - cash out funds\n"
            "!games                    - list games and their limits\n"
            "!bet <game_id> <amount>   - place a bet (double or nothing)\n"
            "!history                  - your last bets\n"
        )

    @bot.command(name="balance")
    async def balance_cmd(ctx: commands.Context):
        try:
            balance = await run(engine.get_balance, _account_id(ctx.author))
        except LedgerError as exc:
            await ctx.send(describe_error(exc))
            return
        await ctx.send(f"Balance: {format_amount(balance)}")

    @bot.command(name="deposit")
    async def deposit_cmd(ctx: commands.Context, amount: str):
        try:
            balance = await run(engine.deposit, _account_id(ctx.author), parse_amount_arg(amount))
        except LedgerError as exc:
            await ctx.send(describe_error(exc))
            return
        await ctx.send(f"Deposit completed. Balance: {format_amount(balance)}")

    @bot.command(name="withdraw")
    async def withdraw_cmd(ctx: commands.Context, amount: str):
        try:
            balance = await run(engine.withdraw, _account_id(ctx.author), parse_amount_arg(amount))
        except LedgerError as exc:
            await ctx.send(describe_error(exc))
            return
        await ctx.send(f"Withdrawal completed. Balance: {format_amount(balance)}")

    @bot.command(name="games")
    async def games_cmd(ctx: commands.Context):
        try:
            games = await run(engine.list_games)
        except LedgerError as exc:
            await ctx.send(describe_error(exc))
            return
        await ctx.send(format_games(games))

    @bot.command(name="bet")
    async def bet_cmd(ctx: commands.Context, game_id: str, amount: str):
        try:
            stake = parse_amount_arg(amount)
            # On timeout the worker thread keeps running and the engine still
            # completes or refunds the settlement; only the reply is lost.
            outcome = await asyncio.wait_for(
                run(engine.settle_wager, _account_id(ctx.author), game_id, stake),
                timeout=settle_timeout,
            )
        except asyncio.TimeoutError:
            await ctx.send("Your bet is still being processed. Check !balance in a moment.")
            return
        except LedgerError as exc:
            await ctx.send(describe_error(exc))
            return

        await ctx.send(describe_outcome(outcome, stake))

    @bot.command(name="history")
    async def history_cmd(ctx: commands.Context):
        try:
            bets = await run(list, engine.bets_for_user(_account_id(ctx.author)))
        except LedgerError as exc:
            await ctx.send(describe_error(exc))
            return
        await ctx.send(format_history(bets))

    return bot
