"""Globally registered debug commands."""

from __future__ import annotations

from beacon.bot.registry import CommandModule, global_module, slash_command
from beacon.bot.types import InteractionContext


@global_module
class DebugCommands(CommandModule):
    @slash_command("test_ping", "Check that the bot is responding")
    async def test_ping(self, ctx: InteractionContext) -> None:
        await ctx.respond("pong")


async def setup(loader) -> None:
    loader.add_module(DebugCommands())
