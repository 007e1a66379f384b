"""
Bot infrastructure and Discord integration layer for Beacon.

Purpose
-------
Expose the bot-facing types used by the rest of the system:

- Connection lifecycle manager (BeaconBot)
- Command modules and decorators (CommandModule, global_module, slash_command, ...)
- discord.py adapters (DiscordGateway, DiscordCommandService)

Design Notes
------------
- This module only re-exports; all logic lives in submodules.
- Public API is explicit via __all__.

Example
-------
    from beacon.bot import BeaconBot, DiscordCommandService, DiscordGateway

    gateway = DiscordGateway()
    bot = BeaconBot(gateway, DiscordCommandService(gateway.client))
"""

from __future__ import annotations

from beacon.bot.beacon_bot import BeaconBot
from beacon.bot.command_service import DiscordCommandService
from beacon.bot.gateway import DiscordGateway
from beacon.bot.registry import (
    CommandModule,
    CommandScope,
    autocomplete,
    check,
    component,
    global_module,
    guild_only,
    modal,
    slash_command,
)
from beacon.bot.types import Button, InteractionContext, ModalField

__all__ = [
    # Lifecycle
    "BeaconBot",
    # Adapters
    "DiscordGateway",
    "DiscordCommandService",
    # Command modules
    "CommandModule",
    "CommandScope",
    "InteractionContext",
    "Button",
    "ModalField",
    "global_module",
    "slash_command",
    "autocomplete",
    "component",
    "modal",
    "check",
    "guild_only",
]
