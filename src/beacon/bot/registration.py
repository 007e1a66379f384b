"""
Command registration protocol.

Pushes discovered modules to Discord: global modules once, then the
guild-scoped modules to each joined guild. Every push is a bulk overwrite,
so commands that no longer exist are removed.

A failure in one scope is logged and never aborts the others.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

from beacon.bot.registry import CommandModule, DiscoveredModules
from beacon.bot.types import CommandService, Guild
from beacon.core.logging.logger import get_logger

logger = get_logger(__name__)


@dataclass
class RegistrationReport:
    global_registered: bool = False
    guilds_registered: List[int] = field(default_factory=list)
    guilds_failed: List[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.global_registered and not self.guilds_failed


class CommandRegistrar:
    """Registers command modules globally and per guild."""

    def __init__(self, command_service: CommandService) -> None:
        self._command_service = command_service

    async def register_all(
        self,
        modules: DiscoveredModules,
        guilds: Sequence[Guild],
    ) -> RegistrationReport:
        report = RegistrationReport()
        report.global_registered = await self.register_global(modules.global_modules)

        for guild in guilds:
            if await self.register_guild(guild, modules.guild_modules):
                report.guilds_registered.append(guild.id)
            else:
                report.guilds_failed.append(guild.id)

        logger.info(
            "Command registration complete",
            extra={
                "global_registered": report.global_registered,
                "guilds_registered": len(report.guilds_registered),
                "guilds_failed": len(report.guilds_failed),
            },
        )
        return report

    async def register_global(self, modules: Sequence[CommandModule]) -> bool:
        try:
            await self._command_service.register_global(modules, delete_missing=True)
        except Exception as exc:
            logger.error(
                "Failed to register global commands",
                extra={"error": str(exc), "error_type": type(exc).__name__},
                exc_info=True,
            )
            return False

        for module in modules:
            logger.debug("Registered global module", extra={"module_name": module.name})
        return True

    async def register_guild(self, guild: Guild, modules: Sequence[CommandModule]) -> bool:
        try:
            await self._command_service.register_to_guild(
                guild.id, modules, delete_missing=True
            )
        except Exception as exc:
            logger.error(
                "Failed to register guild commands",
                extra={
                    "guild_id": guild.id,
                    "guild_name": guild.name,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )
            return False

        logger.info(
            "Registered guild commands",
            extra={"guild_id": guild.id, "guild_name": guild.name, "modules": len(modules)},
        )
        return True
