"""
Beacon Bot - Connection Lifecycle Manager

Purpose
-------
Own the bot's connection to Discord: start and stop the gateway session,
wire gateway events to the registry, registrar and dispatcher, and clean up
guild commands on shutdown.

Responsibilities
----------------
- start(token): subscribe events once, log in, start the session
- stop(): delete each guild's commands (paced and bounded), log out, stop
  the session, forget discovered modules
- dispose(): stop exactly once over the object's life
- On ready: discover modules and register them globally then per guild
- On guild join: register guild-scoped modules to the new guild only
- Re-emit gateway diagnostics on the "beacon.gateway" logger

Non-Responsibilities
--------------------
- Transport details (handled by the GatewaySession adapter)
- Command execution (handled by the CommandService)
- Failure responses (handled by FailureResponder)

Architecture Notes
------------------
- States are Stopped and Running; misuse (double start, stop while stopped)
  logs a warning and does nothing. Transitions hold a lock, so concurrent
  start() calls produce one login.
- A guild join that lands mid-ready waits for that ready pass to finish.
- Discovered modules are cached per session and cleared on stop, so a
  restart re-discovers.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from beacon.bot.dispatcher import InteractionDispatcher
from beacon.bot.registration import CommandRegistrar
from beacon.bot.registry import CommandRegistry, DiscoveredModules
from beacon.bot.responses import FailureResponder
from beacon.bot.severity import GatewayLogMessage, to_log_level
from beacon.bot.types import CommandService, GatewayEvent, GatewaySession, Guild
from beacon.core.config import Config
from beacon.core.logging.logger import get_logger

logger = get_logger(__name__)
gateway_logger = logging.getLogger("beacon.gateway")


class BeaconBot:
    """
    Connection lifecycle manager.

    Usage
    -----
    >>> async with BeaconBot(gateway, command_service) as bot:
    ...     await bot.start(token)
    ...     await stop_event.wait()
    """

    def __init__(
        self,
        session: GatewaySession,
        command_service: CommandService,
        *,
        command_source: Optional[str] = None,
        guild_delete_delay: Optional[float] = None,
        guild_delete_timeout: Optional[float] = None,
        responder: Optional[FailureResponder] = None,
    ) -> None:
        self._session = session
        self._command_service = command_service
        self._command_source = command_source or Config.COMMAND_PACKAGE
        self._guild_delete_delay = (
            Config.GUILD_COMMAND_DELETE_DELAY_SECONDS
            if guild_delete_delay is None
            else guild_delete_delay
        )
        self._guild_delete_timeout = (
            Config.GUILD_COMMAND_DELETE_TIMEOUT_SECONDS
            if guild_delete_timeout is None
            else guild_delete_timeout
        )

        self.registry = CommandRegistry(command_service)
        self.registrar = CommandRegistrar(command_service)
        self.dispatcher = InteractionDispatcher(session, command_service, responder)

        self._running = False
        self._disposed = False
        self._subscribed = False
        self._modules: Optional[DiscoveredModules] = None

        # Serializes start()/stop() so overlapping calls see a settled state
        self._transition_lock = asyncio.Lock()
        # Cleared while a ready pass registers; guild joins wait on it
        self._registration_idle = asyncio.Event()
        self._registration_idle.set()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def modules(self) -> Optional[DiscoveredModules]:
        return self._modules

    # --------------------------------------------------------------- #
    # Lifecycle
    # --------------------------------------------------------------- #

    async def start(self, token: str) -> None:
        async with self._transition_lock:
            if self._running:
                logger.warning("Bot is already running, ignoring start()")
                return

            logger.info("Starting bot", extra={"command_source": self._command_source})
            self._subscribe()

            await self._session.login(token)
            await self._session.start()
            self._running = True
            logger.info("✓ Gateway session started")

    async def stop(self) -> None:
        async with self._transition_lock:
            if not self._running:
                logger.warning("Bot is not running, ignoring stop()")
                return

            logger.info("=" * 60)
            logger.info("BEACON BOT SHUTDOWN")
            logger.info("=" * 60)

            for guild in list(self._session.guilds):
                await self._delete_guild_commands(guild)
                await asyncio.sleep(self._guild_delete_delay)

            await self._session.logout()
            await self._session.stop()
            self._running = False
            self._modules = None
            logger.info("✓ Gateway session stopped")

    async def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        await self.stop()

    async def __aenter__(self) -> "BeaconBot":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.dispose()

    def _subscribe(self) -> None:
        if self._subscribed:
            return
        self._session.subscribe(GatewayEvent.READY, self._on_ready)
        self._session.subscribe(GatewayEvent.LOG, self._on_log)
        self._session.subscribe(GatewayEvent.GUILD_JOINED, self._on_guild_joined)
        self._session.subscribe(GatewayEvent.INTERACTION_CREATED, self.dispatcher.on_interaction)
        self._command_service.subscribe_executed(self.dispatcher.on_executed)
        self._subscribed = True

    async def _delete_guild_commands(self, guild: Guild) -> None:
        try:
            await asyncio.wait_for(
                self._command_service.delete_all_commands_in_guild(guild.id),
                timeout=self._guild_delete_timeout,
            )
            logger.info(
                "Deleted guild commands",
                extra={"guild_id": guild.id, "guild_name": guild.name},
            )
        except asyncio.TimeoutError:
            logger.error(
                "Timed out deleting guild commands",
                extra={
                    "guild_id": guild.id,
                    "timeout_seconds": self._guild_delete_timeout,
                },
            )
        except Exception as exc:
            logger.error(
                "Failed to delete guild commands",
                extra={
                    "guild_id": guild.id,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )

    # --------------------------------------------------------------- #
    # Gateway Events
    # --------------------------------------------------------------- #

    async def _on_ready(self) -> None:
        guilds = list(self._session.guilds)
        logger.info("=" * 60)
        logger.info("Bot is READY")
        logger.info("Guilds: %d", len(guilds))
        logger.info("=" * 60)

        self._registration_idle.clear()
        try:
            if self._modules is None:
                self._modules = await self.registry.discover(self._command_source)

            await self.registrar.register_all(self._modules, guilds)
        finally:
            self._registration_idle.set()

    async def _on_guild_joined(self, guild: Guild) -> None:
        logger.info("Joined guild", extra={"guild_id": guild.id, "guild_name": guild.name})

        # Global registration must land before any guild-scoped push
        await self._registration_idle.wait()

        if self._modules is None:
            logger.warning(
                "Modules not discovered yet, registration deferred to ready",
                extra={"guild_id": guild.id},
            )
            return

        await self.registrar.register_guild(guild, self._modules.guild_modules)

    async def _on_log(self, message: GatewayLogMessage) -> None:
        gateway_logger.log(
            to_log_level(message.severity),
            "[%s] %s",
            message.source,
            message.message,
            exc_info=message.exception,
        )
