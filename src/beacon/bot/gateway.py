"""
discord.py transport adapter.

Purpose
-------
Implement the GatewaySession and Interaction protocols on top of
discord.py so the lifecycle manager and dispatcher never touch the library
directly.

Responsibilities
----------------
- Own the discord.Client and its connection task
- Fan gateway events (ready, guild join, interaction) out to subscribers
- Bridge the "discord" library logger into LOG events
- Wrap discord.Interaction objects

Non-Responsibilities
--------------------
- Deciding what happens on each event (handled by BeaconBot)
- Rate limit back-off and the authentication handshake (handled by discord.py)
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set

import discord
from discord import app_commands

from beacon.bot.severity import GatewayLogMessage, LogSeverity
from beacon.bot.types import Button, EventHandler, GatewayEvent, InteractionKind, ModalField
from beacon.core.config import Config
from beacon.core.logging.logger import get_logger

logger = get_logger(__name__)

_INTERACTION_KINDS = {
    discord.InteractionType.application_command: InteractionKind.APPLICATION_COMMAND,
    discord.InteractionType.autocomplete: InteractionKind.AUTOCOMPLETE,
    discord.InteractionType.component: InteractionKind.COMPONENT,
    discord.InteractionType.modal_submit: InteractionKind.MODAL_SUBMIT,
}


def _button_view(buttons: Sequence[Button]) -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    for button in buttons:
        view.add_item(discord.ui.Button(label=button.label, custom_id=button.custom_id))
    return view


class DiscordInteraction:
    """Interaction protocol over a discord.Interaction."""

    def __init__(self, interaction: discord.Interaction) -> None:
        self._interaction = interaction
        self.id: int = interaction.id
        self.kind: InteractionKind = _INTERACTION_KINDS.get(interaction.type, InteractionKind.UNKNOWN)
        self.created_at: datetime = interaction.created_at
        self.guild: Optional[discord.Guild] = interaction.guild
        self.user: Any = interaction.user
        self.data: Mapping[str, Any] = interaction.data or {}

    @property
    def has_responded(self) -> bool:
        return self._interaction.response.is_done()

    async def respond(
        self, content: str, *, ephemeral: bool = False, buttons: Sequence[Button] = ()
    ) -> None:
        kwargs: Dict[str, Any] = {"ephemeral": ephemeral}
        view = _button_view(buttons) if buttons else None
        if view is not None:
            kwargs["view"] = view

        if self._interaction.response.is_done():
            await self._interaction.followup.send(content, **kwargs)
        else:
            await self._interaction.response.send_message(content, **kwargs)

        if view is not None:
            # Clicks are routed through on_interaction, not discord.py's view store
            view.stop()

    async def send_modal(self, custom_id: str, title: str, fields: Sequence[ModalField]) -> None:
        form = discord.ui.Modal(title=title, custom_id=custom_id)
        for field in fields:
            form.add_item(
                discord.ui.TextInput(
                    label=field.label,
                    custom_id=field.custom_id,
                    style=discord.TextStyle.paragraph if field.long else discord.TextStyle.short,
                )
            )
        await self._interaction.response.send_modal(form)
        form.stop()

    async def send_autocomplete(self, choices: Sequence[Any]) -> None:
        await self._interaction.response.autocomplete(
            [app_commands.Choice(name=str(choice), value=choice) for choice in choices]
        )

    async def delete_original_response(self) -> None:
        await self._interaction.delete_original_response()

    def describe(self) -> str:
        if self.kind in (InteractionKind.APPLICATION_COMMAND, InteractionKind.AUTOCOMPLETE):
            return f"/{self.data.get('name', '?')}"
        if self.kind is InteractionKind.COMPONENT:
            return f"component:{self.data.get('custom_id', '?')}"
        if self.kind is InteractionKind.MODAL_SUBMIT:
            return f"modal:{self.data.get('custom_id', '?')}"
        return f"interaction:{self.id}"

    def __repr__(self) -> str:
        return f"<DiscordInteraction id={self.id} kind={self.kind.value} {self.describe()}>"


class _BeaconClient(discord.Client):
    """discord.Client that forwards its events to the owning DiscordGateway."""

    def __init__(self, gateway: "DiscordGateway", *, intents: discord.Intents) -> None:
        super().__init__(intents=intents)
        self._gateway = gateway

    async def on_ready(self) -> None:
        await self._gateway.emit(GatewayEvent.READY)

    async def on_guild_join(self, guild: discord.Guild) -> None:
        await self._gateway.emit(GatewayEvent.GUILD_JOINED, guild)

    async def on_interaction(self, interaction: discord.Interaction) -> None:
        await self._gateway.emit(GatewayEvent.INTERACTION_CREATED, DiscordInteraction(interaction))


class GatewayLogHandler(logging.Handler):
    """Turns discord.py log records into LOG events on the gateway."""

    def __init__(self, gateway: "DiscordGateway", level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self._gateway = gateway
        self._tasks: Set[asyncio.Task] = set()

    def emit(self, record: logging.LogRecord) -> None:
        message = GatewayLogMessage(
            severity=LogSeverity.from_logging_level(record.levelno),
            source=record.name,
            message=record.getMessage(),
            exception=record.exc_info[1] if record.exc_info else None,
        )

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Outside the event loop nobody can await the handlers
            logging.getLogger("beacon.gateway").handle(record)
            return

        task = loop.create_task(self._gateway.emit(GatewayEvent.LOG, message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for LOG events already scheduled to reach their handlers."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class DiscordGateway:
    """
    GatewaySession over discord.py.

    login() authenticates over HTTP, start() opens the websocket in a
    background task, logout() closes the client and stop() waits for the
    connection task to finish and resets the client so it can start again.
    """

    def __init__(
        self,
        intents: Optional[discord.Intents] = None,
        client: Optional[discord.Client] = None,
    ) -> None:
        self._handlers: Dict[GatewayEvent, List[EventHandler]] = {event: [] for event in GatewayEvent}
        self._client = client or _BeaconClient(self, intents=intents or discord.Intents.default())
        self._session_task: Optional[asyncio.Task] = None
        self._log_handler = GatewayLogHandler(self)
        self._install_log_bridge()

    @property
    def client(self) -> discord.Client:
        return self._client

    @property
    def guilds(self) -> Sequence[discord.Guild]:
        return list(self._client.guilds)

    def subscribe(self, event: GatewayEvent, handler: EventHandler) -> None:
        self._handlers[event].append(handler)

    async def emit(self, event: GatewayEvent, *args: Any) -> None:
        for handler in list(self._handlers[event]):
            try:
                await handler(*args)
            except Exception as exc:
                logger.error(
                    "Gateway event handler failed",
                    extra={
                        "event": event.value,
                        "handler": getattr(handler, "__qualname__", repr(handler)),
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                    exc_info=True,
                )

    async def login(self, token: str) -> None:
        await self._client.login(token)
        logger.info("Logged in to Discord")

    async def start(self) -> None:
        self._session_task = asyncio.create_task(
            self._client.connect(reconnect=True), name="beacon-gateway"
        )
        self._session_task.add_done_callback(self._on_session_done)

    async def logout(self) -> None:
        await self._client.close()
        logger.info("Logged out of Discord")

    async def stop(self) -> None:
        task, self._session_task = self._session_task, None
        if task is not None and not task.done():
            await task
        await self._log_handler.drain()
        self._client.clear()

    def _on_session_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Gateway connection ended with an error",
                extra={"error": str(exc), "error_type": type(exc).__name__},
                exc_info=exc,
            )

    def _install_log_bridge(self) -> None:
        discord_logger = logging.getLogger("discord")
        if any(isinstance(h, GatewayLogHandler) for h in discord_logger.handlers):
            return
        discord_logger.setLevel(Config.GATEWAY_LOG_LEVEL.upper())
        discord_logger.addHandler(self._log_handler)
        discord_logger.propagate = False
