"""
Pytest Configuration and Fixtures for Beacon Tests
==================================================

Purpose
-------
Shared fakes for the collaborators the interaction core drives, so unit
tests never open a Discord connection.

Responsibilities
----------------
- FakeGatewaySession: records login/start/logout/stop and subscriptions
- FakeCommandService: records discovery, registration and deletes
- FakeInteraction: records responses and deletes
- Sample command modules (one global, two guild-scoped)

Architecture Notes
------------------
- Fakes record calls as tuples in a single ``calls`` list so ordering can
  be asserted directly.
- Async tests use pytest-asyncio (``@pytest.mark.asyncio``).
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

import pytest

from beacon.bot.registry import CommandModule, global_module, slash_command
from beacon.bot.types import (
    DispatchResult,
    GatewayEvent,
    InteractionContext,
    InteractionKind,
    Success,
)

# ============================================================================
# FAKES
# ============================================================================

NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@dataclass
class FakeGuild:
    id: int
    name: str

    def __str__(self) -> str:
        return self.name


class FakeInteraction:
    def __init__(
        self,
        kind: InteractionKind = InteractionKind.APPLICATION_COMMAND,
        data: Optional[Dict[str, Any]] = None,
        created_at: datetime = NOW,
        guild: Optional[FakeGuild] = None,
        user: Any = "tester",
        responded: bool = False,
        respond_error: Optional[Exception] = None,
        delete_error: Optional[Exception] = None,
    ) -> None:
        self.id = 1234
        self.kind = kind
        self.data = data or {}
        self.created_at = created_at
        self.guild = guild
        self.user = user
        self._responded = responded
        self._respond_error = respond_error
        self._delete_error = delete_error
        self.sent: List[str] = []
        self.buttons: List[Any] = []
        self.modals: List[tuple] = []
        self.autocomplete_choices: Optional[List[Any]] = None
        self.deleted = 0

    @property
    def has_responded(self) -> bool:
        return self._responded

    async def respond(self, content: str, *, ephemeral: bool = False, buttons: Sequence[Any] = ()) -> None:
        if self._respond_error is not None:
            raise self._respond_error
        self.sent.append(content)
        self.buttons.extend(buttons)
        self._responded = True

    async def send_modal(self, custom_id: str, title: str, fields: Sequence[Any]) -> None:
        self.modals.append((custom_id, title, tuple(fields)))
        self._responded = True

    async def send_autocomplete(self, choices: Sequence[Any]) -> None:
        self.autocomplete_choices = list(choices)
        self._responded = True

    async def delete_original_response(self) -> None:
        self.deleted += 1
        if self._delete_error is not None:
            raise self._delete_error

    def describe(self) -> str:
        return f"/{self.data.get('name', '?')}"


class FakeGatewaySession:
    def __init__(self, guilds: Optional[List[FakeGuild]] = None) -> None:
        self.guilds: List[FakeGuild] = list(guilds or [])
        self.calls: List[tuple] = []
        self.handlers: Dict[GatewayEvent, List[Any]] = {}
        self.login_delay = 0.0

    def subscribe(self, event: GatewayEvent, handler) -> None:
        self.handlers.setdefault(event, []).append(handler)

    async def emit(self, event: GatewayEvent, *args: Any) -> None:
        for handler in self.handlers.get(event, []):
            await handler(*args)

    async def login(self, token: str) -> None:
        if self.login_delay:
            await asyncio.sleep(self.login_delay)
        self.calls.append(("login", token))

    async def start(self) -> None:
        self.calls.append(("start",))

    async def logout(self) -> None:
        self.calls.append(("logout",))

    async def stop(self) -> None:
        self.calls.append(("stop",))


class FakeCommandService:
    def __init__(self, modules: Optional[List[CommandModule]] = None) -> None:
        self.modules: List[CommandModule] = list(modules or [])
        self.calls: List[tuple] = []
        self.executed_handlers: List[Any] = []
        self.executed: List[InteractionContext] = []
        self.execute_result: DispatchResult = Success()
        self.execute_error: Optional[Exception] = None
        self.fail_global = False
        self.fail_guilds: set = set()
        self.fail_deletes: set = set()
        self.global_delay = 0.0

    async def discover_modules(self, source: str) -> List[CommandModule]:
        self.calls.append(("discover", source))
        return list(self.modules)

    async def register_global(self, modules, *, delete_missing: bool) -> None:
        if self.global_delay:
            await asyncio.sleep(self.global_delay)
        self.calls.append(("global", tuple(m.name for m in modules), delete_missing))
        if self.fail_global:
            raise RuntimeError("global registration failed")

    async def register_to_guild(self, guild_id: int, modules, *, delete_missing: bool) -> None:
        self.calls.append(("guild", guild_id, tuple(m.name for m in modules), delete_missing))
        if guild_id in self.fail_guilds:
            raise RuntimeError(f"guild {guild_id} registration failed")

    async def delete_all_commands_in_guild(self, guild_id: int) -> None:
        self.calls.append(("delete", guild_id))
        if guild_id in self.fail_deletes:
            raise RuntimeError(f"guild {guild_id} delete failed")

    async def execute(self, context: InteractionContext) -> DispatchResult:
        self.executed.append(context)
        if self.execute_error is not None:
            raise self.execute_error
        return self.execute_result

    def subscribe_executed(self, handler) -> None:
        self.executed_handlers.append(handler)

    def calls_of(self, kind: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == kind]


class FixedClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


# ============================================================================
# SAMPLE MODULES
# ============================================================================


@global_module
class PingCommands(CommandModule):
    @slash_command("ping", "Ping the bot")
    async def ping(self, ctx: InteractionContext) -> None:
        await ctx.respond("pong")


class ModerationCommands(CommandModule):
    @slash_command("warn", "Warn a member")
    async def warn(self, ctx: InteractionContext, reason: str) -> None:
        await ctx.respond(f"warned: {reason}")


class FunCommands(CommandModule):
    @slash_command("roll", "Roll a die")
    async def roll(self, ctx: InteractionContext, sides: int = 6) -> None:
        await ctx.respond(str(sides))


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def guilds() -> List[FakeGuild]:
    return [FakeGuild(1, "alpha"), FakeGuild(2, "beta")]


@pytest.fixture
def session(guilds) -> FakeGatewaySession:
    return FakeGatewaySession(guilds)


@pytest.fixture
def sample_modules() -> List[CommandModule]:
    return [PingCommands(), ModerationCommands(), FunCommands()]


@pytest.fixture
def command_service(sample_modules) -> FakeCommandService:
    return FakeCommandService(sample_modules)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def make_interaction():
    def factory(**kwargs: Any) -> FakeInteraction:
        kwargs.setdefault("data", {"name": "ping"})
        return FakeInteraction(**kwargs)

    return factory
