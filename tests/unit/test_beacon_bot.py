"""
Unit tests for the connection lifecycle manager (BeaconBot).

Tests start/stop state handling, event wiring, ready and guild-join
registration and shutdown cleanup against fake collaborators.
"""

import asyncio
import logging

import pytest

from beacon.bot.beacon_bot import BeaconBot
from beacon.bot.severity import GatewayLogMessage, LogSeverity
from beacon.bot.types import GatewayEvent
from tests.conftest import FakeGuild

TOKEN = "token-123"


@pytest.fixture
def bot(session, command_service):
    return BeaconBot(
        session,
        command_service,
        command_source="beacon.modules",
        guild_delete_delay=0,
        guild_delete_timeout=1.0,
    )


@pytest.mark.asyncio
class TestStart:
    """start() subscribes, logs in, then starts the session."""

    async def test_start_order(self, bot, session):
        """Login happens before the session starts."""
        await bot.start(TOKEN)

        assert session.calls == [("login", TOKEN), ("start",)]
        assert bot.is_running

    async def test_double_start_is_a_no_op(self, bot, session, caplog):
        """A second start() while running only warns."""
        caplog.set_level(logging.WARNING)

        await bot.start(TOKEN)
        await bot.start(TOKEN)

        assert session.calls == [("login", TOKEN), ("start",)]
        assert any("already running" in r.getMessage() for r in caplog.records)

    async def test_concurrent_starts_log_in_once(self, bot, session):
        """Overlapping start() calls produce one login and one session start."""
        session.login_delay = 0.01

        await asyncio.gather(bot.start(TOKEN), bot.start(TOKEN))

        assert session.calls == [("login", TOKEN), ("start",)]
        assert bot.is_running

    async def test_subscribes_every_gateway_event(self, bot, session, command_service):
        """Every gateway event and the executed channel get a handler."""
        await bot.start(TOKEN)

        assert set(session.handlers) == set(GatewayEvent)
        assert len(command_service.executed_handlers) == 1

    async def test_restart_does_not_duplicate_subscriptions(self, bot, session, command_service):
        """Stop then start keeps a single handler per event."""
        await bot.start(TOKEN)
        await bot.stop()
        await bot.start(TOKEN)

        assert all(len(handlers) == 1 for handlers in session.handlers.values())
        assert len(command_service.executed_handlers) == 1


@pytest.mark.asyncio
class TestStop:
    """stop() cleans up guild commands before logging out."""

    async def test_stop_before_start_makes_no_calls(self, bot, session, command_service, caplog):
        """stop() on a stopped bot warns and touches nothing."""
        caplog.set_level(logging.WARNING)

        await bot.stop()

        assert session.calls == []
        assert command_service.calls == []
        assert any("not running" in r.getMessage() for r in caplog.records)

    async def test_stop_order(self, bot, session, command_service):
        """Guild deletes run before logout and session stop."""
        await bot.start(TOKEN)
        session.calls.clear()

        await bot.stop()

        assert command_service.calls == [("delete", 1), ("delete", 2)]
        assert session.calls == [("logout",), ("stop",)]
        assert not bot.is_running

    async def test_concurrent_stops_clean_up_once(self, bot, session, command_service):
        """Overlapping stop() calls delete and log out once."""
        await bot.start(TOKEN)
        session.calls.clear()

        await asyncio.gather(bot.stop(), bot.stop())

        assert command_service.calls_of("delete") == [("delete", 1), ("delete", 2)]
        assert session.calls == [("logout",), ("stop",)]

    async def test_guild_delete_failure_is_isolated(self, bot, session, command_service):
        """A failing guild delete does not skip the others or logout."""
        command_service.fail_deletes = {1}
        await bot.start(TOKEN)

        await bot.stop()

        assert command_service.calls_of("delete") == [("delete", 1), ("delete", 2)]
        assert ("logout",) in session.calls
        assert not bot.is_running

    async def test_guild_delete_is_bounded_by_timeout(self, session, command_service, mocker):
        """A hanging guild delete is abandoned after the timeout."""

        async def hang(guild_id):
            await asyncio.sleep(10)

        mocker.patch.object(command_service, "delete_all_commands_in_guild", side_effect=hang)
        bot = BeaconBot(session, command_service, guild_delete_delay=0, guild_delete_timeout=0.01)
        await bot.start(TOKEN)

        await bot.stop()

        assert session.calls[-2:] == [("logout",), ("stop",)]

    async def test_pacing_delay_between_guilds(self, session, command_service, mocker):
        """Each guild delete is followed by the configured pause."""
        sleep = mocker.patch("beacon.bot.beacon_bot.asyncio.sleep", new=mocker.AsyncMock())
        bot = BeaconBot(session, command_service, guild_delete_delay=1.0, guild_delete_timeout=1.0)
        await bot.start(TOKEN)

        await bot.stop()

        assert sleep.await_count == 2
        sleep.assert_awaited_with(1.0)


@pytest.mark.asyncio
class TestDispose:
    async def test_dispose_stops_once(self, bot, session):
        """Repeated dispose() only stops the first time."""
        await bot.start(TOKEN)

        await bot.dispose()
        await bot.dispose()

        assert session.calls.count(("logout",)) == 1

    async def test_context_manager_disposes(self, session, command_service):
        """Leaving the async context stops the bot."""
        async with BeaconBot(session, command_service, guild_delete_delay=0) as bot:
            await bot.start(TOKEN)

        assert not bot.is_running
        assert session.calls[-2:] == [("logout",), ("stop",)]


@pytest.mark.asyncio
class TestReadyAndGuildJoin:
    """Registration is driven by gateway events."""

    async def test_ready_registers_global_then_guilds(self, bot, session, command_service):
        """Ready discovers, then registers global before each guild."""
        await bot.start(TOKEN)

        await session.emit(GatewayEvent.READY)

        assert command_service.calls == [
            ("discover", "beacon.modules"),
            ("global", ("PingCommands",), True),
            ("guild", 1, ("ModerationCommands", "FunCommands"), True),
            ("guild", 2, ("ModerationCommands", "FunCommands"), True),
        ]

    async def test_second_ready_reuses_discovered_modules(self, bot, session, command_service):
        """A reconnect ready re-registers without re-discovering."""
        await bot.start(TOKEN)

        await session.emit(GatewayEvent.READY)
        await session.emit(GatewayEvent.READY)

        assert len(command_service.calls_of("discover")) == 1
        assert len(command_service.calls_of("global")) == 2

    async def test_guild_join_registers_only_that_guild(self, bot, session, command_service):
        """Joining a guild pushes guild modules to that guild alone."""
        await bot.start(TOKEN)
        await session.emit(GatewayEvent.READY)
        command_service.calls.clear()

        await session.emit(GatewayEvent.GUILD_JOINED, FakeGuild(3, "gamma"))

        assert command_service.calls == [
            ("guild", 3, ("ModerationCommands", "FunCommands"), True),
        ]

    async def test_guild_join_during_ready_waits_for_global(self, bot, session, command_service):
        """A join arriving mid-ready registers after the ready pass."""
        command_service.global_delay = 0.05
        await bot.start(TOKEN)

        ready = asyncio.create_task(session.emit(GatewayEvent.READY))
        await asyncio.sleep(0.01)
        await session.emit(GatewayEvent.GUILD_JOINED, FakeGuild(3, "gamma"))
        await ready

        kinds = [(call[0], call[1] if call[0] == "guild" else None) for call in command_service.calls]
        assert kinds == [
            ("discover", None),
            ("global", None),
            ("guild", 1),
            ("guild", 2),
            ("guild", 3),
        ]

    async def test_guild_join_failure_is_isolated(self, bot, session, command_service):
        """A failing guild push is logged and does not raise."""
        await bot.start(TOKEN)
        await session.emit(GatewayEvent.READY)
        command_service.fail_guilds = {3}

        await session.emit(GatewayEvent.GUILD_JOINED, FakeGuild(3, "gamma"))

        assert command_service.calls_of("guild")[-1][1] == 3

    async def test_guild_join_before_ready_is_deferred(self, bot, session, command_service):
        """Joins before the first ready leave registration to ready."""
        await bot.start(TOKEN)

        await session.emit(GatewayEvent.GUILD_JOINED, FakeGuild(3, "gamma"))

        assert command_service.calls == []

    async def test_restart_rediscovers_and_reregisters(self, bot, session, command_service):
        """After stop, the next ready discovers modules again."""
        await bot.start(TOKEN)
        await session.emit(GatewayEvent.READY)
        first = [c for c in command_service.calls if c[0] != "delete"]
        await bot.stop()
        command_service.calls.clear()

        await bot.start(TOKEN)
        await session.emit(GatewayEvent.READY)

        assert command_service.calls == first
        assert command_service.calls[0] == ("discover", "beacon.modules")


@pytest.mark.asyncio
class TestGatewayLogs:
    async def test_log_events_use_translated_level(self, bot, session, caplog):
        """Gateway diagnostics land on beacon.gateway at the mapped level."""
        caplog.set_level(logging.DEBUG, logger="beacon.gateway")
        await bot.start(TOKEN)
        error = RuntimeError("socket closed")

        await session.emit(
            GatewayEvent.LOG,
            GatewayLogMessage(LogSeverity.VERBOSE, "discord.gateway", "heartbeat", None),
        )
        await session.emit(
            GatewayEvent.LOG,
            GatewayLogMessage(LogSeverity.CRITICAL, "discord.client", "crashed", error),
        )

        records = [r for r in caplog.records if r.name == "beacon.gateway"]
        assert [(r.levelno, r.getMessage()) for r in records] == [
            (logging.DEBUG, "[discord.gateway] heartbeat"),
            (logging.CRITICAL, "[discord.client] crashed"),
        ]
        assert records[1].exc_info[1] is error
