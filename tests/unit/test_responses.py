"""
Unit tests for the deadline-aware failure responder.

Discord rejects responses sent more than 3 seconds after an interaction
was created; the responder only sends within its safety window.
"""

import logging

import pytest

from beacon.bot.responses import (
    FALLBACK_MESSAGE,
    FailureResponder,
    ResponseOutcome,
    describe_failure,
)
from beacon.bot.types import DispatchErrorKind, Failure, InteractionContext
from tests.conftest import FakeGatewaySession, FakeGuild


class TestDescribeFailure:
    """Failure kinds map to fixed log text."""

    @pytest.mark.parametrize(
        "failure, expected",
        [
            (Failure(DispatchErrorKind.UNMET_PRECONDITION, "admins only"), "Unmet Precondition: admins only"),
            (Failure(DispatchErrorKind.UNKNOWN_COMMAND), "Unknown command"),
            (Failure(DispatchErrorKind.BAD_ARGS, "missing x"), "Invalid number or arguments"),
            (Failure(DispatchErrorKind.EXCEPTION, "boom"), "Command exception: boom"),
            (Failure(DispatchErrorKind.UNSUCCESSFUL), "Command could not be executed"),
            (Failure(DispatchErrorKind.CONVERT_FAILED, "bad int"), "Unknown error"),
            (Failure(DispatchErrorKind.PARSE_FAILED), "Unknown error"),
        ],
    )
    def test_texts(self, failure, expected):
        """Each failure kind has its fixed description."""
        assert describe_failure(failure) == expected


@pytest.mark.asyncio
class TestFailureResponder:
    """Fallback sending respects has_responded and the safety window."""

    async def test_fresh_interaction_gets_exactly_one_fallback(self, clock, make_interaction):
        """A fresh unanswered interaction gets one fallback."""
        interaction = make_interaction(created_at=clock.now)
        clock.advance(0.5)
        responder = FailureResponder(clock=clock, safety_window_seconds=2.0)
        context = InteractionContext(FakeGatewaySession(), interaction)

        outcome = await responder.handle("ping", context, Failure(DispatchErrorKind.EXCEPTION, "boom"))

        assert outcome is ResponseOutcome.SENT
        assert interaction.sent == [FALLBACK_MESSAGE]

    async def test_already_responded_sends_nothing(self, clock, make_interaction):
        """Answered interactions are left alone."""
        interaction = make_interaction(created_at=clock.now, responded=True)
        responder = FailureResponder(clock=clock, safety_window_seconds=2.0)
        context = InteractionContext(FakeGatewaySession(), interaction)

        outcome = await responder.handle("ping", context, Failure(DispatchErrorKind.UNKNOWN_COMMAND))

        assert outcome is ResponseOutcome.ALREADY_RESPONDED
        assert interaction.sent == []

    async def test_old_interaction_is_skipped_and_logged(self, clock, make_interaction, caplog):
        """Interactions past the window are logged and skipped."""
        caplog.set_level(logging.DEBUG)
        interaction = make_interaction(created_at=clock.now)
        clock.advance(2.5)
        responder = FailureResponder(clock=clock, safety_window_seconds=2.0)
        context = InteractionContext(FakeGatewaySession(), interaction)

        outcome = await responder.handle("ping", context, Failure(DispatchErrorKind.EXCEPTION, "boom"))

        assert outcome is ResponseOutcome.TOO_LATE
        assert interaction.sent == []
        assert any("too old" in record.getMessage() for record in caplog.records)

    async def test_elapsed_uses_total_seconds(self, clock, make_interaction):
        """An interaction a minute and a half old is too late, not 30 seconds old."""
        interaction = make_interaction(created_at=clock.now)
        clock.advance(61.5)
        responder = FailureResponder(clock=clock, safety_window_seconds=2.0)
        context = InteractionContext(FakeGatewaySession(), interaction)

        outcome = await responder.handle("ping", context, Failure(DispatchErrorKind.EXCEPTION, "boom"))

        assert outcome is ResponseOutcome.TOO_LATE

    async def test_window_boundary_is_too_late(self, clock, make_interaction):
        """Exactly at the window counts as too late."""
        interaction = make_interaction(created_at=clock.now)
        clock.advance(2.0)
        responder = FailureResponder(clock=clock, safety_window_seconds=2.0)
        context = InteractionContext(FakeGatewaySession(), interaction)

        outcome = await responder.handle("ping", context, Failure(DispatchErrorKind.EXCEPTION, "boom"))

        assert outcome is ResponseOutcome.TOO_LATE
        assert interaction.sent == []

    async def test_failure_is_logged_with_context_and_name(self, clock, make_interaction, caplog):
        """The failure is logged with handler name and reason."""
        caplog.set_level(logging.ERROR)
        interaction = make_interaction(created_at=clock.now, guild=FakeGuild(7, "alpha"), user="ana")
        responder = FailureResponder(clock=clock, safety_window_seconds=2.0)
        context = InteractionContext(FakeGatewaySession(), interaction)

        await responder.handle(
            "ban",
            context,
            Failure(DispatchErrorKind.UNMET_PRECONDITION, "admins only"),
        )

        messages = [record.getMessage() for record in caplog.records if record.levelno == logging.ERROR]
        assert "alpha:ana:ban:Unmet Precondition: admins only" in messages

    async def test_send_failure_is_reported_not_raised(self, clock, make_interaction):
        """A failing send is reported as SEND_FAILED."""
        interaction = make_interaction(created_at=clock.now, respond_error=RuntimeError("gone"))
        responder = FailureResponder(clock=clock, safety_window_seconds=2.0)
        context = InteractionContext(FakeGatewaySession(), interaction)

        outcome = await responder.handle("ping", context, Failure(DispatchErrorKind.EXCEPTION, "boom"))

        assert outcome is ResponseOutcome.SEND_FAILED
