"""
Deadline-aware failure responses.

Purpose
-------
Turn a failed interaction into a log line and, when it is still safe, a
generic fallback message to the user.

Discord requires an interaction response within 3 seconds. Sending after
that fails, so the fallback is only attempted while the interaction is
younger than the safety window (2 seconds by default).

This module is the only place that manufactures user-facing failure text.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from beacon.bot.types import DispatchErrorKind, Failure, InteractionContext
from beacon.core.config import Config
from beacon.core.logging.logger import get_logger

logger = get_logger(__name__)

FALLBACK_MESSAGE = "Something went wrong. Please contact a dev."

Clock = Callable[[], datetime]


class ResponseOutcome(Enum):
    SENT = "sent"
    ALREADY_RESPONDED = "already_responded"
    TOO_LATE = "too_late"
    SEND_FAILED = "send_failed"


def describe_failure(failure: Failure) -> str:
    """Map a failure to the text used in logs."""
    kind = failure.kind
    if kind is DispatchErrorKind.UNMET_PRECONDITION:
        return f"Unmet Precondition: {failure.reason}"
    if kind is DispatchErrorKind.UNKNOWN_COMMAND:
        return "Unknown command"
    if kind is DispatchErrorKind.BAD_ARGS:
        return "Invalid number or arguments"
    if kind is DispatchErrorKind.EXCEPTION:
        return f"Command exception: {failure.reason}"
    if kind is DispatchErrorKind.UNSUCCESSFUL:
        return "Command could not be executed"
    return "Unknown error"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FailureResponder:
    """Logs a failure and sends the fallback message if the deadline allows."""

    def __init__(
        self,
        clock: Optional[Clock] = None,
        safety_window_seconds: Optional[float] = None,
    ) -> None:
        self._clock = clock or _utcnow
        self.safety_window_seconds: float = (
            Config.RESPONSE_SAFETY_WINDOW_SECONDS
            if safety_window_seconds is None
            else safety_window_seconds
        )

    async def handle(
        self,
        name: str,
        context: InteractionContext,
        failure: Failure,
    ) -> ResponseOutcome:
        text = describe_failure(failure)
        logger.error(
            "%s:%s:%s",
            context.describe(),
            name,
            text,
            extra={"failure_kind": failure.kind.value, "handler": name},
        )

        interaction = context.interaction
        if interaction.has_responded:
            logger.info(
                "Interaction already responded to, skipping fallback",
                extra={"handler": name},
            )
            return ResponseOutcome.ALREADY_RESPONDED

        elapsed = (self._clock() - interaction.created_at).total_seconds()
        if elapsed >= self.safety_window_seconds:
            logger.warning(
                "Interaction too old for fallback response, skipping",
                extra={
                    "handler": name,
                    "elapsed_seconds": round(elapsed, 3),
                    "safety_window_seconds": self.safety_window_seconds,
                },
            )
            return ResponseOutcome.TOO_LATE

        try:
            await interaction.respond(FALLBACK_MESSAGE, ephemeral=True)
        except Exception as exc:
            logger.error(
                "Failed to send fallback response",
                extra={
                    "handler": name,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )
            return ResponseOutcome.SEND_FAILED

        return ResponseOutcome.SENT
