"""
Interaction dispatch.

Routes each inbound interaction to the command service and turns every
outcome reported on the service's executed channel into either a debug log
(success) or a failure response. Nothing is re-raised to the transport.
"""

from __future__ import annotations

from typing import Optional

from beacon.bot.responses import FailureResponder
from beacon.bot.types import (
    CommandService,
    DispatchErrorKind,
    Failure,
    GatewaySession,
    Interaction,
    InteractionContext,
    InteractionExecuted,
    InteractionKind,
)
from beacon.core.logging.logger import LogContext, get_logger

logger = get_logger(__name__)


class InteractionDispatcher:
    def __init__(
        self,
        session: GatewaySession,
        command_service: CommandService,
        responder: Optional[FailureResponder] = None,
    ) -> None:
        self._session = session
        self._command_service = command_service
        self._responder = responder or FailureResponder()

    async def on_interaction(self, interaction: Interaction) -> None:
        context = InteractionContext(self._session, interaction)
        guild = interaction.guild

        async with LogContext(
            user_id=getattr(interaction.user, "id", None),
            guild_id=getattr(guild, "id", None),
            command=interaction.describe(),
            interaction_id=interaction.id,
        ):
            try:
                await self._command_service.execute(context)
            except Exception as exc:
                logger.error(
                    "Interaction execution raised",
                    extra={
                        "interaction": interaction.describe(),
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                    exc_info=True,
                )
                await self._responder.handle(
                    interaction.describe(),
                    context,
                    Failure(DispatchErrorKind.EXCEPTION, str(exc)),
                )
                if interaction.kind is InteractionKind.APPLICATION_COMMAND:
                    await self._delete_original(interaction)

    async def on_executed(self, event: InteractionExecuted) -> None:
        if event.result.is_success:
            logger.debug(
                "Interaction success: %s:%s",
                event.context.describe(),
                event.handler_name,
                extra={"interaction_kind": event.kind.value},
            )
            return

        await self._responder.handle(
            event.handler_name or "Unknown interaction",
            event.context,
            event.result,
        )

    async def _delete_original(self, interaction: Interaction) -> None:
        try:
            await interaction.delete_original_response()
        except Exception as exc:
            logger.warning(
                "Could not delete original response",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
