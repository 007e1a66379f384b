"""
Guild-scoped server commands.

Registered to every guild the bot joins. Exercises preconditions,
autocomplete, component and modal handlers: /server_info attaches the
dismiss button and /feedback opens the feedback form.
"""

from __future__ import annotations

from typing import Any, Dict, List

from beacon.bot.registry import (
    CommandModule,
    autocomplete,
    component,
    guild_only,
    modal,
    slash_command,
)
from beacon.bot.types import Button, InteractionContext, ModalField

ECHO_SUGGESTIONS = ("hello", "hello world", "good morning", "good night", "ping")

MAX_ECHO_REPEAT = 5

DISMISS_BUTTON = Button(custom_id="server:dismiss", label="Dismiss")

FEEDBACK_FORM_ID = "server:feedback"
FEEDBACK_FIELD = ModalField(custom_id="feedback_text", label="Your feedback", long=True)


class ServerCommands(CommandModule):
    @guild_only()
    @slash_command("server_info", "Show information about this server")
    async def server_info(self, ctx: InteractionContext) -> None:
        guild = ctx.guild
        await ctx.respond(
            f"Server: {guild.name} (id {guild.id})",
            ephemeral=True,
            buttons=[DISMISS_BUTTON],
        )

    @slash_command(
        "echo",
        "Repeat a message",
        describe={"text": "What to repeat", "times": "How many times (1-5)"},
    )
    async def echo(self, ctx: InteractionContext, text: str, times: int = 1) -> None:
        if not 1 <= times <= MAX_ECHO_REPEAT:
            raise ValueError(f"times must be between 1 and {MAX_ECHO_REPEAT}")
        await ctx.respond("\n".join([text] * times))

    @autocomplete("echo", "text")
    async def echo_suggestions(self, ctx: InteractionContext, current: Any) -> List[str]:
        current = str(current or "").lower()
        return [s for s in ECHO_SUGGESTIONS if s.startswith(current)]

    @slash_command("feedback", "Send feedback to the server staff")
    async def feedback_form(self, ctx: InteractionContext) -> None:
        await ctx.send_modal(FEEDBACK_FORM_ID, "Feedback", [FEEDBACK_FIELD])

    @component(DISMISS_BUTTON.custom_id)
    async def dismiss(self, ctx: InteractionContext) -> None:
        await ctx.respond("Dismissed.", ephemeral=True)

    @modal(FEEDBACK_FORM_ID)
    async def feedback(self, ctx: InteractionContext, values: Dict[str, Any]) -> None:
        text = values.get(FEEDBACK_FIELD.custom_id) or ""
        await ctx.respond(f"Thanks for the feedback ({len(text)} characters).", ephemeral=True)


async def setup(loader) -> None:
    loader.add_module(ServerCommands())
