"""
Command execution service over discord.py.

Purpose
-------
Implement the CommandService protocol: load command modules, push their
application commands to Discord, resolve inbound interactions to handlers
and report every outcome on a single executed channel.

Responsibilities
----------------
- Build application command payloads from CommandDefinitions
- Bulk overwrite (delete_missing) or per-command upsert, globally or per guild
- Resolve interactions by command name, autocomplete option, component
  custom_id or modal custom_id
- Convert options, run preconditions, invoke handlers
- Classify outcomes as Success or Failure and publish InteractionExecuted

Non-Responsibilities
--------------------
- Deciding when to register (handled by CommandRegistrar)
- Responding to failures (handled by FailureResponder)
"""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import discord

from beacon.bot.loader import ModuleLoader
from beacon.bot.registry import CommandDefinition, CommandModule, CommandParameter
from beacon.bot.types import (
    DispatchErrorKind,
    DispatchResult,
    ExecutedHandler,
    Failure,
    InteractionContext,
    InteractionExecuted,
    InteractionKind,
    Success,
)
from beacon.core.exceptions import PreconditionFailed, RegistrationError
from beacon.core.logging.logger import get_logger

logger = get_logger(__name__)

MAX_AUTOCOMPLETE_CHOICES = 25

_OPTION_TYPES = {
    str: discord.AppCommandOptionType.string,
    int: discord.AppCommandOptionType.integer,
    float: discord.AppCommandOptionType.number,
    bool: discord.AppCommandOptionType.boolean,
}

Handler = Callable[..., Awaitable[Any]]


# ============================================================================
# Payloads
# ============================================================================


def build_option_payload(parameter: CommandParameter, autocomplete: bool = False) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "type": _OPTION_TYPES[parameter.type].value,
        "name": parameter.name,
        "description": parameter.description,
        "required": parameter.required,
    }
    if autocomplete:
        payload["autocomplete"] = True
    return payload


def build_command_payload(
    definition: CommandDefinition,
    autocompleted: Sequence[str] = (),
) -> Dict[str, Any]:
    """Application command JSON for one slash command."""
    # Discord rejects optional options placed before required ones
    parameters = sorted(definition.parameters, key=lambda p: not p.required)
    return {
        "name": definition.name,
        "description": definition.description,
        "type": discord.AppCommandType.chat_input.value,
        "options": [build_option_payload(p, p.name in autocompleted) for p in parameters],
    }


def build_module_payloads(modules: Sequence[CommandModule]) -> List[Dict[str, Any]]:
    """Payloads for every command in ``modules``; the first of a duplicated name wins."""
    payloads: List[Dict[str, Any]] = []
    seen: set = set()
    for module in modules:
        for definition in module.commands:
            if definition.name in seen:
                continue
            seen.add(definition.name)
            autocompleted = [
                option for (command, option) in module.autocompletes if command == definition.name
            ]
            payloads.append(build_command_payload(definition, autocompleted))
    return payloads


# ============================================================================
# Argument conversion
# ============================================================================


def convert_option(expected: type, value: Any) -> Any:
    if expected is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "false"):
            return value.lower() == "true"
        raise ValueError(f"{value!r} is not a boolean")
    if expected is int:
        if isinstance(value, bool):
            raise ValueError(f"{value!r} is not an integer")
        return int(value)
    if expected is float:
        if isinstance(value, bool):
            raise ValueError(f"{value!r} is not a number")
        return float(value)
    return str(value)


def bind_arguments(
    definition: CommandDefinition,
    raw_options: Mapping[str, Any],
) -> Union[Dict[str, Any], Failure]:
    """Match raw option values to the command's parameters."""
    known = {p.name for p in definition.parameters}
    unexpected = sorted(set(raw_options) - known)
    if unexpected:
        return Failure(DispatchErrorKind.BAD_ARGS, f"Unexpected arguments: {', '.join(unexpected)}")

    kwargs: Dict[str, Any] = {}
    for parameter in definition.parameters:
        if parameter.name not in raw_options:
            if parameter.required:
                return Failure(DispatchErrorKind.BAD_ARGS, f"Missing argument: {parameter.name}")
            kwargs[parameter.name] = parameter.default
            continue
        try:
            kwargs[parameter.name] = convert_option(parameter.type, raw_options[parameter.name])
        except (TypeError, ValueError) as exc:
            return Failure(
                DispatchErrorKind.CONVERT_FAILED,
                f"Cannot convert {parameter.name}: {exc}",
            )
    return kwargs


def _collect_modal_values(components: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for component in components:
        if "components" in component:
            values.update(_collect_modal_values(component["components"]))
        elif "custom_id" in component:
            values[component["custom_id"]] = component.get("value")
    return values


# ============================================================================
# Service
# ============================================================================


class DiscordCommandService:
    """CommandService backed by a discord.Client's HTTP API."""

    def __init__(self, client: discord.Client, loader: Optional[ModuleLoader] = None) -> None:
        self._client = client
        self._loader = loader or ModuleLoader()
        self._commands: Dict[str, CommandDefinition] = {}
        self._autocompletes: Dict[Tuple[str, str], Handler] = {}
        self._components: Dict[str, Handler] = {}
        self._modals: Dict[str, Handler] = {}
        self._executed_handlers: List[ExecutedHandler] = []

    # --------------------------------------------------------------- #
    # Discovery
    # --------------------------------------------------------------- #

    async def discover_modules(self, source: str) -> Sequence[CommandModule]:
        modules = await self._loader.load_all(source)
        self._commands = {}
        self._autocompletes = {}
        self._components = {}
        self._modals = {}

        for module in modules:
            for definition in module.commands:
                if definition.name in self._commands:
                    logger.warning(
                        "Duplicate command name, keeping the first definition",
                        extra={"command_name": definition.name, "module_name": module.name},
                    )
                    continue
                self._commands[definition.name] = definition
            self._autocompletes.update(module.autocompletes)
            self._components.update(module.components)
            self._modals.update(module.modals)

        logger.debug(
            "Executable handlers indexed",
            extra={
                "commands": sorted(self._commands),
                "components": sorted(self._components),
                "modals": sorted(self._modals),
            },
        )
        return modules

    # --------------------------------------------------------------- #
    # Registration
    # --------------------------------------------------------------- #

    async def register_global(
        self, modules: Sequence[CommandModule], *, delete_missing: bool
    ) -> None:
        payloads = build_module_payloads(modules)
        application_id = await self._application_id()
        try:
            if delete_missing:
                await self._client.http.bulk_upsert_global_commands(application_id, payloads)
            else:
                for payload in payloads:
                    await self._client.http.upsert_global_command(application_id, payload)
        except discord.HTTPException as exc:
            raise RegistrationError("global", exc) from exc

        logger.info(
            "Global commands pushed",
            extra={"commands": [p["name"] for p in payloads], "delete_missing": delete_missing},
        )

    async def register_to_guild(
        self, guild_id: int, modules: Sequence[CommandModule], *, delete_missing: bool
    ) -> None:
        payloads = build_module_payloads(modules)
        application_id = await self._application_id()
        try:
            if delete_missing:
                await self._client.http.bulk_upsert_guild_commands(application_id, guild_id, payloads)
            else:
                for payload in payloads:
                    await self._client.http.upsert_guild_command(application_id, guild_id, payload)
        except discord.HTTPException as exc:
            raise RegistrationError(f"guild:{guild_id}", exc) from exc

        logger.debug(
            "Guild commands pushed",
            extra={"guild_id": guild_id, "commands": [p["name"] for p in payloads]},
        )

    async def delete_all_commands_in_guild(self, guild_id: int) -> None:
        application_id = await self._application_id()
        try:
            await self._client.http.bulk_upsert_guild_commands(application_id, guild_id, [])
        except discord.HTTPException as exc:
            raise RegistrationError(f"guild:{guild_id}", exc) from exc

    async def _application_id(self) -> int:
        if self._client.application_id is not None:
            return self._client.application_id
        info = await self._client.application_info()
        return info.id

    # --------------------------------------------------------------- #
    # Execution
    # --------------------------------------------------------------- #

    def subscribe_executed(self, handler: ExecutedHandler) -> None:
        self._executed_handlers.append(handler)

    async def execute(self, context: InteractionContext) -> DispatchResult:
        kind = context.interaction.kind

        if kind is InteractionKind.APPLICATION_COMMAND:
            name, result = await self._execute_command(context)
        elif kind is InteractionKind.AUTOCOMPLETE:
            name, result = await self._execute_autocomplete(context)
        elif kind is InteractionKind.COMPONENT:
            name, result = await self._execute_keyed(context, self._components)
        elif kind is InteractionKind.MODAL_SUBMIT:
            name, result = await self._execute_modal(context)
        else:
            name, result = None, Failure(DispatchErrorKind.UNSUCCESSFUL, "Unsupported interaction type")

        await self._publish(InteractionExecuted(kind, context, name, result))
        return result

    async def _execute_command(self, context: InteractionContext) -> Tuple[Optional[str], DispatchResult]:
        data = context.interaction.data
        name = data.get("name")
        definition = self._commands.get(name)
        if definition is None:
            return name, Failure(DispatchErrorKind.UNKNOWN_COMMAND, f"Unknown command: {name}")

        raw_options = {opt["name"]: opt.get("value") for opt in data.get("options", [])}
        bound = bind_arguments(definition, raw_options)
        if isinstance(bound, Failure):
            return definition.name, bound

        failure = await self._run_checks(definition, context)
        if failure is not None:
            return definition.name, failure

        return definition.name, await self._invoke(definition.callback, context, **bound)

    async def _execute_autocomplete(self, context: InteractionContext) -> Tuple[Optional[str], DispatchResult]:
        data = context.interaction.data
        command = data.get("name")
        focused = next((opt for opt in data.get("options", []) if opt.get("focused")), None)
        if focused is None:
            return command, Failure(DispatchErrorKind.PARSE_FAILED, "No focused option")

        name = f"{command}:{focused['name']}"
        handler = self._autocompletes.get((command, focused["name"]))
        if handler is None:
            return name, Failure(DispatchErrorKind.UNKNOWN_COMMAND, f"No autocomplete for {name}")

        async def complete(ctx: InteractionContext, current: Any) -> None:
            choices = await handler(ctx, current)
            await ctx.interaction.send_autocomplete(list(choices)[:MAX_AUTOCOMPLETE_CHOICES])

        return name, await self._invoke(complete, context, focused.get("value", ""))

    async def _execute_keyed(
        self,
        context: InteractionContext,
        handlers: Mapping[str, Handler],
        *args: Any,
    ) -> Tuple[Optional[str], DispatchResult]:
        custom_id = context.interaction.data.get("custom_id")
        handler = handlers.get(custom_id)
        if handler is None:
            return custom_id, Failure(DispatchErrorKind.UNKNOWN_COMMAND, f"No handler for {custom_id}")
        return custom_id, await self._invoke(handler, context, *args)

    async def _execute_modal(self, context: InteractionContext) -> Tuple[Optional[str], DispatchResult]:
        values = _collect_modal_values(context.interaction.data.get("components", []))
        return await self._execute_keyed(context, self._modals, values)

    @staticmethod
    async def _run_checks(definition: CommandDefinition, context: InteractionContext) -> Optional[Failure]:
        for check in definition.checks:
            try:
                passed = check(context)
                if inspect.isawaitable(passed):
                    passed = await passed
            except PreconditionFailed as exc:
                return Failure(DispatchErrorKind.UNMET_PRECONDITION, exc.reason)
            except Exception as exc:
                return Failure(DispatchErrorKind.EXCEPTION, str(exc))
            if not passed:
                check_name = getattr(check, "__qualname__", "check")
                return Failure(DispatchErrorKind.UNMET_PRECONDITION, f"{check_name} failed")
        return None

    @staticmethod
    async def _invoke(handler: Handler, context: InteractionContext, *args: Any, **kwargs: Any) -> DispatchResult:
        try:
            await handler(context, *args, **kwargs)
        except Exception as exc:
            logger.error(
                "Interaction handler raised",
                extra={
                    "handler": getattr(handler, "__qualname__", repr(handler)),
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )
            return Failure(DispatchErrorKind.EXCEPTION, str(exc))
        return Success()

    async def _publish(self, event: InteractionExecuted) -> None:
        for handler in list(self._executed_handlers):
            try:
                await handler(event)
            except Exception as exc:
                logger.error(
                    "Executed handler failed",
                    extra={"error": str(exc), "error_type": type(exc).__name__},
                    exc_info=True,
                )
