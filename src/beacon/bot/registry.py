"""
Command modules and the Command Registry.

Purpose
-------
Describe user-invocable commands and decide where each module is registered.

Responsibilities
----------------
- CommandModule base class: collects slash commands, autocomplete, component
  and modal handlers declared with the decorators below
- The `@global_module` marker: sets the module's scope to GLOBAL
- CommandRegistry: enumerate modules from a source package and partition
  them into global and guild-scoped sets

Non-Responsibilities
--------------------
- Importing module files (handled by ModuleLoader)
- Pushing commands to Discord (handled by CommandRegistrar)
- Executing handlers (handled by the command service)

Usage Example
-------------
>>> @global_module
... class DebugCommands(CommandModule):
...     @slash_command("test_ping", "Verify the bot is responsive")
...     async def ping(self, ctx: InteractionContext) -> None:
...         await ctx.respond("pong")
"""

from __future__ import annotations

import inspect
import typing
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    ClassVar,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from beacon.core.exceptions import PreconditionFailed
from beacon.core.logging.logger import get_logger

if TYPE_CHECKING:
    from beacon.bot.types import CommandService, InteractionContext

logger = get_logger(__name__)

Check = Callable[["InteractionContext"], Union[bool, Awaitable[bool]]]

SUPPORTED_PARAMETER_TYPES = (str, int, float, bool)


class CommandScope(Enum):
    GLOBAL = "global"
    GUILD = "guild"


# ============================================================================
# Definitions
# ============================================================================


@dataclass(frozen=True)
class CommandParameter:
    name: str
    description: str
    type: type
    required: bool = True
    default: Any = None


@dataclass(frozen=True)
class CommandDefinition:
    """A single slash command owned by one CommandModule."""

    name: str
    description: str
    callback: Callable[..., Awaitable[Any]]
    parameters: Tuple[CommandParameter, ...] = ()
    checks: Tuple[Check, ...] = ()


@dataclass(frozen=True)
class _CommandSpec:
    name: str
    description: str
    describe: Mapping[str, str] = field(default_factory=dict)


# ============================================================================
# Decorators
# ============================================================================


def slash_command(
    name: Optional[str] = None,
    description: str = "",
    *,
    describe: Optional[Mapping[str, str]] = None,
):
    """
    Mark a CommandModule method as a slash command.

    Parameters after the context argument become command options; their
    annotations (str, int, float, bool, optionally wrapped in Optional)
    define the option types and defaults make them optional.
    """

    def decorator(func):
        func.__beacon_command__ = _CommandSpec(
            name=name or func.__name__,
            description=description or (inspect.getdoc(func) or "").split("\n")[0] or "-",
            describe=dict(describe or {}),
        )
        return func

    return decorator


def autocomplete(command: str, option: str):
    """Mark a method as the autocomplete source for ``command``'s ``option``."""

    def decorator(func):
        func.__beacon_autocomplete__ = (command, option)
        return func

    return decorator


def component(custom_id: str):
    """Mark a method as the handler for message components with ``custom_id``."""

    def decorator(func):
        func.__beacon_component__ = custom_id
        return func

    return decorator


def modal(custom_id: str):
    """Mark a method as the handler for modal submissions with ``custom_id``."""

    def decorator(func):
        func.__beacon_modal__ = custom_id
        return func

    return decorator


def check(predicate: Check):
    """Attach a precondition to a slash command."""

    def decorator(func):
        checks = list(getattr(func, "__beacon_checks__", ()))
        checks.insert(0, predicate)
        func.__beacon_checks__ = tuple(checks)
        return func

    return decorator


def guild_only():
    """Precondition: the interaction must come from a guild."""

    def predicate(ctx: "InteractionContext") -> bool:
        if ctx.guild is None:
            raise PreconditionFailed("Command can only be used in a guild")
        return True

    return check(predicate)


# ============================================================================
# CommandModule
# ============================================================================


class CommandModule:
    """
    Base class for all command modules.

    Subclasses are guild-scoped unless decorated with `@global_module`.
    Scope is a single class attribute, so a module is never both.
    """

    scope: ClassVar[CommandScope] = CommandScope.GUILD
    module_name: ClassVar[Optional[str]] = None
    metadata: ClassVar[Mapping[str, Any]] = MappingProxyType({})

    def __init__(self) -> None:
        self._commands: Tuple[CommandDefinition, ...] = ()
        self._autocompletes: Dict[Tuple[str, str], Callable[..., Awaitable[Any]]] = {}
        self._components: Dict[str, Callable[..., Awaitable[Any]]] = {}
        self._modals: Dict[str, Callable[..., Awaitable[Any]]] = {}
        self._collect_handlers()

    @property
    def name(self) -> str:
        return self.module_name or type(self).__name__

    @property
    def is_global(self) -> bool:
        return self.scope is CommandScope.GLOBAL

    @property
    def commands(self) -> Tuple[CommandDefinition, ...]:
        return self._commands

    @property
    def autocompletes(self) -> Mapping[Tuple[str, str], Callable[..., Awaitable[Any]]]:
        return MappingProxyType(self._autocompletes)

    @property
    def components(self) -> Mapping[str, Callable[..., Awaitable[Any]]]:
        return MappingProxyType(self._components)

    @property
    def modals(self) -> Mapping[str, Callable[..., Awaitable[Any]]]:
        return MappingProxyType(self._modals)

    def __repr__(self) -> str:
        return f"<{self.name} scope={self.scope.value} commands={[c.name for c in self._commands]}>"

    def _collect_handlers(self) -> None:
        commands: Dict[str, CommandDefinition] = {}

        # Base classes first so definition order is preserved and overrides win
        for klass in reversed(type(self).__mro__):
            for attr_name, attr in vars(klass).items():
                if not inspect.iscoroutinefunction(attr):
                    continue
                bound = getattr(self, attr_name)

                spec = getattr(attr, "__beacon_command__", None)
                if spec is not None:
                    commands[spec.name] = CommandDefinition(
                        name=spec.name,
                        description=spec.description,
                        callback=bound,
                        parameters=_extract_parameters(attr, spec.describe),
                        checks=getattr(attr, "__beacon_checks__", ()),
                    )

                target = getattr(attr, "__beacon_autocomplete__", None)
                if target is not None:
                    self._autocompletes[target] = bound

                custom_id = getattr(attr, "__beacon_component__", None)
                if custom_id is not None:
                    self._components[custom_id] = bound

                custom_id = getattr(attr, "__beacon_modal__", None)
                if custom_id is not None:
                    self._modals[custom_id] = bound

        self._commands = tuple(commands.values())


def global_module(cls):
    """Class decorator marking a CommandModule as registered globally."""
    if not (isinstance(cls, type) and issubclass(cls, CommandModule)):
        raise TypeError("@global_module can only decorate CommandModule subclasses")
    cls.scope = CommandScope.GLOBAL
    return cls


def _extract_parameters(func, describe: Mapping[str, str]) -> Tuple[CommandParameter, ...]:
    signature = inspect.signature(func)
    hints = typing.get_type_hints(func)
    # Skip self and the interaction context
    params = list(signature.parameters.values())[2:]

    result: List[CommandParameter] = []
    for param in params:
        annotation = hints.get(param.name, str)
        required = param.default is inspect.Parameter.empty
        origin = typing.get_origin(annotation)
        if origin is Union:
            args = [a for a in typing.get_args(annotation) if a is not type(None)]
            if len(args) != 1:
                raise TypeError(f"Unsupported option type for {param.name}: {annotation}")
            annotation = args[0]
            required = False
        if annotation not in SUPPORTED_PARAMETER_TYPES:
            raise TypeError(f"Unsupported option type for {param.name}: {annotation}")
        result.append(
            CommandParameter(
                name=param.name,
                description=describe.get(param.name, param.name),
                type=annotation,
                required=required,
                default=None if param.default is inspect.Parameter.empty else param.default,
            )
        )
    return tuple(result)


# ============================================================================
# CommandRegistry
# ============================================================================


@dataclass(frozen=True)
class DiscoveredModules:
    global_modules: Tuple[CommandModule, ...] = ()
    guild_modules: Tuple[CommandModule, ...] = ()

    @property
    def all(self) -> Tuple[CommandModule, ...]:
        return self.global_modules + self.guild_modules


class CommandRegistry:
    """Discovers command modules and classifies them as global or guild-scoped."""

    def __init__(self, command_service: "CommandService") -> None:
        self._command_service = command_service

    async def discover(self, source: str) -> DiscoveredModules:
        modules = await self._command_service.discover_modules(source)
        discovered = self.classify(modules)
        logger.info(
            "Command modules discovered",
            extra={
                "source": source,
                "global_modules": [m.name for m in discovered.global_modules],
                "guild_modules": [m.name for m in discovered.guild_modules],
            },
        )
        return discovered

    @staticmethod
    def classify(modules: Sequence[CommandModule]) -> DiscoveredModules:
        global_modules: List[CommandModule] = []
        guild_modules: List[CommandModule] = []
        for module in modules:
            if module.is_global:
                global_modules.append(module)
            else:
                guild_modules.append(module)
        return DiscoveredModules(tuple(global_modules), tuple(guild_modules))
