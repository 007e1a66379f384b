"""
Shared types for the Beacon interaction core.

Purpose
-------
Define the values that flow between the lifecycle manager, registry,
registrar, dispatcher and response policy, and the protocols of the
collaborators they drive (gateway session, command service).

Design Notes
------------
- DispatchResult is a plain value (Success | Failure), never an exception.
- Every kind of finished interaction is reported as one InteractionExecuted
  event tagged with its InteractionKind, so a single handler classifies all
  outcomes.
- The protocols describe only what the core calls; the discord.py adapters
  in beacon.bot.gateway and beacon.bot.command_service implement them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Union,
)

if TYPE_CHECKING:
    from beacon.bot.registry import CommandModule


# ============================================================================
# Gateway
# ============================================================================


class GatewayEvent(Enum):
    """Gateway session events the core subscribes to."""

    READY = "ready"
    LOG = "log"
    GUILD_JOINED = "guild_joined"
    INTERACTION_CREATED = "interaction_created"


class Guild(Protocol):
    """A guild (server) the bot has joined. Owned by the transport."""

    id: int
    name: str


EventHandler = Callable[..., Awaitable[None]]


class GatewaySession(Protocol):
    @property
    def guilds(self) -> Sequence[Guild]: ...

    def subscribe(self, event: GatewayEvent, handler: EventHandler) -> None: ...

    async def login(self, token: str) -> None: ...

    async def start(self) -> None: ...

    async def logout(self) -> None: ...

    async def stop(self) -> None: ...


# ============================================================================
# Interactions
# ============================================================================


@dataclass(frozen=True)
class Button:
    """A clickable button routed back by its custom id."""

    custom_id: str
    label: str


@dataclass(frozen=True)
class ModalField:
    """One text input on a modal form."""

    custom_id: str
    label: str
    long: bool = False


class InteractionKind(Enum):
    APPLICATION_COMMAND = "application_command"
    AUTOCOMPLETE = "autocomplete"
    COMPONENT = "component"
    MODAL_SUBMIT = "modal_submit"
    UNKNOWN = "unknown"


class Interaction(Protocol):
    """An inbound user-triggered event."""

    id: int
    kind: InteractionKind
    created_at: datetime
    guild: Optional[Guild]
    user: Any
    data: Mapping[str, Any]

    @property
    def has_responded(self) -> bool: ...

    async def respond(
        self, content: str, *, ephemeral: bool = False, buttons: Sequence[Button] = ()
    ) -> None: ...

    async def send_modal(self, custom_id: str, title: str, fields: Sequence[ModalField]) -> None: ...

    async def send_autocomplete(self, choices: Sequence[Any]) -> None: ...

    async def delete_original_response(self) -> None: ...

    def describe(self) -> str: ...


@dataclass(frozen=True)
class InteractionContext:
    """Execution context handed to command handlers."""

    session: GatewaySession
    interaction: Interaction

    @property
    def guild(self) -> Optional[Guild]:
        return self.interaction.guild

    @property
    def user(self) -> Any:
        return self.interaction.user

    async def respond(
        self, content: str, *, ephemeral: bool = False, buttons: Sequence[Button] = ()
    ) -> None:
        await self.interaction.respond(content, ephemeral=ephemeral, buttons=buttons)

    async def send_modal(self, custom_id: str, title: str, fields: Sequence[ModalField]) -> None:
        await self.interaction.send_modal(custom_id, title, fields)

    def describe(self) -> str:
        """Short "<guild>:<user>" label used in log lines."""
        return f"{self.interaction.guild}:{self.interaction.user}"


# ============================================================================
# Dispatch Results
# ============================================================================


class DispatchErrorKind(Enum):
    UNMET_PRECONDITION = "unmet_precondition"
    UNKNOWN_COMMAND = "unknown_command"
    BAD_ARGS = "bad_args"
    EXCEPTION = "exception"
    UNSUCCESSFUL = "unsuccessful"
    CONVERT_FAILED = "convert_failed"
    PARSE_FAILED = "parse_failed"


@dataclass(frozen=True)
class Success:
    is_success = True


@dataclass(frozen=True)
class Failure:
    kind: DispatchErrorKind
    reason: Optional[str] = None

    is_success = False


DispatchResult = Union[Success, Failure]


@dataclass(frozen=True)
class InteractionExecuted:
    """Outcome of one interaction, published on the command service's channel."""

    kind: InteractionKind
    context: InteractionContext
    handler_name: Optional[str]
    result: DispatchResult


ExecutedHandler = Callable[[InteractionExecuted], Awaitable[None]]


# ============================================================================
# Command Service
# ============================================================================


class CommandService(Protocol):
    async def discover_modules(self, source: str) -> Sequence["CommandModule"]: ...

    async def register_global(
        self, modules: Sequence["CommandModule"], *, delete_missing: bool
    ) -> None: ...

    async def register_to_guild(
        self, guild_id: int, modules: Sequence["CommandModule"], *, delete_missing: bool
    ) -> None: ...

    async def delete_all_commands_in_guild(self, guild_id: int) -> None: ...

    async def execute(self, context: InteractionContext) -> DispatchResult: ...

    def subscribe_executed(self, handler: ExecutedHandler) -> None: ...
