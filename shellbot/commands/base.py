"""Base types for the command framework.

A command module is a plain ``.py`` file inside a unit directory. The
loader imports it and turns its module-level symbols into a
HandlerDescriptor via build_descriptor(). Two shapes are accepted:

Text command::

    name = "ping"
    description = "Check bot latency"
    aliases = ["pong"]              # optional

    async def execute(ctx: CommandContext, args: list[str]) -> None: ...

Structured command::

    data = SlashCommandSchema(name="ping", description="Check bot latency")

    async def execute_slash(invocation: StructuredInvocation) -> None: ...

A module may export both. A module exporting neither is rejected with
a ContractError.

Key classes:
    CommandKind: Which of the two shapes a descriptor has.
    HandlerDescriptor: Immutable record of one loaded command.
    ExecutionResult: Outcome of invoking a handler (never raises).
    CommandContext: Interface for the origin of a text command.
    StructuredInvocation: Interface for a structured interaction.
    BotServices: Dependency container handed to every handler.
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from types import ModuleType
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Tuple,
)

from pydantic import ValidationError

from ..exceptions import ContractError, describe_exception
from .models import SlashCommandSchema

if TYPE_CHECKING:
    import aiohttp

    from ..config import Config
    from .loader import UnitLoader
    from .registry import CommandRegistry

TextHandler = Callable[["CommandContext", List[str]], Awaitable[None]]
StructuredHandler = Callable[["StructuredInvocation"], Awaitable[None]]


class CommandKind(str, Enum):
    """Invocation shapes a descriptor supports."""
    TEXT = "text"
    STRUCTURED = "structured"
    BOTH = "both"

    @property
    def has_text(self) -> bool:
        return self in (CommandKind.TEXT, CommandKind.BOTH)

    @property
    def has_structured(self) -> bool:
        return self in (CommandKind.STRUCTURED, CommandKind.BOTH)


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of a single handler invocation.

    Handlers signal failure by raising; the descriptor converts that
    into a failed result so callers branch on ``ok`` instead of
    wrapping every call in try/except.
    """

    ok: bool
    error: Optional[BaseException] = None

    @classmethod
    def success(cls) -> "ExecutionResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, error: BaseException) -> "ExecutionResult":
        return cls(ok=False, error=error)

    @property
    def message(self) -> str:
        """User-facing failure message ("" on success)."""
        if self.error is None:
            return ""
        return describe_exception(self.error)


@dataclass(frozen=True, eq=False)
class HandlerDescriptor:
    """In-memory record of one command: identity plus capabilities.

    Compared by identity: a reloaded file yields a new, distinct descriptor.
    """

    name: str
    description: str
    kind: CommandKind
    unit: str
    source: Path
    aliases: Tuple[str, ...] = ()
    text_handler: Optional[TextHandler] = field(default=None, repr=False)
    structured_handler: Optional[StructuredHandler] = field(default=None, repr=False)
    schema: Optional[SlashCommandSchema] = None

    @property
    def keys(self) -> Tuple[str, ...]:
        """Text lookup keys (primary name first). Empty if not text-invokable."""
        if not self.kind.has_text:
            return ()
        return (self.name,) + tuple(a for a in self.aliases if a != self.name)

    @property
    def structured_name(self) -> Optional[str]:
        return self.schema.name if self.schema is not None else None

    async def invoke_text(self, ctx: "CommandContext", args: List[str]) -> ExecutionResult:
        """Run the text handler, capturing any exception as a failed result."""
        if self.text_handler is None:
            return ExecutionResult.failure(
                RuntimeError(f"{self.name} has no text invocation")
            )
        try:
            await self.text_handler(ctx, args)
        except (Exception, SystemExit) as e:
            return ExecutionResult.failure(e)
        return ExecutionResult.success()

    async def invoke_structured(self, invocation: "StructuredInvocation") -> ExecutionResult:
        """Run the structured handler, capturing any exception as a failed result."""
        if self.structured_handler is None:
            return ExecutionResult.failure(
                RuntimeError(f"{self.name} has no structured invocation")
            )
        try:
            await self.structured_handler(invocation)
        except (Exception, SystemExit) as e:
            return ExecutionResult.failure(e)
        return ExecutionResult.success()


def _coerce_schema(data: Any, filename: str) -> SlashCommandSchema:
    if isinstance(data, SlashCommandSchema):
        return data
    if isinstance(data, dict):
        try:
            return SlashCommandSchema.model_validate(data)
        except ValidationError as e:
            raise ContractError(
                f"invalid data schema ({e.error_count()} errors)", filename=filename
            ) from e
    raise ContractError(
        f"data must be a SlashCommandSchema, got {type(data).__name__}",
        filename=filename,
    )


def _require_coroutine(fn: Any, attr: str, filename: str) -> None:
    if not inspect.iscoroutinefunction(fn):
        raise ContractError(f"{attr} must be an async function", filename=filename)


def build_descriptor(module: ModuleType, unit: str, source: Path) -> HandlerDescriptor:
    """Validate a freshly imported module and build its descriptor.

    Args:
        module: The imported command module.
        unit: Name of the unit the module was loaded from.
        source: Path of the module's source file.

    Returns:
        The descriptor, with name and aliases lower-cased.

    Raises:
        ContractError: The module exposes neither ``name`` + ``execute``
            nor ``data`` + ``execute_slash``, or one of them is malformed.
    """
    filename = source.name
    name = getattr(module, "name", None)
    execute = getattr(module, "execute", None)
    data = getattr(module, "data", None)
    execute_slash = getattr(module, "execute_slash", None)

    has_text = isinstance(name, str) and bool(name.strip()) and callable(execute)
    has_structured = data is not None and callable(execute_slash)
    if not has_text and not has_structured:
        raise ContractError("missing name/execute", filename=filename)

    schema = None
    if has_structured:
        _require_coroutine(execute_slash, "execute_slash", filename)
        schema = _coerce_schema(data, filename)
    if has_text:
        _require_coroutine(execute, "execute", filename)

    raw_aliases = getattr(module, "aliases", None) or ()
    if not isinstance(raw_aliases, (list, tuple)) or not all(
        isinstance(a, str) for a in raw_aliases
    ):
        raise ContractError("aliases must be a list of strings", filename=filename)
    aliases = tuple(a.strip().lower() for a in raw_aliases if a.strip())

    if has_text and has_structured:
        kind = CommandKind.BOTH
    elif has_text:
        kind = CommandKind.TEXT
    else:
        kind = CommandKind.STRUCTURED

    primary = name.strip().lower() if has_text else schema.name
    description = getattr(module, "description", None)
    if not isinstance(description, str) or not description:
        description = schema.description if schema is not None else "No description"

    return HandlerDescriptor(
        name=primary,
        description=description,
        kind=kind,
        unit=unit,
        source=source,
        aliases=aliases,
        text_handler=execute if has_text else None,
        structured_handler=execute_slash if has_structured else None,
        schema=schema,
    )


# ---------------------------------------------------------------------------
# Invocation interfaces (implemented by the platform adapter and by tests)
# ---------------------------------------------------------------------------

class CommandContext(ABC):
    """The origin of a text command and the way to answer it.

    Args:
        services: Shared BotServices container.
        author_id: Id of the user who sent the command.
        channel_name: Channel name, None for direct messages.
        guild_name: Server name, None for direct messages.
    """

    def __init__(
        self,
        services: "BotServices",
        author_id: str,
        channel_name: Optional[str] = None,
        guild_name: Optional[str] = None,
    ):
        self.services = services
        self.author_id = str(author_id)
        self.channel_name = channel_name
        self.guild_name = guild_name

    @abstractmethod
    async def reply(self, content: str) -> None:
        """Reply to the triggering message."""
        ...

    async def send(self, content: str) -> None:
        """Post to the same channel without replying. Defaults to reply()."""
        await self.reply(content)


class StructuredInvocation(ABC):
    """A structured (slash) command invocation with parsed options.

    ``replied`` must become True once either reply() or defer() has been
    sent; after that the platform only accepts follow-ups.
    """

    def __init__(
        self,
        services: "BotServices",
        command_name: str,
        author_id: str,
        options: Optional[Dict[str, Any]] = None,
        channel_name: Optional[str] = None,
        guild_name: Optional[str] = None,
    ):
        self.services = services
        self.command_name = command_name
        self.author_id = str(author_id)
        self.options = dict(options or {})
        self.channel_name = channel_name
        self.guild_name = guild_name

    def option(self, name: str, default: Any = None) -> Any:
        """Value of a named option, or ``default`` when it was not supplied."""
        return self.options.get(name, default)

    @property
    @abstractmethod
    def replied(self) -> bool:
        ...

    @abstractmethod
    async def reply(self, content: str, *, ephemeral: bool = False) -> None:
        """Send the first response."""
        ...

    @abstractmethod
    async def defer(self) -> None:
        """Acknowledge now ("thinking..."), answer later with followup()."""
        ...

    @abstractmethod
    async def followup(self, content: str, *, ephemeral: bool = False) -> None:
        """Send a message after the first response."""
        ...

    async def respond(self, content: str, *, ephemeral: bool = False) -> None:
        """Reply if nothing was sent yet, otherwise follow up."""
        if self.replied:
            await self.followup(content, ephemeral=ephemeral)
        else:
            await self.reply(content, ephemeral=ephemeral)


@dataclass
class BotServices:
    """Dependency container for command handlers.

    Handlers reach the registry, loader and process lifecycle through
    ``ctx.services`` instead of importing the bot.
    """

    config: "Config"
    registry: "CommandRegistry"
    loader: "UnitLoader"
    request_exit: Callable[[int], Awaitable[None]]
    http: Optional["aiohttp.ClientSession"] = None
    sync_commands: Optional[Callable[[], Awaitable[None]]] = None
    started_at: datetime = field(default_factory=datetime.now)
    latency: Callable[[], Optional[float]] = field(default=lambda: None)
