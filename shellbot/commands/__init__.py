"""Command framework for shellbot.

Provides the command module contract (HandlerDescriptor and
build_descriptor), the CommandRegistry, the hot-reloading UnitLoader,
and the Dispatcher that routes text and structured invocations.
"""

from .base import (
    BotServices,
    CommandContext,
    CommandKind,
    ExecutionResult,
    HandlerDescriptor,
    StructuredInvocation,
    build_descriptor,
)
from .dispatcher import DispatchOutcome, Dispatcher
from .loader import LoadResult, ReloadResult, UnitLoader, UnloadResult
from .models import OptionType, SlashCommandSchema, SlashOption
from .registry import CommandRegistry

__all__ = [
    "BotServices",
    "CommandContext",
    "CommandKind",
    "CommandRegistry",
    "DispatchOutcome",
    "Dispatcher",
    "ExecutionResult",
    "HandlerDescriptor",
    "LoadResult",
    "OptionType",
    "ReloadResult",
    "SlashCommandSchema",
    "SlashOption",
    "StructuredInvocation",
    "UnitLoader",
    "UnloadResult",
    "build_descriptor",
]
