"""Routes incoming invocations to registered handlers.

Per invocation the dispatcher moves through::

    received -> resolved -> completed
                         -> failed -> reported
             -> unresolved            (reported or dropped, per policy)

Handler failures come back as ExecutionResult values and are turned
into a ``[<command>]: <message>`` reply in the originating context.
Nothing a handler does can raise out of dispatch_text() or
dispatch_structured(), and failed invocations are never retried.
"""

import re
from enum import Enum
from typing import List, Optional, Tuple

import structlog

from ..exceptions import HandlerExecutionError
from ..security import mask_id, sanitize_input
from .base import CommandContext, StructuredInvocation
from .registry import CommandRegistry

logger = structlog.get_logger("shellbot.dispatch")

_WHITESPACE = re.compile(r"\s+")


class DispatchOutcome(str, Enum):
    """Terminal state of one invocation."""
    IGNORED = "ignored"          # Not a command (no prefix, empty)
    UNRESOLVED = "unresolved"    # No handler under that key
    COMPLETED = "completed"      # Handler returned normally
    REPORTED = "reported"        # Handler failed, error sent to the user


class Dispatcher:
    """Resolves text and structured invocations through a CommandRegistry.

    Args:
        registry: Live command registry.
        prefix: Text command prefix (e.g. ``::``).
        unknown_command_policy: ``report`` to answer unknown commands
            with a not-found message, ``ignore`` to drop them silently.
            Applied to both invocation paths.
    """

    def __init__(
        self,
        registry: CommandRegistry,
        prefix: str,
        unknown_command_policy: str = "report",
    ):
        if not prefix:
            raise ValueError("prefix must not be empty")
        self.registry = registry
        self.prefix = prefix
        self.report_unknown = unknown_command_policy == "report"

    def parse(self, raw_content: str) -> Optional[Tuple[str, List[str]]]:
        """Split a prefixed message into ``(command_key, args)``.

        Returns None if the message is not a command.
        """
        if not raw_content.startswith(self.prefix):
            return None
        tokens = _WHITESPACE.split(raw_content[len(self.prefix):].strip())
        tokens = [t for t in tokens if t]
        if not tokens:
            return None
        return tokens[0].lower(), tokens[1:]

    async def dispatch_text(self, ctx: CommandContext, raw_content: str) -> DispatchOutcome:
        """Handle one chat message."""
        parsed = self.parse(sanitize_input(raw_content))
        if parsed is None:
            return DispatchOutcome.IGNORED
        key, args = parsed

        descriptor = self.registry.get(key)
        if descriptor is None:
            logger.debug("command_unresolved", command=key, author=mask_id(ctx.author_id))
            if self.report_unknown:
                await self._safe_send(ctx.reply, key, f"Unknown command: {key}")
            return DispatchOutcome.UNRESOLVED

        logger.info(
            "command_dispatch",
            command=key,
            resolved=descriptor.name,
            unit=descriptor.unit,
            author=mask_id(ctx.author_id),
            args=len(args),
        )
        result = await descriptor.invoke_text(ctx, args)
        if result.ok:
            return DispatchOutcome.COMPLETED

        error = HandlerExecutionError(key, result.error, unit=descriptor.unit)
        self._log_failure(error)
        await self._safe_send(ctx.reply, key, error.report())
        return DispatchOutcome.REPORTED

    async def dispatch_structured(self, invocation: StructuredInvocation) -> DispatchOutcome:
        """Handle one structured interaction."""
        name = invocation.command_name
        descriptor = self.registry.get_structured(name)
        if descriptor is None:
            logger.debug(
                "structured_command_unresolved",
                command=name,
                author=mask_id(invocation.author_id),
            )
            if self.report_unknown:
                await self._safe_send(
                    invocation.respond, name, f"Unknown command: {name}", ephemeral=True
                )
            return DispatchOutcome.UNRESOLVED

        logger.info(
            "structured_command_dispatch",
            command=name,
            unit=descriptor.unit,
            author=mask_id(invocation.author_id),
            options=sorted(invocation.options),
        )
        result = await descriptor.invoke_structured(invocation)
        if result.ok:
            return DispatchOutcome.COMPLETED

        error = HandlerExecutionError(name, result.error, unit=descriptor.unit)
        self._log_failure(error)
        # respond() follows up when the handler already replied or deferred
        await self._safe_send(invocation.respond, name, error.report(), ephemeral=True)
        return DispatchOutcome.REPORTED

    @staticmethod
    def _log_failure(error: HandlerExecutionError) -> None:
        logger.warning(
            "command_failed",
            command=error.command,
            error=error.message,
            error_type=type(error.original).__name__,
            **error.context,
        )

    @staticmethod
    async def _safe_send(send, command: str, content: str, **kwargs) -> None:
        """Deliver a report; a failed delivery is logged, never raised."""
        try:
            await send(content, **kwargs)
        except Exception as e:
            logger.error(
                "command_report_failed",
                command=command,
                error=str(e),
                error_type=type(e).__name__,
            )
