"""Control surface: owner-only commands that mutate the registry or process.

The command modules in the control unit (``units/ctl/``) are thin
wrappers around the coroutines here. Each operation checks the owner
allow-list before anything else and raises on refusal; the dispatcher
turns the exception into a ``[<command>]: <message>`` reply.

Replies follow the ``[botctl/<level>]: <message>`` convention, with
multi-line error lists in a fenced block.
"""

import asyncio
from typing import List

import structlog

from .commands.base import CommandContext
from .exceptions import AuthorizationError, ShellbotError, UnitNotFoundError
from .security import is_owner, mask_id

logger = structlog.get_logger("shellbot.control")

TAG = "botctl"

EXIT_CODE_SHUTDOWN = 0
# Distinct exit code so a supervisor (systemd RestartForceExitStatus=75)
# re-spawns the process.
EXIT_CODE_RESTART = 75


def info(message: str) -> str:
    return f"[{TAG}/info]: {message}"


def warning(message: str) -> str:
    return f"[{TAG}/warning]: {message}"


def error(message: str) -> str:
    return f"[{TAG}/error]: {message}"


def error_block(errors: List[str]) -> str:
    """Fenced error list, appended to a reply (starts with a newline)."""
    return f"\n[{TAG}/error]:\n```\n" + "\n".join(errors) + "\n```"


def require_owner(ctx: CommandContext) -> None:
    """Raise AuthorizationError unless the invoking user is an owner."""
    if not is_owner(ctx.author_id, ctx.services.config.owner_ids):
        raise AuthorizationError(user=mask_id(ctx.author_id))


def _unit_argument(args: List[str], verb: str, available: List[str]) -> str:
    if not args:
        raise ShellbotError(
            f"Usage: {verb} <unit>\nAvailable units: {', '.join(available)}"
        )
    unit = args[0].lower()
    if unit not in available:
        raise UnitNotFoundError(unit, available=available)
    return unit


async def _sync_structured(ctx: CommandContext) -> None:
    sync = ctx.services.sync_commands
    if sync is not None:
        await sync()


async def load(ctx: CommandContext, args: List[str]) -> None:
    """``load <unit>``: (re)load one unit from disk."""
    require_owner(ctx)
    loader = ctx.services.loader
    unit = _unit_argument(args, "load", loader.list_units())

    result = await loader.load_unit(unit)
    logger.info(
        "control_load",
        unit=unit,
        user=mask_id(ctx.author_id),
        loaded=len(result.loaded_names),
        errors=len(result.errors),
    )

    if result.loaded_names:
        names = "`, `".join(result.loaded_names)
        response = info(
            f"Loaded **{len(result.loaded_names)}** commands from unit `{unit}/`:\n`{names}`"
        )
    else:
        response = error(f"No commands loaded from unit `{unit}/`")
    if result.errors:
        response += error_block(result.errors)

    await ctx.reply(response)
    await _sync_structured(ctx)


async def unload(ctx: CommandContext, args: List[str]) -> None:
    """``unload <unit>``: remove one unit's commands. Refuses the control unit."""
    require_owner(ctx)
    loader = ctx.services.loader
    control_unit = ctx.services.config.control_unit

    if args and args[0].lower() == control_unit:
        raise ShellbotError(f"Cannot unload the {control_unit} unit")

    available = sorted(set(loader.list_units()) | ctx.services.registry.loaded_units)
    unit = _unit_argument(args, "unload", available)

    result = await loader.unload_unit(unit)
    logger.info(
        "control_unload",
        unit=unit,
        user=mask_id(ctx.author_id),
        unloaded=len(result.unloaded_names),
        errors=len(result.errors),
    )

    if result.unloaded_names:
        names = "`, `".join(result.unloaded_names)
        response = info(
            f"Unloaded **{len(result.unloaded_names)}** commands from `{unit}/`:\n`{names}`"
        )
    else:
        response = warning(f"No commands unloaded from `{unit}/`")
    if result.errors:
        response += error_block(result.errors)

    await ctx.reply(response)
    await _sync_structured(ctx)


async def reload(ctx: CommandContext, args: List[str]) -> None:
    """``reload``: rebuild the whole registry from disk."""
    require_owner(ctx)
    await ctx.reply(info("Reloading all commands from all units"))

    result = await ctx.services.loader.reload_all()
    logger.info(
        "control_reload",
        user=mask_id(ctx.author_id),
        units=result.unit_count,
        loaded=result.total_loaded,
        errors=len(result.errors),
    )

    response = info(
        f"Reloaded **{result.total_loaded}** commands from **{result.unit_count}** units"
    )
    if result.errors:
        response += error_block(result.errors)

    await ctx.send(response)
    await _sync_structured(ctx)


async def _exit(ctx: CommandContext, process: str, exit_code: int) -> None:
    require_owner(ctx)
    logger.warning("control_exit", process=process, user=mask_id(ctx.author_id))
    await ctx.reply(info(f"executed process `{process}`"))
    await asyncio.sleep(ctx.services.config.shutdown_delay)
    await ctx.services.request_exit(exit_code)


async def shutdown(ctx: CommandContext, args: List[str]) -> None:
    """``shutdown``: acknowledge, then stop the process with exit code 0."""
    await _exit(ctx, "shutdown", EXIT_CODE_SHUTDOWN)


async def restart(ctx: CommandContext, args: List[str]) -> None:
    """``restart``: acknowledge, then exit with EXIT_CODE_RESTART for the supervisor."""
    await _exit(ctx, "restart", EXIT_CODE_RESTART)


async def overview(ctx: CommandContext, args: List[str]) -> None:
    """``ctl``: list the control unit's commands as a tree."""
    require_owner(ctx)
    control_unit = ctx.services.config.control_unit
    members = sorted(
        ctx.services.registry.unit_members(control_unit), key=lambda d: d.name
    )

    lines = ["```", f"{control_unit}/"]
    for i, descriptor in enumerate(members):
        branch = "└── " if i == len(members) - 1 else "├── "
        lines.append(f"{branch}{descriptor.name.ljust(10)} - {descriptor.description}")
    lines.append("```")

    await ctx.reply("**Bot Control Panel**\n" + "\n".join(lines))
