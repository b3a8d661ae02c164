"""Rebuild the registry from every unit on disk."""

from shellbot import control

name = "reload"
description = "Reload all commands"
aliases = ["rl"]


async def execute(ctx, args):
    await control.reload(ctx, args)
