"""Exit with the restart code so the supervisor starts a fresh process."""

from shellbot import control

name = "restart"
description = "Hard restart the bot"
aliases = ["reboot"]


async def execute(ctx, args):
    await control.restart(ctx, args)
