"""Bot control panel: lists the control commands."""

from shellbot import control

name = "ctl"
description = "Bot control panel - shows available control commands"
aliases = ["control", "botctl"]


async def execute(ctx, args):
    await control.overview(ctx, args)
