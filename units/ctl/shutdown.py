"""Acknowledge, then stop the bot with exit code 0."""

from shellbot import control

name = "shutdown"
description = "Shutdown the bot"
aliases = ["stop", "exit"]


async def execute(ctx, args):
    await control.shutdown(ctx, args)
