"""Unload one command unit."""

from shellbot import control

name = "unload"
description = "Unload a command unit"
aliases = []


async def execute(ctx, args):
    await control.unload(ctx, args)
