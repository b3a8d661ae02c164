"""Load (or refresh) one command unit from disk."""

from shellbot import control

name = "load"
description = "Load a command unit"
aliases = []


async def execute(ctx, args):
    await control.load(ctx, args)
