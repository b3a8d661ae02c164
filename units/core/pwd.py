"""Print the current server and channel as a path."""

from shellbot.commands import SlashCommandSchema

name = "pwd"
description = "Print current guild and channel name"
aliases = ["curdir"]

data = SlashCommandSchema(name=name, description=description)


def current_path(guild_name, channel_name) -> str:
    return f"`{guild_name or 'Direct Messages'}/{channel_name or 'dm'}`"


async def execute(ctx, args):
    await ctx.reply(current_path(ctx.guild_name, ctx.channel_name))


async def execute_slash(invocation):
    await invocation.reply(current_path(invocation.guild_name, invocation.channel_name))
