"""One-line description of a command, looked up by name or alias."""

from shellbot.commands import SlashCommandSchema, SlashOption

name = "whatis"
description = "Display a one-line description of a command"

data = SlashCommandSchema(
    name=name,
    description=description,
    options=[
        SlashOption(name="command", description="The command to check", required=True),
    ],
)


def describe(registry, key: str):
    """Return the whatis line for ``key``, or None if nothing matches."""
    descriptor = registry.get(key) or registry.get_structured(key)
    if descriptor is None:
        return None
    return f"{descriptor.name} (1) - {descriptor.description}"


async def execute(ctx, args):
    if not args:
        await ctx.reply("usage: whatis <command>")
        return
    key = args[0].lower()
    line = describe(ctx.services.registry, key)
    await ctx.reply(line or f"{key}: nothing appropriate.")


async def execute_slash(invocation):
    key = str(invocation.option("command", "")).lower()
    line = describe(invocation.services.registry, key)
    if line is None:
        await invocation.reply(f"{key}: nothing appropriate.", ephemeral=True)
        return
    await invocation.reply(line)
