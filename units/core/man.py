"""Manual pages for loaded commands.

``man`` alone lists every text command; ``man <command>`` shows the
name, description, aliases and unit of one command (aliases resolve
to their command).
"""

from shellbot.commands import SlashCommandSchema, SlashOption

name = "man"
description = "Display the manual page for a command"
aliases = ["help"]

data = SlashCommandSchema(
    name=name,
    description=description,
    options=[
        SlashOption(name="command", description="The command to look up"),
    ],
)


def command_list(registry, prefix: str) -> str:
    names = [d.name for d in registry.descriptors() if d.kind.has_text]
    listing = ", ".join(f"`{n}`" for n in names) or "(none loaded)"
    return (
        "**ManDB**\n"
        f"Here are the available commands:\n{listing}\n\n"
        f"Use `{prefix}man <command>` for more info."
    )


def manual_page(descriptor) -> str:
    aliases = ", ".join(descriptor.aliases) or "None"
    invocation = {
        "text": "text",
        "structured": "slash",
        "both": "text, slash",
    }[descriptor.kind.value]
    return (
        f"**ManDB: {descriptor.name}**\n"
        "```\n"
        f"NAME\n    {descriptor.name} - {descriptor.description}\n"
        f"ALIASES\n    {aliases}\n"
        f"INVOCATION\n    {invocation}\n"
        f"UNIT\n    {descriptor.unit}/\n"
        "```"
    )


async def execute(ctx, args):
    registry = ctx.services.registry
    if not args:
        await ctx.reply(command_list(registry, ctx.services.config.prefix))
        return

    descriptor = registry.get(args[0])
    if descriptor is None:
        await ctx.reply(f"No manual entry for {args[0].lower()}")
        return
    await ctx.reply(manual_page(descriptor))


async def execute_slash(invocation):
    registry = invocation.services.registry
    key = invocation.option("command")
    if not key:
        await invocation.reply(command_list(registry, "/"))
        return

    descriptor = registry.get(key) or registry.get_structured(key.lower())
    if descriptor is None:
        await invocation.reply(f"No manual entry for {key.lower()}", ephemeral=True)
        return
    await invocation.reply(manual_page(descriptor))
