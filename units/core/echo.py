from shellbot.commands import SlashCommandSchema, SlashOption

name = "echo"
description = "Echo back a message"
aliases = ["say"]

data = SlashCommandSchema(
    name=name,
    description=description,
    options=[
        SlashOption(name="message", description="The message to echo back", required=True),
    ],
)


async def execute(ctx, args):
    if not args:
        raise ValueError("Parameter not found: message")
    await ctx.send(" ".join(args))


async def execute_slash(invocation):
    await invocation.reply(invocation.option("message", ""))
