"""Check gateway latency and uptime."""

from datetime import datetime

from shellbot.commands import SlashCommandSchema

name = "ping"
description = "Check bot latency and API ping"

data = SlashCommandSchema(name=name, description=description)


def _format_uptime(started_at: datetime) -> str:
    seconds = int((datetime.now() - started_at).total_seconds())
    days, seconds = divmod(seconds, 86400)
    hours, seconds = divmod(seconds, 3600)
    minutes, seconds = divmod(seconds, 60)
    if days:
        return f"{days}d {hours}h {minutes}m"
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m {seconds}s"


def pong(services) -> str:
    latency = services.latency()
    api = f"{round(latency * 1000)}ms" if latency is not None else "n/a"
    return (
        f"**Pong!**\nAPI Latency: `{api}`\n"
        f"Uptime: `{_format_uptime(services.started_at)}`"
    )


async def execute(ctx, args):
    await ctx.reply(pong(ctx.services))


async def execute_slash(invocation):
    await invocation.reply(pong(invocation.services))
