"""Discord adapters for the command framework.

Wraps ``discord.Message`` and ``discord.Interaction`` in the
CommandContext / StructuredInvocation interfaces, so the dispatcher,
control surface and command modules never touch discord.py directly.
"""

from typing import Any, Dict

import discord

from .commands.base import BotServices, CommandContext, StructuredInvocation

# Platform limit for a single message
MAX_MESSAGE_LENGTH = 2000

_NO_MENTIONS = discord.AllowedMentions.none()

# Application command types / option types that are not plain values
_CHAT_INPUT = 1
_SUBCOMMAND_TYPES = (1, 2)


def truncate(content: str, limit: int = MAX_MESSAGE_LENGTH) -> str:
    """Clip a message to the platform limit, marking the cut."""
    if len(content) <= limit:
        return content
    marker = "\n...(truncated)"
    return content[: limit - len(marker)] + marker


def parse_options(data: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten an interaction's top-level options into ``{name: value}``."""
    options = {}
    for option in data.get("options") or []:
        if option.get("type") in _SUBCOMMAND_TYPES:
            continue
        options[option["name"]] = option.get("value")
    return options


def is_command_interaction(interaction: discord.Interaction) -> bool:
    """True for chat-input application commands (slash commands)."""
    if interaction.type != discord.InteractionType.application_command:
        return False
    data = interaction.data or {}
    return data.get("type", _CHAT_INPUT) == _CHAT_INPUT


class MessageContext(CommandContext):
    """A text command received as a chat message."""

    def __init__(self, services: BotServices, message: discord.Message):
        guild = message.guild
        super().__init__(
            services,
            author_id=str(message.author.id),
            channel_name=getattr(message.channel, "name", None),
            guild_name=guild.name if guild else None,
        )
        self.message = message

    async def reply(self, content: str) -> None:
        await self.message.reply(truncate(content), allowed_mentions=_NO_MENTIONS)

    async def send(self, content: str) -> None:
        await self.message.channel.send(truncate(content), allowed_mentions=_NO_MENTIONS)


class InteractionInvocation(StructuredInvocation):
    """A structured command received as an application-command interaction."""

    def __init__(self, services: BotServices, interaction: discord.Interaction):
        data = interaction.data or {}
        guild = interaction.guild
        super().__init__(
            services,
            command_name=data.get("name", ""),
            author_id=str(interaction.user.id),
            options=parse_options(data),
            channel_name=getattr(interaction.channel, "name", None),
            guild_name=guild.name if guild else None,
        )
        self.interaction = interaction

    @property
    def replied(self) -> bool:
        return self.interaction.response.is_done()

    async def reply(self, content: str, *, ephemeral: bool = False) -> None:
        await self.interaction.response.send_message(
            truncate(content), ephemeral=ephemeral, allowed_mentions=_NO_MENTIONS
        )

    async def defer(self) -> None:
        await self.interaction.response.defer(thinking=True)

    async def followup(self, content: str, *, ephemeral: bool = False) -> None:
        await self.interaction.followup.send(
            truncate(content), ephemeral=ephemeral, allowed_mentions=_NO_MENTIONS
        )
