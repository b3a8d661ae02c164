"""Tests for ShellBot wiring: event handlers, startup and exit codes."""

from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from shellbot.bot import ShellBot
from shellbot.exceptions import ConfigurationError

from conftest import make_config, text_command, write_unit


def _bot(commands_dir, **settings):
    return ShellBot(make_config({"commands_dir": str(commands_dir), **settings}))


def _message(content, bot_author=False):
    message = MagicMock()
    message.content = content
    message.author.bot = bot_author
    message.author.id = 1000
    message.guild = None
    message.reply = AsyncMock()
    return message


class TestEvents:

    @pytest.mark.asyncio
    async def test_messages_from_bots_are_ignored(self, commands_dir):
        bot = _bot(commands_dir)
        message = _message("::ping", bot_author=True)

        await bot.on_message(message)

        message.reply.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_message_is_dispatched(self, commands_dir):
        write_unit(commands_dir, "core", {"echo.py": text_command("echo")})
        bot = _bot(commands_dir)
        await bot.loader.reload_all()
        message = _message("::echo hi")

        await bot.on_message(message)

        assert message.reply.call_args.args == ("echo:hi",)

    @pytest.mark.asyncio
    async def test_configured_prefix(self, commands_dir):
        bot = _bot(commands_dir, prefix="!")
        message = _message("!nope")

        await bot.on_message(message)

        assert message.reply.call_args.args == ("Unknown command: nope",)

    @pytest.mark.asyncio
    async def test_non_command_interaction_is_ignored(self, commands_dir):
        bot = _bot(commands_dir)
        interaction = MagicMock()
        interaction.type = discord.InteractionType.component
        interaction.response.send_message = AsyncMock()

        await bot.on_interaction(interaction)

        interaction.response.send_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ready_without_slash_commands(self, commands_dir):
        bot = _bot(commands_dir, slash_commands={"enabled": False})
        await bot.on_ready()
        assert bot.slash_sync is None
        assert bot.services.sync_commands is None


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_start_loads_units_and_opens_session(self, commands_dir):
        write_unit(commands_dir, "core", {"ping.py": text_command("ping")})
        bot = _bot(commands_dir)

        await bot.start()
        try:
            assert "ping" in bot.registry
            assert bot.services.http is bot.session
        finally:
            bot.client.close = AsyncMock()
            await bot.stop()
        assert bot.session.closed

    @pytest.mark.asyncio
    async def test_request_exit_records_code(self, commands_dir):
        bot = _bot(commands_dir)

        await bot.request_exit(75)

        assert bot.exit_code == 75
        assert bot._stop_event.is_set()

    @pytest.mark.asyncio
    async def test_run_without_token(self, commands_dir, monkeypatch):
        monkeypatch.delenv("DISCORD_TOKEN", raising=False)
        bot = _bot(commands_dir)

        with pytest.raises(ConfigurationError):
            await bot.run()

    @pytest.mark.asyncio
    async def test_latency_unknown_before_connect(self, commands_dir):
        assert _bot(commands_dir)._latency() is None
