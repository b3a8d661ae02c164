"""Discord bot implementation for shellbot.

Connects to the Discord gateway with discord.py, dispatches incoming
messages and slash-command interactions through the command registry,
and owns the lifecycle of every subsystem: HTTP session, unit loader,
slash-command mirroring, and the exit code requested by the control
surface.

Key classes:
    ShellBot: Main bot class -- owns the client, registry, loader and
        dispatcher, and the message processing pipeline.
"""

import asyncio
import math
from typing import Optional

import aiohttp
import discord
import structlog

from .commands import BotServices, CommandRegistry, Dispatcher, UnitLoader
from .config import Config, get_config
from .exceptions import ConfigurationError
from .gateway import InteractionInvocation, MessageContext, is_command_interaction
from .slash_sync import SlashCommandSync

logger = structlog.get_logger("shellbot.bot")


class ShellBot:
    """Discord bot with a hot-reloadable command registry.

    Subsystems are initialized in two phases: __init__ for sync setup
    and start() for async initialization requiring the event loop.

    Args:
        config: Config instance. Defaults to the global one.
    """

    def __init__(self, config: Optional[Config] = None):
        self.config = config or get_config()
        self.registry = CommandRegistry()
        self.loader = UnitLoader(self.config.commands_dir, self.registry)
        self.dispatcher = Dispatcher(
            self.registry,
            prefix=self.config.prefix,
            unknown_command_policy=self.config.unknown_command_policy,
        )

        intents = discord.Intents.default()
        intents.message_content = True
        self.client = discord.Client(intents=intents)
        self.client.event(self.on_ready)
        self.client.event(self.on_message)
        self.client.event(self.on_interaction)

        self.session: Optional[aiohttp.ClientSession] = None
        self.slash_sync: Optional[SlashCommandSync] = None
        self.running = False
        self.exit_code = 0
        self._stop_event = asyncio.Event()

        # Dependency container handed to every command handler
        self.services = BotServices(
            config=self.config,
            registry=self.registry,
            loader=self.loader,
            request_exit=self.request_exit,
            latency=self._latency,
        )

    async def start(self):
        """Open the HTTP session and load every unit from disk."""
        self.session = aiohttp.ClientSession()
        self.services.http = self.session
        self.running = True

        result = await self.loader.reload_all()
        if result.errors:
            logger.warning("startup_load_errors", errors=result.errors)
        logger.info(
            "bot_started",
            units=result.unit_count,
            commands=result.total_loaded,
            prefix=self.config.prefix,
        )

    async def stop(self):
        """Close the gateway connection and HTTP session."""
        if not self.running:
            return
        self.running = False
        if not self.client.is_closed():
            await self.client.close()
        if self.session:
            await self.session.close()
        logger.info("bot_stopped", exit_code=self.exit_code)

    def stop_soon(self, exit_code: int = 0):
        """Ask run() to return with ``exit_code``. Safe from signal handlers."""
        self.exit_code = exit_code
        self._stop_event.set()

    async def request_exit(self, exit_code: int) -> None:
        """Control-surface hook for shutdown/restart."""
        logger.info("exit_requested", exit_code=exit_code)
        self.stop_soon(exit_code)

    def _latency(self) -> Optional[float]:
        latency = self.client.latency
        if latency is None or math.isnan(latency) or math.isinf(latency):
            return None
        return latency

    # --- Gateway events ---

    async def on_ready(self):
        logger.info(
            "gateway_ready",
            user=str(self.client.user),
            guilds=len(self.client.guilds),
        )
        if not self.config.slash_commands_enabled or self.session is None:
            return
        application_id = self.config.application_id or (
            str(self.client.application_id) if self.client.application_id else None
        )
        if not application_id:
            logger.warning("slash_sync_no_application_id")
            return
        if self.slash_sync is None:
            self.slash_sync = SlashCommandSync(
                session=self.session,
                token=self.config.discord_token,
                application_id=application_id,
                registry=self.registry,
                guild_id=self.config.slash_commands_guild_id,
            )
            self.services.sync_commands = self.slash_sync.sync
        await self.slash_sync.sync()

    async def on_message(self, message: discord.Message):
        if message.author.bot:
            return
        ctx = MessageContext(self.services, message)
        await self.dispatcher.dispatch_text(ctx, message.content)

    async def on_interaction(self, interaction: discord.Interaction):
        if not is_command_interaction(interaction):
            return
        invocation = InteractionInvocation(self.services, interaction)
        await self.dispatcher.dispatch_structured(invocation)

    # --- Main loop ---

    async def run(self) -> int:
        """Start, connect, and block until stop_soon(); returns the exit code.

        Raises:
            ConfigurationError: No token configured.
            discord.LoginFailure: The token was rejected.
        """
        token = self.config.discord_token
        if not token:
            raise ConfigurationError("DISCORD_TOKEN is not set", setting_name="DISCORD_TOKEN")

        await self.start()
        connect_task = None
        stop_task = asyncio.create_task(self._stop_event.wait())
        try:
            await self.client.login(token)
            connect_task = asyncio.create_task(self.client.connect())
            done, _ = await asyncio.wait(
                {connect_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
            )
            if connect_task in done:
                # Raises if the gateway gave up (e.g. privileged intents denied)
                connect_task.result()
        finally:
            await self.stop()
            for task in (connect_task, stop_task):
                if task is not None and not task.done():
                    task.cancel()
                    try:
                        await task
                    except asyncio.CancelledError:
                        pass
        return self.exit_code
