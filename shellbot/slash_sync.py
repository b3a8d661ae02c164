"""Mirror loaded structured commands to the platform's command registry.

The platform only routes slash commands it knows about, so after every
registry rebuild the schemas in ``by_structured_name`` are pushed with a
single bulk overwrite (PUT), globally or into one guild. Identical
payloads are not re-sent. Failures are logged and never raised: a stale
remote list only means a missing or extra slash command in the client.
"""

import asyncio
from typing import Any, Dict, List, Optional

import aiohttp
import structlog

from .commands.registry import CommandRegistry

logger = structlog.get_logger("shellbot.bot")

API_BASE = "https://discord.com/api/v10"


def build_payload(registry: CommandRegistry) -> List[Dict[str, Any]]:
    """Application-command payload for every loaded structured command."""
    return [schema.to_payload() for schema in registry.schemas()]


def commands_url(application_id: str, guild_id: Optional[str] = None,
                 api_base: str = API_BASE) -> str:
    if guild_id:
        return f"{api_base}/applications/{application_id}/guilds/{guild_id}/commands"
    return f"{api_base}/applications/{application_id}/commands"


class SlashCommandSync:
    """Pushes the registry's structured schemas with a bulk overwrite.

    Args:
        session: Shared aiohttp session.
        token: Bot token (sent as ``Authorization: Bot <token>``).
        application_id: Application the commands belong to.
        registry: Live command registry.
        guild_id: Register into one guild instead of globally.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        token: str,
        application_id: str,
        registry: CommandRegistry,
        guild_id: Optional[str] = None,
        api_base: str = API_BASE,
    ):
        self.session = session
        self._token = token
        self.application_id = application_id
        self.registry = registry
        self.guild_id = guild_id
        self.url = commands_url(application_id, guild_id, api_base)
        self._last_payload: Optional[List[Dict[str, Any]]] = None
        self._lock = asyncio.Lock()

    async def sync(self, force: bool = False) -> bool:
        """Push the current schemas. Returns True if the remote list matches."""
        async with self._lock:
            payload = build_payload(self.registry)
            if not force and payload == self._last_payload:
                logger.debug("slash_sync_unchanged", commands=len(payload))
                return True

            headers = {"Authorization": f"Bot {self._token}"}
            try:
                async with self.session.put(
                    self.url,
                    json=payload,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=15),
                ) as resp:
                    if resp.status != 200:
                        body = await resp.text()
                        logger.warning(
                            "slash_sync_failed", status=resp.status, body=body[:200]
                        )
                        return False
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.warning("slash_sync_error", error=str(e), error_type=type(e).__name__)
                return False

            self._last_payload = payload
            logger.info(
                "slash_sync_complete",
                commands=[c["name"] for c in payload],
                scope="guild" if self.guild_id else "global",
            )
            return True
