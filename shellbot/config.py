"""Runtime settings.

Two sources, both under ``config/``:

* ``.env`` holds secrets (``DISCORD_TOKEN``) and deployment overrides
  (``DISCORD_APPLICATION_ID``, ``SHELLBOT_OWNER_IDS``). It is loaded
  into ``os.environ`` with python-dotenv; real environment variables win.
* ``settings.yaml`` holds everything else. See
  ``config/settings.yaml.example`` for the full list of keys.

Missing keys fall back to defaults in the property getters, so an empty
settings file gives a working (if ownerless) bot.
"""

import os
from pathlib import Path
from typing import Any, List, Optional

import structlog
import yaml
from dotenv import load_dotenv

logger = structlog.get_logger("shellbot.bot")

REPO_ROOT = Path(__file__).parent.parent

UNKNOWN_COMMAND_POLICIES = ("report", "ignore")


def _as_path(value: Any, default: Path) -> Path:
    return Path(value).expanduser() if value else default


def _as_id(value: Any) -> Optional[str]:
    return str(value) if value else None


class Config:
    """Settings read once at construction; accessors never write back."""

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = config_dir or REPO_ROOT / "config"

        env_file = self.config_dir / ".env"
        if env_file.exists():
            load_dotenv(env_file)

        self.settings = self._load_yaml("settings.yaml")

    def _load_yaml(self, filename: str) -> dict:
        path = self.config_dir / filename
        if not path.exists():
            return {}
        with open(path, "r") as f:
            return yaml.safe_load(f) or {}

    def _section(self, name: str) -> dict:
        section = self.settings.get(name)
        return section if isinstance(section, dict) else {}

    def validate(self):
        """Log configuration problems at startup. Never raises.

        A bot without owners or with a bad policy value still serves
        ordinary commands; a missing token is fatal later, in run().
        """
        if not self.discord_token:
            logger.error("discord_token_missing", msg="Set DISCORD_TOKEN in config/.env")
        if not self.owner_ids:
            logger.warning("no_owner_ids", msg="Control commands will refuse everyone")

        policy = self.settings.get("unknown_command")
        if policy is not None and policy not in UNKNOWN_COMMAND_POLICIES:
            logger.error(
                "config_invalid_value",
                key="unknown_command",
                value=policy,
                valid=list(UNKNOWN_COMMAND_POLICIES),
            )

        if not self.commands_dir.is_dir():
            logger.error("commands_dir_missing", path=str(self.commands_dir))

    # Discord

    @property
    def discord_token(self) -> str:
        # Environment only, never settings.yaml
        return os.environ.get("DISCORD_TOKEN", "")

    @property
    def application_id(self) -> Optional[str]:
        return _as_id(os.environ.get("DISCORD_APPLICATION_ID") or self.settings.get("application_id"))

    @property
    def owner_ids(self) -> List[str]:
        """Owner user ids as strings: ``owner_ids`` plus ``SHELLBOT_OWNER_IDS``."""
        configured = self.settings.get("owner_ids") or []
        if not isinstance(configured, list):
            logger.error("owner_ids_invalid_type", type=type(configured).__name__)
            configured = []

        owners: List[str] = []
        candidates = [str(i) for i in configured]
        candidates += os.environ.get("SHELLBOT_OWNER_IDS", "").split(",")
        for candidate in candidates:
            candidate = candidate.strip()
            if candidate and candidate not in owners:
                owners.append(candidate)
        return owners

    # Commands

    @property
    def prefix(self) -> str:
        return self.settings.get("prefix") or "::"

    @property
    def commands_dir(self) -> Path:
        return _as_path(self.settings.get("commands_dir"), REPO_ROOT / "units")

    @property
    def control_unit(self) -> str:
        return str(self.settings.get("control_unit") or "ctl").lower()

    @property
    def unknown_command_policy(self) -> str:
        """``report`` (default) or ``ignore``; anything else reads as ``report``."""
        policy = self.settings.get("unknown_command", "report")
        return policy if policy in UNKNOWN_COMMAND_POLICIES else "report"

    @property
    def shutdown_delay(self) -> float:
        return float(self.settings.get("shutdown_delay", 0.5))

    @property
    def slash_commands_enabled(self) -> bool:
        return bool(self._section("slash_commands").get("enabled", True))

    @property
    def slash_commands_guild_id(self) -> Optional[str]:
        """Guild to register into instead of globally (guild updates are instant)."""
        return _as_id(self._section("slash_commands").get("guild_id"))

    # Logging

    @property
    def log_dir(self) -> Path:
        return _as_path(self.settings.get("log_dir"), REPO_ROOT / "logs")

    @property
    def logging_level(self) -> str:
        return self._section("logging").get("level", "INFO")

    @property
    def logging_subsystem_levels(self) -> dict:
        return self._section("logging").get("subsystem_levels") or {}

    @property
    def logging_max_file_size_mb(self) -> int:
        return int(self._section("logging").get("max_file_size_mb", 10))

    @property
    def logging_backup_count(self) -> int:
        return int(self._section("logging").get("backup_count", 5))


_config: Optional[Config] = None


def get_config() -> Config:
    """Process-wide Config, created on first use."""
    global _config
    if _config is None:
        _config = Config()
    return _config
