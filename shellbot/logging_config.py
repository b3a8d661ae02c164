"""Logging setup for shellbot.

structlog renders events; stdlib logging routes them. Every module logs
through ``structlog.get_logger("shellbot.<subsystem>")`` and the stdlib
hierarchy fans each event out to three places::

    shellbot.loader ─┬─> logs/loader.log
                     ├─> logs/shellbot.log   (everything from shellbot.*)
                     └─> console             (root handler)

discord.py's own loggers are attached to the ``bot`` file as well, capped
at INFO since its DEBUG output is one line per gateway frame.

Bot tokens never reach a handler: the ``sanitize_secrets`` processor
redacts them from every string in the event before rendering.
"""

import logging
import logging.handlers
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

LOGGER_PREFIX = "shellbot"

SUBSYSTEMS = ("bot", "loader", "dispatch", "control", "units")

DEFAULT_LOG_DIR = Path(__file__).parent.parent / "logs"

_REDACTED = "***REDACTED***"

_SECRET_PATTERNS = (
    # "Authorization: Bot <token>" / "Bearer <token>"
    re.compile(r"(?:Bot|Bearer)\s+[A-Za-z0-9_.\-]{20,}"),
    # Raw Discord token: base64 user id . timestamp . hmac
    re.compile(r"[MNO][A-Za-z0-9_-]{23,27}\.[A-Za-z0-9_-]{6,7}\.[A-Za-z0-9_-]{27,40}"),
)


def _redact(value: Any) -> Any:
    if isinstance(value, str):
        for pattern in _SECRET_PATTERNS:
            value = pattern.sub(_REDACTED, value)
        return value
    if isinstance(value, dict):
        return {k: _redact(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(_redact(v) for v in value)
    return value


def sanitize_secrets(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """structlog processor: redact bot tokens anywhere in the event."""
    for key in list(event_dict):
        event_dict[key] = _redact(event_dict[key])
    return event_dict


@dataclass
class _LogSettings:
    log_dir: Path = DEFAULT_LOG_DIR
    level: int = logging.INFO
    subsystem_levels: Dict[str, int] = field(default_factory=dict)
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5
    cache_loggers: bool = False

    @classmethod
    def from_config(cls, config) -> "_LogSettings":
        level = _level(config.logging_level, logging.INFO)
        return cls(
            log_dir=config.log_dir,
            level=level,
            subsystem_levels={
                name: _level(value, level)
                for name, value in config.logging_subsystem_levels.items()
            },
            max_bytes=config.logging_max_file_size_mb * 1024 * 1024,
            backup_count=config.logging_backup_count,
            cache_loggers=True,
        )


def _level(name: Optional[str], default: int) -> int:
    if not name:
        return default
    value = logging.getLevelName(str(name).upper())
    return value if isinstance(value, int) else default


def _rotating_handler(path: Path, level: int, settings: _LogSettings,
                      formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=settings.max_bytes,
        backupCount=settings.backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _reset(name: Optional[str], level: int) -> logging.Logger:
    target = logging.getLogger(name)
    target.setLevel(level)
    target.handlers.clear()
    return target


def setup_logging(config=None) -> None:
    """Configure stdlib handlers and structlog.

    Called twice by main(): once with no config, so anything logged
    while settings load still goes somewhere (loggers are not cached),
    and again with the loaded Config (loggers cached from then on).
    Calling it again replaces every handler it installed before.
    """
    settings = _LogSettings.from_config(config) if config is not None else _LogSettings()

    try:
        settings.log_dir.mkdir(parents=True, exist_ok=True)
        write_files = True
    except OSError as exc:
        print(
            f"WARNING: cannot create log directory {settings.log_dir} ({exc}); "
            "logging to console only",
            file=sys.stderr,
        )
        write_files = False

    file_formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
    )

    root = _reset(None, logging.DEBUG)
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(settings.level)
    console.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
    root.addHandler(console)

    combined = _reset(LOGGER_PREFIX, logging.DEBUG)
    if write_files:
        combined.addHandler(_rotating_handler(
            settings.log_dir / f"{LOGGER_PREFIX}.log", settings.level, settings, file_formatter
        ))

    for subsystem in SUBSYSTEMS:
        level = settings.subsystem_levels.get(subsystem, settings.level)
        sub = _reset(f"{LOGGER_PREFIX}.{subsystem}", level)
        if write_files:
            sub.addHandler(_rotating_handler(
                settings.log_dir / f"{subsystem}.log", level, settings, file_formatter
            ))

    discord_level = max(settings.level, logging.INFO)
    discord_logger = _reset("discord", discord_level)
    if write_files:
        discord_logger.addHandler(_rotating_handler(
            settings.log_dir / "bot.log", discord_level, settings, file_formatter
        ))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            sanitize_secrets,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=settings.cache_loggers,
    )
