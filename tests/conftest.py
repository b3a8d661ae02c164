"""Shared fakes and fixtures for the shellbot test suite."""

import sys
import textwrap
from pathlib import Path
from types import ModuleType
from unittest.mock import AsyncMock

import pytest

from shellbot.commands import (
    BotServices,
    CommandContext,
    CommandRegistry,
    StructuredInvocation,
    UnitLoader,
    build_descriptor,
)
from shellbot.commands.loader import MODULE_NAMESPACE
from shellbot.config import Config

REPO_ROOT = Path(__file__).parent.parent
REPO_UNITS = REPO_ROOT / "units"

OWNER_ID = "1000"
STRANGER_ID = "2000"


# -------------------------------------------------------------------
# Fake invocation origins
# -------------------------------------------------------------------

class FakeContext(CommandContext):
    """Records everything a handler sends."""

    def __init__(self, services, author_id=OWNER_ID, channel_name="general",
                 guild_name="Test Guild"):
        super().__init__(services, author_id, channel_name, guild_name)
        self.replies = []
        self.sent = []

    async def reply(self, content):
        self.replies.append(content)

    async def send(self, content):
        self.sent.append(content)


class FakeInvocation(StructuredInvocation):
    """Structured invocation that enforces the reply-once rule."""

    def __init__(self, services, command_name, author_id=OWNER_ID, options=None,
                 channel_name="general", guild_name="Test Guild"):
        super().__init__(services, command_name, author_id, options,
                         channel_name, guild_name)
        self._replied = False
        self.deferred = False
        self.replies = []
        self.followups = []

    @property
    def replied(self):
        return self._replied

    async def reply(self, content, *, ephemeral=False):
        if self._replied:
            raise RuntimeError("interaction already acknowledged")
        self._replied = True
        self.replies.append((content, ephemeral))

    async def defer(self):
        if self._replied:
            raise RuntimeError("interaction already acknowledged")
        self._replied = True
        self.deferred = True

    async def followup(self, content, *, ephemeral=False):
        self.followups.append((content, ephemeral))


# -------------------------------------------------------------------
# Builders
# -------------------------------------------------------------------

def make_config(settings=None, config_dir=None):
    """Config with in-memory settings; skips .env and settings.yaml."""
    config = Config.__new__(Config)
    config.config_dir = config_dir or Path("/tmp/shellbot_test_config")
    config.settings = settings or {}
    return config


def make_module(**attrs):
    """In-memory command module with the given module-level symbols."""
    module = ModuleType("test_cmd")
    for key, value in attrs.items():
        setattr(module, key, value)
    return module


def make_descriptor(unit="test", filename="cmd.py", **attrs):
    return build_descriptor(make_module(**attrs), unit, Path("/units") / unit / filename)


def text_command(name, aliases=(), reply=None, body=None):
    """Source of a text command module that replies ``<reply>:<args>``."""
    reply = reply if reply is not None else name
    if body is None:
        body = f'await ctx.reply("{reply}:" + " ".join(args))'
    return textwrap.dedent(
        f"""\
        name = "{name}"
        description = "The {name} command"
        aliases = {list(aliases)!r}


        async def execute(ctx, args):
            {body}
        """
    )


def write_unit(commands_dir, unit, files):
    """Create ``commands_dir/unit`` holding ``{filename: source}``."""
    unit_dir = Path(commands_dir) / unit
    unit_dir.mkdir(parents=True, exist_ok=True)
    for filename, source in files.items():
        (unit_dir / filename).write_text(source)
    return unit_dir


# -------------------------------------------------------------------
# Fixtures
# -------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _forget_imported_units(monkeypatch):
    """Drop synthetic command modules and owner env overrides between tests."""
    monkeypatch.delenv("SHELLBOT_OWNER_IDS", raising=False)
    yield
    for key in [k for k in sys.modules if k.startswith(MODULE_NAMESPACE + ".")]:
        del sys.modules[key]


@pytest.fixture
def commands_dir(tmp_path):
    path = tmp_path / "units"
    path.mkdir()
    return path


@pytest.fixture
def registry():
    return CommandRegistry()


@pytest.fixture
def loader(commands_dir, registry):
    return UnitLoader(commands_dir, registry)


@pytest.fixture
def config(commands_dir):
    return make_config({
        "commands_dir": str(commands_dir),
        "owner_ids": [OWNER_ID],
        "shutdown_delay": 0,
    })


@pytest.fixture
def services(config, registry, loader):
    return BotServices(
        config=config,
        registry=registry,
        loader=loader,
        request_exit=AsyncMock(),
    )
