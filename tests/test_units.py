"""Tests for the command units shipped with the bot."""

from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest

from shellbot.commands import (
    BotServices,
    CommandKind,
    CommandRegistry,
    Dispatcher,
    SlashCommandSchema,
    UnitLoader,
)

from conftest import REPO_UNITS, FakeContext, FakeInvocation, make_config, make_descriptor

AUR_RECORD = {
    "Name": "yay",
    "Version": "12.3.5-1",
    "Description": "Yet another yogurt. Pacman wrapper and AUR helper written in go.",
    "Maintainer": "Jguer",
    "NumVotes": 2300,
    "Popularity": 40.123,
    "License": ["GPL-3.0-or-later"],
    "URL": "https://github.com/Jguer/yay",
    "Depends": ["pacman>6.1", "git"],
    "LastModified": 1700000000,
}


class FakeResponse:

    def __init__(self, status=200, body=None):
        self.status = status
        self._body = body or {}

    async def json(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


async def _noop_slash(invocation):
    pass


@pytest.fixture
def shipped():
    """Services wired to the repository's real units directory."""
    registry = CommandRegistry()
    loader = UnitLoader(REPO_UNITS, registry)
    config = make_config({"commands_dir": str(REPO_UNITS), "owner_ids": ["1000"]})
    return BotServices(
        config=config,
        registry=registry,
        loader=loader,
        request_exit=MagicMock(),
    )


async def _dispatch(services, content, **ctx_kwargs):
    ctx = FakeContext(services, **ctx_kwargs)
    await Dispatcher(services.registry, prefix="::").dispatch_text(ctx, content)
    return ctx


class TestShippedUnits:

    @pytest.mark.asyncio
    async def test_every_unit_loads_cleanly(self, shipped):
        result = await shipped.loader.reload_all()

        assert result.errors == []
        assert shipped.registry.loaded_units == {"core", "ctl", "package"}
        for key in ("ping", "echo", "say", "pwd", "curdir", "man", "help", "whatis",
                    "aur", "yay", "paru", "load", "unload", "reload", "rl",
                    "shutdown", "restart", "ctl"):
            assert key in shipped.registry, key

    @pytest.mark.asyncio
    async def test_structured_commands(self, shipped):
        await shipped.loader.reload_all()

        assert sorted(shipped.registry.by_structured_name) == [
            "aur", "echo", "man", "ping", "pwd", "whatis",
        ]
        assert shipped.registry.get("ping").kind is CommandKind.BOTH
        assert shipped.registry.get("load").kind is CommandKind.TEXT


class TestCoreUnit:

    @pytest.mark.asyncio
    async def test_echo(self, shipped):
        await shipped.loader.load_unit("core")
        ctx = await _dispatch(shipped, "::echo hello   world")
        assert ctx.sent == ["hello world"]

    @pytest.mark.asyncio
    async def test_echo_without_message(self, shipped):
        await shipped.loader.load_unit("core")
        ctx = await _dispatch(shipped, "::echo")
        assert ctx.replies == ["[echo]: Parameter not found: message"]

    @pytest.mark.asyncio
    async def test_pwd(self, shipped):
        await shipped.loader.load_unit("core")

        ctx = await _dispatch(shipped, "::curdir", guild_name="Arch", channel_name="off-topic")
        assert ctx.replies == ["`Arch/off-topic`"]

        ctx = await _dispatch(shipped, "::pwd", guild_name=None, channel_name=None)
        assert ctx.replies == ["`Direct Messages/dm`"]

    @pytest.mark.asyncio
    async def test_ping(self, shipped):
        await shipped.loader.load_unit("core")
        shipped.latency = lambda: 0.0421
        shipped.started_at = datetime.now() - timedelta(hours=2, minutes=5)

        ctx = await _dispatch(shipped, "::ping")

        assert ctx.replies == ["**Pong!**\nAPI Latency: `42ms`\nUptime: `2h 5m`"]

    @pytest.mark.asyncio
    async def test_ping_before_first_heartbeat(self, shipped):
        await shipped.loader.load_unit("core")
        ctx = await _dispatch(shipped, "::ping")
        assert "API Latency: `n/a`" in ctx.replies[0]

    @pytest.mark.asyncio
    async def test_whatis_resolves_aliases(self, shipped):
        await shipped.loader.load_unit("core")

        ctx = await _dispatch(shipped, "::whatis HELP")
        assert ctx.replies == ["man (1) - Display the manual page for a command"]

        ctx = await _dispatch(shipped, "::whatis nothing")
        assert ctx.replies == ["nothing: nothing appropriate."]

        ctx = await _dispatch(shipped, "::whatis")
        assert ctx.replies == ["usage: whatis <command>"]

    @pytest.mark.asyncio
    async def test_whatis_finds_slash_only_command(self, shipped):
        await shipped.loader.load_unit("core")
        shipped.registry.register(make_descriptor(
            data=SlashCommandSchema(name="roll", description="Roll dice"),
            execute_slash=_noop_slash,
        ))

        ctx = await _dispatch(shipped, "::whatis roll")

        assert ctx.replies == ["roll (1) - Roll dice"]

    @pytest.mark.asyncio
    async def test_man_lists_text_commands(self, shipped):
        await shipped.loader.reload_all()

        ctx = await _dispatch(shipped, "::help")

        listing = ctx.replies[0]
        assert listing.startswith("**ManDB**\nHere are the available commands:\n")
        assert "`aur`" in listing and "`reload`" in listing
        assert listing.endswith("Use `::man <command>` for more info.")

    @pytest.mark.asyncio
    async def test_man_page(self, shipped):
        await shipped.loader.reload_all()

        ctx = await _dispatch(shipped, "::man yay")

        assert ctx.replies == [
            "**ManDB: aur**\n"
            "```\n"
            "NAME\n    aur - Search for a package in the AUR (Arch User Repository)\n"
            "ALIASES\n    yay, paru\n"
            "INVOCATION\n    text, slash\n"
            "UNIT\n    package/\n"
            "```"
        ]

    @pytest.mark.asyncio
    async def test_man_unknown(self, shipped):
        await shipped.loader.load_unit("core")
        ctx = await _dispatch(shipped, "::man Nope")
        assert ctx.replies == ["No manual entry for nope"]

    @pytest.mark.asyncio
    async def test_whatis_slash_miss_is_ephemeral(self, shipped):
        await shipped.loader.load_unit("core")
        invocation = FakeInvocation(shipped, "whatis", options={"command": "Ghost"})

        await shipped.registry.get_structured("whatis").invoke_structured(invocation)

        assert invocation.replies == [("ghost: nothing appropriate.", True)]


class TestPackageUnit:

    @staticmethod
    def _session(response):
        session = MagicMock()
        session.get.return_value = response
        return session

    @pytest.mark.asyncio
    async def test_lookup_formats_package(self, shipped):
        await shipped.loader.load_unit("package")
        shipped.http = self._session(
            FakeResponse(body={"type": "multiinfo", "results": [AUR_RECORD]})
        )

        ctx = await _dispatch(shipped, "::yay -S yay")

        reply = ctx.replies[0]
        assert reply.startswith("**yay 12.3.5-1**\n")
        assert "Maintainer   : Jguer" in reply
        assert "Popularity   : 40.12" in reply
        assert "Depends On   : pacman>6.1, git" in reply
        assert "Last Updated : 2023-11-14" in reply
        assert reply.endswith("Install: `yay -S yay`")
        _, kwargs = shipped.http.get.call_args
        assert kwargs["params"] == {"arg[]": "yay"}

    @pytest.mark.asyncio
    async def test_package_not_found(self, shipped):
        await shipped.loader.load_unit("package")
        shipped.http = self._session(FakeResponse(body={"type": "multiinfo", "results": []}))

        ctx = await _dispatch(shipped, "::aur nonexistent-pkg")

        assert ctx.replies == ["error: package 'nonexistent-pkg' was not found"]

    @pytest.mark.asyncio
    async def test_http_error_is_reported(self, shipped):
        await shipped.loader.load_unit("package")
        shipped.http = self._session(FakeResponse(status=503))

        ctx = await _dispatch(shipped, "::aur yay")

        assert ctx.replies == ["[aur]: AUR API error: HTTP 503"]

    @pytest.mark.asyncio
    async def test_missing_package_argument(self, shipped):
        await shipped.loader.load_unit("package")
        ctx = await _dispatch(shipped, "::paru -Ss")
        assert ctx.replies == ["[paru]: Parameter not found: package name"]

    @pytest.mark.asyncio
    async def test_slash_defers_then_follows_up(self, shipped):
        await shipped.loader.load_unit("package")
        shipped.http = self._session(
            FakeResponse(body={"type": "multiinfo", "results": [AUR_RECORD]})
        )
        invocation = FakeInvocation(shipped, "aur", options={"package": "yay"})

        result = await shipped.registry.get_structured("aur").invoke_structured(invocation)

        assert result.ok
        assert invocation.deferred
        assert invocation.followups[0][0].startswith("**yay 12.3.5-1**")
