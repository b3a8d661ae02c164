"""Look up a package in the Arch User Repository (AUR RPC v5)."""

from datetime import datetime, timezone
from typing import Optional

import aiohttp
import structlog

from shellbot.commands import SlashCommandSchema, SlashOption

logger = structlog.get_logger("shellbot.units")

name = "aur"
description = "Search for a package in the AUR (Arch User Repository)"
aliases = ["yay", "paru"]

data = SlashCommandSchema(
    name=name,
    description=description,
    options=[
        SlashOption(name="package", description="The package to search for", required=True),
    ],
)

AUR_RPC_URL = "https://aur.archlinux.org/rpc/v5/info"


async def fetch_info(session: aiohttp.ClientSession, package: str) -> Optional[dict]:
    """Return the AUR info record for ``package``, or None if it does not exist."""
    if session is None:
        raise RuntimeError("HTTP session not available")
    async with session.get(
        AUR_RPC_URL,
        params={"arg[]": package},
        timeout=aiohttp.ClientTimeout(total=10),
    ) as resp:
        if resp.status != 200:
            logger.warning("aur_request_failed", status=resp.status, package=package)
            raise RuntimeError(f"AUR API error: HTTP {resp.status}")
        body = await resp.json()
    if body.get("type") == "error":
        raise RuntimeError(f"AUR API error: {body.get('error', 'unknown')}")
    results = body.get("results") or []
    return results[0] if results else None


def format_package(pkg: dict) -> str:
    deps = ", ".join(pkg.get("Depends") or []) or "None"
    if len(deps) > 300:
        deps = deps[:297] + "..."
    licenses = ", ".join(pkg.get("License") or []) or "Unknown"
    updated = datetime.fromtimestamp(pkg.get("LastModified", 0), tz=timezone.utc)
    lines = [
        f"**{pkg['Name']} {pkg.get('Version', '')}".rstrip() + "**",
        pkg.get("Description") or "No description provided.",
        f"<https://aur.archlinux.org/packages/{pkg['Name']}/>",
        "```",
        f"Maintainer   : {pkg.get('Maintainer') or 'Orphan'}",
        f"Votes        : {pkg.get('NumVotes', 0)}",
        f"Popularity   : {float(pkg.get('Popularity', 0)):.2f}",
        f"License      : {licenses}",
        f"Upstream URL : {pkg.get('URL') or 'None'}",
        f"Depends On   : {deps}",
        f"Last Updated : {updated.date().isoformat()}",
    ]
    if pkg.get("OutOfDate"):
        lines.append("Status       : Flagged Out-of-Date")
    lines.append("```")
    lines.append(f"Install: `yay -S {pkg['Name']}`")
    return "\n".join(lines)


async def lookup(session, package: str) -> str:
    pkg = await fetch_info(session, package)
    if pkg is None:
        return f"error: package '{package}' was not found"
    return format_package(pkg)


async def execute(ctx, args):
    query = [a for a in args if not a.startswith("-")]
    if not query:
        raise ValueError("Parameter not found: package name")
    await ctx.reply(await lookup(ctx.services.http, query[0]))


async def execute_slash(invocation):
    await invocation.defer()
    await invocation.followup(
        await lookup(invocation.services.http, invocation.option("package", ""))
    )
