"""Process-wide command registry.

Two lookup tables back the two invocation paths:

    by_name             lower-cased name/alias -> descriptor (text commands)
    by_structured_name  schema name -> descriptor (structured commands)

plus the set of loaded unit names and, per unit, the descriptors it
contributed. Unloading removes exactly what a unit contributed at load
time; it never has to re-read the unit directory from disk.

Registration is last-write-wins: a key already mapped to another
descriptor is overwritten (logged, not an error).

The registry itself does no locking. UnitLoader serializes every
mutation behind its own asyncio.Lock.
"""

from typing import Dict, List, Optional, Set

import structlog

from .base import HandlerDescriptor

logger = structlog.get_logger("shellbot.loader")


class CommandRegistry:
    """Maps command keys to HandlerDescriptors."""

    def __init__(self):
        self.by_name: Dict[str, HandlerDescriptor] = {}
        self.by_structured_name: Dict[str, HandlerDescriptor] = {}
        self.loaded_units: Set[str] = set()
        self._unit_members: Dict[str, List[HandlerDescriptor]] = {}

    # --- Mutation (loader only) ---

    def register(self, descriptor: HandlerDescriptor) -> None:
        """Install a descriptor under its name, aliases and structured name."""
        for key in descriptor.keys:
            previous = self.by_name.get(key)
            if previous is not None and previous is not descriptor:
                logger.warning(
                    "command_key_overwritten",
                    key=key,
                    previous=f"{previous.unit}/{previous.source.name}",
                    new=f"{descriptor.unit}/{descriptor.source.name}",
                )
            self.by_name[key] = descriptor

        structured = descriptor.structured_name
        if structured is not None:
            previous = self.by_structured_name.get(structured)
            if previous is not None and previous is not descriptor:
                logger.warning(
                    "structured_command_overwritten",
                    key=structured,
                    previous=f"{previous.unit}/{previous.source.name}",
                    new=f"{descriptor.unit}/{descriptor.source.name}",
                )
            self.by_structured_name[structured] = descriptor

        self._unit_members.setdefault(descriptor.unit, []).append(descriptor)

    def unregister(self, descriptor: HandlerDescriptor) -> None:
        """Remove a descriptor's keys, leaving keys another descriptor now owns."""
        for key in descriptor.keys:
            if self.by_name.get(key) is descriptor:
                del self.by_name[key]
        structured = descriptor.structured_name
        if structured is not None and self.by_structured_name.get(structured) is descriptor:
            del self.by_structured_name[structured]

        members = self._unit_members.get(descriptor.unit)
        if members and descriptor in members:
            members.remove(descriptor)

    def mark_loaded(self, unit: str) -> None:
        self.loaded_units.add(unit)
        self._unit_members.setdefault(unit, [])

    def remove_unit(self, unit: str) -> List[HandlerDescriptor]:
        """Unregister everything a unit contributed and mark it unloaded.

        Returns:
            The descriptors that were removed, in registration order.
        """
        members = list(self._unit_members.get(unit, []))
        for descriptor in members:
            self.unregister(descriptor)
        self._unit_members.pop(unit, None)
        self.loaded_units.discard(unit)
        return members

    def clear(self) -> None:
        self.by_name.clear()
        self.by_structured_name.clear()
        self.loaded_units.clear()
        self._unit_members.clear()

    # --- Lookup ---

    def get(self, key: str) -> Optional[HandlerDescriptor]:
        """Resolve a text command key (name or alias, any case)."""
        return self.by_name.get(key.lower())

    def get_structured(self, name: str) -> Optional[HandlerDescriptor]:
        return self.by_structured_name.get(name)

    def unit_members(self, unit: str) -> List[HandlerDescriptor]:
        """Descriptors a loaded unit contributed, in registration order."""
        return list(self._unit_members.get(unit, []))

    def descriptors(self) -> List[HandlerDescriptor]:
        """Every distinct live descriptor, sorted by name."""
        seen: Dict[int, HandlerDescriptor] = {}
        for descriptor in list(self.by_name.values()) + list(self.by_structured_name.values()):
            seen[id(descriptor)] = descriptor
        return sorted(seen.values(), key=lambda d: d.name)

    def schemas(self) -> list:
        """Structured schemas of every loaded structured command, sorted by name."""
        return [
            self.by_structured_name[name].schema
            for name in sorted(self.by_structured_name)
        ]

    def snapshot(self) -> dict:
        """Plain copy of the lookup state, for comparisons and diagnostics."""
        return {
            "by_name": dict(self.by_name),
            "by_structured_name": dict(self.by_structured_name),
            "loaded_units": set(self.loaded_units),
        }

    def __contains__(self, key: str) -> bool:
        return key.lower() in self.by_name

    def __len__(self) -> int:
        return len(self.descriptors())
