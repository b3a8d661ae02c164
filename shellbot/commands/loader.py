"""Unit discovery, hot loading and unloading of command modules.

The commands root holds one directory per unit. Every ``*.py`` file
directly inside a unit directory (not starting with ``_``) is a
command module. Modules are imported under a synthetic name
(``shellbot_units.<unit>.<stem>``), always compiled from the source on
disk, so ``reload`` picks up edits without restarting the process.

Failures are per file: a module that fails to import or validate is
reported as ``"<file>: <message>"`` and the rest of the unit still
loads. Nothing in here raises past the unit boundary.
"""

import asyncio
import importlib.machinery
import importlib.util
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import List

import structlog

from ..exceptions import LoadError, describe_exception
from .base import build_descriptor
from .registry import CommandRegistry

logger = structlog.get_logger("shellbot.loader")

# Namespace for imported command modules in sys.modules
MODULE_NAMESPACE = "shellbot_units"

_UNIT_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")


@dataclass
class LoadResult:
    """Outcome of loading one unit."""
    loaded_names: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


@dataclass
class UnloadResult:
    """Outcome of unloading one unit."""
    unloaded_names: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


@dataclass
class ReloadResult:
    """Outcome of rebuilding the registry from every unit."""
    total_loaded: int = 0
    unit_count: int = 0
    errors: List[str] = field(default_factory=list)


class _UncachedSourceLoader(importlib.machinery.SourceFileLoader):
    """Source loader that never reads or writes bytecode caches.

    Bytecode is validated by mtime (whole seconds) and size, which can
    miss an edit made right after the previous load.
    """

    def get_code(self, fullname):
        source = self.get_data(self.path)
        return self.source_to_code(source, self.path)


class UnitLoader:
    """Loads, unloads and reloads units into a CommandRegistry.

    All three operations take the same asyncio.Lock, so a second
    request waits for the first to finish instead of interleaving with
    its registry mutations.

    Args:
        commands_dir: Commands root directory.
        registry: Registry to populate.
    """

    def __init__(self, commands_dir: Path, registry: CommandRegistry):
        self.commands_dir = Path(commands_dir)
        self.registry = registry
        self._lock = asyncio.Lock()

    # --- Discovery ---

    def list_units(self) -> List[str]:
        """Names of every unit directory under the commands root, sorted."""
        if not self.commands_dir.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self.commands_dir.iterdir()
            if entry.is_dir() and _UNIT_NAME_RE.match(entry.name)
        )

    def unit_exists(self, unit: str) -> bool:
        return bool(unit) and bool(_UNIT_NAME_RE.match(unit)) and (
            self.commands_dir / unit
        ).is_dir()

    @staticmethod
    def module_files(unit_dir: Path) -> List[Path]:
        """Command module files directly inside a unit directory, sorted."""
        return sorted(
            path
            for path in unit_dir.iterdir()
            if path.is_file() and path.suffix == ".py" and not path.name.startswith("_")
        )

    @staticmethod
    def module_name(unit: str, path: Path) -> str:
        return f"{MODULE_NAMESPACE}.{unit}.{path.stem}"

    # --- Import machinery ---

    def _import_fresh(self, unit: str, path: Path) -> ModuleType:
        """Import a module file, discarding any previous import of it."""
        module_name = self.module_name(unit, path)
        sys.modules.pop(module_name, None)
        loader = _UncachedSourceLoader(module_name, str(path))
        spec = importlib.util.spec_from_file_location(module_name, path, loader=loader)
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(module_name, None)
            raise
        return module

    @staticmethod
    def _forget_unit_modules(unit: str) -> None:
        prefix = f"{MODULE_NAMESPACE}.{unit}."
        for key in [k for k in sys.modules if k.startswith(prefix)]:
            del sys.modules[key]

    # --- Operations ---

    async def load_unit(self, unit: str) -> LoadResult:
        """Scan a unit directory and register every valid command module.

        Loading an already-loaded unit replaces its previous entries.
        A missing unit yields one error and leaves the registry alone.
        """
        async with self._lock:
            return self._load_unit(unit)

    async def unload_unit(self, unit: str) -> UnloadResult:
        """Remove everything a loaded unit contributed to the registry."""
        async with self._lock:
            return self._unload_unit(unit)

    async def reload_all(self) -> ReloadResult:
        """Clear the registry and load every unit from disk again."""
        async with self._lock:
            for unit in list(self.registry.loaded_units):
                self._forget_unit_modules(unit)
            self.registry.clear()

            result = ReloadResult()
            for unit in self.list_units():
                unit_result = self._load_unit(unit)
                result.unit_count += 1
                result.total_loaded += len(unit_result.loaded_names)
                result.errors.extend(unit_result.errors)

            logger.info(
                "registry_reloaded",
                units=result.unit_count,
                commands=result.total_loaded,
                errors=len(result.errors),
            )
            return result

    def _load_unit(self, unit: str) -> LoadResult:
        result = LoadResult()
        if not self.unit_exists(unit):
            logger.warning("unit_not_found", unit=unit, commands_dir=str(self.commands_dir))
            result.errors.append(f"Unit '{unit}' does not exist")
            return result

        if unit in self.registry.loaded_units:
            self._unload_unit(unit)

        for path in self.module_files(self.commands_dir / unit):
            try:
                module = self._import_fresh(unit, path)
                descriptor = build_descriptor(module, unit, path)
            except LoadError as e:
                sys.modules.pop(self.module_name(unit, path), None)
                logger.warning("command_module_rejected", unit=unit, file=path.name, error=e.message)
                result.errors.append(e.report())
                continue
            # includes a module-level sys.exit()
            except (Exception, SystemExit) as e:
                logger.error(
                    "command_module_import_failed",
                    unit=unit,
                    file=path.name,
                    error=describe_exception(e),
                    error_type=type(e).__name__,
                )
                result.errors.append(f"{path.name}: {describe_exception(e)}")
                continue

            self.registry.register(descriptor)
            result.loaded_names.append(descriptor.name)

        self.registry.mark_loaded(unit)
        logger.info(
            "unit_loaded",
            unit=unit,
            commands=result.loaded_names,
            errors=len(result.errors),
        )
        return result

    def _unload_unit(self, unit: str) -> UnloadResult:
        result = UnloadResult()
        if unit not in self.registry.loaded_units:
            if self.unit_exists(unit):
                result.errors.append(f"Unit '{unit}' is not loaded")
            else:
                result.errors.append(f"Unit '{unit}' does not exist")
            return result

        removed = self.registry.remove_unit(unit)
        self._forget_unit_modules(unit)
        result.unloaded_names = [d.name for d in removed]
        logger.info("unit_unloaded", unit=unit, commands=result.unloaded_names)
        return result
