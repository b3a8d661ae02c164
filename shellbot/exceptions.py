"""Errors raised inside shellbot.

Everything derives from ShellbotError. Boundaries catch broadly (the
loader per file, the dispatcher per invocation, the control unit per
command) and turn the error into a reply; ``str(error)`` is always the
text a user may see, and ``error.context`` carries extra fields for the
log line only.

    ShellbotError
    ├── LoadError               one module failed to import or validate
    │   └── ContractError       imported, but not shaped like a command
    ├── UnitNotFoundError       no such unit directory
    ├── AuthorizationError      control command from a non-owner
    ├── HandlerExecutionError   a registered handler raised
    └── ConfigurationError      missing or invalid settings
"""

from typing import Any, Iterable, Optional


def describe_exception(exc: BaseException) -> str:
    """Message for an arbitrary exception; falls back to the type name."""
    return str(exc).strip() or type(exc).__name__


class ShellbotError(Exception):
    """Base class. ``message`` is user-facing, ``context`` is for logs."""

    def __init__(self, message: str = "", **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        return self.message or type(self).__name__


class LoadError(ShellbotError):
    """A command module could not be loaded. Collected, never fatal."""

    def __init__(self, message: str = "", *, filename: Optional[str] = None, **context: Any) -> None:
        super().__init__(message, **context)
        self.filename = filename

    def report(self) -> str:
        """``<file>: <message>``, the form used in operator error lists."""
        return f"{self.filename}: {self.message}" if self.filename else self.message


class ContractError(LoadError):
    pass


class UnitNotFoundError(ShellbotError):

    def __init__(self, unit: str, *, available: Optional[Iterable[str]] = None, **context: Any) -> None:
        self.unit = unit
        self.available = sorted(available or ())
        text = f"Unit '{unit}' not found."
        if available is not None:
            text += "\nAvailable units: " + ", ".join(self.available)
        super().__init__(text, **context)


class AuthorizationError(ShellbotError):
    """Raised by owner-only commands. The wording never says which check failed."""

    def __init__(self, **context: Any) -> None:
        super().__init__("This command is restricted to the sudoers only", **context)


class HandlerExecutionError(ShellbotError):
    """Wraps whatever a handler raised, keyed by the name the user invoked."""

    def __init__(self, command: str, original: BaseException, **context: Any) -> None:
        super().__init__(describe_exception(original), **context)
        self.command = command
        self.original = original

    def report(self) -> str:
        return f"[{self.command}]: {self.message}"


class ConfigurationError(ShellbotError):

    def __init__(self, message: str = "", *, setting_name: Optional[str] = None, **context: Any) -> None:
        super().__init__(message, **context)
        self.setting_name = setting_name
