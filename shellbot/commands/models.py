"""Pydantic models for structured (slash) command schemas.

A command module that supports structured invocation exports ``data``,
an instance of SlashCommandSchema. The loader indexes the module by
``data.name``; the slash-sync side channel serializes every loaded
schema with ``to_payload()`` into the platform's application-command
registration format.

Example::

    data = SlashCommandSchema(
        name="whatis",
        description="Display a one-line description of a command",
        options=[
            SlashOption(name="command", description="The command to check",
                        required=True),
        ],
    )
"""

from enum import IntEnum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

# Discord's constraint for command and option names
NAME_PATTERN = r"^[-_a-z0-9]{1,32}$"


class OptionType(IntEnum):
    """Application command option types (platform wire values)."""
    STRING = 3
    INTEGER = 4
    BOOLEAN = 5
    USER = 6
    CHANNEL = 7
    ROLE = 8
    NUMBER = 10


class SlashOption(BaseModel):
    """One named, typed parameter of a structured command."""

    name: str = Field(..., pattern=NAME_PATTERN)
    description: str = Field(..., min_length=1, max_length=100)
    type: OptionType = Field(default=OptionType.STRING)
    required: bool = Field(default=False)
    min_value: Optional[float] = Field(default=None, description="INTEGER/NUMBER only")
    max_value: Optional[float] = Field(default=None, description="INTEGER/NUMBER only")


class SlashCommandSchema(BaseModel):
    """Declarative description of a structured command's parameters."""

    name: str = Field(..., pattern=NAME_PATTERN)
    description: str = Field(..., min_length=1, max_length=100)
    options: List[SlashOption] = Field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the platform's application-command JSON shape."""
        options = []
        # Platform rejects optional options listed before required ones
        for option in sorted(self.options, key=lambda o: not o.required):
            item = option.model_dump(exclude_none=True)
            item["type"] = int(option.type)
            if option.type == OptionType.INTEGER:
                for bound in ("min_value", "max_value"):
                    if bound in item:
                        item[bound] = int(item[bound])
            options.append(item)
        payload: Dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "type": 1,  # CHAT_INPUT
        }
        if options:
            payload["options"] = options
        return payload
