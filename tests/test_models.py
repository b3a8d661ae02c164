"""Tests for structured command schemas."""

import pytest
from pydantic import ValidationError

from shellbot.commands import OptionType, SlashCommandSchema, SlashOption


def test_payload_without_options():
    schema = SlashCommandSchema(name="ping", description="Check bot latency")
    assert schema.to_payload() == {
        "name": "ping",
        "description": "Check bot latency",
        "type": 1,
    }


def test_payload_lists_required_options_first():
    schema = SlashCommandSchema(
        name="roll",
        description="Roll dice",
        options=[
            SlashOption(name="label", description="Optional label"),
            SlashOption(name="sides", description="Sides per die", type=OptionType.INTEGER,
                        required=True, min_value=2, max_value=100),
        ],
    )

    payload = schema.to_payload()

    assert [o["name"] for o in payload["options"]] == ["sides", "label"]
    sides = payload["options"][0]
    assert sides == {
        "name": "sides",
        "description": "Sides per die",
        "type": 4,
        "required": True,
        "min_value": 2,
        "max_value": 100,
    }
    assert isinstance(sides["min_value"], int)
    assert payload["options"][1]["type"] == 3


def test_number_bounds_stay_float():
    option = SlashOption(name="ratio", description="r", type=OptionType.NUMBER, min_value=0.5)
    payload = SlashCommandSchema(name="scale", description="s", options=[option]).to_payload()
    assert payload["options"][0]["min_value"] == 0.5


@pytest.mark.parametrize("name", ["Ping", "has space", "", "x" * 33])
def test_invalid_command_names(name):
    with pytest.raises(ValidationError):
        SlashCommandSchema(name=name, description="d")


def test_description_length_is_bounded():
    with pytest.raises(ValidationError):
        SlashCommandSchema(name="ping", description="x" * 101)
    with pytest.raises(ValidationError):
        SlashOption(name="opt", description="")
