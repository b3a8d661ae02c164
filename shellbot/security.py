"""Security module for shellbot.

Provides the owner allow-list check used by the control surface,
user id masking for log privacy, and input sanitization for text
commands.
"""

import unicodedata
from typing import Iterable, Optional

import structlog

from .config import get_config

logger = structlog.get_logger("shellbot.control")

MAX_INPUT_LENGTH = 4000

_BIDI_CHARS = frozenset("\u202a\u202b\u202c\u202d\u202e\u2066\u2067\u2068\u2069")


def mask_id(user_id) -> str:
    """Mask a user id to its last 4 characters for logging."""
    return "..." + str(user_id)[-4:]


def is_owner(user_id, owner_ids: Optional[Iterable[str]] = None) -> bool:
    """Check if a user id is on the owner allow-list.

    Args:
        user_id: Platform user id (int or str, compared as str).
        owner_ids: Allow-list to check against. Defaults to the
            configured ``owner_ids``.
    """
    if owner_ids is None:
        owner_ids = get_config().owner_ids
    allowed = {str(o) for o in owner_ids}
    if str(user_id) in allowed:
        return True

    logger.warning("unauthorized_control_attempt", user=mask_id(user_id))
    return False


def sanitize_input(text: str) -> str:
    """Sanitize user input: strip control characters and enforce length limit."""
    # Keep newline, tab and carriage return
    text = ''.join(
        ch for ch in text
        if ch in ('\n', '\r', '\t') or not unicodedata.category(ch).startswith('C')
    )
    text = ''.join(ch for ch in text if ch not in _BIDI_CHARS)
    if len(text) > MAX_INPUT_LENGTH:
        text = text[:MAX_INPUT_LENGTH]
    return text
