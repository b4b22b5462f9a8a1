"""
system_prompt.py: builds the system message for every completion call.

The group's CLAUDE.md (mounted into the workspace) is the persona. When it
is missing a short default persona is used. Either way the WhatsApp
formatting rules and the current time are appended, since the model has no
other way of knowing what day it is.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_ASSISTANT_NAME = "Betty"

_DEFAULT_PERSONA = (
    "You are {name}, a friendly and helpful assistant. You help with grocery "
    "lists, calendar events, emails, notes, and reminders. Be concise and helpful."
)

_FORMATTING_RULES = """\
Formatting rules:
- Use WhatsApp-compatible formatting: *bold*, _italic_, ~strikethrough~, ```code```
- Keep responses concise, this is WhatsApp, not email
- Use bullet points and line breaks for lists
- Current date/time: {now}"""


def load_system_prompt(
    path: str | Path,
    assistant_name: str | None = None,
    now: datetime | None = None,
) -> str:
    """Return the persona file (or default persona) plus formatting rules."""
    path = Path(path)
    persona = ""
    if path.exists():
        try:
            persona = path.read_text(encoding="utf-8")
            logger.info("Loaded system prompt from %s (%d chars)", path, len(persona))
        except OSError as e:
            logger.warning("Failed to read %s: %s", path, e)

    if not persona:
        persona = _DEFAULT_PERSONA.format(name=assistant_name or DEFAULT_ASSISTANT_NAME)

    now = now or datetime.now(timezone.utc)
    return f"{persona}\n\n{_FORMATTING_RULES.format(now=now.isoformat())}"
