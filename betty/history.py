"""
History store: the conversation's long-term memory.

One JSONL file per group: every message is appended as a single line and
never rewritten. Reads load the whole log, skip lines that don't decode or
parse and keep only the most recent window for the model's context.

    store = HistoryStore("/workspace/group/memory/conversation-history.jsonl")
    store.append(Message(role="user", content="hi"))
    recent = store.load()
"""

import json
import logging
from pathlib import Path

from betty.models import Message

logger = logging.getLogger(__name__)

MAX_HISTORY_MESSAGES = 50


class HistoryStore:
    """Append-only JSONL conversation log with a bounded read window."""

    def __init__(self, path: str | Path, limit: int = MAX_HISTORY_MESSAGES):
        self.path = Path(path)
        self.limit = limit

    def records(self) -> list[Message]:
        """Every well-formed message in the log, oldest first."""
        if not self.path.exists():
            return []

        messages: list[Message] = []
        # Undecodable bytes become U+FFFD; such a line then fails to parse
        # and is skipped like any other corrupt record.
        with open(self.path, encoding="utf-8", errors="replace") as f:
            for lineno, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    messages.append(Message.from_dict(json.loads(line)))
                except (json.JSONDecodeError, ValueError, TypeError) as e:
                    logger.debug("Skipping malformed history line %d: %s", lineno, e)
        return messages

    def load(self) -> list[Message]:
        """Return the last `limit` well-formed messages, oldest first."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        messages = self.records()
        return messages[-self.limit:] if self.limit > 0 else []

    def append(self, message: Message) -> None:
        """Durably add one record to the end of the log."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(json.dumps(message.to_dict(), ensure_ascii=False) + "\n")
            f.flush()
