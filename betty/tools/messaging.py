"""
Outbound message tool.

The host watches the messages directory and delivers each JSON file to the
chat it names. Files are written under a temporary name and renamed into
place so the host never picks up a half-written message.
"""

import json
import logging
import os
import time
from pathlib import Path
from uuid import uuid4

logger = logging.getLogger(__name__)


class MessageOutbox:
    """send_message: queue a chat message for immediate delivery."""

    def __init__(self, messages_dir: str | Path):
        self.messages_dir = Path(messages_dir)

    async def send_message(self, args: dict, chat_jid: str = "") -> str:
        text = args.get("text")
        if not text:
            return "Nothing to send: message text is empty."

        self.messages_dir.mkdir(parents=True, exist_ok=True)
        filename = f"{int(time.time() * 1000)}-{uuid4().hex[:6]}.json"
        path = self.messages_dir / filename
        tmp = path.with_name(filename + ".tmp")
        tmp.write_text(
            json.dumps({"type": "message", "chatJid": chat_jid, "text": str(text)}, ensure_ascii=False),
            encoding="utf-8",
        )
        os.replace(tmp, path)
        logger.info("Queued message %s for %s", filename, chat_jid)
        return "Message queued for delivery."
