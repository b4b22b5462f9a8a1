"""
Control channel: the host's filesystem mailbox.

The host drops one JSON file per follow-up message into the input
directory ({"type": "message", "text": "..."}), named with a time prefix so
a plain sort gives arrival order. An empty file named `_close` asks the
worker to end the session. Every file is deleted as soon as it is read.

Between turns the session blocks in wait_for_next(), polling every
poll_interval seconds until a message or the close sentinel shows up.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

IPC_POLL_SECONDS = 0.5
CLOSE_SENTINEL = "_close"


class ControlChannel:
    """Single-consumer mailbox over a directory of JSON files."""

    def __init__(
        self,
        input_dir: str | Path,
        poll_interval: float = IPC_POLL_SECONDS,
        sentinel_name: str = CLOSE_SENTINEL,
    ):
        self.input_dir = Path(input_dir)
        self.poll_interval = poll_interval
        self.sentinel = self.input_dir / sentinel_name

    def ensure_dir(self) -> None:
        self.input_dir.mkdir(parents=True, exist_ok=True)

    def clear_stale_sentinel(self) -> None:
        """Drop a close marker left behind by a previous process."""
        self.sentinel.unlink(missing_ok=True)

    def should_close(self) -> bool:
        """True once per sentinel: the marker is consumed on observation."""
        if not self.sentinel.exists():
            return False
        try:
            self.sentinel.unlink()
        except FileNotFoundError:
            pass
        return True

    def drain(self) -> list[str]:
        """Read and delete every pending message file, in name order."""
        try:
            self.ensure_dir()
            files = sorted(p for p in self.input_dir.iterdir() if p.suffix == ".json")
        except OSError as e:
            logger.warning("IPC drain error: %s", e)
            return []

        messages: list[str] = []
        for path in files:
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
                path.unlink()
            except (OSError, ValueError) as e:
                logger.warning("Failed to process input file %s: %s", path.name, e)
                try:
                    path.unlink(missing_ok=True)
                except OSError as unlink_err:
                    logger.warning("Could not remove input file %s: %s", path.name, unlink_err)
                continue

            if isinstance(data, dict) and data.get("type") == "message" and data.get("text"):
                messages.append(str(data["text"]))
            else:
                logger.debug("Ignoring non-message input file %s", path.name)
        return messages

    async def wait_for_next(self) -> str | None:
        """
        Block until the host sends something.
        Returns the joined message text, or None when the session is closed.
        """
        while True:
            if self.should_close():
                return None
            messages = self.drain()
            if messages:
                return "\n".join(messages)
            await asyncio.sleep(self.poll_interval)
