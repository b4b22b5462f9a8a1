"""
Data models for the worker.
These define the shape of data flowing between the host, the history log
and the completion service.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

ROLES = ("system", "user", "assistant", "tool")


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class InputError(ValueError):
    """The initial stdin payload could not be turned into a ContainerInput."""


@dataclass
class Message:
    """A single conversational turn, as recorded in the history log."""
    role: str
    content: str = ""
    name: str | None = None            # tool name when role == "tool"
    tool_calls: list[Any] | None = None
    tool_call_id: str | None = None
    timestamp: str = field(default_factory=utc_now)

    def __post_init__(self):
        if self.role not in ROLES:
            raise ValueError(f"Invalid message role: {self.role!r}")
        if self.content is None:
            self.content = ""

    def to_dict(self) -> dict:
        """On-disk record. Optional keys are left out when unset."""
        record: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.name:
            record["name"] = self.name
        if self.tool_calls:
            record["tool_calls"] = self.tool_calls
        if self.tool_call_id:
            record["tool_call_id"] = self.tool_call_id
        record["timestamp"] = self.timestamp
        return record

    @classmethod
    def from_dict(cls, data: dict) -> Message:
        if not isinstance(data, dict):
            raise ValueError("History record is not an object")
        return cls(
            role=data.get("role", ""),
            content=data.get("content") or "",
            name=data.get("name"),
            tool_calls=data.get("tool_calls"),
            tool_call_id=data.get("tool_call_id"),
            timestamp=data.get("timestamp") or utc_now(),
        )

    def to_openai(self) -> dict:
        """Export in the chat-completions messages format."""
        msg: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.name:
            msg["name"] = self.name
        if self.tool_call_id:
            msg["tool_call_id"] = self.tool_call_id
        if self.tool_calls:
            msg["tool_calls"] = self.tool_calls
        return msg


@dataclass
class ContainerInput:
    """The one-shot payload the host writes to stdin."""
    prompt: str
    group_folder: str = ""
    chat_jid: str = ""
    is_main: bool = False
    session_id: str | None = None
    is_scheduled_task: bool = False
    assistant_name: str | None = None
    secrets: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_json(cls, text: str) -> ContainerInput:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise InputError(f"Invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise InputError("Input must be a JSON object")
        prompt = data.get("prompt")
        if not isinstance(prompt, str):
            raise InputError("Input is missing a string 'prompt'")

        return cls(
            prompt=prompt,
            group_folder=data.get("groupFolder", ""),
            chat_jid=data.get("chatJid", ""),
            is_main=bool(data.get("isMain", False)),
            session_id=data.get("sessionId"),
            is_scheduled_task=bool(data.get("isScheduledTask", False)),
            assistant_name=data.get("assistantName"),
            secrets=data.get("secrets") or {},
        )


@dataclass
class ContainerOutput:
    """One framed record on stdout."""
    status: str                        # "success" | "error"
    result: str | None = None
    session_id: str | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        # Key names are fixed by the host's output parser
        out: dict[str, Any] = {"status": self.status, "result": self.result}
        if self.session_id:
            out["newSessionId"] = self.session_id
        if self.error:
            out["error"] = self.error
        return out
