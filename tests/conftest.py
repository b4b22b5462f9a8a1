"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import copy
from pathlib import Path

import pytest

from betty.backends.base import BaseBackend, BackendResponse
from betty.config import DEFAULTS


class ScriptedBackend(BaseBackend):
    """Completion backend that replays canned responses and records requests."""

    def __init__(self, responses):
        super().__init__("scripted", "http://scripted")
        self.responses = list(responses)
        self.requests: list[dict] = []

    async def forward(self, body: dict) -> BackendResponse:
        self.requests.append(copy.deepcopy(body))
        if callable(self.responses[0]):
            return self.responses[0](body)
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


def completion(content: str | None = "", tool_calls=None, finish_reason: str | None = None) -> BackendResponse:
    message: dict = {"role": "assistant", "content": content}
    if tool_calls:
        message["tool_calls"] = tool_calls
    if finish_reason is None:
        finish_reason = "tool_calls" if tool_calls else "stop"
    return BackendResponse(ok=True, data={
        "choices": [{"index": 0, "message": message, "finish_reason": finish_reason}],
    })


def tool_call(name: str, arguments: str = "{}", call_id: str = "call_1") -> dict:
    return {
        "id": call_id,
        "type": "function",
        "function": {"name": name, "arguments": arguments},
    }


@pytest.fixture
def scripted_backend():
    return ScriptedBackend


@pytest.fixture
def cfg(tmp_path: Path) -> dict:
    """Default config with every filesystem location under tmp_path."""
    c = copy.deepcopy(DEFAULTS)
    c["paths"] = {
        "workspace": str(tmp_path / "group"),
        "history": str(tmp_path / "group" / "memory" / "conversation-history.jsonl"),
        "system_prompt": str(tmp_path / "group" / "CLAUDE.md"),
        "ipc_input": str(tmp_path / "ipc" / "input"),
        "ipc_messages": str(tmp_path / "ipc" / "messages"),
        "staging_input": str(tmp_path / "input.json"),
        "google_credentials": str(tmp_path / "betty-config"),
    }
    c["ipc"]["poll_interval"] = 0.01
    return c


@pytest.fixture(name="completion")
def completion_fixture():
    return completion


@pytest.fixture(name="tool_call")
def tool_call_fixture():
    return tool_call
