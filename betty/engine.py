"""
Conversation engine: one user turn through the tool-calling loop.

Uses the completion service's native function calling. Each round the model
sees the system prompt, the recent history and everything produced so far
this turn, plus the full tool catalog with tool_choice "auto".

Loop protocol, per round:
  1. Ask the model
  2. No tool calls   -> final answer: strip <think> blocks, persist, return
  3. Tool calls      -> run each, append one tool message per call, loop
  4. finish_reason "stop" alongside tool calls -> the content is the answer

Only completed exchanges are persisted. The "no response" and round-cap
fallbacks go back to the user but never into the history log.

    engine = ConversationEngine(backend, registry, HistoryStore(path))
    reply = await engine.run(system_prompt, "add milk to the list", chat_jid)
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Protocol

from betty.backends.base import BackendResponse, BaseBackend, CompletionError
from betty.history import HistoryStore
from betty.models import Message

logger = logging.getLogger(__name__)

MAX_TOOL_ROUNDS = 15

NO_RESPONSE = "No response from model."
MAX_ROUNDS_REACHED = "Reached maximum tool call rounds. Please try a simpler request."

_THINK_RE = re.compile(r"<think>.*?</think>", re.DOTALL)


class ToolDispatcher(Protocol):
    @property
    def definitions(self) -> list[dict]: ...

    async def invoke(self, name: str, args: dict, chat_jid: str) -> str: ...


def strip_think_tags(text: str) -> str:
    """Drop the model's <think>...</think> reasoning blocks."""
    return _THINK_RE.sub("", text or "").strip()


def _parse_arguments(raw: Any) -> dict:
    """Tool arguments arrive as a JSON string; anything unusable becomes {}."""
    if isinstance(raw, dict):
        return raw
    try:
        parsed = json.loads(raw or "{}")
    except (json.JSONDecodeError, TypeError):
        logger.warning("Unparseable tool arguments: %r", str(raw)[:200])
        return {}
    return parsed if isinstance(parsed, dict) else {}


class ConversationEngine:
    """Bounded tool-calling loop over a completion backend."""

    def __init__(
        self,
        backend: BaseBackend,
        tools: ToolDispatcher,
        history: HistoryStore,
        max_rounds: int = MAX_TOOL_ROUNDS,
    ):
        self.backend = backend
        self.tools = tools
        self.history = history
        self.max_rounds = max_rounds

    # ------------------------------------------------------------------
    # LLM call
    # ------------------------------------------------------------------

    async def _complete(self, messages: list[dict]) -> BackendResponse:
        response = await self.backend.forward({
            "messages": messages,
            "tools": self.tools.definitions,
            "tool_choice": "auto",
        })
        if not response.ok:
            raise CompletionError(response.error or f"HTTP {response.status_code}")
        return response

    # ------------------------------------------------------------------
    # Tool execution
    # ------------------------------------------------------------------

    async def _run_tool_call(self, call: dict, chat_jid: str) -> dict:
        function = call.get("function") or {}
        name = function.get("name", "")
        args = _parse_arguments(function.get("arguments"))

        logger.info("Tool call: %s(%s)", name, json.dumps(args, ensure_ascii=False)[:200])
        try:
            result = await self.tools.invoke(name, args, chat_jid)
        except Exception as e:
            result = f"Tool error ({name}): {e}"
        logger.info("Tool result: %s", result[:200])

        return {
            "role": "tool",
            "tool_call_id": call.get("id"),
            "content": result,
        }

    def _finish(self, content: str | None) -> str:
        text = strip_think_tags(content or "")
        self.history.append(Message(role="assistant", content=text))
        return text

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    async def run(self, system_prompt: str, user_text: str, chat_jid: str) -> str:
        recent = self.history.load()
        user_entry = Message(role="user", content=user_text)
        self.history.append(user_entry)
        recent.append(user_entry)

        messages: list[dict] = [
            {"role": "system", "content": system_prompt},
            *(m.to_openai() for m in recent),
        ]

        for round_num in range(1, self.max_rounds + 1):
            logger.info("Calling model (round %d, %d messages)...", round_num, len(messages))
            response = await self._complete(messages)

            if response.choice is None:
                logger.warning("Model returned no choices")
                return NO_RESPONSE

            assistant = response.message
            assistant.setdefault("role", "assistant")
            messages.append(assistant)

            tool_calls = assistant.get("tool_calls") or []
            if not tool_calls:
                return self._finish(response.content)

            for call in tool_calls:
                messages.append(await self._run_tool_call(call, chat_jid))

            if response.finish_reason == "stop":
                return self._finish(response.content)

        logger.warning("Gave up after %d tool rounds without a final answer", self.max_rounds)
        return MAX_ROUNDS_REACHED
