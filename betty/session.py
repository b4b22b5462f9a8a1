"""
Session controller: the worker's top-level loop.

    Starting -> Running -> AwaitingInput -> Running -> ... -> Closed
                   \\-> Failed (any error during a turn)

Starting reads the host's one-shot JSON from stdin, removes the staging copy
(it carries secrets), builds the engine and folds any follow-up messages
that arrived early into the first prompt. Each Running turn emits one
result frame and, unless the host asked to close meanwhile, one result-less
frame carrying only the session id before blocking on the control channel.

Exit status: 0 when the host closes the session, 1 on unparseable input or
a failed turn. The host restarts the worker for a fresh attempt.
"""

from __future__ import annotations

import logging
import sys
from enum import Enum
from pathlib import Path
from typing import TextIO
from uuid import uuid4

from betty.backends.base import BaseBackend
from betty.backends.openai_compat import OpenAICompatibleBackend
from betty.engine import ConversationEngine
from betty.framing import OutputFramer
from betty.history import HistoryStore
from betty.ipc import ControlChannel
from betty.models import ContainerInput, ContainerOutput, InputError
from betty.system_prompt import load_system_prompt
from betty.tools.google_api import GoogleAuth
from betty.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    STARTING = "starting"
    RUNNING = "running"
    AWAITING_INPUT = "awaiting_input"
    CLOSED = "closed"
    FAILED = "failed"


def build_backend(cfg: dict, secrets: dict) -> OpenAICompatibleBackend:
    """Completion endpoint from the input secrets, falling back to config."""
    backend_cfg = cfg.get("backend", {})
    return OpenAICompatibleBackend(
        url=secrets.get("QWEN_API_BASE") or backend_cfg["url"],
        model=secrets.get("QWEN_MODEL") or backend_cfg["default_model"],
        api_key=secrets.get("QWEN_API_KEY", ""),
        timeout=backend_cfg.get("timeout"),
    )


class SessionController:
    """Runs one conversation for the lifetime of the process."""

    def __init__(
        self,
        cfg: dict,
        stdin: TextIO | None = None,
        framer: OutputFramer | None = None,
        backend: BaseBackend | None = None,
    ):
        self.cfg = cfg
        self.stdin = stdin
        self.framer = framer or OutputFramer()
        self._backend = backend

        paths = cfg["paths"]
        ipc_cfg = cfg.get("ipc", {})
        self.channel = ControlChannel(
            paths["ipc_input"],
            poll_interval=ipc_cfg.get("poll_interval", 0.5),
            sentinel_name=ipc_cfg.get("close_sentinel", "_close"),
        )
        self.state = SessionState.STARTING
        self.session_id: str | None = None

    def _transition(self, state: SessionState) -> None:
        logger.debug("Session %s: %s -> %s", self.session_id, self.state.value, state.value)
        self.state = state

    # ------------------------------------------------------------------
    # Starting
    # ------------------------------------------------------------------

    def _read_input(self) -> ContainerInput:
        stream = self.stdin or sys.stdin
        try:
            raw = stream.read()
        except UnicodeDecodeError as e:
            raise InputError(f"Input is not valid UTF-8: {e}") from e
        container_input = ContainerInput.from_json(raw)

        try:
            Path(self.cfg["paths"]["staging_input"]).unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove staging input file: %s", e)

        logger.info("Received input for group: %s", container_input.group_folder)
        return container_input

    def _build_engine(self, container_input: ContainerInput) -> ConversationEngine:
        paths = self.cfg["paths"]
        conv_cfg = self.cfg.get("conversation", {})

        backend = self._backend or build_backend(self.cfg, container_input.secrets)
        tools = ToolRegistry(
            workspace_root=paths["workspace"],
            messages_dir=paths["ipc_messages"],
            google_auth=GoogleAuth.from_directory(paths["google_credentials"]),
        )
        history = HistoryStore(paths["history"], limit=conv_cfg.get("history_limit", 50))
        return ConversationEngine(
            backend,
            tools,
            history,
            max_rounds=conv_cfg.get("max_rounds", 15),
        )

    def _initial_prompt(self, container_input: ContainerInput) -> str:
        self.channel.ensure_dir()
        self.channel.clear_stale_sentinel()

        prompt = container_input.prompt
        pending = self.channel.drain()
        if pending:
            logger.info("Draining %d pending IPC messages into initial prompt", len(pending))
            prompt += "\n" + "\n".join(pending)
        return prompt

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    async def run(self) -> int:
        try:
            container_input = self._read_input()
        except InputError as e:
            self.framer.emit(ContainerOutput(
                status="error",
                error=f"Failed to parse input: {e}",
            ))
            self._transition(SessionState.FAILED)
            return 1

        self.session_id = f"betty-{uuid4().hex[:12]}"

        try:
            engine = self._build_engine(container_input)
            system_prompt = load_system_prompt(
                self.cfg["paths"]["system_prompt"],
                container_input.assistant_name,
            )
            prompt = self._initial_prompt(container_input)
            self._transition(SessionState.RUNNING)

            while self.state is not SessionState.CLOSED:
                if self.state is SessionState.RUNNING:
                    logger.info("Processing message (%d chars)...", len(prompt))
                    response = await engine.run(system_prompt, prompt, container_input.chat_jid)
                    self.framer.emit(ContainerOutput(
                        status="success",
                        result=response or None,
                        session_id=self.session_id,
                    ))

                    if self.channel.should_close():
                        logger.info("Close sentinel detected after processing, exiting")
                        self._transition(SessionState.CLOSED)
                        continue

                    self.framer.emit(ContainerOutput(status="success", session_id=self.session_id))
                    self._transition(SessionState.AWAITING_INPUT)

                else:
                    logger.info("Waiting for next IPC message...")
                    next_message = await self.channel.wait_for_next()
                    if next_message is None:
                        logger.info("Close sentinel received, exiting")
                        self._transition(SessionState.CLOSED)
                    else:
                        logger.info("Got new message (%d chars)", len(next_message))
                        prompt = next_message
                        self._transition(SessionState.RUNNING)

        except Exception as e:
            logger.exception("Agent error: %s", e)
            self.framer.emit(ContainerOutput(
                status="error",
                session_id=self.session_id,
                error=str(e),
            ))
            self._transition(SessionState.FAILED)
            return 1

        return 0
