"""
Base backend abstraction.
The conversation engine only talks to this interface, so tests and other
completion services can stand in for the real endpoint.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


class CompletionError(RuntimeError):
    """The completion service could not answer a request."""


@dataclass
class BackendResponse:
    """Standardized response from any backend."""
    ok: bool
    status_code: int = 200
    data: dict = field(default_factory=dict)
    latency_ms: float = 0.0
    error: str = ""

    @property
    def choice(self) -> dict | None:
        """First choice of the completion, or None when there is none."""
        choices = self.data.get("choices") or []
        return choices[0] if choices else None

    @property
    def message(self) -> dict:
        choice = self.choice
        return (choice or {}).get("message") or {}

    @property
    def finish_reason(self) -> str | None:
        return (self.choice or {}).get("finish_reason")

    @property
    def content(self) -> str:
        """Extract assistant content from response data."""
        return self.message.get("content") or ""


class BaseBackend(abc.ABC):
    """Abstract base for chat-completion backends."""

    def __init__(self, name: str, url: str, timeout: float | None = None):
        self.name = name
        self.url = url.rstrip("/")
        self.timeout = timeout

    @abc.abstractmethod
    async def forward(self, body: dict) -> BackendResponse:
        """
        Send a chat completion request.
        Body is OpenAI-compatible format.
        Returns BackendResponse with data or error.
        """
        ...

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r} url={self.url!r}>"
