"""
Generic OpenAI-compatible backend.

Betty runs against a local model server (Ollama, LM Studio, llama.cpp,
vLLM...) that speaks /v1/chat/completions with tool calling. The configured
URL is the API base including the /v1 prefix.
"""

from __future__ import annotations

import logging
import time

import httpx

from betty.backends.base import BaseBackend, BackendResponse

logger = logging.getLogger(__name__)


class OpenAICompatibleBackend(BaseBackend):
    """
    Backend for any service that implements {base}/chat/completions.

    timeout=None waits for as long as the model takes; a hung server stalls
    the session, which only ever serves one conversation.
    """

    def __init__(
        self,
        url: str,
        model: str,
        api_key: str = "",
        timeout: float | None = None,
        name: str = "openai-compat",
    ):
        super().__init__(name, url, timeout)
        self.model = model
        self.api_key = api_key

    def _headers(self) -> dict:
        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def forward(self, body: dict) -> BackendResponse:
        """Forward a non-streaming request."""
        body = {"model": self.model, **body}
        t0 = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    f"{self.url}/chat/completions",
                    json=body,
                    headers=self._headers(),
                )
                latency = (time.monotonic() - t0) * 1000

                if resp.status_code >= 400:
                    return BackendResponse(
                        ok=False,
                        status_code=resp.status_code,
                        latency_ms=latency,
                        error=f"HTTP {resp.status_code}: {resp.text[:200]}",
                    )

                return BackendResponse(
                    ok=True,
                    status_code=resp.status_code,
                    data=resp.json(),
                    latency_ms=latency,
                )
        except httpx.TimeoutException:
            latency = (time.monotonic() - t0) * 1000
            logger.warning("Backend '%s' timed out after %.0fms", self.name, latency)
            return BackendResponse(
                ok=False,
                latency_ms=latency,
                error=f"Timeout after {self.timeout}s",
            )
        except Exception as e:
            latency = (time.monotonic() - t0) * 1000
            logger.warning("Backend '%s' failed: %s", self.name, e)
            return BackendResponse(
                ok=False,
                latency_ms=latency,
                error=str(e),
            )
