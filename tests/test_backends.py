"""
Tests for the OpenAI-compatible completion backend.
Run with: pytest tests/test_backends.py
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from betty.backends.base import BackendResponse
from betty.backends.openai_compat import OpenAICompatibleBackend


def _mock_client(mock_client_cls, post_return=None, post_side_effect=None):
    mock_client = AsyncMock()
    if post_side_effect is not None:
        mock_client.post.side_effect = post_side_effect
    else:
        mock_client.post.return_value = post_return
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client_cls.return_value = mock_client
    return mock_client


# ---------------------------------------------------------------------------
# BackendResponse
# ---------------------------------------------------------------------------

def test_backend_response_helpers():
    ok = BackendResponse(ok=True, data={
        "choices": [{"message": {"content": "hi"}, "finish_reason": "stop"}],
    })
    assert ok.content == "hi"
    assert ok.finish_reason == "stop"
    assert ok.choice["message"]["content"] == "hi"


def test_backend_response_without_choices():
    empty = BackendResponse(ok=True, data={"choices": []})
    assert empty.choice is None
    assert empty.message == {}
    assert empty.content == ""
    assert empty.finish_reason is None

    err = BackendResponse(ok=False, error="timeout")
    assert not err.ok
    assert err.choice is None


# ---------------------------------------------------------------------------
# OpenAICompatibleBackend
# ---------------------------------------------------------------------------

def test_init_strips_trailing_slash():
    b = OpenAICompatibleBackend(url="http://fake:11434/v1/", model="qwen3.5")
    assert b.url == "http://fake:11434/v1"
    assert b.timeout is None


@pytest.mark.asyncio
async def test_forward_success():
    b = OpenAICompatibleBackend(url="http://fake:11434/v1", model="qwen3.5")

    mock_resp = MagicMock()
    mock_resp.status_code = 200
    mock_resp.json.return_value = {"choices": [{"message": {"content": "hello"}, "finish_reason": "stop"}]}

    with patch("betty.backends.openai_compat.httpx.AsyncClient") as mock_client_cls:
        mock_client = _mock_client(mock_client_cls, post_return=mock_resp)
        result = await b.forward({"messages": [{"role": "user", "content": "hi"}], "tool_choice": "auto"})

    assert result.ok
    assert result.content == "hello"
    url = mock_client.post.call_args.args[0]
    assert url == "http://fake:11434/v1/chat/completions"
    body = mock_client.post.call_args.kwargs["json"]
    assert body["model"] == "qwen3.5"
    assert body["tool_choice"] == "auto"
    assert mock_client.post.call_args.kwargs["headers"] == {}
    mock_client_cls.assert_called_once_with(timeout=None)


@pytest.mark.asyncio
async def test_forward_sends_api_key():
    b = OpenAICompatibleBackend(url="http://fake/v1", model="m", api_key="sk-test", timeout=30)

    mock_resp = MagicMock()
    mock_resp.status_code = 200
    mock_resp.json.return_value = {"choices": []}

    with patch("betty.backends.openai_compat.httpx.AsyncClient") as mock_client_cls:
        mock_client = _mock_client(mock_client_cls, post_return=mock_resp)
        await b.forward({"messages": []})

    assert mock_client.post.call_args.kwargs["headers"] == {"Authorization": "Bearer sk-test"}
    mock_client_cls.assert_called_once_with(timeout=30)


@pytest.mark.asyncio
async def test_forward_http_error():
    b = OpenAICompatibleBackend(url="http://fake/v1", model="m")

    mock_resp = MagicMock()
    mock_resp.status_code = 404
    mock_resp.text = "model 'm' not found"

    with patch("betty.backends.openai_compat.httpx.AsyncClient") as mock_client_cls:
        _mock_client(mock_client_cls, post_return=mock_resp)
        result = await b.forward({"messages": []})

    assert not result.ok
    assert result.status_code == 404
    assert "not found" in result.error


@pytest.mark.asyncio
async def test_forward_timeout():
    b = OpenAICompatibleBackend(url="http://fake/v1", model="m", timeout=1)

    with patch("betty.backends.openai_compat.httpx.AsyncClient") as mock_client_cls:
        _mock_client(mock_client_cls, post_side_effect=httpx.TimeoutException("timed out"))
        result = await b.forward({"messages": []})

    assert not result.ok
    assert "Timeout" in result.error


@pytest.mark.asyncio
async def test_forward_connection_error():
    b = OpenAICompatibleBackend(url="http://fake/v1", model="m")

    with patch("betty.backends.openai_compat.httpx.AsyncClient") as mock_client_cls:
        _mock_client(mock_client_cls, post_side_effect=httpx.ConnectError("refused"))
        result = await b.forward({"messages": []})

    assert not result.ok
    assert "refused" in result.error
