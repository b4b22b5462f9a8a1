"""
Completion backends for Betty.
"""
from betty.backends.base import BaseBackend, BackendResponse, CompletionError
from betty.backends.openai_compat import OpenAICompatibleBackend

__all__ = [
    "BaseBackend",
    "BackendResponse",
    "CompletionError",
    "OpenAICompatibleBackend",
]
