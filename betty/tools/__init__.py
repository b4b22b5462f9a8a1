"""
Tools the model can call during a conversation.
"""
from betty.tools.google_api import GoogleAuth
from betty.tools.registry import ToolName, ToolRegistry

__all__ = ["GoogleAuth", "ToolName", "ToolRegistry"]
