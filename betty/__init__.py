"""
Betty: a single-session chat assistant worker.

Runs one conversation per process: reads the initial prompt from stdin,
answers through an OpenAI-compatible tool-calling loop, and keeps talking
to its host over a filesystem mailbox until told to close.
"""

__version__ = "0.3.0"
