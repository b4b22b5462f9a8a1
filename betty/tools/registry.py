"""
Tool registry: central dispatch for all tools.

The catalog is closed. ToolName lists every tool the model may call,
TOOL_SCHEMAS describes each one for the completion service, and the
registry binds each to exactly one handler. Adding a tool means touching
all three; the registry refuses to start if any name is left unbound.

Handlers share one signature, `async (args, chat_jid) -> str`, and
invoke() never raises: failures come back as text the model can read.
"""

import logging
import time
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable

from betty.tools.calendar import CalendarTools
from betty.tools.gmail import GmailTools
from betty.tools.google_api import GoogleAuth, GoogleClient
from betty.tools.messaging import MessageOutbox
from betty.tools.tasks import TasksTools
from betty.tools.workspace import WorkspaceFiles

logger = logging.getLogger(__name__)

ToolHandler = Callable[[dict, str], Awaitable[str]]


class ToolName(str, Enum):
    READ_FILE = "read_file"
    WRITE_FILE = "write_file"
    LIST_FILES = "list_files"
    SEND_MESSAGE = "send_message"
    GMAIL_READ = "gmail_read"
    GMAIL_SEND = "gmail_send"
    CALENDAR_LIST = "calendar_list"
    CALENDAR_CREATE = "calendar_create"
    TASKS_LIST = "tasks_list"
    TASKS_CREATE = "tasks_create"
    TASKS_COMPLETE = "tasks_complete"


def _schema(description: str, properties: dict, required: list[str] | None = None) -> dict:
    params: dict = {"type": "object", "properties": properties}
    if required:
        params["required"] = required
    return {"description": description, "parameters": params}


def _str(description: str) -> dict:
    return {"type": "string", "description": description}


def _num(description: str) -> dict:
    return {"type": "number", "description": description}


TOOL_SCHEMAS: dict[ToolName, dict] = {
    ToolName.READ_FILE: _schema(
        "Read a file from the workspace. Path is relative to /workspace/group/.",
        {"path": _str("Relative file path within workspace")},
        ["path"],
    ),
    ToolName.WRITE_FILE: _schema(
        "Create or update a file in the workspace. Path is relative to /workspace/group/.",
        {
            "path": _str("Relative file path within workspace"),
            "content": _str("File content to write"),
        },
        ["path", "content"],
    ),
    ToolName.LIST_FILES: _schema(
        "List files in a workspace directory. Path is relative to /workspace/group/.",
        {"path": _str("Relative directory path (default: root)")},
    ),
    ToolName.SEND_MESSAGE: _schema(
        "Send a WhatsApp message immediately via IPC. Use for proactive notifications.",
        {"text": _str("Message text to send")},
        ["text"],
    ),
    ToolName.GMAIL_READ: _schema(
        "Read recent emails from Gmail inbox.",
        {"max_results": _num("Number of emails to fetch (default: 10)")},
    ),
    ToolName.GMAIL_SEND: _schema(
        "Send an email via Gmail.",
        {
            "to": _str("Recipient email address"),
            "subject": _str("Email subject"),
            "body": _str("Email body (plain text)"),
        },
        ["to", "subject", "body"],
    ),
    ToolName.CALENDAR_LIST: _schema(
        "List upcoming events from Google Calendar.",
        {"max_results": _num("Number of events to fetch (default: 10)")},
    ),
    ToolName.CALENDAR_CREATE: _schema(
        "Create a new Google Calendar event.",
        {
            "summary": _str("Event title"),
            "start_time": _str("Start time in ISO 8601 format"),
            "end_time": _str("End time in ISO 8601 format"),
            "description": _str("Event description"),
            "location": _str("Event location"),
        },
        ["summary", "start_time", "end_time"],
    ),
    ToolName.TASKS_LIST: _schema(
        "List pending tasks from Google Tasks (grocery lists, to-dos, etc.).",
        {"max_results": _num("Number of tasks to fetch (default: 20)")},
    ),
    ToolName.TASKS_CREATE: _schema(
        "Create a new task in Google Tasks.",
        {
            "title": _str("Task title"),
            "notes": _str("Task notes/details"),
            "due": _str('Due date (ISO 8601, e.g. "2024-03-15")'),
        },
        ["title"],
    ),
    ToolName.TASKS_COMPLETE: _schema(
        "Mark a task as completed in Google Tasks.",
        {"title": _str("Exact title of the task to complete")},
        ["title"],
    ),
}


class ToolRegistry:
    """Binds every ToolName to its handler and dispatches calls."""

    def __init__(
        self,
        workspace_root: str | Path,
        messages_dir: str | Path,
        google_auth: GoogleAuth | None = None,
    ):
        files = WorkspaceFiles(workspace_root)
        outbox = MessageOutbox(messages_dir)
        google = GoogleClient(google_auth) if google_auth else None
        gmail = GmailTools(google)
        calendar = CalendarTools(google)
        tasks = TasksTools(google)

        self._handlers: dict[ToolName, ToolHandler] = {
            ToolName.READ_FILE: files.read_file,
            ToolName.WRITE_FILE: files.write_file,
            ToolName.LIST_FILES: files.list_files,
            ToolName.SEND_MESSAGE: outbox.send_message,
            ToolName.GMAIL_READ: gmail.read,
            ToolName.GMAIL_SEND: gmail.send,
            ToolName.CALENDAR_LIST: calendar.list_events,
            ToolName.CALENDAR_CREATE: calendar.create_event,
            ToolName.TASKS_LIST: tasks.list_tasks,
            ToolName.TASKS_CREATE: tasks.create_task,
            ToolName.TASKS_COMPLETE: tasks.complete_task,
        }

        missing = [n.value for n in ToolName if n not in self._handlers or n not in TOOL_SCHEMAS]
        if missing:
            raise RuntimeError(f"Tools without a handler or schema: {missing}")

        logger.info(
            "Tool registry loaded: %d tools (google %s)",
            len(self._handlers),
            "configured" if google else "not configured",
        )

    @property
    def definitions(self) -> list[dict]:
        """OpenAI function-calling definitions, in catalog order."""
        return [
            {"type": "function", "function": {"name": name.value, **TOOL_SCHEMAS[name]}}
            for name in ToolName
        ]

    def list_tools(self) -> list[str]:
        return [name.value for name in ToolName]

    async def invoke(self, name: str, args: dict, chat_jid: str) -> str:
        """Run a tool by name. Always returns a string."""
        try:
            tool = ToolName(name)
        except ValueError:
            logger.warning("Tool '%s' not found in registry", name)
            return f"Unknown tool: {name}"

        start = time.monotonic()
        try:
            result = await self._handlers[tool](args, chat_jid)
        except Exception as e:
            logger.warning("Tool '%s' failed: %s", name, e)
            return f"Tool error ({name}): {e}"

        logger.debug("Tool '%s' finished in %.0fms", name, (time.monotonic() - start) * 1000)
        return str(result)
