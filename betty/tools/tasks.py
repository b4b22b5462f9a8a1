"""
Google Tasks tools: grocery lists, to-dos and reminders.

Everything works against the user's first (default) task list.
"""

import logging
from datetime import datetime, timezone

from betty.tools.google_api import NOT_CONFIGURED, GoogleClient

logger = logging.getLogger(__name__)

TASKS_API = "https://tasks.googleapis.com/tasks/v1"


def _due_timestamp(due: str) -> str:
    """Accept "2024-03-15" or a full ISO timestamp; Tasks wants RFC 3339."""
    parsed = datetime.fromisoformat(due)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.isoformat()


class TasksTools:
    def __init__(self, client: GoogleClient | None):
        self.client = client

    async def _default_list_id(self) -> str | None:
        data = await self.client.get(f"{TASKS_API}/users/@me/lists", params={"maxResults": 1})
        items = data.get("items") or []
        return items[0].get("id") if items else None

    async def list_tasks(self, args: dict, chat_jid: str = "") -> str:
        if self.client is None:
            return NOT_CONFIGURED
        max_results = int(args.get("max_results") or 20)

        try:
            list_id = await self._default_list_id()
            if not list_id:
                return "No task list found."
            data = await self.client.get(
                f"{TASKS_API}/lists/{list_id}/tasks",
                params={"maxResults": max_results, "showCompleted": "false"},
            )
        except Exception as e:
            logger.warning("Tasks list failed: %s", e)
            return f"Tasks error: {e}"

        items = data.get("items") or []
        if not items:
            return "No pending tasks."

        lines = []
        for item in items:
            line = f"- {item.get('title') or '(untitled)'}"
            if item.get("due"):
                line += f" (due: {item['due']})"
            if item.get("notes"):
                line += f"\n  Notes: {item['notes']}"
            lines.append(line)
        return "\n".join(lines)

    async def create_task(self, args: dict, chat_jid: str = "") -> str:
        if self.client is None:
            return NOT_CONFIGURED
        title = args.get("title", "")
        due = args.get("due")

        try:
            list_id = await self._default_list_id()
            if not list_id:
                return "No task list found."
            body = {"title": title}
            if args.get("notes"):
                body["notes"] = args["notes"]
            if due:
                body["due"] = _due_timestamp(due)
            task = await self.client.post(f"{TASKS_API}/lists/{list_id}/tasks", json=body)
        except Exception as e:
            logger.warning("Tasks create failed: %s", e)
            return f"Tasks create error: {e}"

        suffix = f" (due: {due})" if due else ""
        return f'Task created: "{task.get("title", title)}"{suffix}'

    async def complete_task(self, args: dict, chat_jid: str = "") -> str:
        if self.client is None:
            return NOT_CONFIGURED
        title = str(args.get("title", ""))

        try:
            list_id = await self._default_list_id()
            if not list_id:
                return "No task list found."
            data = await self.client.get(
                f"{TASKS_API}/lists/{list_id}/tasks",
                params={"showCompleted": "false"},
            )
            items = data.get("items") or []
            match = next(
                (i for i in items if (i.get("title") or "").lower() == title.lower()),
                None,
            )
            if not match or not match.get("id"):
                available = ", ".join(i.get("title") or "" for i in items)
                return f'Task not found: "{title}". Available tasks: {available}'

            await self.client.patch(
                f"{TASKS_API}/lists/{list_id}/tasks/{match['id']}",
                json={"status": "completed"},
            )
        except Exception as e:
            logger.warning("Tasks complete failed: %s", e)
            return f"Tasks complete error: {e}"
        return f'Task completed: "{title}"'
