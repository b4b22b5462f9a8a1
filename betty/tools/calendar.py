"""
Google Calendar tools: upcoming events on the primary calendar, and event creation.
"""

import logging
from datetime import datetime, timezone

from betty.tools.google_api import NOT_CONFIGURED, GoogleClient

logger = logging.getLogger(__name__)

EVENTS_API = "https://www.googleapis.com/calendar/v3/calendars/primary/events"


class CalendarTools:
    def __init__(self, client: GoogleClient | None):
        self.client = client

    async def list_events(self, args: dict, chat_jid: str = "") -> str:
        if self.client is None:
            return NOT_CONFIGURED
        max_results = int(args.get("max_results") or 10)

        try:
            data = await self.client.get(
                EVENTS_API,
                params={
                    "timeMin": datetime.now(timezone.utc).isoformat(),
                    "maxResults": max_results,
                    "singleEvents": "true",
                    "orderBy": "startTime",
                },
            )
        except Exception as e:
            logger.warning("Calendar list failed: %s", e)
            return f"Calendar error: {e}"

        events = data.get("items") or []
        if not events:
            return "No upcoming events."

        lines = []
        for event in events:
            start = event.get("start", {})
            end = event.get("end", {})
            entry = (
                f"- {event.get('summary') or '(untitled)'}\n"
                f"  When: {start.get('dateTime') or start.get('date', '')}"
                f" → {end.get('dateTime') or end.get('date', '')}"
            )
            if event.get("location"):
                entry += f"\n  Where: {event['location']}"
            lines.append(entry)
        return "\n".join(lines)

    async def create_event(self, args: dict, chat_jid: str = "") -> str:
        if self.client is None:
            return NOT_CONFIGURED
        summary = args.get("summary", "")
        start_time = args.get("start_time", "")

        body = {
            "summary": summary,
            "start": {"dateTime": start_time},
            "end": {"dateTime": args.get("end_time", "")},
        }
        for key in ("description", "location"):
            if args.get(key):
                body[key] = args[key]

        try:
            event = await self.client.post(EVENTS_API, json=body)
        except Exception as e:
            logger.warning("Calendar create failed: %s", e)
            return f"Calendar create error: {e}"
        return f'Event created: "{summary}" on {start_time}. Link: {event.get("htmlLink") or "N/A"}'
