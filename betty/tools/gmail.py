"""
Gmail tools: read the inbox, send plain-text mail.
"""

import base64
import logging
from email.message import EmailMessage

from betty.tools.google_api import NOT_CONFIGURED, GoogleClient

logger = logging.getLogger(__name__)

GMAIL_API = "https://gmail.googleapis.com/gmail/v1/users/me"


class GmailTools:
    def __init__(self, client: GoogleClient | None):
        self.client = client

    async def read(self, args: dict, chat_jid: str = "") -> str:
        if self.client is None:
            return f"{NOT_CONFIGURED} Ask the user to run the setup script."
        max_results = int(args.get("max_results") or 10)

        try:
            listing = await self.client.get(
                f"{GMAIL_API}/messages",
                params={"maxResults": max_results, "labelIds": "INBOX"},
            )
            messages = listing.get("messages") or []
            if not messages:
                return "No messages in inbox."

            results = []
            for msg in messages[:max_results]:
                detail = await self.client.get(
                    f"{GMAIL_API}/messages/{msg['id']}",
                    params={
                        "format": "metadata",
                        "metadataHeaders": ["From", "Subject", "Date"],
                    },
                )
                headers = {
                    h.get("name"): h.get("value", "")
                    for h in (detail.get("payload") or {}).get("headers", [])
                }
                results.append(
                    f"From: {headers.get('From') or 'Unknown'}\n"
                    f"Subject: {headers.get('Subject') or '(no subject)'}\n"
                    f"Date: {headers.get('Date', '')}\n"
                    f"Preview: {detail.get('snippet', '')}\n"
                )
            return "\n---\n".join(results)
        except Exception as e:
            logger.warning("Gmail read failed: %s", e)
            return f"Gmail error: {e}"

    async def send(self, args: dict, chat_jid: str = "") -> str:
        if self.client is None:
            return NOT_CONFIGURED
        to = args.get("to", "")
        subject = args.get("subject", "")

        message = EmailMessage()
        message["To"] = to
        message["Subject"] = subject
        message.set_content(args.get("body", ""))
        raw = base64.urlsafe_b64encode(message.as_bytes()).decode("ascii")

        try:
            await self.client.post(f"{GMAIL_API}/messages/send", json={"raw": raw})
            return f'Email sent to {to} with subject "{subject}".'
        except Exception as e:
            logger.warning("Gmail send failed: %s", e)
            return f"Gmail send error: {e}"
