"""
Google Workspace access for the Gmail, Calendar and Tasks tools.

GoogleAuth holds the OAuth client and the user's tokens, read from the
mounted credentials directory:

    client_secret.json   OAuth client ({"installed": {...}} or {"web": {...}})
    tokens.json          {"access_token", "refresh_token", "expiry_date", ...}

It is built once per session and handed to the tools that need it. Expired
access tokens are refreshed against Google's token endpoint and the merged
result is written back to tokens.json, so the next session starts warm.

GoogleClient is a thin authorized JSON client over httpx.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path

import httpx

logger = logging.getLogger(__name__)

TOKEN_URL = "https://oauth2.googleapis.com/token"
CLIENT_SECRET_FILE = "client_secret.json"
TOKENS_FILE = "tokens.json"

NOT_CONFIGURED = "Google credentials not configured."


class GoogleAuth:
    """OAuth2 user credentials with refresh-and-persist."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        tokens: dict,
        tokens_path: Path | None = None,
        refresh_margin: float = 60.0,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.tokens = dict(tokens)
        self.tokens_path = tokens_path
        self.refresh_margin = refresh_margin

    @classmethod
    def from_directory(cls, directory: str | Path) -> GoogleAuth | None:
        """Load credentials from disk. Returns None when they aren't usable."""
        directory = Path(directory)
        secret_path = directory / CLIENT_SECRET_FILE
        tokens_path = directory / TOKENS_FILE

        if not secret_path.exists():
            logger.info("Google credentials not found at %s", secret_path)
            return None
        if not tokens_path.exists():
            logger.info("Google tokens not found at %s", tokens_path)
            return None

        try:
            credentials = json.loads(secret_path.read_text(encoding="utf-8"))
            tokens = json.loads(tokens_path.read_text(encoding="utf-8"))
            client = credentials.get("installed") or credentials.get("web") or {}
            return cls(
                client_id=client["client_id"],
                client_secret=client["client_secret"],
                tokens=tokens,
                tokens_path=tokens_path,
            )
        except (OSError, ValueError, KeyError, AttributeError) as e:
            logger.warning("Failed to initialize Google auth: %s", e)
            return None

    def expired(self) -> bool:
        if not self.tokens.get("access_token"):
            return True
        expiry_ms = self.tokens.get("expiry_date")
        if not expiry_ms:
            return False
        return expiry_ms / 1000 - self.refresh_margin <= time.time()

    async def access_token(self) -> str:
        if self.expired():
            await self.refresh()
        return self.tokens["access_token"]

    async def refresh(self) -> None:
        refresh_token = self.tokens.get("refresh_token")
        if not refresh_token:
            raise RuntimeError("Google access token expired and no refresh token is stored")

        async with httpx.AsyncClient(timeout=30) as client:
            resp = await client.post(
                TOKEN_URL,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": refresh_token,
                    "grant_type": "refresh_token",
                },
            )
            resp.raise_for_status()
            fresh = resp.json()

        expires_in = fresh.pop("expires_in", None)
        if expires_in is not None:
            fresh["expiry_date"] = int((time.time() + float(expires_in)) * 1000)
        self.tokens = {**self.tokens, **fresh}
        self._persist()

    def _persist(self) -> None:
        if self.tokens_path is None:
            return
        try:
            self.tokens_path.write_text(json.dumps(self.tokens, indent=2) + "\n", encoding="utf-8")
            logger.info("Google tokens refreshed and saved")
        except OSError as e:
            logger.warning("Google tokens refreshed but not saved: %s", e)


class GoogleClient:
    """Authorized JSON requests against Google REST APIs."""

    def __init__(self, auth: GoogleAuth, timeout: float = 30):
        self.auth = auth
        self.timeout = timeout

    async def request(self, method: str, url: str, **kwargs) -> dict:
        token = await self.auth.access_token()
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.request(
                method,
                url,
                headers={"Authorization": f"Bearer {token}"},
                **kwargs,
            )
            resp.raise_for_status()
            return resp.json() if resp.content else {}

    async def get(self, url: str, **kwargs) -> dict:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs) -> dict:
        return await self.request("POST", url, **kwargs)

    async def patch(self, url: str, **kwargs) -> dict:
        return await self.request("PATCH", url, **kwargs)
