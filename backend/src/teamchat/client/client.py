"""teamchat HTTP client"""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx

logger = logging.getLogger("teamchat.client")


class TeamChatClientError(Exception):
    def __init__(self, detail: str, status_code: int | None = None, payload=None):
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code
        self.payload = payload or {}


class TeamChatClient:
    """
    Async client for the teamchat RPC API.

    Example:
        client = TeamChatClient(base_url="http://localhost:8000")
        await client.sign_in("ada@example.com", "correct horse")
        workspace_id = await client.call("workspaces.create", name="Analytical")
        page = await client.call("messages.get", channel_id=channel_id)

    Args:
        base_url: Server URL. Defaults to TEAMCHAT_BASE_URL or localhost.
        token: Session token from a previous sign-in.
        transport: Optional httpx transport (e.g. ASGITransport in tests).
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ):
        self.base_url = (
            base_url or os.getenv("TEAMCHAT_BASE_URL") or "http://localhost:8000"
        ).rstrip("/")
        self.token = token
        self.user_id: str | None = None
        self._http = httpx.AsyncClient(
            base_url=self.base_url, transport=transport, timeout=timeout
        )

    def _headers(self) -> dict[str, str]:
        if self.token is None:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    @staticmethod
    def _raise_for_error(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            raise TeamChatClientError(
                f"unexpected response ({response.status_code})", response.status_code
            )
        if response.is_error or data.get("ok") is False:
            raise TeamChatClientError(
                data.get("error", "unknown_error"), response.status_code, data
            )
        return data

    async def _authenticate(self, path: str, body: dict[str, Any]) -> str:
        response = await self._http.post(path, json=body)
        data = self._raise_for_error(response)
        self.token = data["token"]
        self.user_id = data["user_id"]
        logger.debug(f"Authenticated as {self.user_id}")
        return self.user_id

    async def sign_up(self, name: str, email: str, password: str) -> str:
        return await self._authenticate(
            "/api/auth/signUp", {"name": name, "email": email, "password": password}
        )

    async def sign_in(self, email: str, password: str) -> str:
        return await self._authenticate(
            "/api/auth/signIn", {"email": email, "password": password}
        )

    async def sign_out(self) -> None:
        response = await self._http.post("/api/auth/signOut", headers=self._headers())
        self._raise_for_error(response)
        self.token = None
        self.user_id = None

    async def call(self, endpoint: str, **args: Any) -> Any:
        """Invoke an RPC endpoint such as ``messages.create`` and return its result."""
        response = await self._http.post(
            f"/api/{endpoint}", json=args, headers=self._headers()
        )
        return self._raise_for_error(response)["result"]

    async def upload(self, data: bytes, content_type: str = "application/octet-stream") -> str:
        """Upload an attachment and return its storage id."""
        upload_url = await self.call("upload.generateUploadUrl")
        response = await self._http.post(
            upload_url, content=data, headers={"Content-Type": content_type}
        )
        return self._raise_for_error(response)["storage_id"]

    async def close(self):
        await self._http.aclose()

    async def __aenter__(self) -> "TeamChatClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
