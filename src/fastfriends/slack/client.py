"""Async Slack Web API client (httpx).

Only the handful of methods the dispatch engine and response ingestion need:
``users.list``, ``conversations.open``, ``chat.postMessage`` and posting to an
interaction's ``response_url``. Slack failures surface as ``SlackApiError``;
HTTP 429 or ``ratelimited`` surfaces as ``SlackRateLimitedError``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from fastfriends.errors import SlackApiError, SlackError, SlackRateLimitedError
from fastfriends.models.slack import SlackMember

logger = logging.getLogger(__name__)

SLACK_API_BASE_URL = "https://slack.com/api"
USERS_LIST_PAGE_SIZE = 200


def _retry_after(resp: httpx.Response) -> float | None:
    raw = resp.headers.get("Retry-After")
    try:
        return float(raw) if raw is not None else None
    except ValueError:
        return None


class SlackClient:
    """Thin async wrapper over the Slack Web API.

    Usage:
        async with SlackClient() as slack:
            members = await slack.list_members(token)
    """

    def __init__(
        self,
        base_url: str = SLACK_API_BASE_URL,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/",
            timeout=httpx.Timeout(timeout, connect=5.0),
            transport=transport,
        )

    async def __aenter__(self) -> SlackClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _call(
        self,
        method: str,
        token: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}"}
        try:
            if json is not None:
                resp = await self._http.post(method, json=json, headers=headers)
            else:
                resp = await self._http.get(method, params=params, headers=headers)
        except httpx.HTTPError as exc:
            raise SlackError(f"{method} transport error: {exc}") from exc

        if resp.status_code == 429:
            raise SlackRateLimitedError(method, _retry_after(resp))
        if resp.status_code >= 400:
            raise SlackApiError(method, f"http_{resp.status_code}")

        data: dict[str, Any] = resp.json()
        if not data.get("ok"):
            error = str(data.get("error", "unknown_error"))
            if error == "ratelimited":
                raise SlackRateLimitedError(method, _retry_after(resp))
            raise SlackApiError(method, error)
        return data

    async def list_members(self, token: str) -> list[SlackMember]:
        """Return every member of the workspace, following pagination cursors."""
        members: list[SlackMember] = []
        cursor = ""
        while True:
            params: dict[str, Any] = {"limit": USERS_LIST_PAGE_SIZE}
            if cursor:
                params["cursor"] = cursor
            data = await self._call("users.list", token, params=params)
            members.extend(SlackMember.model_validate(m) for m in data.get("members", []))
            cursor = (data.get("response_metadata") or {}).get("next_cursor", "")
            if not cursor:
                return members

    async def open_direct_channel(self, token: str, user_id: str) -> str:
        data = await self._call("conversations.open", token, json={"users": user_id})
        return str(data["channel"]["id"])

    async def post_message(self, token: str, channel_id: str, payload: dict[str, Any]) -> str:
        """Post *payload* (blocks, text, metadata) to *channel_id*; return the message ``ts``."""
        data = await self._call("chat.postMessage", token, json={"channel": channel_id, **payload})
        return str(data["ts"])

    async def post_follow_up(self, response_url: str, text: str) -> None:
        """Send an ephemeral follow-up through an interaction's ``response_url``."""
        try:
            resp = await self._http.post(
                response_url,
                json={"response_type": "ephemeral", "replace_original": False, "text": text},
            )
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise SlackError(f"response_url post failed: {exc}") from exc
