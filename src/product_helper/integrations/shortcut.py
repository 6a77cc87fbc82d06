"""Shortcut (project-management) REST client.

Plain request/response wrappers over the v3 API. No retries: any non-2xx
response is raised as :class:`UpstreamServiceError` with status and body intact.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any

import httpx

from product_helper.config import Settings
from product_helper.errors import ConfigurationError, UpstreamServiceError, UserInputError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.app.shortcut.com/api/v3"
CONTEXT_STORIES_PER_EPIC = 10

_OBJECTIVE_URL_RE = re.compile(r"objectives?/(\d+)")
_EPIC_URL_RE = re.compile(r"epics?/(\d+)")
_LEADING_INT_RE = re.compile(r"^\d+")


def _parse_id(text: str, url_re: re.Pattern[str]) -> int | None:
    trimmed = (text or "").strip()
    match = url_re.search(trimmed)
    if match:
        return int(match.group(1))
    match = _LEADING_INT_RE.match(trimmed)
    return int(match.group(0)) if match else None


def parse_objective_id(text: str | int) -> int:
    """Accept a Shortcut objective URL or a bare id."""
    if isinstance(text, int):
        return text
    objective_id = _parse_id(text, _OBJECTIVE_URL_RE)
    if objective_id is None:
        raise UserInputError("Enter a valid Shortcut objective ID or URL", field="objective_id")
    return objective_id


def parse_epic_id(text: str | int) -> int:
    """Accept a Shortcut epic URL or a bare id."""
    if isinstance(text, int):
        return text
    epic_id = _parse_id(text, _EPIC_URL_RE)
    if epic_id is None:
        raise UserInputError("Enter a valid Shortcut epic ID or URL", field="epic_id")
    return epic_id


class ShortcutClient:
    """Async client for the Shortcut v3 API."""

    def __init__(
        self,
        token: str | None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> ShortcutClient:
        return cls(
            settings.shortcut_api_token,
            base_url=settings.shortcut_base_url,
            timeout=settings.request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> ShortcutClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        if not self._token:
            raise ConfigurationError("SHORTCUT_API_TOKEN is not set")
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers={"Content-Type": "application/json", "Shortcut-Token": self._token},
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def _request(self, method: str, path: str, body: dict | None = None) -> Any:
        client = self._get_client()
        try:
            resp = await client.request(method, path, json=body)
        except httpx.HTTPError as e:
            raise UpstreamServiceError("Shortcut", None, str(e), method, path) from e
        if resp.is_error:
            raise UpstreamServiceError("Shortcut", resp.status_code, resp.text, method, path)
        return resp.json()

    # --- Documents ---

    async def get_document(self, doc_id: str) -> dict:
        return await self._request("GET", f"/documents/{doc_id}")

    # --- Objectives ---

    async def get_objective(self, objective_id: int) -> dict:
        return await self._request("GET", f"/objectives/{objective_id}")

    async def create_objective(self, payload: dict) -> dict:
        return await self._request("POST", "/objectives", payload)

    async def update_objective(self, objective_id: int, payload: dict) -> dict:
        return await self._request("PUT", f"/objectives/{objective_id}", payload)

    # --- Epics ---

    async def get_epic(self, epic_id: int) -> dict:
        return await self._request("GET", f"/epics/{epic_id}")

    async def list_epics_for_objective(self, objective_id: int) -> list[dict]:
        results = await self._request("GET", f"/objectives/{objective_id}/epics")
        return results if isinstance(results, list) else []

    async def create_epic(self, payload: dict) -> dict:
        return await self._request("POST", "/epics", payload)

    async def update_epic(self, epic_id: int, payload: dict) -> dict:
        return await self._request("PUT", f"/epics/{epic_id}", payload)

    # --- Stories ---

    async def list_stories_for_epic(self, epic_id: int) -> list[dict]:
        results = await self._request("GET", f"/epics/{epic_id}/stories")
        return results if isinstance(results, list) else []

    async def create_story(self, payload: dict) -> dict:
        return await self._request("POST", "/stories", payload)

    # --- Workflows ---

    async def list_workflows(self) -> list[dict]:
        results = await self._request("GET", "/workflows")
        return results if isinstance(results, list) else []

    # --- Active objective context ---

    async def get_objective_with_context(self, objective_id: int) -> dict:
        """Objective plus its non-archived epics, each with a sample of stories.

        A failing epic or story listing degrades to an empty list.
        """
        objective = await self.get_objective(objective_id)

        epics: list[dict] = []
        try:
            epics = [e for e in await self.list_epics_for_objective(objective_id)
                     if not e.get("archived")]
        except UpstreamServiceError as e:
            logger.warning("Could not fetch epics for objective %s: %s", objective_id, e)

        async def with_stories(epic: dict) -> dict:
            stories: list[dict] = []
            try:
                all_stories = await self.list_stories_for_epic(epic["id"])
                stories = [
                    {
                        "id": s.get("id"),
                        "name": s.get("name"),
                        "story_type": s.get("story_type"),
                        "estimate": s.get("estimate"),
                        "workflow_state_id": s.get("workflow_state_id"),
                        "completed": s.get("completed", False),
                    }
                    for s in all_stories[:CONTEXT_STORIES_PER_EPIC]
                ]
            except UpstreamServiceError as e:
                logger.warning("Could not fetch stories for epic %s: %s", epic["id"], e)
            return {
                "id": epic["id"],
                "name": epic.get("name"),
                "state": epic.get("state"),
                "description": epic.get("description"),
                "completed": epic.get("completed", False),
                "stories": stories,
            }

        epics_with_stories = await asyncio.gather(*(with_stories(e) for e in epics))

        return {
            "id": objective["id"],
            "name": objective.get("name"),
            "description": objective.get("description"),
            "state": objective.get("state"),
            "key_results": objective.get("key_results") or [],
            "epics": list(epics_with_stories),
        }
