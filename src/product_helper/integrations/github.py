"""GitHub repository metadata client.

Fetches just enough about a repository to ground planning conversations:
descriptor, the ten most recently updated open PRs and issues, and a short
README excerpt.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import re
from typing import Any

import httpx

from product_helper.config import Settings
from product_helper.context.models import ActiveRepo, Issue, PullRequest
from product_helper.errors import UpstreamServiceError, UserInputError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.github.com"
MAX_ITEMS = 10
README_EXCERPT_CHARS = 800

_REPO_URL_RE = re.compile(r"github\.com/([^/]+)/([^/\s]+)")


def parse_repo_input(text: str) -> tuple[str, str]:
    """Parse a GitHub URL or ``owner/repo`` into ``(owner, repo)``."""
    trimmed = (text or "").strip()
    match = _REPO_URL_RE.search(trimmed)
    if match:
        repo = match.group(2)
        if repo.endswith(".git"):
            repo = repo[: -len(".git")]
        return match.group(1), repo
    parts = trimmed.split("/")
    if len(parts) == 2 and parts[0] and parts[1]:
        return parts[0], parts[1]
    raise UserInputError("Enter a GitHub URL or owner/repo", field="repo")


class GitHubClient:
    """Async read-only client for the GitHub REST API."""

    def __init__(
        self,
        token: str | None = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/vnd.github+json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> GitHubClient:
        return cls(
            settings.github_token,
            base_url=settings.github_base_url,
            timeout=settings.request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, params: dict | None = None) -> Any:
        try:
            resp = await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            raise UpstreamServiceError("GitHub", None, str(e), "GET", path) from e
        if resp.is_error:
            raise UpstreamServiceError("GitHub", resp.status_code, resp.text, "GET", path)
        return resp.json()

    async def _get_readme(self, owner: str, repo: str) -> str | None:
        try:
            data = await self._get(f"/repos/{owner}/{repo}/readme")
        except UpstreamServiceError as e:
            logger.debug("No README for %s/%s: %s", owner, repo, e.status)
            return None
        content = data.get("content") if isinstance(data, dict) else None
        if not content:
            return None
        try:
            text = base64.b64decode(content).decode("utf-8", errors="replace")
        except (binascii.Error, ValueError):
            logger.warning("README for %s/%s is not valid base64", owner, repo)
            return None
        return text[:README_EXCERPT_CHARS]

    async def get_repo_context(self, owner: str, repo: str) -> ActiveRepo:
        listing = {"state": "open", "per_page": MAX_ITEMS, "sort": "updated"}
        repo_data, prs, issues, readme = await asyncio.gather(
            self._get(f"/repos/{owner}/{repo}"),
            self._get(f"/repos/{owner}/{repo}/pulls", params=listing),
            self._get(f"/repos/{owner}/{repo}/issues", params=listing),
            self._get_readme(owner, repo),
        )

        return ActiveRepo(
            owner=owner,
            repo=repo,
            full_name=repo_data.get("full_name") or f"{owner}/{repo}",
            description=repo_data.get("description") or None,
            readme_excerpt=readme,
            open_prs=[
                PullRequest(
                    number=pr["number"],
                    title=pr.get("title", ""),
                    user=(pr.get("user") or {}).get("login"),
                )
                for pr in prs[:MAX_ITEMS]
            ],
            open_issues=[
                Issue(number=i["number"], title=i.get("title", ""))
                for i in issues
                if not i.get("pull_request")
            ][:MAX_ITEMS],
        )
