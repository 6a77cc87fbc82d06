# Tests for the HTTP API.
#
# Upstream clients are replaced with mocks passed to create_app; the cache and
# library files live in the per-test data dir.

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from product_helper.api import create_app
from product_helper.context.cache import save_cache
from product_helper.context.models import ActiveRepo, ContextCache
from product_helper.errors import UpstreamServiceError


@pytest.fixture
def tracker():
    mock = MagicMock()
    mock.aclose = AsyncMock()
    mock.get_epic = AsyncMock(
        return_value={"id": 42, "name": "Billing", "state": "started", "description": "long"}
    )
    mock.get_objective_with_context = AsyncMock(return_value={"id": 500, "name": "Grow"})
    mock.create_story = AsyncMock(side_effect=lambda body: {"id": 1, **body})
    mock.create_epic = AsyncMock(side_effect=lambda body: {"id": 2, **body})
    mock.create_objective = AsyncMock(side_effect=lambda body: {"id": 3, **body})
    mock.get_objective = AsyncMock(return_value={"id": 500, "description": "# OVERVIEW\nx"})
    mock.update_objective = AsyncMock(side_effect=lambda oid, body: {"id": oid, **body})
    return mock


@pytest.fixture
def github():
    mock = MagicMock()
    mock.aclose = AsyncMock()
    mock.get_repo_context = AsyncMock(
        return_value=ActiveRepo(full_name="acme/web", owner="acme", repo="web")
    )
    return mock


@pytest.fixture
def invoker():
    mock = MagicMock()
    mock.chat = AsyncMock(
        return_value=(
            "<!-- context:epic id:42 -->\nHere you go.\n\n<!-- draft:story -->\n## [UI] - X"
        )
    )
    mock.summarize_transcript = AsyncMock(return_value="- Decisions")
    return mock


@pytest.fixture
def client(settings, tracker, github, invoker):
    app = create_app(settings, tracker=tracker, github=github, invoker=invoker)
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


# ============================================================================
# Context
# ============================================================================


class TestContextEndpoints:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    def test_context_status_absent(self, client):
        assert client.get("/api/context-status").json() == {
            "exists": False,
            "refreshed_at": None,
            "is_stale": True,
        }

    def test_context_status_stale(self, client, settings):
        save_cache(
            ContextCache(refreshed_at=datetime.now(tz=UTC) - timedelta(days=8)),
            settings.cache_path,
        )
        data = client.get("/api/context-status").json()
        assert data["exists"] is True
        assert data["is_stale"] is True

    def test_bootstrap(self, client, settings, sample_cache):
        async def fake_refresh(tracker, s):
            save_cache(sample_cache, s.cache_path)
            return sample_cache

        with patch("product_helper.api.routes.refresh_cache", side_effect=fake_refresh):
            resp = client.post("/api/bootstrap")

        assert resp.status_code == 200
        assert resp.json()["success"] is True
        assert resp.json()["exists"] is True

    def test_reference_library_edit(self, client, settings, sample_cache):
        save_cache(sample_cache, settings.cache_path)
        refresh = AsyncMock()
        client.app.state.library._rebuild = refresh

        resp = client.post("/api/reference-library/add", json={"objective_id": "101"})

        assert resp.status_code == 200
        assert resp.json()["reference_objectives"] == [{"id": 101, "name": "Investor onboarding"}]
        refresh.assert_awaited_once()

        resp = client.get("/api/reference-library")
        assert resp.json() == {
            "reference_objectives": [{"id": 101, "name": "Investor onboarding"}]
        }

    def test_reference_library_requires_id(self, client):
        resp = client.post("/api/reference-library/remove", json={})
        assert resp.status_code == 400
        assert resp.json()["field"] == "objective_id"


# ============================================================================
# Completion
# ============================================================================


class TestChatEndpoint:
    def test_chat_returns_parsed_reply(self, client, settings, sample_cache, invoker):
        save_cache(sample_cache, settings.cache_path)
        resp = client.post(
            "/api/chat",
            json={
                "messages": [{"role": "user", "content": "Draft a story"}],
                "active_epic": {"id": 42, "name": "Billing", "state": "started"},
                "active_repos": [{"owner": "acme", "repo": "web", "full_name": "acme/web"}],
                "model": "claude-sonnet-4-6",
            },
        )

        assert resp.status_code == 200
        data = resp.json()
        assert data["response"].startswith("<!-- context:epic id:42 -->")
        assert data["activate_epic_id"] == 42
        assert data["display_text"].startswith("Here you go.")
        assert [s["type"] for s in data["segments"]] == ["prose", "draft"]
        assert data["segments"][1]["title"] == "[UI] - X"

        kwargs = invoker.chat.await_args.kwargs
        assert kwargs["active_epic"].id == 42
        assert kwargs["active_repos"][0].full_name == "acme/web"
        assert kwargs["model"] == "claude-sonnet-4-6"

    def test_chat_requires_messages(self, client, invoker):
        resp = client.post("/api/chat", json={"messages": []})
        assert resp.status_code == 400
        invoker.chat.assert_not_awaited()

    @pytest.mark.parametrize("field", ["active_objective", "active_epic"])
    def test_active_context_requires_id(self, client, invoker, field):
        resp = client.post(
            "/api/chat",
            json={"messages": [{"role": "user", "content": "hi"}], field: {"name": "No id"}},
        )

        assert resp.status_code == 400
        assert resp.json()["field"] == f"{field}.id"
        invoker.chat.assert_not_awaited()

    def test_upstream_error_is_502(self, client, settings, sample_cache, invoker):
        save_cache(sample_cache, settings.cache_path)
        invoker.chat.side_effect = UpstreamServiceError("Anthropic", 529, "overloaded")

        resp = client.post("/api/chat", json={"messages": [{"role": "user", "content": "hi"}]})

        assert resp.status_code == 502
        assert resp.json()["status"] == 529
        assert "overloaded" in resp.json()["error"]

    def test_summarize_transcript(self, client):
        resp = client.post("/api/summarize-transcript", json={"transcript": "Alice: hi"})
        assert resp.json() == {"summary": "- Decisions"}

    def test_summarize_requires_transcript(self, client):
        resp = client.post("/api/summarize-transcript", json={"transcript": " "})
        assert resp.status_code == 400
        assert resp.json()["field"] == "transcript"

    def test_unexpected_error_is_500(self, client, invoker):
        invoker.summarize_transcript.side_effect = RuntimeError("kaboom")
        resp = client.post("/api/summarize-transcript", json={"transcript": "x"})
        assert resp.status_code == 500


# ============================================================================
# Lookups and creation
# ============================================================================


class TestLookups:
    def test_repo(self, client, github):
        resp = client.get("/api/repo/acme/web")
        assert resp.json()["full_name"] == "acme/web"
        github.get_repo_context.assert_awaited_once_with("acme", "web")

    def test_objective(self, client, tracker):
        assert client.get("/api/objective/500").json() == {"id": 500, "name": "Grow"}
        tracker.get_objective_with_context.assert_awaited_once_with(500)

    def test_objective_bad_id(self, client):
        assert client.get("/api/objective/abc").status_code == 400

    def test_epic_projection(self, client):
        assert client.get("/api/epic/42").json() == {
            "id": 42,
            "name": "Billing",
            "state": "started",
        }


class TestCreate:
    def test_story_uses_cached_workflow_state(self, client, settings, sample_cache, tracker):
        save_cache(sample_cache, settings.cache_path)
        resp = client.post("/api/create/story", json={"name": "[UI] - X", "epic_id": 42})

        assert resp.status_code == 200
        payload = tracker.create_story.await_args.args[0]
        assert payload["epic_id"] == 42
        assert payload["workflow_state_id"] == sample_cache.default_workflow_state_id
        assert payload["story_type"] == "feature"

    def test_story_requires_name(self, client, tracker):
        resp = client.post("/api/create/story", json={"description": "no name"})
        assert resp.status_code == 400
        assert resp.json()["field"] == "name"
        tracker.create_story.assert_not_awaited()

    def test_epic_links_objective(self, client, tracker):
        client.post("/api/create/epic", json={"name": "Payments", "objective_id": 500})
        assert tracker.create_epic.await_args.args[0]["objective_ids"] == [500]

    def test_objective(self, client):
        resp = client.post("/api/create/objective", json={"name": "Grow", "description": "d"})
        assert resp.json()["objective"]["id"] == 3

    def test_milestone_splices(self, client, tracker):
        resp = client.post(
            "/api/create/milestone",
            json={"objective_id": 500, "name": "Beta", "description": "Ten partners"},
        )

        assert resp.status_code == 200
        tracker.update_objective.assert_awaited_once_with(
            500,
            {
                "description": (
                    "# OVERVIEW\nx\n\n# MILESTONES\n#### COMMITTED MILESTONES\n\n"
                    "- [ ] Beta\n  Ten partners"
                )
            },
        )

    def test_milestone_requires_objective(self, client, tracker):
        resp = client.post("/api/create/milestone", json={"name": "Beta"})
        assert resp.status_code == 400
        tracker.get_objective.assert_not_awaited()
