# Product Helper API endpoints.
#
# FastAPI router serving the planning client:
#   GET  /health                        — liveness
#   GET  /context-status                — cache exists / refreshed_at / is_stale
#   POST /bootstrap                     — refresh the cache, then report status
#   POST /summarize-transcript          — meeting transcript → planning summary
#   POST /chat                          — one completion plus the parsed reply
#   GET  /repo/{owner}/{repo}           — GitHub repository snapshot
#   GET  /objective/{id}                — objective with epics and stories
#   GET  /epic/{id}                     — minimal {id, name, state}
#   POST /create/story|epic|objective   — create in Shortcut
#   POST /create/milestone              — splice into the objective description
#   GET  /reference-library             — reference objectives with titles
#   POST /reference-library/add|remove  — edit the library, then rebuild the cache
#
# Mount: app.include_router(router, prefix="/api")

from __future__ import annotations

import logging
from typing import Any, Literal

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from product_helper import __version__
from product_helper.config import Settings
from product_helper.context.cache import get_cache_status, load_cache
from product_helper.context.library import ReferenceLibrary
from product_helper.context.models import ActiveEpic, ActiveObjective, ActiveRepo
from product_helper.context.refresh import refresh_cache
from product_helper.drafts.creation import append_milestone
from product_helper.drafts.markers import parse_reply
from product_helper.drafts.milestones import format_milestone_entry
from product_helper.errors import UserInputError
from product_helper.integrations.github import GitHubClient
from product_helper.integrations.shortcut import (
    ShortcutClient,
    parse_epic_id,
    parse_objective_id,
)
from product_helper.llm.completion import CompletionInvoker

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Product Helper"])


# ============================================================================
# Dependencies
# ============================================================================


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_tracker(request: Request) -> ShortcutClient:
    return request.app.state.tracker


def get_github(request: Request) -> GitHubClient:
    return request.app.state.github


def get_invoker(request: Request) -> CompletionInvoker:
    return request.app.state.invoker


def get_library(request: Request) -> ReferenceLibrary:
    return request.app.state.library


# ============================================================================
# Request models
# ============================================================================


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    messages: list[ChatMessage] = Field(default_factory=list)
    active_objective: dict[str, Any] | None = None
    active_epic: dict[str, Any] | None = None
    transcript_summary: str | None = None
    active_repos: list[dict[str, Any]] = Field(default_factory=list)
    model: str | None = None


class TranscriptRequest(BaseModel):
    transcript: str = ""


class StoryRequest(BaseModel):
    name: str = ""
    description: str = ""
    epic_id: int | None = None
    story_type: str = "feature"
    workflow_state_id: int | None = None


class EpicRequest(BaseModel):
    name: str = ""
    description: str = ""
    objective_id: int | None = None


class ObjectiveRequest(BaseModel):
    name: str = ""
    description: str = ""


class MilestoneRequest(BaseModel):
    objective_id: int | str | None = None
    name: str = ""
    description: str = ""


class LibraryEditRequest(BaseModel):
    objective_id: int | str | None = None


def _require(value: Any, field: str) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise UserInputError(f"`{field}` is required", field=field)


# ============================================================================
# Context
# ============================================================================


@router.get("/health")
async def health() -> dict[str, Any]:
    return {"status": "ok", "version": __version__}


@router.get("/context-status")
async def context_status(settings: Settings = Depends(get_app_settings)) -> dict[str, Any]:
    status = get_cache_status(settings.cache_path, max_age_days=settings.cache_max_age_days)
    return status.to_dict()


@router.post("/bootstrap")
async def bootstrap(
    settings: Settings = Depends(get_app_settings),
    tracker: ShortcutClient = Depends(get_tracker),
) -> dict[str, Any]:
    """Rebuild the context cache from Shortcut and report the new status."""
    await refresh_cache(tracker, settings)
    status = get_cache_status(settings.cache_path, max_age_days=settings.cache_max_age_days)
    return {"success": True, **status.to_dict()}


@router.get("/reference-library")
async def get_reference_library(
    settings: Settings = Depends(get_app_settings),
    library: ReferenceLibrary = Depends(get_library),
) -> dict[str, Any]:
    return {"reference_objectives": library.references(load_cache(settings.cache_path))}


@router.post("/reference-library/add")
async def add_reference(
    request: LibraryEditRequest,
    settings: Settings = Depends(get_app_settings),
    library: ReferenceLibrary = Depends(get_library),
) -> dict[str, Any]:
    _require(request.objective_id, "objective_id")
    await library.add(parse_objective_id(request.objective_id))
    return {
        "success": True,
        "reference_objectives": library.references(load_cache(settings.cache_path)),
    }


@router.post("/reference-library/remove")
async def remove_reference(
    request: LibraryEditRequest,
    settings: Settings = Depends(get_app_settings),
    library: ReferenceLibrary = Depends(get_library),
) -> dict[str, Any]:
    _require(request.objective_id, "objective_id")
    await library.remove(parse_objective_id(request.objective_id))
    return {
        "success": True,
        "reference_objectives": library.references(load_cache(settings.cache_path)),
    }


# ============================================================================
# Completion
# ============================================================================


@router.post("/summarize-transcript")
async def summarize_transcript(
    request: TranscriptRequest,
    invoker: CompletionInvoker = Depends(get_invoker),
) -> dict[str, Any]:
    _require(request.transcript, "transcript")
    summary = await invoker.summarize_transcript(request.transcript)
    return {"summary": summary}


@router.post("/chat")
async def chat(
    request: ChatRequest,
    settings: Settings = Depends(get_app_settings),
    invoker: CompletionInvoker = Depends(get_invoker),
) -> dict[str, Any]:
    """Run one chat turn.

    The reply comes back verbatim as ``response`` and parsed: ``display_text``
    has the silent context marker stripped, ``segments`` splits it into prose
    and draft blocks, and ``activate_epic_id`` carries the context signal.
    """
    if not request.messages:
        raise UserInputError("`messages` is required", field="messages")
    if request.active_objective:
        _require(request.active_objective.get("id"), "active_objective.id")
    if request.active_epic:
        _require(request.active_epic.get("id"), "active_epic.id")

    reply = await invoker.chat(
        [m.model_dump() for m in request.messages],
        cache=load_cache(settings.cache_path),
        active_objective=(
            ActiveObjective.from_dict(request.active_objective)
            if request.active_objective
            else None
        ),
        transcript_summary=request.transcript_summary,
        active_repos=[ActiveRepo.from_dict(r) for r in request.active_repos],
        active_epic=ActiveEpic.from_dict(request.active_epic) if request.active_epic else None,
        model=request.model,
    )
    return {"response": reply, **parse_reply(reply).to_dict()}


# ============================================================================
# Lookups
# ============================================================================


@router.get("/repo/{owner}/{repo}")
async def get_repo(
    owner: str, repo: str, github: GitHubClient = Depends(get_github)
) -> dict[str, Any]:
    snapshot = await github.get_repo_context(owner, repo)
    return snapshot.to_dict()


@router.get("/objective/{objective_ref}")
async def get_objective(
    objective_ref: str, tracker: ShortcutClient = Depends(get_tracker)
) -> dict[str, Any]:
    return await tracker.get_objective_with_context(parse_objective_id(objective_ref))


@router.get("/epic/{epic_ref}")
async def get_epic(
    epic_ref: str, tracker: ShortcutClient = Depends(get_tracker)
) -> dict[str, Any]:
    data = await tracker.get_epic(parse_epic_id(epic_ref))
    return ActiveEpic.from_dict(data).to_dict()


# ============================================================================
# Creation
# ============================================================================


@router.post("/create/story")
async def create_story(
    request: StoryRequest,
    settings: Settings = Depends(get_app_settings),
    tracker: ShortcutClient = Depends(get_tracker),
) -> dict[str, Any]:
    _require(request.name, "name")
    payload: dict[str, Any] = {
        "name": request.name,
        "description": request.description,
        "story_type": request.story_type,
    }
    if request.epic_id is not None:
        payload["epic_id"] = request.epic_id

    workflow_state_id = request.workflow_state_id
    if workflow_state_id is None:
        cache = load_cache(settings.cache_path)
        workflow_state_id = cache.default_workflow_state_id if cache else None
    if workflow_state_id is not None:
        payload["workflow_state_id"] = workflow_state_id

    story = await tracker.create_story(payload)
    logger.info("Created story %s: %s", story.get("id"), request.name)
    return {"success": True, "story": story}


@router.post("/create/epic")
async def create_epic(
    request: EpicRequest, tracker: ShortcutClient = Depends(get_tracker)
) -> dict[str, Any]:
    _require(request.name, "name")
    payload: dict[str, Any] = {"name": request.name, "description": request.description}
    if request.objective_id is not None:
        payload["objective_ids"] = [request.objective_id]
    epic = await tracker.create_epic(payload)
    logger.info("Created epic %s: %s", epic.get("id"), request.name)
    return {"success": True, "epic": epic}


@router.post("/create/objective")
async def create_objective(
    request: ObjectiveRequest, tracker: ShortcutClient = Depends(get_tracker)
) -> dict[str, Any]:
    _require(request.name, "name")
    objective = await tracker.create_objective(
        {"name": request.name, "description": request.description}
    )
    logger.info("Created objective %s: %s", objective.get("id"), request.name)
    return {"success": True, "objective": objective}


@router.post("/create/milestone")
async def create_milestone(
    request: MilestoneRequest, tracker: ShortcutClient = Depends(get_tracker)
) -> dict[str, Any]:
    _require(request.objective_id, "objective_id")
    _require(request.name, "name")
    objective_id = parse_objective_id(request.objective_id)
    entry = format_milestone_entry(request.name, request.description)
    objective = await append_milestone(tracker, objective_id, entry)
    logger.info("Added milestone to objective %s: %s", objective_id, request.name)
    return {"success": True, "objective": objective, "milestone": request.name}
