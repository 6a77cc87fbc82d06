# Context cache refresh — one-shot rebuild of the cache from Shortcut.
#
# Independent fetches run in parallel (the four reference documents, the story
# lists of one objective's sampled epics); dependent ones run in sequence
# (objective → its epics → their stories). Optional sub-fetches that fail are
# logged and replaced with an empty value; only document fetches abort.

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime

import httpx

from product_helper.config import Settings
from product_helper.context.cache import save_cache
from product_helper.context.library import ReferenceLibrary
from product_helper.context.models import (
    ContextCache,
    ReferenceEpic,
    ReferenceObjective,
    ReferenceStory,
)
from product_helper.errors import UpstreamServiceError
from product_helper.integrations.shortcut import ShortcutClient

logger = logging.getLogger(__name__)

# Failures of optional sub-fetches; logged and replaced with an empty value.
_FETCH_ERRORS = (UpstreamServiceError, httpx.HTTPError)

_DOC_LABELS = {
    "sdlc_sop": "SDLC SOP",
    "story_template": "Story Template",
    "epic_template": "Epic Template",
    "objective_template": "Objective Template",
}


async def fetch_document_text(tracker: ShortcutClient, doc_id: str, label: str) -> str:
    logger.info("Fetching %s...", label)
    doc = await tracker.get_document(doc_id)
    return doc.get("content_markdown") or doc.get("content") or doc.get("text") or ""


async def fetch_reference_objective(
    tracker: ShortcutClient,
    objective_id: int,
    epics_per_objective: int = 2,
    stories_per_epic: int = 2,
) -> ReferenceObjective:
    """Fetch one reference objective with a small sample of its epics and stories."""
    logger.info("Fetching reference objective %s...", objective_id)
    objective = await tracker.get_objective(objective_id)

    epics: list[dict] = []
    try:
        epics = await tracker.list_epics_for_objective(objective_id)
    except _FETCH_ERRORS as e:
        logger.warning("Could not fetch epics for objective %s: %s", objective_id, e)

    async def sample_epic(epic: dict) -> ReferenceEpic:
        stories: list[ReferenceStory] = []
        try:
            all_stories = await tracker.list_stories_for_epic(epic["id"])
            stories = [ReferenceStory.from_dict(s) for s in all_stories[:stories_per_epic]]
        except _FETCH_ERRORS as e:
            logger.warning("Could not fetch stories for epic %s: %s", epic["id"], e)
        return ReferenceEpic(
            name=epic.get("name", ""),
            description=epic.get("description") or "",
            stories=tuple(stories),
        )

    sampled = await asyncio.gather(*(sample_epic(e) for e in epics[:epics_per_objective]))

    return ReferenceObjective(
        id=objective["id"],
        title=objective.get("name", ""),
        description=objective.get("description") or "",
        epics=tuple(sampled),
    )


async def fetch_default_workflow_state_id(tracker: ShortcutClient) -> int | None:
    """First workflow's first 'unstarted' state, else its first state."""
    try:
        workflows = await tracker.list_workflows()
    except _FETCH_ERRORS as e:
        logger.warning("Could not fetch workflows: %s", e)
        return None
    if not workflows:
        return None

    workflow = workflows[0]
    states = workflow.get("states") or []
    state = next((s for s in states if s.get("type") == "unstarted"), None)
    if state is None and states:
        state = states[0]
    if state is None:
        return None
    logger.info(
        "Default workflow: %r → state %r (ID: %s)", workflow.get("name"), state.get("name"),
        state.get("id"),
    )
    return state.get("id")


async def refresh_cache(
    tracker: ShortcutClient,
    settings: Settings,
    reference_ids: list[int] | None = None,
) -> ContextCache:
    """Rebuild the context cache from Shortcut and write it to ``settings.cache_path``.

    Args:
        tracker: Shortcut client.
        settings: Supplies document ids, sampling sizes and the cache path.
        reference_ids: Reference objective ids; defaults to the reference library.

    Raises:
        UpstreamServiceError: If one of the reference documents cannot be fetched.
        ConfigurationError: If no Shortcut token is configured.
    """
    if reference_ids is None:
        reference_ids = ReferenceLibrary(settings.library_path).load()

    logger.info("Refreshing context cache (%d reference objectives)", len(reference_ids))

    doc_ids = settings.doc_ids
    texts = await asyncio.gather(
        *(fetch_document_text(tracker, doc_ids[key], label) for key, label in _DOC_LABELS.items())
    )
    documents = dict(zip(_DOC_LABELS, texts, strict=True))

    references: list[ReferenceObjective] = []
    for objective_id in reference_ids:
        try:
            references.append(
                await fetch_reference_objective(
                    tracker,
                    objective_id,
                    epics_per_objective=settings.reference_epics_per_objective,
                    stories_per_epic=settings.reference_stories_per_epic,
                )
            )
        except _FETCH_ERRORS as e:
            logger.warning("Could not fetch reference objective %s: %s", objective_id, e)

    cache = ContextCache(
        refreshed_at=datetime.now(tz=UTC),
        default_workflow_state_id=await fetch_default_workflow_state_id(tracker),
        reference_objectives=tuple(references),
        **documents,
    )
    save_cache(cache, settings.cache_path)
    logger.info(
        "Cache refreshed. Reference objectives: %s",
        ", ".join(r.title for r in references) or "(none)",
    )
    return cache
