"""Turning a draft block into a tracker write.

``build_creation_request`` is pure: it decides what to create and where, from
the draft and whatever objective/epic is active. ``submit`` performs the write.

Story routing precedence: the marker's ``epic_id`` attribute, then the active
epic, then the first non-completed epic of the active objective.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from product_helper.context.models import ActiveEpic, ActiveObjective
from product_helper.drafts.markers import DraftKind, Segment
from product_helper.drafts.milestones import format_milestone_entry, splice_milestone
from product_helper.errors import UserInputError
from product_helper.integrations.shortcut import ShortcutClient

logger = logging.getLogger(__name__)

DEFAULT_STORY_TYPE = "feature"


@dataclass
class CreationRequest:
    kind: DraftKind
    payload: dict[str, Any] = field(default_factory=dict)
    objective_id: int | None = None


def _details_without_title(body: str, title: str) -> str:
    """Body text minus the heading line that supplied the title."""
    lines = body.split("\n")
    for i, line in enumerate(lines):
        if line.lstrip().startswith("#") and line.lstrip("#").strip() == title:
            return "\n".join(lines[:i] + lines[i + 1 :]).strip()
    return body


def build_creation_request(
    draft: Segment,
    objective: ActiveObjective | None = None,
    epic: ActiveEpic | None = None,
    default_workflow_state_id: int | None = None,
) -> CreationRequest:
    """Build the tracker payload for a draft segment.

    Raises:
        UserInputError: For milestone drafts without an active objective, and
            for PRD drafts, which are exported rather than created.
    """
    if draft.kind is None:
        raise ValueError("prose segments cannot be created")

    title = draft.title
    body = draft.body

    if draft.kind is DraftKind.STORY:
        payload: dict[str, Any] = {
            "name": title,
            "description": body,
            "story_type": DEFAULT_STORY_TYPE,
        }
        epic_id = draft.epic_id
        if epic_id is None and epic is not None:
            epic_id = epic.id
        if epic_id is None and objective is not None:
            open_epic = objective.first_open_epic()
            epic_id = open_epic.id if open_epic else None
        if epic_id is not None:
            payload["epic_id"] = epic_id
        if default_workflow_state_id is not None:
            payload["workflow_state_id"] = default_workflow_state_id
        return CreationRequest(DraftKind.STORY, payload)

    if draft.kind is DraftKind.EPIC:
        payload = {"name": title, "description": body}
        if objective is not None:
            payload["objective_ids"] = [objective.id]
        return CreationRequest(DraftKind.EPIC, payload)

    if draft.kind is DraftKind.OBJECTIVE:
        return CreationRequest(DraftKind.OBJECTIVE, {"name": title, "description": body})

    if draft.kind is DraftKind.MILESTONE:
        if objective is None:
            raise UserInputError(
                "Load an objective first to create milestones", field="objective_id"
            )
        entry = format_milestone_entry(title, _details_without_title(body, title))
        return CreationRequest(
            DraftKind.MILESTONE, {"name": title, "entry": entry}, objective_id=objective.id
        )

    raise UserInputError(
        "PRD drafts can be copied or downloaded, not created in the tracker", field="draft_type"
    )


async def append_milestone(tracker: ShortcutClient, objective_id: int, entry: str) -> dict:
    """Splice ``entry`` into the objective's description and save it."""
    objective = await tracker.get_objective(objective_id)
    description = splice_milestone(objective.get("description") or "", entry)
    return await tracker.update_objective(objective_id, {"description": description})


async def submit(tracker: ShortcutClient, request: CreationRequest) -> dict:
    """Perform the tracker write for a creation request and return the created entity."""
    logger.info("Creating %s in Shortcut: %s", request.kind.value, request.payload.get("name"))
    if request.kind is DraftKind.STORY:
        return await tracker.create_story(request.payload)
    if request.kind is DraftKind.EPIC:
        return await tracker.create_epic(request.payload)
    if request.kind is DraftKind.OBJECTIVE:
        return await tracker.create_objective(request.payload)
    if request.kind is DraftKind.MILESTONE:
        return await append_milestone(tracker, request.objective_id, request.payload["entry"])
    raise UserInputError(f"Cannot create {request.kind.value} drafts", field="draft_type")
