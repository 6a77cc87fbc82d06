# Draft handler — applies parsed replies and draft actions to a WorkingContext.
#
#   apply_reply(parsed)   context-epic signal → fetch epic, make it active
#   create(draft)         "create this draft in the tracker"
#   load_objective(ref)   fetch an objective with its epics, make it active

from __future__ import annotations

import logging

from product_helper.chat.state import WorkingContext
from product_helper.context.models import ActiveEpic, ActiveObjective, ActiveStory
from product_helper.drafts.creation import build_creation_request, submit
from product_helper.drafts.markers import DraftKind, ParsedReply, Segment
from product_helper.integrations.shortcut import ShortcutClient, parse_objective_id

logger = logging.getLogger(__name__)


class DraftHandler:
    def __init__(
        self,
        tracker: ShortcutClient,
        context: WorkingContext | None = None,
        default_workflow_state_id: int | None = None,
    ):
        self.tracker = tracker
        self.context = context or WorkingContext()
        self.default_workflow_state_id = default_workflow_state_id

    async def activate_epic(self, epic_id: int) -> ActiveEpic:
        """Fetch an epic and make it the active epic (clears the active story)."""
        data = await self.tracker.get_epic(epic_id)
        epic = ActiveEpic.from_dict(data)
        self.context.set_epic(epic)
        logger.info("Active epic: %s (%s)", epic.name, epic.id)
        return epic

    async def apply_reply(self, parsed: ParsedReply) -> ActiveEpic | None:
        """Honor the reply's context-epic signal, if any. Called once per reply."""
        if parsed.activate_epic_id is None:
            return None
        return await self.activate_epic(parsed.activate_epic_id)

    async def load_objective(self, ref: str | int) -> ActiveObjective:
        """Parse an objective id/URL, fetch it with context and make it active."""
        objective_id = parse_objective_id(ref)
        data = await self.tracker.get_objective_with_context(objective_id)
        objective = ActiveObjective.from_dict(data)
        self.context.set_objective(objective)
        logger.info("Active objective: %s (%s)", objective.name, objective.id)
        return objective

    async def create(self, draft: Segment) -> dict:
        """Create a draft in the tracker; new epics/stories become the active ones."""
        request = build_creation_request(
            draft,
            objective=self.context.objective,
            epic=self.context.epic,
            default_workflow_state_id=self.default_workflow_state_id,
        )
        created = await submit(self.tracker, request)

        if request.kind is DraftKind.EPIC:
            self.context.set_epic(ActiveEpic.from_dict(created))
        elif request.kind is DraftKind.STORY:
            epic = self.context.epic
            if epic is not None and request.payload.get("epic_id") == epic.id:
                self.context.set_story(ActiveStory.from_dict(created))
            else:
                logger.info("Story %s created outside the active epic", created.get("id"))
        return created
