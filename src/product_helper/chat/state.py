"""Working context — the active objective, epic and story of a session.

The three form a containment chain (objective ⊇ epic ⊇ story). Every
transition lives here so the cascade is enforced in one place: replacing or
clearing an entity clears everything below it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from product_helper.context.models import ActiveEpic, ActiveObjective, ActiveStory


@dataclass
class WorkingContext:
    objective: ActiveObjective | None = None
    epic: ActiveEpic | None = None
    story: ActiveStory | None = None

    def set_objective(self, objective: ActiveObjective | None) -> None:
        self.objective = objective
        self.epic = None
        self.story = None

    def set_epic(self, epic: ActiveEpic | None) -> None:
        self.epic = epic
        self.story = None

    def set_story(self, story: ActiveStory | None) -> None:
        self.story = story

    def clear_objective(self) -> None:
        self.set_objective(None)

    def clear_epic(self) -> None:
        self.set_epic(None)

    def clear_story(self) -> None:
        self.set_story(None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "objective": (
                {"id": self.objective.id, "name": self.objective.name} if self.objective else None
            ),
            "epic": self.epic.to_dict() if self.epic else None,
            "story": {"id": self.story.id, "name": self.story.name} if self.story else None,
        }
