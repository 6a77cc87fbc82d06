# Context data model.
#
# ContextCache and its reference hierarchy are loaded from the cache file and
# never mutated; a refresh replaces the whole object. The Active* classes are
# per-request inputs to the dynamic prompt block and are never persisted.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


def _state_label(state: Any) -> str:
    """Shortcut returns states either as plain strings or as {type, name} objects."""
    if isinstance(state, dict):
        return state.get("type") or state.get("name") or "unknown"
    if isinstance(state, str) and state:
        return state
    return "unknown"


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


# ============================================================================
# Cached reference material
# ============================================================================


@dataclass(frozen=True)
class ReferenceStory:
    name: str
    description: str = ""
    story_type: str | None = None
    estimate: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "story_type": self.story_type,
            "estimate": self.estimate,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReferenceStory:
        return cls(
            name=data.get("name", ""),
            description=data.get("description") or "",
            story_type=data.get("story_type"),
            estimate=data.get("estimate"),
        )


@dataclass(frozen=True)
class ReferenceEpic:
    name: str
    description: str = ""
    stories: tuple[ReferenceStory, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "stories": [s.to_dict() for s in self.stories],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReferenceEpic:
        return cls(
            name=data.get("name", ""),
            description=data.get("description") or "",
            stories=tuple(ReferenceStory.from_dict(s) for s in data.get("stories") or []),
        )


@dataclass(frozen=True)
class ReferenceObjective:
    """A completed objective used as a writing-style example."""

    id: int
    title: str
    description: str = ""
    epics: tuple[ReferenceEpic, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "epics": [e.to_dict() for e in self.epics],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReferenceObjective:
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            description=data.get("description") or "",
            epics=tuple(ReferenceEpic.from_dict(e) for e in data.get("epics") or []),
        )


@dataclass(frozen=True)
class ContextCache:
    """Snapshot of slow-changing team context, written by a refresh."""

    refreshed_at: datetime
    default_workflow_state_id: int | None = None
    sdlc_sop: str = ""
    story_template: str = ""
    epic_template: str = ""
    objective_template: str = ""
    reference_objectives: tuple[ReferenceObjective, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "refreshed_at": self.refreshed_at.isoformat(),
            "default_workflow_state_id": self.default_workflow_state_id,
            "sdlc_sop": self.sdlc_sop,
            "story_template": self.story_template,
            "epic_template": self.epic_template,
            "objective_template": self.objective_template,
            "reference_objectives": [r.to_dict() for r in self.reference_objectives],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContextCache:
        return cls(
            refreshed_at=_parse_timestamp(data["refreshed_at"]),
            default_workflow_state_id=data.get("default_workflow_state_id"),
            sdlc_sop=data.get("sdlc_sop") or "",
            story_template=data.get("story_template") or "",
            epic_template=data.get("epic_template") or "",
            objective_template=data.get("objective_template") or "",
            reference_objectives=tuple(
                ReferenceObjective.from_dict(r) for r in data.get("reference_objectives") or []
            ),
        )

    def reference_titles(self) -> dict[int, str]:
        return {ref.id: ref.title for ref in self.reference_objectives}


@dataclass(frozen=True)
class CacheStatus:
    """Absence and staleness are reported independently."""

    exists: bool
    refreshed_at: datetime | None
    is_stale: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "exists": self.exists,
            "refreshed_at": self.refreshed_at.isoformat() if self.refreshed_at else None,
            "is_stale": self.is_stale,
        }


# ============================================================================
# Per-request dynamic inputs
# ============================================================================


@dataclass
class KeyResult:
    id: int | str
    name: str
    type: str = "boolean"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> KeyResult:
        return cls(id=data.get("id", "?"), name=data.get("name", ""), type=data.get("type") or "")


@dataclass
class EpicSummary:
    """An epic inside the active objective, with its story completion counts."""

    id: int
    name: str
    state: str = "unknown"
    completed: bool = False
    total_stories: int = 0
    completed_stories: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EpicSummary:
        stories = data.get("stories") or []
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            state=_state_label(data.get("state")),
            completed=bool(data.get("completed")),
            total_stories=len(stories),
            completed_stories=sum(1 for s in stories if s.get("completed")),
        )


@dataclass
class ActiveObjective:
    id: int
    name: str
    description: str = ""
    state: str = "unknown"
    key_results: list[KeyResult] = field(default_factory=list)
    epics: list[EpicSummary] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ActiveObjective:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            description=data.get("description") or "",
            state=_state_label(data.get("state")),
            key_results=[KeyResult.from_dict(kr) for kr in data.get("key_results") or []],
            epics=[EpicSummary.from_dict(e) for e in data.get("epics") or []],
        )

    def first_open_epic(self) -> EpicSummary | None:
        """First epic in list order that is not completed."""
        return next((e for e in self.epics if not e.completed), None)


@dataclass
class ActiveEpic:
    id: int
    name: str
    state: str = "unknown"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ActiveEpic:
        return cls(id=data["id"], name=data.get("name", ""), state=_state_label(data.get("state")))

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "state": self.state}


@dataclass
class ActiveStory:
    id: int
    name: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ActiveStory:
        return cls(id=data["id"], name=data.get("name", ""))


@dataclass
class PullRequest:
    number: int
    title: str
    user: str | None = None


@dataclass
class Issue:
    number: int
    title: str


@dataclass
class ActiveRepo:
    """Snapshot of a GitHub repository attached to the conversation."""

    full_name: str
    owner: str = ""
    repo: str = ""
    description: str | None = None
    readme_excerpt: str | None = None
    open_prs: list[PullRequest] = field(default_factory=list)
    open_issues: list[Issue] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "owner": self.owner,
            "repo": self.repo,
            "full_name": self.full_name,
            "description": self.description,
            "readme": self.readme_excerpt,
            "open_prs": [
                {"number": p.number, "title": p.title, "user": p.user} for p in self.open_prs
            ],
            "open_issues": [{"number": i.number, "title": i.title} for i in self.open_issues],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ActiveRepo:
        return cls(
            full_name=data.get("full_name") or f"{data.get('owner', '')}/{data.get('repo', '')}",
            owner=data.get("owner", ""),
            repo=data.get("repo", ""),
            description=data.get("description"),
            readme_excerpt=data.get("readme_excerpt", data.get("readme")),
            open_prs=[
                PullRequest(number=p["number"], title=p.get("title", ""), user=p.get("user"))
                for p in data.get("open_prs") or []
            ],
            open_issues=[
                Issue(number=i["number"], title=i.get("title", ""))
                for i in data.get("open_issues") or []
            ],
        )
