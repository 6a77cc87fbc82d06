# Draft and context marker protocol.
#
# The model embeds HTML-comment markers in otherwise free-form replies:
#
#   <!-- draft:story -->                 opens a story draft
#   <!-- draft:story epic_id:12345 -->   story draft routed to epic 12345
#   <!-- draft:epic -->                  opens an epic draft
#   <!-- draft:objective -->             opens an objective draft
#   <!-- draft:prd -->                   opens a PRD draft
#   <!-- draft:milestone -->             opens a milestone draft
#   <!-- context:epic id:12345 -->       silent: make epic 12345 the active epic
#
# Markers are case-sensitive. Whitespace inside the comment and around the
# colons is tolerated; attribute values are runs of digits. Anything else that
# looks like a marker (unknown kind, attributes on a non-story draft) is not a
# marker and stays in the text as prose.
#
# Public API:
#   scan_reply(text) -> list[Segment]
#   extract_context_signal(text) -> ContextSignal
#   parse_reply(text) -> ParsedReply
#   extract_title(kind, raw_text) / clean_draft_body(raw_text)

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

DRAFT_MARKER_RE = re.compile(
    r"<!--\s*draft\s*:\s*"
    r"(?:"
    r"(?P<story>story)(?:\s+epic_id\s*:\s*(?P<epic_id>\d+))?"
    r"|(?P<kind>epic|objective|prd|milestone)"
    r")\s*-->"
)

CONTEXT_EPIC_RE = re.compile(r"<!--\s*context\s*:\s*epic\s+id\s*:\s*(\d+)\s*-->")

# A marker line plus the whitespace after it, for cleaning a draft body
_DRAFT_MARKER_WITH_TRAILING_WS_RE = re.compile(DRAFT_MARKER_RE.pattern + r"\s*")
_HEADING_RE = re.compile(r"^#+\s+(.+)$", re.MULTILINE)
_BLANK_RUN_RE = re.compile(r"\n{3,}")


class DraftKind(str, Enum):
    STORY = "story"
    EPIC = "epic"
    OBJECTIVE = "objective"
    PRD = "prd"
    MILESTONE = "milestone"

    @property
    def label(self) -> str:
        return "PRD" if self is DraftKind.PRD else self.value.title()


@dataclass(frozen=True)
class Segment:
    """One span of a reply: plain prose, or a draft block including its opening marker."""

    text: str
    kind: DraftKind | None = None
    epic_id: int | None = None

    @property
    def is_draft(self) -> bool:
        return self.kind is not None

    @property
    def title(self) -> str:
        if self.kind is None:
            raise ValueError("prose segments have no title")
        return extract_title(self.kind, self.text)

    @property
    def body(self) -> str:
        return clean_draft_body(self.text)

    def to_dict(self) -> dict[str, Any]:
        if self.kind is None:
            return {"type": "prose", "text": self.text}
        return {
            "type": "draft",
            "draft_type": self.kind.value,
            "epic_id": self.epic_id,
            "title": self.title,
            "text": self.text,
            "body": self.body,
        }


@dataclass(frozen=True)
class ContextSignal:
    """Result of looking for the silent context marker in a reply."""

    display_text: str
    epic_id: int | None = None


@dataclass(frozen=True)
class ParsedReply:
    raw: str
    display_text: str
    segments: tuple[Segment, ...]
    activate_epic_id: int | None = None

    @property
    def drafts(self) -> list[Segment]:
        return [s for s in self.segments if s.is_draft]

    def to_dict(self) -> dict[str, Any]:
        return {
            "display_text": self.display_text,
            "segments": [s.to_dict() for s in self.segments],
            "activate_epic_id": self.activate_epic_id,
        }


def _kind_of(match: re.Match[str]) -> tuple[DraftKind, int | None]:
    if match.group("story"):
        epic_id = match.group("epic_id")
        return DraftKind.STORY, int(epic_id) if epic_id else None
    return DraftKind(match.group("kind")), None


def scan_reply(text: str) -> list[Segment]:
    """Split a complete reply into prose and draft segments, in document order.

    Each draft marker opens a block running up to the next draft marker or the
    end of the text. Only text before the first marker can be prose. Joining
    the segment texts gives back the input exactly.
    """
    matches = list(DRAFT_MARKER_RE.finditer(text))
    if not matches:
        return [Segment(text=text)]

    segments: list[Segment] = []
    if matches[0].start() > 0:
        segments.append(Segment(text=text[: matches[0].start()]))

    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
        kind, epic_id = _kind_of(match)
        segments.append(Segment(text=text[match.start() : end], kind=kind, epic_id=epic_id))
    return segments


def clean_draft_body(raw_text: str) -> str:
    """Draft text with its marker(s) removed and surrounding whitespace trimmed."""
    return _DRAFT_MARKER_WITH_TRAILING_WS_RE.sub("", raw_text).strip()


def extract_title(kind: DraftKind, raw_text: str) -> str:
    """First heading line of the draft body, else ``Untitled <Kind>``."""
    match = _HEADING_RE.search(clean_draft_body(raw_text))
    if match:
        return match.group(1).strip()
    return f"Untitled {kind.label}"


def extract_context_signal(text: str) -> ContextSignal:
    """Find the silent context-epic marker and strip it from the display text.

    Only the first occurrence supplies the epic id; every occurrence is
    removed, and runs of blank lines left behind collapse to one.
    """
    match = CONTEXT_EPIC_RE.search(text)
    if match is None:
        return ContextSignal(display_text=text)
    stripped = CONTEXT_EPIC_RE.sub("", text)
    stripped = _BLANK_RUN_RE.sub("\n\n", stripped).strip()
    return ContextSignal(display_text=stripped, epic_id=int(match.group(1)))


def parse_reply(text: str) -> ParsedReply:
    """Context-signal extraction on the raw reply, then segmentation of what is displayed."""
    signal = extract_context_signal(text)
    return ParsedReply(
        raw=text,
        display_text=signal.display_text,
        segments=tuple(scan_reply(signal.display_text)),
        activate_epic_id=signal.epic_id,
    )


def draft_filename(title: str) -> str:
    """Download filename for a draft, e.g. ``prd-investor-onboarding.md``."""
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower())[:60]
    return f"{slug}.md"
