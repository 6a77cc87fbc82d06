# Milestone splicing into an objective's markdown description.
#
# Objectives keep their milestones in a "MILESTONES" section, optionally with a
# "COMMITTED MILESTONES" sub-section. A new entry goes at the end of the
# committed sub-section if there is one, otherwise at the end of the
# MILESTONES section. Without a MILESTONES section, one is created before
# "ENGINEERING CONSIDERATIONS" (or at the end of the document).

from __future__ import annotations

import re

MILESTONES_HEADER = "MILESTONES"
COMMITTED_HEADER = "COMMITTED MILESTONES"
ENGINEERING_HEADER = "ENGINEERING CONSIDERATIONS"

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")


def _heading(line: str) -> tuple[int, str] | None:
    """(level, normalized title) for a markdown ATX heading line."""
    match = _HEADING_RE.match(line)
    if not match:
        return None
    title = match.group(2).strip().strip("*_").strip().rstrip(":").upper()
    return len(match.group(1)), title


def _find_heading(
    lines: list[str], title: str, start: int = 0, stop: int | None = None
) -> int | None:
    stop = len(lines) if stop is None else stop
    for i in range(start, stop):
        heading = _heading(lines[i])
        if heading and heading[1] == title:
            return i
    return None


def _section_end(lines: list[str], header_index: int) -> int:
    """Index of the next heading at the same or a higher level, or len(lines)."""
    level = _heading(lines[header_index])[0]
    for i in range(header_index + 1, len(lines)):
        heading = _heading(lines[i])
        if heading and heading[0] <= level:
            return i
    return len(lines)


def format_milestone_entry(name: str, details: str = "") -> str:
    """Checklist line for a milestone, with any details indented beneath it."""
    entry = f"- [ ] {name.strip()}"
    details = details.strip()
    if details:
        entry += "\n" + "\n".join(f"  {line}" if line else "" for line in details.splitlines())
    return entry


def splice_milestone(description: str, entry: str) -> str:
    """Return ``description`` with ``entry`` added to its milestones section.

    Everything outside the insertion point is preserved verbatim.
    """
    lines = description.split("\n") if description else []
    entry_lines = entry.split("\n")

    milestones = _find_heading(lines, MILESTONES_HEADER)
    if milestones is None:
        return _insert_new_section(lines, entry_lines)

    section_end = _section_end(lines, milestones)
    committed = _find_heading(lines, COMMITTED_HEADER, milestones + 1, section_end)
    anchor = committed if committed is not None else milestones
    end = _section_end(lines, anchor)

    # After the last non-blank line of the anchor's section
    insert_at = end
    while insert_at > anchor + 1 and not lines[insert_at - 1].strip():
        insert_at -= 1

    if insert_at == anchor + 1:
        new_lines = ["", *entry_lines]
        if insert_at < len(lines) and lines[insert_at].strip():
            new_lines.append("")
    else:
        new_lines = entry_lines
    return "\n".join(lines[:insert_at] + new_lines + lines[insert_at:])


def _insert_new_section(lines: list[str], entry_lines: list[str]) -> str:
    block = [f"# {MILESTONES_HEADER}", f"#### {COMMITTED_HEADER}", "", *entry_lines]

    engineering = _find_heading(lines, ENGINEERING_HEADER)
    if engineering is not None:
        before = lines[:engineering]
        if before and before[-1].strip():
            block.insert(0, "")
        return "\n".join(before + block + [""] + lines[engineering:])

    while lines and not lines[-1].strip():
        lines = lines[:-1]
    if not lines:
        return "\n".join(block)
    return "\n".join(lines + [""] + block)
