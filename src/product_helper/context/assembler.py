"""Prompt assembly: the static (cacheable) block and the dynamic (per-turn) block.

The static block depends on nothing but the context cache, so two calls with
the same cache produce byte-identical text and the completion service can reuse
it across turns. Everything that varies per request goes into the dynamic block.
"""

from __future__ import annotations

from collections.abc import Sequence

from product_helper.context.models import (
    ActiveEpic,
    ActiveObjective,
    ActiveRepo,
    ContextCache,
    ReferenceObjective,
)
from product_helper.prompts import CRITICAL_RULES, PRD_TEMPLATE, SYSTEM_INTRO

SECTION_SEPARATOR = "\n\n---\n\n"

MAX_REPO_ITEMS = 10
MAX_KEY_RESULTS = 20


def build_static_prompt(cache: ContextCache) -> str:
    """Build the session-invariant system prompt block from the cache."""
    sections = [SYSTEM_INTRO]

    if cache.sdlc_sop:
        sections.append(f"## SDLC Process & SOP\n\n{cache.sdlc_sop}")

    for label, template in (
        ("Objective", cache.objective_template),
        ("Epic", cache.epic_template),
        ("Story", cache.story_template),
    ):
        if template:
            sections.append(
                f"## {label} Template\n\n"
                f"Use this structure when drafting {label.lower()}s:\n\n{template}"
            )

    if cache.reference_objectives:
        examples = SECTION_SEPARATOR.join(
            _render_reference(ref) for ref in cache.reference_objectives
        )
        sections.append(
            "## Reference Objectives — Match This Quality and Structure\n\n"
            "These are completed objectives from this team. Match their depth, structure, "
            f"and writing style exactly.\n\n{examples}"
        )

    sections.append(
        f"## PRD Template\n\nWhen generating a PRD, use this exact structure:\n\n{PRD_TEMPLATE}"
    )
    sections.append(CRITICAL_RULES)

    return SECTION_SEPARATOR.join(sections)


def _render_reference(ref: ReferenceObjective) -> str:
    text = f'### Reference Objective: "{ref.title}"\n\n{ref.description}'
    if not ref.epics:
        return text

    text += "\n\n**Sample Epics:**\n"
    for epic in ref.epics:
        text += f'\n#### Epic: "{epic.name}"\n{epic.description}'
        if epic.stories:
            text += "\n\n**Sample Stories:**\n"
            for story in epic.stories:
                estimate = story.estimate or "?"
                text += f"\n- **{story.name}** ({estimate} pts)\n  {story.description}"
    return text


def build_dynamic_context(
    active_objective: ActiveObjective | None = None,
    transcript_summary: str | None = None,
    active_repos: Sequence[ActiveRepo] | None = None,
    active_epic: ActiveEpic | None = None,
) -> str:
    """Build the per-turn block. Returns "" when nothing is active.

    Callers must omit the block entirely when this returns an empty string.
    """
    sections: list[str] = []

    if transcript_summary:
        sections.append(
            "## Meeting Context\n\n"
            "The following was extracted from a scoping meeting transcript. Use it to enrich "
            "your output: capture decisions made, fill in detail, and surface open questions "
            f"that were raised.\n\n{transcript_summary}"
        )

    if active_repos:
        repos = "\n\n".join(_render_repo(r) for r in active_repos)
        sections.append(
            "## GitHub Repository Context\n\n"
            "The following repositories are relevant to this work. Use them to understand "
            "existing patterns, what's currently in flight, and avoid duplicating or "
            f"conflicting with ongoing work.\n\n{repos}"
        )

    if active_objective:
        sections.append(_render_objective(active_objective))

    if active_epic:
        objective_name = active_objective.name if active_objective else "unknown"
        sections.append(
            "## Active Epic — Focus Work Here\n\n"
            "Break down work within this specific epic. All story drafts should target it.\n\n"
            f"**Epic ID:** {active_epic.id}\n"
            f"**Name:** {active_epic.name}\n"
            f"**Objective:** {objective_name}\n\n"
            "Use this marker on every story draft: "
            f"`<!-- draft:story epic_id:{active_epic.id} -->`"
        )

    return SECTION_SEPARATOR.join(sections)


def _render_repo(repo: ActiveRepo) -> str:
    lines = [f"**{repo.full_name}**"]
    if repo.description:
        lines.append(repo.description)
    if repo.readme_excerpt:
        lines.append(f"\nREADME (excerpt):\n{repo.readme_excerpt}")
    prs = repo.open_prs[:MAX_REPO_ITEMS]
    if prs:
        lines.append(f"\nOpen PRs ({len(prs)}):")
        lines.extend(f"- #{pr.number}: {pr.title} (@{pr.user})" for pr in prs)
    issues = repo.open_issues[:MAX_REPO_ITEMS]
    if issues:
        lines.append(f"\nOpen Issues ({len(issues)}):")
        lines.extend(f"- #{issue.number}: {issue.title}" for issue in issues)
    return "\n".join(lines)


def _render_objective(objective: ActiveObjective) -> str:
    if objective.key_results:
        shown = objective.key_results[:MAX_KEY_RESULTS]
        key_results = "\n".join(
            f"{i}. [ID: {kr.id}] {kr.name} — {kr.type}" for i, kr in enumerate(shown, start=1)
        )
        hidden = len(objective.key_results) - len(shown)
        if hidden > 0:
            key_results += f"\n(+{hidden} more)"
    else:
        key_results = "(none defined)"

    if objective.epics:
        epics = "\n".join(
            f"- [ID: {e.id}] **{e.name}** ({e.state}) — "
            f"{e.completed_stories}/{e.total_stories} stories done"
            for e in objective.epics
        )
    else:
        epics = "(no epics yet)"

    return (
        "## Active Objective — Current Working Context\n\n"
        "You are currently working within this objective. Anchor all epics and stories to it. "
        "Do not duplicate what already exists.\n\n"
        f"**Objective ID:** {objective.id}\n"
        f"**Name:** {objective.name}\n"
        f"**State:** {objective.state}\n\n"
        f"**Description:**\n{objective.description or '(no description)'}\n\n"
        f"**Key Results / Milestones:**\n{key_results}\n\n"
        f"**Current Epics:**\n{epics}"
    )
