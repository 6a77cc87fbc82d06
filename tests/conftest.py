# Shared fixtures: isolated settings and a small context cache.

from datetime import UTC, datetime

import pytest

from product_helper.config import Settings
from product_helper.context.models import (
    ContextCache,
    ReferenceEpic,
    ReferenceObjective,
    ReferenceStory,
)


@pytest.fixture
def settings(tmp_path, monkeypatch):
    """Settings rooted in a temp dir, with fake credentials and no .env file."""
    for var in ("ANTHROPIC_API_KEY", "SHORTCUT_API_TOKEN", "GITHUB_TOKEN"):
        monkeypatch.delenv(var, raising=False)
    return Settings(
        _env_file=None,
        data_dir=tmp_path,
        anthropic_api_key="sk-test",
        shortcut_api_token="sc-test",
    )


@pytest.fixture
def sample_cache():
    return ContextCache(
        refreshed_at=datetime(2026, 10, 1, 12, 0, tzinfo=UTC),
        default_workflow_state_id=500000001,
        sdlc_sop="Every story goes through refinement before it is scheduled.",
        story_template="## Summary\n## Acceptance Criteria\n## Solution Notes",
        epic_template="## Overview\n### ASSOCIATED MILESTONE",
        objective_template="## Outcome\n# MILESTONES",
        reference_objectives=(
            ReferenceObjective(
                id=101,
                title="Investor onboarding",
                description="Let investors self-serve their onboarding.",
                epics=(
                    ReferenceEpic(
                        name="KYC checks",
                        description="Automated identity checks.",
                        stories=(
                            ReferenceStory(
                                name="[Backend] - Call the KYC provider",
                                description="Wire up the provider API.",
                                story_type="feature",
                                estimate=3,
                            ),
                        ),
                    ),
                ),
            ),
        ),
    )
