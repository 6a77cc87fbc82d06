# External service clients: Shortcut (tracker) and GitHub (repository metadata).

from product_helper.integrations.github import GitHubClient, parse_repo_input
from product_helper.integrations.shortcut import (
    ShortcutClient,
    parse_epic_id,
    parse_objective_id,
)

__all__ = [
    "GitHubClient",
    "ShortcutClient",
    "parse_epic_id",
    "parse_objective_id",
    "parse_repo_input",
]
