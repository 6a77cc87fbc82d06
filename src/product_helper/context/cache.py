# Context cache file — a single JSON document written by refresh.
#
# Public API:
#   load_cache(path) -> ContextCache | None
#   save_cache(cache, path)
#   get_cache_status(path, now=None, max_age_days=7) -> CacheStatus

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime, timedelta
from pathlib import Path

from product_helper.context.models import CacheStatus, ContextCache
from product_helper.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE_DAYS = 7


def load_cache(path: Path) -> ContextCache | None:
    """Load the cache, or return None if no cache file exists."""
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return ContextCache.from_dict(data)
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(
            f"Context cache at {path} is unreadable ({e}). Run a refresh to rebuild it."
        ) from e


def save_cache(cache: ContextCache, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(cache.to_dict(), indent=2), encoding="utf-8")
    logger.info("Context cache written to %s", path)


def is_stale(refreshed_at: datetime, now: datetime | None = None,
             max_age_days: int = DEFAULT_MAX_AGE_DAYS) -> bool:
    now = now or datetime.now(tz=UTC)
    return now - refreshed_at > timedelta(days=max_age_days)


def get_cache_status(
    path: Path,
    now: datetime | None = None,
    max_age_days: int = DEFAULT_MAX_AGE_DAYS,
) -> CacheStatus:
    """Report whether the cache exists and whether it is older than the staleness window.

    An absent cache is reported as stale too.
    """
    cache = load_cache(path)
    if cache is None:
        return CacheStatus(exists=False, refreshed_at=None, is_stale=True)
    return CacheStatus(
        exists=True,
        refreshed_at=cache.refreshed_at,
        is_stale=is_stale(cache.refreshed_at, now, max_age_days),
    )
