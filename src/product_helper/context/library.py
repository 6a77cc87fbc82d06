"""Reference library — the ordered set of objective ids used as writing examples.

Stored as ``{"reference_objective_ids": [...]}`` in a flat JSON file. Edits
persist the new set and then await a full cache rebuild before returning, so
callers never see success while the cache still reflects the old set.

Read-modify-write is serialized per process by an ``asyncio.Lock``; nothing
guards against a second process editing the same file.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from product_helper.context.models import ContextCache
from product_helper.errors import ConfigurationError

logger = logging.getLogger(__name__)

Rebuild = Callable[[], Awaitable[Any]]


class ReferenceLibrary:
    def __init__(self, path: Path, rebuild: Rebuild | None = None):
        self._path = path
        self._rebuild = rebuild
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[int]:
        """Return the ordered, de-duplicated reference ids."""
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Reference library at {self._path} is not valid JSON") from e
        ids: list[int] = []
        for raw in data.get("reference_objective_ids") or []:
            try:
                value = int(raw)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"Reference library at {self._path} has a non-numeric id: {raw!r}"
                ) from e
            if value not in ids:
                ids.append(value)
        return ids

    def _save(self, ids: list[int]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps({"reference_objective_ids": ids}, indent=2), encoding="utf-8"
        )

    async def add(self, objective_id: int) -> list[int]:
        async with self._lock:
            ids = self.load()
            if objective_id not in ids:
                ids.append(objective_id)
                self._save(ids)
                logger.info("Added reference objective %s", objective_id)
            await self._run_rebuild()
            return ids

    async def remove(self, objective_id: int) -> list[int]:
        async with self._lock:
            ids = [i for i in self.load() if i != objective_id]
            self._save(ids)
            logger.info("Removed reference objective %s", objective_id)
            await self._run_rebuild()
            return ids

    async def _run_rebuild(self) -> None:
        if self._rebuild is not None:
            await self._rebuild()

    def references(self, cache: ContextCache | None) -> list[dict[str, Any]]:
        """Library entries with titles taken from the cache (None if not cached yet)."""
        titles = cache.reference_titles() if cache else {}
        return [{"id": i, "name": titles.get(i)} for i in self.load()]
