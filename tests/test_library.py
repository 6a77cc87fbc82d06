# Tests for the reference library file and its rebuild hook.

import asyncio
import json
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from product_helper.context.library import ReferenceLibrary
from product_helper.context.models import ContextCache, ReferenceObjective
from product_helper.errors import ConfigurationError


@pytest.fixture
def path(tmp_path):
    return tmp_path / "config.json"


class TestLoad:
    def test_missing_file_is_empty(self, path):
        assert ReferenceLibrary(path).load() == []

    def test_order_kept_duplicates_dropped(self, path):
        path.write_text(json.dumps({"reference_objective_ids": [3, 1, 3, "2", 1]}))
        assert ReferenceLibrary(path).load() == [3, 1, 2]

    def test_invalid_json(self, path):
        path.write_text("nope")
        with pytest.raises(ConfigurationError):
            ReferenceLibrary(path).load()

    def test_non_numeric_id(self, path):
        path.write_text(json.dumps({"reference_objective_ids": [1, "abc"]}))
        with pytest.raises(ConfigurationError, match="abc"):
            ReferenceLibrary(path).load()


class TestEdit:
    async def test_add_persists_then_rebuilds(self, path):
        order = []

        async def rebuild():
            order.append(json.loads(path.read_text())["reference_objective_ids"])

        library = ReferenceLibrary(path, rebuild=rebuild)
        assert await library.add(10) == [10]
        assert await library.add(10) == [10]
        assert await library.add(20) == [10, 20]
        assert order == [[10], [10], [10, 20]]

    async def test_remove(self, path):
        path.write_text(json.dumps({"reference_objective_ids": [1, 2, 3]}))
        rebuild = AsyncMock()
        library = ReferenceLibrary(path, rebuild=rebuild)

        assert await library.remove(2) == [1, 3]
        assert ReferenceLibrary(path).load() == [1, 3]
        rebuild.assert_awaited_once()

    async def test_rebuild_failure_propagates(self, path):
        library = ReferenceLibrary(path, rebuild=AsyncMock(side_effect=RuntimeError("boom")))
        with pytest.raises(RuntimeError):
            await library.add(1)
        assert library.load() == [1]

    async def test_concurrent_edits_serialized(self, path):
        async def rebuild():
            await asyncio.sleep(0)

        library = ReferenceLibrary(path, rebuild=rebuild)
        await asyncio.gather(*(library.add(i) for i in range(5)))
        assert sorted(library.load()) == [0, 1, 2, 3, 4]


class TestReferences:
    def test_titles_from_cache(self, path):
        path.write_text(json.dumps({"reference_objective_ids": [1, 2]}))
        cache = ContextCache(
            refreshed_at=datetime.now(tz=UTC),
            reference_objectives=(ReferenceObjective(id=1, title="Onboarding"),),
        )
        library = ReferenceLibrary(path)

        assert library.references(cache) == [
            {"id": 1, "name": "Onboarding"},
            {"id": 2, "name": None},
        ]
        assert library.references(None) == [{"id": 1, "name": None}, {"id": 2, "name": None}]
