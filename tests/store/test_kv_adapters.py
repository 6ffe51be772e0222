import asyncio
import json
import sqlite3
from pathlib import Path

import pytest

from qbreview.errors import StorageKeyNotFoundError
from qbreview.store import (
    InMemoryKeyValueAdapter,
    JsonFileKeyValueAdapter,
    KeyValueAdapter,
    SQLiteKeyValueAdapter,
    create_adapter,
)


@pytest.fixture(params=["memory", "json", "sqlite"])
def adapter(request: pytest.FixtureRequest, tmp_path: Path) -> KeyValueAdapter:
    if request.param == "memory":
        return InMemoryKeyValueAdapter()
    if request.param == "json":
        return JsonFileKeyValueAdapter(tmp_path / "kv.json")
    return SQLiteKeyValueAdapter(str(tmp_path / "kv.sqlite3"))


def test_get_and_set_round_trip(adapter: KeyValueAdapter) -> None:
    async def scenario() -> None:
        assert await adapter.has_key("answerResults") is False
        await adapter.set("answerResults", [{"i": 0, "q": 1}])
        assert await adapter.has_key("answerResults") is True
        assert await adapter.get("answerResults") == [{"i": 0, "q": 1}]

    asyncio.run(scenario())


def test_missing_key_raises(adapter: KeyValueAdapter) -> None:
    with pytest.raises(StorageKeyNotFoundError) as exc_info:
        asyncio.run(adapter.get("reviewPlans"))

    assert "reviewPlans" in str(exc_info.value)
    assert isinstance(exc_info.value, KeyError)


def test_set_many_writes_all_keys(adapter: KeyValueAdapter) -> None:
    async def scenario() -> None:
        await adapter.set("version", 1)
        await adapter.set_many({"version": 2, "reviewPlansNextId": 5})
        assert await adapter.get("version") == 2
        assert await adapter.get("reviewPlansNextId") == 5

    asyncio.run(scenario())


def test_returned_values_are_copies(adapter: KeyValueAdapter) -> None:
    async def scenario() -> None:
        original = [{"i": 0}]
        await adapter.set("reviewPlans", original)
        original.append({"i": 1})
        fetched = await adapter.get("reviewPlans")
        fetched.append({"i": 2})
        assert await adapter.get("reviewPlans") == [{"i": 0}]

    asyncio.run(scenario())


def test_listeners_receive_new_values_after_write(adapter: KeyValueAdapter) -> None:
    seen: list[object] = []
    awaited: list[object] = []

    async def async_listener(value: object) -> None:
        awaited.append(value)

    adapter.add_listener("version", seen.append)
    adapter.add_listener("version", async_listener)

    async def scenario() -> None:
        await adapter.set_many({"version": 2, "answerResultsNextId": 0})
        await adapter.set("answerResultsNextId", 1)

    asyncio.run(scenario())

    assert seen == [2]
    assert awaited == [2]


def test_json_file_adapter_persists_across_instances(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "store.json"
    asyncio.run(JsonFileKeyValueAdapter(path).set_many({"version": 2, "reviewPlans": []}))

    reopened = JsonFileKeyValueAdapter(path)

    assert asyncio.run(reopened.get("version")) == 2
    assert json.loads(path.read_text(encoding="utf-8")) == {"version": 2, "reviewPlans": []}
    # 一時ファイルは残らない
    assert [p.name for p in path.parent.iterdir()] == ["store.json"]


def test_json_file_adapter_rejects_non_object_documents(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")

    with pytest.raises(ValueError):
        asyncio.run(JsonFileKeyValueAdapter(path).get("version"))


def test_sqlite_adapter_persists_across_instances(tmp_path: Path) -> None:
    db_path = tmp_path / "store.sqlite3"
    asyncio.run(SQLiteKeyValueAdapter(str(db_path)).set_many({"version": 2, "answerResults": [{"i": 0}]}))

    reopened = SQLiteKeyValueAdapter(str(db_path))

    assert asyncio.run(reopened.get("answerResults")) == [{"i": 0}]
    with sqlite3.connect(db_path) as conn:
        keys = sorted(row[0] for row in conn.execute("SELECT key FROM kv_store"))
    assert keys == ["answerResults", "version"]


def test_create_adapter_selects_backend(tmp_path: Path) -> None:
    assert isinstance(create_adapter("memory", "ignored"), InMemoryKeyValueAdapter)
    assert isinstance(create_adapter("json", str(tmp_path / "a.json")), JsonFileKeyValueAdapter)
    assert isinstance(create_adapter("sqlite", str(tmp_path / "a.sqlite3")), SQLiteKeyValueAdapter)

    with pytest.raises(ValueError):
        create_adapter("firestore", "ignored")
