"""Key-value storage adapters.

ストア層が依存するのはこのモジュールの `KeyValueAdapter` だけで、
具体的な保存先（メモリ / JSON ファイル / SQLite）は差し替え可能にしておく。
値はすべて JSON 文書として扱い、読み書きの際にコピーを渡す。
"""

from __future__ import annotations

import inspect
import json
import os
import sqlite3
import tempfile
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Callable, Mapping
from pathlib import Path
from threading import Lock
from typing import Any

import anyio

from ..errors import StorageKeyNotFoundError
from ..logging import logger

Listener = Callable[[Any], Any]


def _copy_json(value: Any) -> Any:
    return json.loads(json.dumps(value))


class KeyValueAdapter(ABC):
    """Capability interface consumed by the review store.

    - has_key / get / set: 単一キーの読み書き
    - set_many: 複数キーをまとめて書き込む（途中までの書き込みを他から見せない）
    - add_listener: キーが書き換えられた後に新しい値で呼ばれるコールバックを登録
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    @abstractmethod
    async def has_key(self, key: str) -> bool: ...

    @abstractmethod
    async def get(self, key: str) -> Any: ...

    async def set(self, key: str, value: Any) -> None:
        await self.set_many({key: value})

    @abstractmethod
    async def set_many(self, items: Mapping[str, Any]) -> None: ...

    def add_listener(self, key: str, callback: Listener) -> None:
        self._listeners[key].append(callback)

    async def _notify(self, items: Mapping[str, Any]) -> None:
        for key, value in items.items():
            for callback in list(self._listeners.get(key, ())):
                outcome = callback(_copy_json(value))
                if inspect.isawaitable(outcome):
                    await outcome


class InMemoryKeyValueAdapter(KeyValueAdapter):
    """Dict-backed adapter used by tests and the ``memory`` backend."""

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        super().__init__()
        self._data: dict[str, Any] = _copy_json(dict(data or {}))

    async def has_key(self, key: str) -> bool:
        return key in self._data

    async def get(self, key: str) -> Any:
        if key not in self._data:
            raise StorageKeyNotFoundError(key)
        return _copy_json(self._data[key])

    async def set_many(self, items: Mapping[str, Any]) -> None:
        staged = {key: _copy_json(value) for key, value in items.items()}
        self._data.update(staged)
        await self._notify(staged)

    def snapshot(self) -> dict[str, Any]:
        """Return a copy of every stored key (test helper)."""
        return _copy_json(self._data)


class JsonFileKeyValueAdapter(KeyValueAdapter):
    """Stores every key in one JSON document on disk.

    書き込みは一時ファイルへ全体を書き出してから `os.replace` で差し替えるため、
    複数キーの更新も読み手からは一度に反映されたように見える。
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        super().__init__()
        self.path = Path(path)
        self._lock = Lock()
        if self.path.parent and not self.path.parent.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)

    def _read_document(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        text = self.path.read_text(encoding="utf-8")
        if not text.strip():
            return {}
        document = json.loads(text)
        if not isinstance(document, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return document

    def _write_items(self, items: Mapping[str, Any]) -> None:
        with self._lock:
            document = self._read_document()
            document.update(items)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(document, handle, ensure_ascii=False, separators=(",", ":"))
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise

    async def has_key(self, key: str) -> bool:
        document = await anyio.to_thread.run_sync(self._read_document)
        return key in document

    async def get(self, key: str) -> Any:
        document = await anyio.to_thread.run_sync(self._read_document)
        if key not in document:
            raise StorageKeyNotFoundError(key)
        return document[key]

    async def set_many(self, items: Mapping[str, Any]) -> None:
        staged = {key: _copy_json(value) for key, value in items.items()}
        await anyio.to_thread.run_sync(self._write_items, staged)
        await self._notify(staged)


class SQLiteKeyValueAdapter(KeyValueAdapter):
    """SQLite-backed adapter: one row per key, JSON encoded value."""

    def __init__(self, db_path: str) -> None:
        super().__init__()
        self.db_path = db_path
        self._ensure_dirs()
        self._init_db()

    # --- low-level helpers ---
    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=10.0, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        return conn

    def _ensure_dirs(self) -> None:
        p = Path(self.db_path)
        if p.parent and not p.parent.exists():
            p.parent.mkdir(parents=True, exist_ok=True)

    def _init_db(self) -> None:
        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS kv_store (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL
                    );
                    """
                )
        finally:
            conn.close()

    def _fetch(self, key: str) -> str | None:
        conn = self._connect()
        try:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?;", (key,)).fetchone()
            return None if row is None else str(row["value"])
        finally:
            conn.close()

    def _write_items(self, items: Mapping[str, Any]) -> None:
        rows = [(key, json.dumps(value, ensure_ascii=False)) for key, value in items.items()]
        conn = self._connect()
        try:
            with conn:  # single transaction for every key
                conn.executemany(
                    """
                    INSERT INTO kv_store(key, value) VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value;
                    """,
                    rows,
                )
        finally:
            conn.close()

    async def has_key(self, key: str) -> bool:
        return await anyio.to_thread.run_sync(self._fetch, key) is not None

    async def get(self, key: str) -> Any:
        raw = await anyio.to_thread.run_sync(self._fetch, key)
        if raw is None:
            raise StorageKeyNotFoundError(key)
        return json.loads(raw)

    async def set_many(self, items: Mapping[str, Any]) -> None:
        staged = {key: _copy_json(value) for key, value in items.items()}
        await anyio.to_thread.run_sync(self._write_items, staged)
        await self._notify(staged)


def create_adapter(backend: str, path: str) -> KeyValueAdapter:
    """設定値からアダプタを生成する。"""

    if backend == "memory":
        adapter: KeyValueAdapter = InMemoryKeyValueAdapter()
    elif backend == "json":
        adapter = JsonFileKeyValueAdapter(path)
    elif backend == "sqlite":
        adapter = SQLiteKeyValueAdapter(path)
    else:
        raise ValueError(f"Unknown storage backend: {backend}")
    logger.info("storage_adapter_created", backend=backend, path=None if backend == "memory" else path)
    return adapter
