from __future__ import annotations

from ..config import Settings, settings
from .adapters import (
    InMemoryKeyValueAdapter,
    JsonFileKeyValueAdapter,
    KeyValueAdapter,
    SQLiteKeyValueAdapter,
    create_adapter,
)
from .review_store import ReviewStore
from .schema import V2_DEFAULT_ROOT, convert_v1_to_v2, migrate_v1_to_v2


def create_store(config: Settings | None = None) -> ReviewStore:
    """設定に従って KV アダプタを選び、ReviewStore を初期化する。

    バージョン確認（`validate_version`）は非同期処理のため、呼び出し側で
    起動時に一度実行すること。
    """

    cfg = config or settings
    adapter = create_adapter(cfg.storage_backend, cfg.resolved_storage_path())
    return ReviewStore(adapter)


__all__ = [
    "InMemoryKeyValueAdapter",
    "JsonFileKeyValueAdapter",
    "KeyValueAdapter",
    "ReviewStore",
    "SQLiteKeyValueAdapter",
    "V2_DEFAULT_ROOT",
    "convert_v1_to_v2",
    "create_adapter",
    "create_store",
    "migrate_v1_to_v2",
]
