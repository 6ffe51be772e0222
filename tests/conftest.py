"""Pytest configuration so tests never touch an on-disk store by accident."""

import os

# 既定の SQLite ストアを作らないよう、テストではメモリ上の KV を使う。
# 永続アダプタを検証するテストは tmp_path を明示的に渡す。
os.environ.setdefault("QBREVIEW_STORAGE_BACKEND", "memory")
os.environ.setdefault("QBREVIEW_LOG_LEVEL", "WARNING")
