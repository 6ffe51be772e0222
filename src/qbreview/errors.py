"""Exceptions raised by the review store and its collaborators.

ストア層で発生する例外をまとめる。呼び出し側はここに定義された型で
失敗を区別し、更新系の「見つからない」はハードエラー、削除系の
「見つからない」は例外を送出しない、という方針で扱う。
"""

from __future__ import annotations


class ReviewStoreError(Exception):
    """Base class for every error raised by the scheduling core."""


class RecordNotFoundError(ReviewStoreError, LookupError):
    """An update referenced an answer result or review plan id that does not exist."""

    def __init__(self, kind: str, record_id: int) -> None:
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class StorageKeyNotFoundError(ReviewStoreError, KeyError):
    """The key-value adapter has no value for a key the caller expects to exist."""

    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"storage key {self.key} not found"


class InternalConsistencyError(ReviewStoreError):
    """A review plan points at an answer result that is not in the store."""


class SnapshotDecodeError(ReviewStoreError, ValueError):
    """A backup snapshot could not be parsed into a store root."""


class SchemaVersionError(ReviewStoreError):
    """The stored schema version is not the one a migration promised."""
