"""In-memory storage backend, used for per-tab session data and in tests."""

from __future__ import annotations

from site_visits.exceptions import StorageQuotaError
from site_visits.storage.base import KeyValueStorage


class MemoryStorage(KeyValueStorage):
    """Dict-backed storage.

    Args:
        quota_bytes: Optional cap on the total UTF-8 size of keys and values.
    """

    def __init__(self, quota_bytes: int | None = None) -> None:
        self.quota_bytes = quota_bytes
        self._data: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            size = self._size_without(key) + len(key.encode()) + len(value.encode())
            if size > self.quota_bytes:
                raise StorageQuotaError(
                    f"Storing {key!r} would use {size} bytes (quota {self.quota_bytes})"
                )
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def keys(self) -> list[str]:
        return list(self._data)

    def _size_without(self, key: str) -> int:
        return sum(
            len(k.encode()) + len(v.encode())
            for k, v in self._data.items()
            if k != key
        )
