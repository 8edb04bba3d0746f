"""Durable JSON-file storage backend, one file per browser profile."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from site_visits.exceptions import StorageError
from site_visits.storage.base import KeyValueStorage

logger = logging.getLogger(__name__)


class JsonFileStorage(KeyValueStorage):
    """Key-value storage persisted to a JSON object on disk.

    Every write rewrites the file atomically (temp file + replace). An
    unreadable or corrupt file is treated as empty.

    Args:
        path: Location of the JSON file. Parent directories are created.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._data: dict[str, str] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        previous = self._data.get(key)
        self._data[key] = value
        try:
            self._save()
        except StorageError:
            if previous is None:
                self._data.pop(key, None)
            else:
                self._data[key] = previous
            raise

    def remove_item(self, key: str) -> None:
        if key not in self._data:
            return
        previous = self._data.pop(key)
        try:
            self._save()
        except StorageError:
            self._data[key] = previous
            raise

    def clear(self) -> None:
        previous = self._data
        self._data = {}
        try:
            self._save()
        except StorageError:
            self._data = previous
            raise

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (ValueError, OSError) as e:
            logger.warning("Cannot read storage file %s, starting empty: %s", self._path, e)
            return {}
        if not isinstance(payload, dict):
            logger.warning("Storage file %s is not a JSON object, starting empty", self._path)
            return {}
        return {str(k): str(v) for k, v in payload.items()}

    def _save(self) -> None:
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(
                json.dumps(self._data, indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
            tmp_path.replace(self._path)
        except OSError as e:
            raise StorageError(f"Failed writing storage file {self._path}: {e}") from e
