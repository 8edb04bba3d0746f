"""Key-value storage backends and the durable visit store."""

from site_visits.storage.base import KeyValueStorage
from site_visits.storage.file import JsonFileStorage
from site_visits.storage.local_store import LocalStore
from site_visits.storage.memory import MemoryStorage

__all__ = [
    "KeyValueStorage",
    "JsonFileStorage",
    "LocalStore",
    "MemoryStorage",
]
