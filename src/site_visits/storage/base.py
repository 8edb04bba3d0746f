"""Abstract base class for key-value storage backends."""

from __future__ import annotations

from abc import ABC, abstractmethod


class KeyValueStorage(ABC):
    """String key to string value storage, modeled on the Web Storage API.

    Implementations raise StorageError (or StorageQuotaError) on failure.
    """

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""
        ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store a value, overwriting any previous one."""
        ...

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete a key. Missing keys are ignored."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Delete every key."""
        ...
