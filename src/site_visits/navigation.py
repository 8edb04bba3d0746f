"""Navigation event sources for single-page sites."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable

logger = logging.getLogger(__name__)

PathListener = Callable[[str], None]


class NavigationSource(ABC):
    """Something that reports when the current page path changes."""

    @abstractmethod
    def subscribe(self, listener: PathListener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it."""
        ...


class ManualNavigationSource(NavigationSource):
    """Navigation source driven directly by the host.

    Args:
        initial_path: Path of the page as first loaded.
    """

    def __init__(self, initial_path: str = "/") -> None:
        self.current_path = initial_path
        self._listeners: list[PathListener] = []

    def subscribe(self, listener: PathListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def path_changed(self, path: str) -> bool:
        """Report a route change. Ignored when the path is unchanged."""
        if path == self.current_path:
            return False
        self.current_path = path
        logger.debug("Navigated to %s", path)
        self._emit(path)
        return True

    def history_popped(self, path: str) -> None:
        """Report a back/forward navigation. Always notifies."""
        self.current_path = path
        logger.debug("History navigation to %s", path)
        self._emit(path)

    def _emit(self, path: str) -> None:
        for listener in list(self._listeners):
            listener(path)
