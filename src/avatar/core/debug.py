"""Debug information registry.

Components register named callbacks returning a short string; a debug
display polls them. The registry is handed to components explicitly.
"""

from typing import Callable

from avatar.utils.logging import get_logger

logger = get_logger(__name__)

DebugInfoCallback = Callable[[], str]


class DebugRegistry:
    """Named debug callbacks plus an on/off switch for the display."""

    def __init__(self, active: bool = False) -> None:
        self.active = active
        self._callbacks: dict[str, list[DebugInfoCallback]] = {}

    def register(self, name: str, callback: DebugInfoCallback) -> None:
        self._callbacks.setdefault(name, []).append(callback)

    def unregister(self, name: str, callback: DebugInfoCallback) -> None:
        callbacks = self._callbacks.get(name)
        if callbacks and callback in callbacks:
            callbacks.remove(callback)
            if not callbacks:
                del self._callbacks[name]

    @property
    def names(self) -> list[str]:
        return list(self._callbacks)

    def snapshot(self) -> dict[str, str]:
        """Evaluate every callback.

        Returns:
            Mapping of name to text. Several callbacks under one name are
            joined with `` | ``.
        """
        info = {}
        for name, callbacks in self._callbacks.items():
            info[name] = " | ".join(cb() for cb in callbacks)
        return info
