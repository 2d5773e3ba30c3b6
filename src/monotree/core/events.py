"""Minimal publish/subscribe channel for tree notifications."""

from __future__ import annotations

from typing import Any, Callable

Callback = Callable[..., Any]


class Signal:
    """A list of subscribers called in registration order on emit()."""

    def __init__(self) -> None:
        self._subscribers: list[Callback] = []

    def connect(self, callback: Callback) -> Callback:
        """Subscribe *callback*; returns it so this can be used as a decorator."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)
        return callback

    def disconnect(self, callback: Callback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def emit(self, *args: Any) -> None:
        # Copy: a subscriber may disconnect itself.
        for callback in list(self._subscribers):
            callback(*args)

    def __len__(self) -> int:
        return len(self._subscribers)
