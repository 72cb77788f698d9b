from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Generic, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[Sequence[T]], None]


class ChangeFeed(Generic[T]):
    def __init__(self, name: str) -> None:
        self.name = name
        self._listeners: list[Listener] = []
        self._pending: deque[tuple[list[Listener], tuple[T, ...]]] = deque()
        self._delivering = False

    def subscribe(self, listener: Listener, snapshot: Sequence[T] | None = None) -> Callable[[], None]:
        self._listeners.append(listener)
        if snapshot is not None:
            self._enqueue([listener], snapshot)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, snapshot: Sequence[T]) -> None:
        if not self._listeners:
            return
        self._enqueue(list(self._listeners), snapshot)

    def _enqueue(self, listeners: list[Listener], snapshot: Sequence[T]) -> None:
        # Publishing from inside a listener only queues; the outer call drains.
        self._pending.append((listeners, tuple(snapshot)))
        if self._delivering:
            return
        self._delivering = True
        try:
            while self._pending:
                targets, items = self._pending.popleft()
                logger.debug("feed %s: delivering %d items to %d listeners", self.name, len(items), len(targets))
                for listener in targets:
                    if listener not in self._listeners:
                        continue
                    try:
                        listener(items)
                    except Exception:  # noqa: BLE001
                        logger.exception("feed %s: listener %r failed", self.name, listener)
        finally:
            self._delivering = False
