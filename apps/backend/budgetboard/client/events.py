from __future__ import annotations

import logging
import threading
from typing import Callable


log = logging.getLogger(__name__)

Listener = Callable[[bool], None]


class VisibilityChannel:
    """Currency show/hide toggle shared by every widget that renders amounts.

    ``subscribe`` returns a callable that removes the listener again. A
    listener that raises is logged and does not stop the others.
    """

    def __init__(self, visible: bool = True) -> None:
        self._visible = visible
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    @property
    def visible(self) -> bool:
        return self._visible

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def publish(self, visible: bool) -> None:
        with self._lock:
            self._visible = visible
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(visible)
            except Exception:
                log.exception("visibility listener %r failed", listener)

    def toggle(self) -> bool:
        self.publish(not self._visible)
        return self._visible
