"""
Event Publisher
connector 수명 주기 이벤트(ready, error) 구독/발행.
"""
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

EventHandler = Callable[..., None]


class EventPublisher:
    """
    Explicit subscriber list per event name.

    사용:
        events = EventPublisher()
        events.on("ready", on_ready)
        events.emit("ready")
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[EventHandler]] = {}
        self._lock = threading.Lock()

    def on(self, event: str, handler: EventHandler) -> None:
        """핸들러 등록"""
        with self._lock:
            self._handlers.setdefault(event, []).append(handler)

    def off(self, event: str, handler: EventHandler) -> None:
        """핸들러 해제"""
        with self._lock:
            handlers = self._handlers.get(event, [])
            if handler in handlers:
                handlers.remove(handler)

    def listener_count(self, event: str) -> int:
        with self._lock:
            return len(self._handlers.get(event, []))

    def emit(self, event: str, payload: Optional[Any] = None) -> int:
        """
        Call every handler registered for ``event``.

        Handlers without a payload are called with no arguments. A handler
        that raises is logged and skipped.

        Returns:
            Number of handlers invoked
        """
        with self._lock:
            handlers = list(self._handlers.get(event, []))

        # 락 밖에서 호출 (핸들러가 다시 on/off 할 수 있음)
        for handler in handlers:
            try:
                if payload is None:
                    handler()
                else:
                    handler(payload)
            except Exception as e:
                logger.error(f"Event handler failed: event={event}, handler={handler!r}, error={e}")

        return len(handlers)
