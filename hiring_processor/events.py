"""Typed queue lifecycle events and an explicit subscription interface."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import structlog


class QueueEventType(str, Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    PROGRESS = "progress"
    STALLED = "stalled"
    ERROR = "error"


@dataclass(frozen=True)
class QueueEvent:
    """Something that happened to a job (or to the queue when job_id is None)."""

    type: QueueEventType
    queue_name: str
    job_id: Optional[int] = None
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


QueueEventListener = Callable[[QueueEvent], None]


class QueueEvents:
    """Fan-out of queue events to subscribed observers.

    Observers are for logging and metrics only. A failing listener is
    logged and skipped; it never changes what the queue does.
    """

    def __init__(self, logger=None):
        self._listeners: List[QueueEventListener] = []
        self.logger = logger or structlog.get_logger().bind(component="queue_events")

    def subscribe(self, listener: QueueEventListener) -> Callable[[], None]:
        """Register a listener. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: QueueEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                self.logger.warning(
                    "Queue event listener failed",
                    event_type=event.type.value,
                    job_id=event.job_id,
                    error=str(e),
                )


class QueueEventLogger:
    """Observer that writes every queue event to the structured log."""

    def __init__(self, logger=None):
        self.logger = logger or structlog.get_logger().bind(component="queue")

    def __call__(self, event: QueueEvent) -> None:
        fields = {"queue": event.queue_name, "job_id": event.job_id, **event.data}

        if event.type == QueueEventType.WAITING:
            self.logger.info("Job waiting", **fields)
        elif event.type == QueueEventType.ACTIVE:
            self.logger.info("Job active", **fields)
        elif event.type == QueueEventType.COMPLETED:
            self.logger.info("Job completed", **fields)
        elif event.type == QueueEventType.FAILED:
            self.logger.error("Job failed", **fields)
        elif event.type == QueueEventType.PROGRESS:
            self.logger.debug("Job progress", **fields)
        elif event.type == QueueEventType.STALLED:
            self.logger.warning("Job stalled", **fields)
        else:
            self.logger.error("Queue error", **fields)
