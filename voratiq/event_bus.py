import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List

from loguru import logger
from pydantic import BaseModel, Field


class RunEvent(BaseModel):
    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    event_type: str
    run_id: str
    agent_id: str | None = None
    payload: Dict[str, Any] = Field(default_factory=dict)


class EventBus:
    """A small synchronous event bus for live run progress."""

    def __init__(self):
        self._subscribers: List[Callable[[RunEvent], None]] = []

    def subscribe(self, callback: Callable[[RunEvent], None]) -> None:
        """Register a callback to be executed when an event is emitted."""
        self._subscribers.append(callback)

    def emit(
        self,
        event_type: str,
        run_id: str,
        agent_id: str | None = None,
        payload: Dict[str, Any] | None = None,
    ) -> None:
        """Construct and broadcast a RunEvent to all subscribers."""
        event = RunEvent(
            event_type=event_type,
            run_id=run_id,
            agent_id=agent_id,
            payload=payload or {},
        )

        for subscriber in self._subscribers:
            try:
                subscriber(event)
            except Exception:
                # A subscriber failure never reaches the pipeline.
                logger.exception(f"[EVENTS] Subscriber failed on {event_type}")
