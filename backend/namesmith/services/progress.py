"""
Progress Broker
In-process fan-out of session progress events to streaming subscribers
"""

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Dict, Optional, Set

from namesmith.models import GenerationSession, SessionStatus, TERMINAL_STATUSES
from namesmith.utils.clock import utcnow

logger = logging.getLogger(__name__)


@dataclass
class ProgressEvent:
    """One progress tick for a session"""
    session_id: str
    status: str
    progress_percentage: int
    current_step: Optional[str] = None
    model_id: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def is_terminal(self) -> bool:
        return SessionStatus(self.status) in TERMINAL_STATUSES

    @classmethod
    def from_session(cls, session: GenerationSession, model_id: Optional[str] = None) -> "ProgressEvent":
        return cls(
            session_id=session.session_id,
            status=SessionStatus(session.status).value,
            progress_percentage=session.progress_percentage,
            current_step=session.current_step,
            model_id=model_id,
        )

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "status": self.status,
            "progress_percentage": self.progress_percentage,
            "current_step": self.current_step,
            "model_id": self.model_id,
            "timestamp": self.timestamp.isoformat(),
        }


class ProgressBroker:
    """
    Publishers never block: each subscriber has a bounded queue and a slow
    subscriber loses its oldest events rather than stalling the orchestrator.
    """

    def __init__(self, max_queue_size: int = 100):
        self.max_queue_size = max_queue_size
        self._subscribers: Dict[str, Set[asyncio.Queue]] = defaultdict(set)

    def subscribe(self, session_id: str) -> asyncio.Queue:
        queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers[session_id].add(queue)
        return queue

    def unsubscribe(self, session_id: str, queue: asyncio.Queue) -> None:
        subscribers = self._subscribers.get(session_id)
        if not subscribers:
            return
        subscribers.discard(queue)
        if not subscribers:
            del self._subscribers[session_id]

    def subscriber_count(self, session_id: str) -> int:
        return len(self._subscribers.get(session_id, ()))

    def publish(self, event: ProgressEvent) -> None:
        for queue in list(self._subscribers.get(event.session_id, ())):
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(event)

    async def stream(
        self,
        session_id: str,
        queue: Optional[asyncio.Queue] = None,
    ) -> AsyncIterator[ProgressEvent]:
        """
        Yield events for one session until a terminal event arrives.
        Pass a queue from subscribe() to keep events published in between.
        """
        if queue is None:
            queue = self.subscribe(session_id)
        try:
            while True:
                event = await queue.get()
                yield event
                if event.is_terminal:
                    break
        finally:
            self.unsubscribe(session_id, queue)
