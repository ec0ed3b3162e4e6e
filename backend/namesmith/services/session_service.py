"""
Generation Session Store
Persistence for the session state machine.

    pending -> running -> completed | failed | cancelled
    pending -> cancelled

Every status change is one conditional UPDATE (compare-and-swap on status),
so a late model completion can never overwrite a cancellation and a terminal
session never changes again.
"""

import logging
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import async_sessionmaker

from namesmith.config import Settings
from namesmith.exceptions import InvalidTransitionError, SessionNotFoundError
from namesmith.models import (
    ACTIVE_STATUSES,
    GenerationMode,
    GenerationSession,
    GenerationStrategy,
    SessionStatus,
)
from namesmith.utils.clock import utcnow
from namesmith.utils.security import generate_session_id

logger = logging.getLogger(__name__)


# Target status -> statuses it may be entered from
ALLOWED_SOURCES = {
    SessionStatus.RUNNING: (SessionStatus.PENDING,),
    SessionStatus.COMPLETED: (SessionStatus.RUNNING,),
    SessionStatus.FAILED: (SessionStatus.RUNNING,),
    SessionStatus.CANCELLED: (SessionStatus.PENDING, SessionStatus.RUNNING),
}

STEP_INITIALIZING = "Initializing AI generation..."
STEP_COMPLETED = "Generation completed successfully"
STEP_FAILED = "Generation failed"
STEP_CANCELLED = "Generation cancelled"


def clamp_progress(value: int) -> int:
    return max(0, min(100, int(value)))


class SessionStore:
    """Async store for GenerationSession rows"""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        settings: Settings,
        clock: Callable = utcnow,
    ):
        self.session_factory = session_factory
        self.settings = settings
        self.clock = clock

    async def create(
        self,
        user_id: str,
        business_description: str,
        generation_mode: GenerationMode,
        deep_thinking: bool,
        requested_models: List[str],
        generation_strategy: GenerationStrategy = GenerationStrategy.PARALLEL,
        custom_parameters: Optional[Dict[str, Any]] = None,
    ) -> GenerationSession:
        now = self.clock()
        session = GenerationSession(
            session_id=generate_session_id(),
            user_id=user_id,
            status=SessionStatus.PENDING,
            business_description=business_description,
            generation_mode=generation_mode,
            deep_thinking=deep_thinking,
            requested_models=list(requested_models),
            generation_strategy=generation_strategy,
            custom_parameters=custom_parameters or {},
            progress_percentage=0,
            current_step="Waiting to start",
            execution_metadata={},
            results=None,
            error_message=None,
            created_at=now,
            updated_at=now,
        )
        async with self.session_factory() as db:
            db.add(session)
            await db.commit()
        return session

    async def get(self, session_id: str, user_id: Optional[str] = None) -> GenerationSession:
        """
        Raises:
            SessionNotFoundError: If missing, or owned by a different user
        """
        async with self.session_factory() as db:
            session = await db.scalar(
                select(GenerationSession).where(GenerationSession.session_id == session_id)
            )
        if session is None or (user_id is not None and session.user_id != user_id):
            raise SessionNotFoundError(session_id)
        return session

    async def list_for_user(self, user_id: str, limit: int = 20) -> List[GenerationSession]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(GenerationSession)
                .where(GenerationSession.user_id == user_id)
                .order_by(GenerationSession.created_at.desc(), GenerationSession.id.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def count_active(self, user_id: str) -> int:
        async with self.session_factory() as db:
            count = await db.scalar(
                select(func.count(GenerationSession.id)).where(
                    GenerationSession.user_id == user_id,
                    GenerationSession.status.in_(list(ACTIVE_STATUSES)),
                )
            )
        return int(count or 0)

    # =========================================================================
    # STATE TRANSITIONS
    # =========================================================================

    async def _transition(self, session_id: str, target: SessionStatus, **values: Any) -> GenerationSession:
        allowed = ALLOWED_SOURCES[target]
        now = self.clock()

        async with self.session_factory() as db:
            result = await db.execute(
                update(GenerationSession)
                .where(
                    GenerationSession.session_id == session_id,
                    GenerationSession.status.in_(list(allowed)),
                )
                .values(status=target, updated_at=now, **values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                current = await db.scalar(
                    select(GenerationSession.status).where(GenerationSession.session_id == session_id)
                )
                if current is None:
                    raise SessionNotFoundError(session_id)
                raise InvalidTransitionError(session_id, SessionStatus(current).value, target.value)
            await db.commit()

        return await self.get(session_id)

    async def mark_running(self, session_id: str, step: str = STEP_INITIALIZING) -> GenerationSession:
        return await self._transition(
            session_id,
            SessionStatus.RUNNING,
            started_at=self.clock(),
            progress_percentage=clamp_progress(self.settings.AI_PROGRESS_INITIAL),
            current_step=step,
        )

    async def update_progress(self, session_id: str, progress: int, step: str) -> bool:
        """
        Move progress forward on a running session.
        Returns False if the session is no longer running or the value would
        move progress backwards; nothing is written in that case.
        """
        progress = clamp_progress(progress)
        async with self.session_factory() as db:
            result = await db.execute(
                update(GenerationSession)
                .where(
                    GenerationSession.session_id == session_id,
                    GenerationSession.status == SessionStatus.RUNNING,
                    GenerationSession.progress_percentage <= progress,
                )
                .values(progress_percentage=progress, current_step=step[:255], updated_at=self.clock())
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        return result.rowcount > 0

    async def mark_completed(
        self,
        session_id: str,
        results: Dict[str, List[str]],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> GenerationSession:
        return await self._transition(
            session_id,
            SessionStatus.COMPLETED,
            results=results,
            execution_metadata=metadata or {},
            error_message=None,
            progress_percentage=100,
            current_step=STEP_COMPLETED,
            completed_at=self.clock(),
        )

    async def mark_failed(
        self,
        session_id: str,
        error_message: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> GenerationSession:
        values = {
            "results": None,
            "error_message": error_message,
            "current_step": STEP_FAILED,
            "completed_at": self.clock(),
        }
        if metadata is not None:
            values["execution_metadata"] = metadata
        return await self._transition(session_id, SessionStatus.FAILED, **values)

    async def cancel(self, session_id: str, user_id: Optional[str] = None) -> GenerationSession:
        """
        Raises:
            SessionNotFoundError: If missing or not owned by user_id
            InvalidTransitionError: If the session already finished
        """
        if user_id is not None:
            await self.get(session_id, user_id)
        session = await self._transition(
            session_id,
            SessionStatus.CANCELLED,
            results=None,
            current_step=STEP_CANCELLED,
            completed_at=self.clock(),
        )
        logger.info(f"Generation {session_id} cancelled")
        return session

    async def fail_stale(self, older_than: timedelta) -> int:
        """Fail running sessions whose worker vanished"""
        cutoff = self.clock() - older_than
        async with self.session_factory() as db:
            result = await db.execute(
                update(GenerationSession)
                .where(
                    GenerationSession.status == SessionStatus.RUNNING,
                    GenerationSession.started_at < cutoff,
                )
                .values(
                    status=SessionStatus.FAILED,
                    error_message="Generation did not finish in time",
                    current_step=STEP_FAILED,
                    completed_at=self.clock(),
                    updated_at=self.clock(),
                )
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        return result.rowcount
