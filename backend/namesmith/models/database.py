"""
namesmith Database Models
SQLAlchemy ORM, portable between PostgreSQL and SQLite
"""

from enum import Enum as PyEnum

from sqlalchemy import (
    Column, String, Text, Integer, Boolean, DateTime,
    Enum, JSON, Numeric, Index, CheckConstraint
)
from sqlalchemy.orm import declarative_base

from namesmith.utils.clock import utcnow

Base = declarative_base()


# ============================================================================
# ENUMS
# ============================================================================

class SessionStatus(str, PyEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({
    SessionStatus.COMPLETED,
    SessionStatus.FAILED,
    SessionStatus.CANCELLED,
})

ACTIVE_STATUSES = frozenset({
    SessionStatus.PENDING,
    SessionStatus.RUNNING,
})


class GenerationMode(str, PyEnum):
    CREATIVE = "creative"
    PROFESSIONAL = "professional"
    BRANDABLE = "brandable"
    TECH_FOCUSED = "tech-focused"


class GenerationStrategy(str, PyEnum):
    QUICK = "quick"                  # First usable requested model only
    PARALLEL = "parallel"            # Every usable requested model
    COMPREHENSIVE = "comprehensive"  # Requested models plus every other available one


# ============================================================================
# GENERATION SESSIONS
# ============================================================================

class GenerationSession(Base):
    """One user-initiated name generation request"""
    __tablename__ = "generation_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(64), unique=True, nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)

    status = Column(Enum(SessionStatus), default=SessionStatus.PENDING, nullable=False)

    # Request
    business_description = Column(Text, nullable=False)
    generation_mode = Column(Enum(GenerationMode), default=GenerationMode.CREATIVE, nullable=False)
    deep_thinking = Column(Boolean, default=False, nullable=False)
    requested_models = Column(JSON, nullable=False)  # Ordered list of model ids
    generation_strategy = Column(Enum(GenerationStrategy), default=GenerationStrategy.PARALLEL, nullable=False)
    custom_parameters = Column(JSON, default=dict)

    # Progress
    progress_percentage = Column(Integer, default=0, nullable=False)
    current_step = Column(String(255))

    # Outcome
    results = Column(JSON)  # {model_id: [names]}, set only when completed
    execution_metadata = Column(JSON, default=dict)  # Timing, cost, per-model errors
    error_message = Column(Text)  # Set only when failed

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    started_at = Column(DateTime)
    completed_at = Column(DateTime)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("progress_percentage >= 0 AND progress_percentage <= 100", name="check_progress_range"),
        Index("idx_generation_sessions_user_status", "user_id", "status"),
        Index("idx_generation_sessions_status_started", "status", "started_at"),
    )

    @property
    def model_errors(self) -> dict:
        return (self.execution_metadata or {}).get("model_errors", {})

    def status_snapshot(self) -> dict:
        """Polling view of the session"""
        status = SessionStatus(self.status)
        return {
            "session_id": self.session_id,
            "status": status.value,
            "progress_percentage": self.progress_percentage,
            "current_step": self.current_step,
            "results": self.results if status == SessionStatus.COMPLETED else None,
            "error_message": self.error_message if status == SessionStatus.FAILED else None,
            "model_errors": self.model_errors,
            "requested_models": list(self.requested_models or []),
            "generation_mode": GenerationMode(self.generation_mode).value,
            "deep_thinking": self.deep_thinking,
            "created_at": self.created_at,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
        }


# ============================================================================
# USER PREFERENCES
# ============================================================================

class UserAIPreferences(Base):
    """Per-user generation defaults, created lazily on first access"""
    __tablename__ = "user_ai_preferences"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), unique=True, nullable=False, index=True)

    preferred_models = Column(JSON, nullable=False)
    model_priorities = Column(JSON, default=dict)  # {model_id: priority}, lower first
    default_generation_mode = Column(Enum(GenerationMode), default=GenerationMode.CREATIVE, nullable=False)
    default_deep_thinking = Column(Boolean, default=False, nullable=False)
    custom_parameters = Column(JSON, default=dict)  # e.g. temperature overrides
    notification_settings = Column(JSON, default=dict)
    max_concurrent_generations = Column(Integer, default=3, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("max_concurrent_generations >= 1", name="check_max_concurrent_positive"),
    )

    def preferred_models_ordered(self) -> list:
        """Preferred models sorted by priority, unknown priorities last"""
        priorities = self.model_priorities or {}
        models = list(self.preferred_models or [])
        return sorted(models, key=lambda m: (priorities.get(m, 999), models.index(m)))


# ============================================================================
# CACHES
# ============================================================================

class GenerationCache(Base):
    """Memoized generation result, keyed by the request content hash"""
    __tablename__ = "generation_cache"

    id = Column(Integer, primary_key=True, autoincrement=True)
    input_hash = Column(String(64), unique=True, nullable=False, index=True)
    business_description = Column(Text, nullable=False)
    generation_mode = Column(String(32), nullable=False)
    deep_thinking = Column(Boolean, default=False, nullable=False)
    generated_names = Column(JSON, nullable=False)  # {model_id: [names]}
    cached_at = Column(DateTime, default=utcnow, nullable=False, index=True)


class DomainCache(Base):
    """Memoized domain availability lookup"""
    __tablename__ = "domain_cache"

    id = Column(Integer, primary_key=True, autoincrement=True)
    domain = Column(String(253), unique=True, nullable=False, index=True)
    available = Column(Boolean, nullable=False)
    checked_at = Column(DateTime, default=utcnow, nullable=False, index=True)


# ============================================================================
# COST TRACKING
# ============================================================================

class AIUsageLog(Base):
    """One provider call made on behalf of a generation session"""
    __tablename__ = "ai_usage_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    session_id = Column(String(64), nullable=False, index=True)
    model_id = Column(String(64), nullable=False)
    provider = Column(String(32), nullable=False)

    input_tokens = Column(Integer, default=0)
    output_tokens = Column(Integer, default=0)
    total_tokens = Column(Integer, default=0)
    cost_usd = Column(Numeric(12, 6), default=0)

    response_time_ms = Column(Integer)
    names_generated = Column(Integer, default=0)
    successful = Column(Boolean, default=True, nullable=False)
    error_category = Column(String(32))

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    __table_args__ = (
        Index("idx_ai_usage_logs_user_created", "user_id", "created_at"),
    )
