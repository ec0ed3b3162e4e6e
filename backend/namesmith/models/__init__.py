"""
Database Models for namesmith
"""

from .database import (
    Base,
    # Enums
    SessionStatus,
    GenerationMode,
    GenerationStrategy,
    TERMINAL_STATUSES,
    ACTIVE_STATUSES,
    # Models
    GenerationSession,
    UserAIPreferences,
    GenerationCache,
    DomainCache,
    AIUsageLog,
)

__all__ = [
    "Base",
    "SessionStatus",
    "GenerationMode",
    "GenerationStrategy",
    "TERMINAL_STATUSES",
    "ACTIVE_STATUSES",
    "GenerationSession",
    "UserAIPreferences",
    "GenerationCache",
    "DomainCache",
    "AIUsageLog",
]
