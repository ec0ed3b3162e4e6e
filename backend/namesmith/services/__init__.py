"""
Business Logic Services
"""

from .model_registry import ModelRegistry, ModelConfig, ModelStatus
from .access_guard import AccessGuard, AccessDecision, DenialReason, Reservation
from .session_service import SessionStore
from .generation_cache import GenerationCacheService
from .cost_service import CostTrackingService
from .preferences_service import PreferencesService
from .progress import ProgressBroker, ProgressEvent
from .prompt_builder import PromptBuilder
from .orchestrator import GenerationOrchestrator, ModelOutcome
from .generation_service import GenerationService, GenerationRequest
from .domain_service import DomainCheckService, DomainAvailability
from .container import ServiceContainer, build_services

__all__ = [
    "ModelRegistry",
    "ModelConfig",
    "ModelStatus",
    "AccessGuard",
    "AccessDecision",
    "DenialReason",
    "Reservation",
    "SessionStore",
    "GenerationCacheService",
    "CostTrackingService",
    "PreferencesService",
    "ProgressBroker",
    "ProgressEvent",
    "PromptBuilder",
    "GenerationOrchestrator",
    "ModelOutcome",
    "GenerationService",
    "GenerationRequest",
    "DomainCheckService",
    "DomainAvailability",
    "ServiceContainer",
    "build_services",
]
