"""
Pydantic Schemas for API Request/Response validation
"""

from .generation import (
    CustomParameters,
    GenerationCreate,
    GenerationAccepted,
    GenerationStatus,
    GenerationSummary,
)
from .domain import (
    DomainCheckRequest,
    DomainResult,
    DomainCheckResponse,
)
from .preferences import (
    PreferencesResponse,
    PreferencesUpdate,
)
from .catalog import (
    ModelResponse,
    ModelListResponse,
    ModelUpdate,
    MaintenanceUpdate,
)
from .cost import (
    BudgetResponse,
    UsageResponse,
)

__all__ = [
    # Generation
    "CustomParameters",
    "GenerationCreate",
    "GenerationAccepted",
    "GenerationStatus",
    "GenerationSummary",
    # Domains
    "DomainCheckRequest",
    "DomainResult",
    "DomainCheckResponse",
    # Preferences
    "PreferencesResponse",
    "PreferencesUpdate",
    # Models
    "ModelResponse",
    "ModelListResponse",
    "ModelUpdate",
    "MaintenanceUpdate",
    # Cost
    "BudgetResponse",
    "UsageResponse",
]
