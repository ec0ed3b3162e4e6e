"""
Generation Schemas
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CustomParameters(BaseModel):
    """Per-request overrides of the model defaults"""
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(default=None, ge=50, le=2000)
    top_p: Optional[float] = Field(default=None, gt=0.0, le=1.0)


class GenerationCreate(BaseModel):
    """Start a name generation"""
    business_description: str = Field(..., min_length=1, max_length=2000)
    requested_models: Optional[List[str]] = Field(default=None, min_length=1, max_length=10)
    generation_mode: Optional[str] = Field(
        default=None, pattern="^(creative|professional|brandable|tech-focused)$"
    )
    deep_thinking: Optional[bool] = None
    generation_strategy: str = Field(default="parallel", pattern="^(quick|parallel|comprehensive)$")
    custom_parameters: CustomParameters = CustomParameters()

    @field_validator("business_description")
    @classmethod
    def description_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Business description cannot be blank")
        return v.strip()


class GenerationAccepted(BaseModel):
    session_id: str
    status: str
    requested_models: List[str]


class GenerationStatus(BaseModel):
    """Polling view of a session"""
    model_config = ConfigDict(protected_namespaces=())

    session_id: str
    status: str
    progress_percentage: int
    current_step: Optional[str]
    results: Optional[Dict[str, List[str]]] = None
    error_message: Optional[str] = None
    model_errors: Dict[str, str] = {}
    requested_models: List[str]
    generation_mode: str
    deep_thinking: bool
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class GenerationSummary(BaseModel):
    session_id: str
    status: str
    progress_percentage: int
    generation_mode: str
    requested_models: List[str]
    created_at: datetime
    completed_at: Optional[datetime] = None
