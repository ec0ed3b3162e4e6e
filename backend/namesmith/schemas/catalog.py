"""
Model Catalog Schemas
"""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ModelResponse(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    display_name: str
    provider: str
    provider_model: str
    status: str
    enabled: bool
    maintenance_mode: bool
    has_credentials: bool
    max_tokens: int
    temperature: float
    deep_thinking_temperature: float
    cost_per_1k_tokens: Decimal
    rate_limit_per_minute: int
    timeout_seconds: float
    description: str


class ModelListResponse(BaseModel):
    version: int
    maintenance_mode: bool
    models: List[ModelResponse]


class ModelUpdate(BaseModel):
    enabled: Optional[bool] = None
    maintenance_mode: Optional[bool] = None
    max_tokens: Optional[int] = Field(default=None, ge=1, le=8000)
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    deep_thinking_temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    cost_per_1k_tokens: Optional[Decimal] = Field(default=None, ge=0)
    rate_limit_per_minute: Optional[int] = Field(default=None, ge=1)
    timeout_seconds: Optional[float] = Field(default=None, gt=0, le=300)


class MaintenanceUpdate(BaseModel):
    enabled: bool
