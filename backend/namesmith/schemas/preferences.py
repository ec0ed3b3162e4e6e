"""
User Preference Schemas
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PreferencesResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    user_id: str
    preferred_models: List[str]
    model_priorities: Dict[str, int]
    default_generation_mode: str
    default_deep_thinking: bool
    custom_parameters: Dict[str, Any]
    notification_settings: Dict[str, bool]
    max_concurrent_generations: int


class PreferencesUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged"""
    model_config = ConfigDict(protected_namespaces=())

    preferred_models: Optional[List[str]] = Field(default=None, min_length=1)
    model_priorities: Optional[Dict[str, int]] = None
    default_generation_mode: Optional[str] = Field(
        default=None, pattern="^(creative|professional|brandable|tech-focused)$"
    )
    default_deep_thinking: Optional[bool] = None
    custom_parameters: Optional[Dict[str, Any]] = None
    notification_settings: Optional[Dict[str, bool]] = None
    max_concurrent_generations: Optional[int] = Field(default=None, ge=1, le=10)
