"""
User Preference Routes
"""

from fastapi import APIRouter, Depends

from namesmith.api.dependencies import get_services
from namesmith.api.middleware.auth import get_current_user_id
from namesmith.models import GenerationMode, UserAIPreferences
from namesmith.schemas.preferences import PreferencesResponse, PreferencesUpdate
from namesmith.services.container import ServiceContainer

router = APIRouter()


def _to_response(prefs: UserAIPreferences) -> PreferencesResponse:
    return PreferencesResponse(
        user_id=prefs.user_id,
        preferred_models=list(prefs.preferred_models or []),
        model_priorities=dict(prefs.model_priorities or {}),
        default_generation_mode=GenerationMode(prefs.default_generation_mode).value,
        default_deep_thinking=prefs.default_deep_thinking,
        custom_parameters=dict(prefs.custom_parameters or {}),
        notification_settings=dict(prefs.notification_settings or {}),
        max_concurrent_generations=prefs.max_concurrent_generations,
    )


@router.get("", response_model=PreferencesResponse)
async def get_preferences(
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return _to_response(await services.preferences.get_or_create(user_id))


@router.put("", response_model=PreferencesResponse)
async def update_preferences(
    request: PreferencesUpdate,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    prefs = await services.preferences.update(user_id, request.model_dump(exclude_none=True))
    return _to_response(prefs)
