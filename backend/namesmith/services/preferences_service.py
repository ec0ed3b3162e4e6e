"""
User AI Preferences Service
"""

import copy
import logging
from typing import Any, Dict

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker

from namesmith.config import DEFAULT_USER_PREFERENCES
from namesmith.exceptions import GenerationValidationError, InvalidModelError
from namesmith.models import GenerationMode, UserAIPreferences
from namesmith.services.model_registry import ModelRegistry

logger = logging.getLogger(__name__)


UPDATABLE_FIELDS = {
    "preferred_models",
    "model_priorities",
    "default_generation_mode",
    "default_deep_thinking",
    "custom_parameters",
    "notification_settings",
    "max_concurrent_generations",
}


class PreferencesService:
    """Exactly one preference row per user, created with defaults on first read"""

    def __init__(self, session_factory: async_sessionmaker, registry: ModelRegistry):
        self.session_factory = session_factory
        self.registry = registry

    async def get_or_create(self, user_id: str) -> UserAIPreferences:
        async with self.session_factory() as db:
            prefs = await db.scalar(select(UserAIPreferences).where(UserAIPreferences.user_id == user_id))
            if prefs is not None:
                return prefs

            defaults = copy.deepcopy(DEFAULT_USER_PREFERENCES)
            defaults["default_generation_mode"] = GenerationMode(defaults["default_generation_mode"])
            prefs = UserAIPreferences(user_id=user_id, **defaults)
            db.add(prefs)
            try:
                await db.commit()
                logger.info(f"Created default AI preferences for {user_id}")
                return prefs
            except IntegrityError:
                # Created concurrently by another request
                await db.rollback()

        async with self.session_factory() as db:
            return await db.scalar(select(UserAIPreferences).where(UserAIPreferences.user_id == user_id))

    def _validate(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise GenerationValidationError(f"Unknown preference fields: {', '.join(sorted(unknown))}")

        validated = dict(changes)
        snapshot = self.registry.snapshot()

        if "preferred_models" in validated:
            models = list(validated["preferred_models"] or [])
            if not models:
                raise GenerationValidationError("At least one preferred model is required")
            for model_id in models:
                if snapshot.get(model_id) is None:
                    raise InvalidModelError(model_id)
            validated["preferred_models"] = list(dict.fromkeys(models))

        if "model_priorities" in validated:
            priorities = dict(validated["model_priorities"] or {})
            for model_id, priority in priorities.items():
                if snapshot.get(model_id) is None:
                    raise InvalidModelError(model_id)
                if int(priority) < 1:
                    raise GenerationValidationError("Model priorities must be positive")
            validated["model_priorities"] = {k: int(v) for k, v in priorities.items()}

        if "default_generation_mode" in validated:
            try:
                validated["default_generation_mode"] = GenerationMode(validated["default_generation_mode"])
            except ValueError:
                raise GenerationValidationError(
                    f"Invalid generation mode: {validated['default_generation_mode']}"
                )

        if "max_concurrent_generations" in validated:
            if int(validated["max_concurrent_generations"]) < 1:
                raise GenerationValidationError("max_concurrent_generations must be at least 1")

        return validated

    async def update(self, user_id: str, changes: Dict[str, Any]) -> UserAIPreferences:
        """
        Raises:
            GenerationValidationError: On an invalid field or value
            InvalidModelError: If a model id is not in the catalog
        """
        validated = self._validate(changes)
        await self.get_or_create(user_id)

        async with self.session_factory() as db:
            prefs = await db.scalar(select(UserAIPreferences).where(UserAIPreferences.user_id == user_id))
            for key, value in validated.items():
                setattr(prefs, key, value)
            await db.commit()
            return prefs
