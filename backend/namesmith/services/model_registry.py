"""
Model Registry
Versioned, copy-on-write catalog of the models a generation may target
"""

import logging
import threading
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional

from namesmith.adapters.llm import LLMProviderType
from namesmith.config import DEFAULT_MODEL_CATALOG, Settings
from namesmith.exceptions import InvalidModelError, NoAvailableModelsError

logger = logging.getLogger(__name__)


class ModelStatus(str, Enum):
    AVAILABLE = "available"
    DISABLED = "disabled"
    MAINTENANCE = "maintenance"
    MISSING_CREDENTIALS = "missing_credentials"


@dataclass(frozen=True)
class ModelConfig:
    """Operating parameters for one model"""
    model_id: str
    display_name: str
    provider: LLMProviderType
    provider_model: str
    enabled: bool = True
    maintenance_mode: bool = False
    has_credentials: bool = True
    max_tokens: int = 200
    temperature: float = 0.7
    deep_thinking_temperature: float = 0.3
    cost_per_1k_tokens: Decimal = Decimal("0")  # US cents
    rate_limit_per_minute: int = 60
    timeout_seconds: float = 30
    description: str = ""

    @property
    def status(self) -> ModelStatus:
        if not self.enabled:
            return ModelStatus.DISABLED
        if self.maintenance_mode:
            return ModelStatus.MAINTENANCE
        if not self.has_credentials:
            return ModelStatus.MISSING_CREDENTIALS
        return ModelStatus.AVAILABLE

    @property
    def is_available(self) -> bool:
        return self.status == ModelStatus.AVAILABLE

    def cost_for_tokens(self, tokens: int) -> Decimal:
        """USD cost of the given token count"""
        return (Decimal(tokens) * self.cost_per_1k_tokens / Decimal(1000) / Decimal(100)).quantize(
            Decimal("0.000001")
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model_id": self.model_id,
            "display_name": self.display_name,
            "provider": self.provider.value,
            "provider_model": self.provider_model,
            "enabled": self.enabled,
            "maintenance_mode": self.maintenance_mode,
            "has_credentials": self.has_credentials,
            "status": self.status.value,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "deep_thinking_temperature": self.deep_thinking_temperature,
            "cost_per_1k_tokens": self.cost_per_1k_tokens,
            "rate_limit_per_minute": self.rate_limit_per_minute,
            "timeout_seconds": self.timeout_seconds,
            "description": self.description,
        }


@dataclass(frozen=True)
class RegistrySnapshot:
    """Immutable view of the catalog; readers hold one for a whole request"""
    version: int
    models: Mapping[str, ModelConfig]
    maintenance_mode: bool = False

    def get(self, model_id: str) -> Optional[ModelConfig]:
        return self.models.get(model_id)

    def available(self) -> List[ModelConfig]:
        return [m for m in self.models.values() if m.is_available]


MUTABLE_FIELDS = {
    "display_name",
    "enabled",
    "maintenance_mode",
    "max_tokens",
    "temperature",
    "deep_thinking_temperature",
    "cost_per_1k_tokens",
    "rate_limit_per_minute",
    "timeout_seconds",
    "description",
}


def validate_model_config(config: ModelConfig) -> List[str]:
    """Return a list of problems with the config, empty if valid"""
    errors = []
    if not config.model_id:
        errors.append("model_id is required")
    if config.max_tokens <= 0:
        errors.append("max_tokens must be positive")
    if not 0 <= config.temperature <= 2:
        errors.append("temperature must be between 0 and 2")
    if not 0 <= config.deep_thinking_temperature <= 2:
        errors.append("deep_thinking_temperature must be between 0 and 2")
    if config.cost_per_1k_tokens < 0:
        errors.append("cost_per_1k_tokens cannot be negative")
    if config.rate_limit_per_minute <= 0:
        errors.append("rate_limit_per_minute must be positive")
    if config.timeout_seconds <= 0:
        errors.append("timeout_seconds must be positive")
    return errors


class ModelRegistry:
    """
    Holds the current RegistrySnapshot.

    Writers build a new snapshot and swap the reference under a lock; readers
    never lock and never see a half-applied change.
    """

    def __init__(self, models: Iterable[ModelConfig], maintenance_mode: bool = False):
        catalog = {}
        for model in models:
            errors = validate_model_config(model)
            if errors:
                raise ValueError(f"Invalid config for {model.model_id}: {'; '.join(errors)}")
            catalog[model.model_id] = model

        self._write_lock = threading.RLock()
        self._snapshot = RegistrySnapshot(
            version=1,
            models=MappingProxyType(catalog),
            maintenance_mode=maintenance_mode,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        catalog: Optional[Dict[str, Dict[str, Any]]] = None,
        credentialed_providers: Optional[Iterable[LLMProviderType]] = None,
    ) -> "ModelRegistry":
        """
        Build the registry from the catalog constant.
        A provider counts as credentialed if it is in the provider pool, or
        failing that, if its API key is set.
        """
        if credentialed_providers is None:
            credentialed = {
                LLMProviderType(p) for p, key in settings.provider_api_keys.items() if key
            }
        else:
            credentialed = set(credentialed_providers)

        models = []
        for model_id, entry in (catalog or DEFAULT_MODEL_CATALOG).items():
            provider = LLMProviderType(entry["provider"])
            models.append(ModelConfig(
                model_id=model_id,
                display_name=entry.get("display_name", model_id),
                provider=provider,
                provider_model=entry.get("provider_model", model_id),
                enabled=entry.get("enabled", True),
                maintenance_mode=entry.get("maintenance_mode", False),
                has_credentials=provider in credentialed,
                max_tokens=entry.get("max_tokens", 200),
                temperature=entry.get("temperature", 0.7),
                deep_thinking_temperature=entry.get("deep_thinking_temperature", 0.3),
                cost_per_1k_tokens=Decimal(str(entry.get("cost_per_1k_tokens", "0"))),
                rate_limit_per_minute=entry.get("rate_limit_per_minute", 60),
                timeout_seconds=entry.get("timeout_seconds", 30),
                description=entry.get("description", ""),
            ))
        return cls(models, maintenance_mode=settings.AI_MAINTENANCE_MODE)

    # =========================================================================
    # READS
    # =========================================================================

    def snapshot(self) -> RegistrySnapshot:
        return self._snapshot

    @property
    def version(self) -> int:
        return self._snapshot.version

    @property
    def maintenance_mode(self) -> bool:
        return self._snapshot.maintenance_mode

    def get(self, model_id: str) -> ModelConfig:
        model = self._snapshot.get(model_id)
        if model is None:
            raise InvalidModelError(model_id)
        return model

    def list_models(self) -> List[ModelConfig]:
        return list(self._snapshot.models.values())

    def resolve(
        self,
        requested_ids: List[str],
        snapshot: Optional[RegistrySnapshot] = None,
    ) -> List[ModelConfig]:
        """
        Map requested ids to usable configs, preserving request order.

        Raises:
            InvalidModelError: If any id is unknown (the whole batch is rejected)
            NoAvailableModelsError: If no requested model is usable
        """
        snap = snapshot or self._snapshot

        for model_id in requested_ids:
            if model_id not in snap.models:
                raise InvalidModelError(model_id)

        resolved = []
        seen = set()
        for model_id in requested_ids:
            if model_id in seen:
                continue
            seen.add(model_id)
            model = snap.models[model_id]
            if model.is_available:
                resolved.append(model)
            else:
                logger.info(f"Skipping model {model_id}: {model.status.value}")

        if not resolved:
            raise NoAvailableModelsError(list(requested_ids))
        return resolved

    # =========================================================================
    # WRITES
    # =========================================================================

    def _publish(self, models: Dict[str, ModelConfig], maintenance_mode: bool) -> RegistrySnapshot:
        snapshot = RegistrySnapshot(
            version=self._snapshot.version + 1,
            models=MappingProxyType(models),
            maintenance_mode=maintenance_mode,
        )
        self._snapshot = snapshot
        return snapshot

    def update_model(self, model_id: str, **changes: Any) -> ModelConfig:
        """
        Replace fields of one model and publish a new snapshot.

        Raises:
            InvalidModelError: If the model is unknown
            ValueError: If a field is not editable or the result is invalid
        """
        unknown = set(changes) - MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not editable: {', '.join(sorted(unknown))}")

        if "cost_per_1k_tokens" in changes:
            changes["cost_per_1k_tokens"] = Decimal(str(changes["cost_per_1k_tokens"]))

        with self._write_lock:
            current = self._snapshot
            if model_id not in current.models:
                raise InvalidModelError(model_id)

            updated = replace(current.models[model_id], **changes)
            errors = validate_model_config(updated)
            if errors:
                raise ValueError("; ".join(errors))

            models = dict(current.models)
            models[model_id] = updated
            snapshot = self._publish(models, current.maintenance_mode)

        logger.info(f"Model {model_id} updated ({', '.join(sorted(changes))}), registry v{snapshot.version}")
        return updated

    def toggle_model(self, model_id: str) -> ModelConfig:
        """Flip a model's enabled flag"""
        with self._write_lock:
            enabled = self.get(model_id).enabled
            return self.update_model(model_id, enabled=not enabled)

    def set_model_maintenance(self, model_id: str, maintenance_mode: bool) -> ModelConfig:
        return self.update_model(model_id, maintenance_mode=maintenance_mode)

    def set_maintenance_mode(self, maintenance_mode: bool) -> RegistrySnapshot:
        """Set the system-wide maintenance flag"""
        with self._write_lock:
            snapshot = self._publish(dict(self._snapshot.models), maintenance_mode)
        logger.warning(f"System maintenance mode {'enabled' if maintenance_mode else 'disabled'}")
        return snapshot
