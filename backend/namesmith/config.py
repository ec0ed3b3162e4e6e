"""
Configuration management for namesmith
Environment-based settings with secure defaults
"""

from decimal import Decimal
from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "namesmith"
    APP_ENV: str = "development"  # development, staging, production
    DEBUG: bool = False
    API_VERSION: str = "v1"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 4

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./namesmith.db"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 10

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"

    # LLM Provider API Keys
    OPENAI_API_KEY: Optional[str] = None
    ANTHROPIC_API_KEY: Optional[str] = None
    GOOGLE_API_KEY: Optional[str] = None
    XAI_API_KEY: Optional[str] = None

    # LLM Execution Settings
    LLM_MAX_RETRIES: int = 3
    LLM_RETRY_DELAY: float = 1.0  # seconds, multiplied by attempt number
    AI_NAMES_PER_MODEL: int = 10

    # Per-user generation limits
    AI_MAX_GENERATIONS_PER_HOUR: int = 50
    AI_MAX_GENERATIONS_PER_DAY: int = 200

    # Generation cache
    AI_CACHE_ENABLED: bool = True
    AI_CACHE_TTL_MINUTES: int = 60

    # Global cost budget (USD)
    AI_DAILY_BUDGET_LIMIT: Decimal = Decimal("100.00")
    AI_MONTHLY_BUDGET_LIMIT: Decimal = Decimal("2000.00")
    AI_COST_ALERT_THRESHOLD: int = 80  # percent of limit
    AI_DEFAULT_COST_ESTIMATE_PER_MODEL: Decimal = Decimal("0.01")

    # System-wide switch, can be flipped at runtime through the model registry
    AI_MAINTENANCE_MODE: bool = False

    # Progress reporting
    AI_PROGRESS_INITIAL: int = 5
    AI_PROGRESS_BAND_START: int = 10
    AI_PROGRESS_BAND_END: int = 90

    # Input validation
    AI_MAX_DESCRIPTION_LENGTH: int = 2000

    # Domain availability
    DOMAIN_DEFAULT_TLDS: str = "com,io,co,net"
    DOMAIN_CHECK_TIMEOUT: float = 5.0  # seconds
    DOMAIN_CACHE_HOURS: int = 24
    DOMAIN_REGISTRAR: str = "whoisjson"  # whoisjson, porkbun
    WHOISJSON_API_KEY: Optional[str] = None
    PORKBUN_API_KEY: Optional[str] = None
    PORKBUN_SECRET_KEY: Optional[str] = None

    # Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"

    # Maintenance jobs
    USAGE_LOG_RETENTION_DAYS: int = 90
    STALE_SESSION_MINUTES: int = 30

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Admin endpoints (model registry). Unset means open in development only
    ADMIN_API_TOKEN: Optional[str] = None

    @field_validator("DOMAIN_DEFAULT_TLDS", "CORS_ORIGINS", mode="before")
    @classmethod
    def strip_list_values(cls, v: str) -> str:
        return v.strip() if isinstance(v, str) else v

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def domain_tlds_list(self) -> List[str]:
        return [tld.strip().lstrip(".").lower() for tld in self.DOMAIN_DEFAULT_TLDS.split(",") if tld.strip()]

    @property
    def provider_api_keys(self) -> dict:
        return {
            "openai": self.OPENAI_API_KEY,
            "anthropic": self.ANTHROPIC_API_KEY,
            "google": self.GOOGLE_API_KEY,
            "xai": self.XAI_API_KEY,
        }

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Cached settings loader"""
    return Settings()


# Built-in model catalog, loaded into the model registry at startup.
# cost_per_1k_tokens is expressed in US cents.
DEFAULT_MODEL_CATALOG = {
    "gpt-4": {
        "display_name": "GPT-4",
        "provider": "openai",
        "provider_model": "gpt-4o",
        "enabled": True,
        "maintenance_mode": False,
        "max_tokens": 200,
        "temperature": 0.7,
        "deep_thinking_temperature": 0.3,
        "cost_per_1k_tokens": "3.0",
        "rate_limit_per_minute": 60,
        "timeout_seconds": 30,
        "description": "OpenAI's flagship model, strong all-round naming quality",
    },
    "claude-3.5-sonnet": {
        "display_name": "Claude 3.5 Sonnet",
        "provider": "anthropic",
        "provider_model": "claude-3-5-sonnet-20241022",
        "enabled": True,
        "maintenance_mode": False,
        "max_tokens": 200,
        "temperature": 0.7,
        "deep_thinking_temperature": 0.3,
        "cost_per_1k_tokens": "1.5",
        "rate_limit_per_minute": 50,
        "timeout_seconds": 30,
        "description": "Anthropic's balanced model, good at nuanced brand tone",
    },
    "gemini-1.5-pro": {
        "display_name": "Gemini 1.5 Pro",
        "provider": "google",
        "provider_model": "gemini-1.5-pro",
        "enabled": True,
        "maintenance_mode": False,
        "max_tokens": 200,
        "temperature": 0.8,
        "deep_thinking_temperature": 0.4,
        "cost_per_1k_tokens": "0.5",
        "rate_limit_per_minute": 120,
        "timeout_seconds": 30,
        "description": "Google's long-context model, fast and inexpensive",
    },
    "grok-beta": {
        "display_name": "Grok",
        "provider": "xai",
        "provider_model": "grok-beta",
        "enabled": True,
        "maintenance_mode": False,
        "max_tokens": 200,
        "temperature": 0.9,
        "deep_thinking_temperature": 0.5,
        "cost_per_1k_tokens": "0.5",
        "rate_limit_per_minute": 60,
        "timeout_seconds": 30,
        "description": "xAI's model, tends towards playful and unconventional names",
    },
}

# Defaults applied when a user's preference record is created
DEFAULT_USER_PREFERENCES = {
    "preferred_models": ["gpt-4", "claude-3.5-sonnet"],
    "model_priorities": {
        "gpt-4": 1,
        "claude-3.5-sonnet": 2,
        "gemini-1.5-pro": 3,
        "grok-beta": 4,
    },
    "default_generation_mode": "creative",
    "default_deep_thinking": False,
    "custom_parameters": {},
    "notification_settings": {
        "email_on_completion": False,
        "email_on_failure": True,
    },
    "max_concurrent_generations": 3,
}
