"""
Domain Registrar Adapters
"""

from namesmith.config import Settings
from .base import BaseDomainRegistrar, DomainLookupError
from .porkbun_registrar import PorkbunRegistrar
from .whoisjson_registrar import WhoisJsonRegistrar


def get_registrar(settings: Settings) -> BaseDomainRegistrar:
    """
    Build the registrar selected by DOMAIN_REGISTRAR.

    Raises:
        ValueError: If the registrar is unknown or lacks credentials
    """
    registrar = settings.DOMAIN_REGISTRAR.lower()

    if registrar == "porkbun":
        if not settings.PORKBUN_API_KEY or not settings.PORKBUN_SECRET_KEY:
            raise ValueError("PORKBUN_API_KEY and PORKBUN_SECRET_KEY are required for the porkbun registrar")
        return PorkbunRegistrar(
            api_key=settings.PORKBUN_API_KEY,
            secret_key=settings.PORKBUN_SECRET_KEY,
            timeout=settings.DOMAIN_CHECK_TIMEOUT,
        )
    if registrar == "whoisjson":
        return WhoisJsonRegistrar(
            api_key=settings.WHOISJSON_API_KEY,
            timeout=settings.DOMAIN_CHECK_TIMEOUT,
        )

    raise ValueError(f"Unsupported domain registrar: {settings.DOMAIN_REGISTRAR}")


__all__ = [
    "get_registrar",
    "BaseDomainRegistrar",
    "DomainLookupError",
    "PorkbunRegistrar",
    "WhoisJsonRegistrar",
]
