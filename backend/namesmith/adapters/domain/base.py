"""
Base Domain Registrar Interface
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx


class BaseDomainRegistrar(ABC):
    """
    Abstract availability lookup.
    Implementations answer True (available) or False (registered) and raise
    DomainLookupError whenever they cannot tell.
    """

    name = "base"

    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout

    @abstractmethod
    async def lookup(self, domain: str) -> bool:
        """Return True if the fully-qualified domain can be registered"""
        pass

    def parse_json(self, response: httpx.Response, domain: str) -> Dict[str, Any]:
        """Decode a JSON object body or raise DomainLookupError"""
        try:
            data = response.json()
        except ValueError:
            raise DomainLookupError(
                "Non-JSON response from domain API",
                domain,
                {"status_code": response.status_code, "response": response.text[:500]},
            )
        if not isinstance(data, dict):
            raise DomainLookupError("Invalid response format from domain API", domain, {"response": data})
        return data


class DomainLookupError(Exception):
    """Availability could not be determined"""

    def __init__(self, message: str, domain: str, details: Optional[Dict] = None):
        super().__init__(message)
        self.domain = domain
        self.details = details or {}
