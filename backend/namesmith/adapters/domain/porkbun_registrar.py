"""
Porkbun Registrar Adapter
"""

import httpx

from .base import BaseDomainRegistrar, DomainLookupError


class PorkbunRegistrar(BaseDomainRegistrar):
    """Availability lookup through the Porkbun checkDomain endpoint"""

    name = "porkbun"

    API_BASE = "https://api.porkbun.com/api/json/v3"

    def __init__(self, api_key: str, secret_key: str, timeout: float = 5.0):
        super().__init__(timeout)
        self.api_key = api_key
        self.secret_key = secret_key

    async def lookup(self, domain: str) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.API_BASE}/domain/checkDomain/{domain}",
                    json={
                        "secretapikey": self.secret_key,
                        "apikey": self.api_key,
                    },
                    headers={"Content-Type": "application/json"},
                )
        except httpx.TimeoutException:
            raise DomainLookupError("Timeout checking domain availability", domain)
        except httpx.RequestError as e:
            raise DomainLookupError(f"Network error: {e}", domain)

        if response.status_code != 200:
            raise DomainLookupError(
                f"Porkbun API error ({response.status_code})",
                domain,
                {"status_code": response.status_code, "response": response.text[:500]},
            )

        data = self.parse_json(response, domain)
        result = data.get("response")
        if data.get("status") != "SUCCESS" or not isinstance(result, dict):
            raise DomainLookupError(
                data.get("message", "Unexpected Porkbun response"),
                domain,
                {"response": data},
            )

        return result.get("avail") == "yes"
