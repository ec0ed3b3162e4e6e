"""
WhoisJSON Registrar Adapter
Queries domainsdb.info first and falls back to the whoisjson availability API
"""

from typing import Optional

import httpx

from .base import BaseDomainRegistrar, DomainLookupError


class WhoisJsonRegistrar(BaseDomainRegistrar):
    """Availability lookup through public WHOIS-style APIs"""

    name = "whoisjson"

    DOMAINSDB_URL = "https://api.domainsdb.info/v1/domains/search"
    WHOISJSON_URL = "https://whoisjson.com/api/v1/domain-availability"

    def __init__(self, api_key: Optional[str] = None, timeout: float = 5.0):
        super().__init__(timeout)
        self.api_key = api_key

    async def lookup(self, domain: str) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                available = await self._search_domainsdb(client, domain)
                if available is None:
                    available = await self._query_whoisjson(client, domain)
                return available
        except httpx.TimeoutException:
            raise DomainLookupError("Timeout checking domain availability", domain)
        except httpx.RequestError as e:
            raise DomainLookupError(f"Network error: {e}", domain)

    async def _search_domainsdb(self, client: httpx.AsyncClient, domain: str) -> Optional[bool]:
        """Returns None when the response does not carry an availability answer"""
        zone = domain.rsplit(".", 1)[-1]
        response = await client.get(self.DOMAINSDB_URL, params={"domain": domain, "zone": zone})

        if response.status_code == 408:
            raise DomainLookupError("Timeout checking domain availability", domain)
        if response.status_code == 404:
            # domainsdb answers 404 when it has no record of the name
            return None
        if response.status_code != 200:
            raise DomainLookupError(
                "Domain API request failed",
                domain,
                {"status_code": response.status_code},
            )

        data = self.parse_json(response, domain)
        if "available" in data:
            return data["available"] is True
        return None

    async def _query_whoisjson(self, client: httpx.AsyncClient, domain: str) -> bool:
        headers = {}
        if self.api_key:
            headers["Authorization"] = f"TOKEN={self.api_key}"

        response = await client.get(self.WHOISJSON_URL, params={"domain": domain}, headers=headers)
        if response.status_code != 200:
            raise DomainLookupError(
                "WHOIS API failed",
                domain,
                {"status_code": response.status_code},
            )

        data = self.parse_json(response, domain)
        if "available" not in data:
            raise DomainLookupError("Invalid response format from domain API", domain, {"response": data})
        return data["available"] is True
