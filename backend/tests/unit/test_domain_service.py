"""Unit tests for domain availability checks."""

from datetime import timedelta

import httpx
import pytest

from conftest import FakeRegistrar, Hang
from namesmith.adapters.domain import DomainLookupError, WhoisJsonRegistrar
from namesmith.exceptions import InvalidDomainError
from namesmith.models import DomainCache
from namesmith.services.domain_service import (
    DomainCheckService,
    build_domains,
    format_domain,
    sanitize_name,
    validate_domain,
)
from namesmith.utils.clock import utcnow


class Clock:
    def __init__(self):
        self.now = utcnow()

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return Clock()


def make_service(registrar, session_factory, settings, clock):
    return DomainCheckService(registrar, session_factory, settings, clock=clock)


REAL_ASYNC_CLIENT = httpx.AsyncClient


@pytest.fixture
def whois_replies(monkeypatch):
    """WhoisJsonRegistrar answering from a {domain: httpx.Response} map."""
    replies = {}

    def handler(request: httpx.Request):
        return replies[request.url.params["domain"]]

    def client_factory(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(handler)
        return REAL_ASYNC_CLIENT(*args, **kwargs)

    monkeypatch.setattr(httpx, "AsyncClient", client_factory)
    return replies


async def seed(session_factory, domain, available, checked_at):
    async with session_factory() as db:
        db.add(DomainCache(domain=domain, available=available, checked_at=checked_at))
        await db.commit()


class TestHelpers:
    """Tests for the domain string helpers."""

    def test_format_domain(self):
        assert format_domain("https://www.Example.com/") == "example.com"
        assert format_domain("http://brewhaven.io/about?x=1") == "brewhaven.io"
        assert format_domain("  CafeNova.CO  ") == "cafenova.co"

    def test_validate_domain(self):
        assert validate_domain("brewhaven.com")
        assert validate_domain("brew-haven.co.uk")
        assert not validate_domain("brewhaven")
        assert not validate_domain("-brewhaven.com")
        assert not validate_domain("brew_haven.com")
        assert not validate_domain(f"{'a' * 250}.com")

    def test_sanitize_name(self):
        assert sanitize_name("Brew Haven") == "brew-haven"
        assert sanitize_name("Café & Co.") == "caf-co"
        assert sanitize_name("  --Nova--  ") == "nova"
        assert sanitize_name("!!!") == ""
        assert len(sanitize_name("x" * 100)) == 63

    def test_build_domains(self):
        domains = build_domains(["BrewHaven", "brewhaven", "!!!", "Cafe Nova"], [".com", "IO"])
        assert domains == [
            "brewhaven.com",
            "brewhaven.io",
            "cafe-nova.com",
            "cafe-nova.io",
        ]


class TestDomainCheckService:
    """Tests for cached batch checks."""

    @pytest.mark.asyncio
    async def test_lookup_and_write_back(self, session_factory, settings, clock):
        registrar = FakeRegistrar({"brewhaven.com": False})
        service = make_service(registrar, session_factory, settings, clock)

        results = await service.check(["BrewHaven"], ["com", "io"])

        assert list(results) == ["brewhaven.com", "brewhaven.io"]
        assert results["brewhaven.com"].status == "taken"
        assert results["brewhaven.io"].status == "available"
        assert not results["brewhaven.com"].cached

        again = await service.check(["BrewHaven"], ["com", "io"])
        assert all(r.cached for r in again.values())
        assert again["brewhaven.com"].available is False
        assert len(registrar.calls) == 2

    @pytest.mark.asyncio
    async def test_entry_inside_ttl_served_from_cache(self, session_factory, settings, clock):
        await seed(session_factory, "brewhaven.com", False, clock.now - timedelta(hours=23, minutes=59))
        registrar = FakeRegistrar()
        service = make_service(registrar, session_factory, settings, clock)

        results = await service.check(["brewhaven"], ["com"])

        assert registrar.calls == []
        assert results["brewhaven.com"].cached
        assert results["brewhaven.com"].status == "taken"

    @pytest.mark.asyncio
    async def test_entry_past_ttl_looked_up(self, session_factory, settings, clock):
        await seed(session_factory, "brewhaven.com", False, clock.now - timedelta(hours=24, seconds=1))
        registrar = FakeRegistrar({"brewhaven.com": True})
        service = make_service(registrar, session_factory, settings, clock)

        results = await service.check(["brewhaven"], ["com"])

        assert registrar.calls == ["brewhaven.com"]
        assert results["brewhaven.com"].status == "available"
        assert not results["brewhaven.com"].cached

    @pytest.mark.asyncio
    async def test_one_failure_does_not_abort_batch(self, session_factory, settings, clock):
        registrar = FakeRegistrar({
            "brewhaven.com": DomainLookupError("WHOIS API failed", "brewhaven.com"),
            "cafenova.com": Hang(),
            "roastlab.com": False,
        })
        service = make_service(registrar, session_factory, settings, clock)

        results = await service.check(["BrewHaven", "CafeNova", "RoastLab", "BeanTheory"], ["com"])

        assert results["brewhaven.com"].status == "error"
        assert results["brewhaven.com"].error == "WHOIS API failed"
        assert results["cafenova.com"].status == "error"
        assert results["cafenova.com"].error == "Lookup timed out"
        assert results["roastlab.com"].status == "taken"
        assert results["beantheory.com"].status == "available"

    @pytest.mark.asyncio
    async def test_non_json_reply_is_a_domain_error(self, session_factory, settings, clock, whois_replies):
        whois_replies["brewhaven.com"] = httpx.Response(200, text="<html>gateway</html>")
        whois_replies["cafenova.com"] = httpx.Response(200, json={"available": True})
        service = make_service(WhoisJsonRegistrar(timeout=0.5), session_factory, settings, clock)

        results = await service.check(["brewhaven", "cafenova"], ["com"])

        assert results["brewhaven.com"].status == "error"
        assert results["brewhaven.com"].error == "Non-JSON response from domain API"
        assert results["cafenova.com"].status == "available"

    @pytest.mark.asyncio
    async def test_non_object_reply_is_a_domain_error(self, session_factory, settings, clock, whois_replies):
        whois_replies["brewhaven.com"] = httpx.Response(200, json=["unexpected"])
        service = make_service(WhoisJsonRegistrar(timeout=0.5), session_factory, settings, clock)

        results = await service.check(["brewhaven"], ["com"])

        assert results["brewhaven.com"].status == "error"

    @pytest.mark.asyncio
    async def test_unexpected_registrar_error(self, session_factory, settings, clock):
        registrar = FakeRegistrar({"brewhaven.com": RuntimeError("registrar bug")})
        service = make_service(registrar, session_factory, settings, clock)

        results = await service.check(["brewhaven", "cafenova"], ["com"])

        assert results["brewhaven.com"].status == "error"
        assert results["brewhaven.com"].error == "Lookup failed"
        assert results["cafenova.com"].status == "available"

    @pytest.mark.asyncio
    async def test_errors_are_not_cached(self, session_factory, settings, clock):
        registrar = FakeRegistrar({"brewhaven.com": DomainLookupError("boom", "brewhaven.com")})
        service = make_service(registrar, session_factory, settings, clock)

        await service.check(["brewhaven"], ["com"])
        registrar.answers["brewhaven.com"] = True
        results = await service.check(["brewhaven"], ["com"])

        assert results["brewhaven.com"].status == "available"
        assert registrar.calls == ["brewhaven.com", "brewhaven.com"]

    @pytest.mark.asyncio
    async def test_default_tlds(self, session_factory, settings, clock):
        service = make_service(FakeRegistrar(), session_factory, settings, clock)
        results = await service.check(["nova"])
        assert list(results) == [f"nova.{tld}" for tld in settings.domain_tlds_list]

    @pytest.mark.asyncio
    async def test_empty_names(self, session_factory, settings, clock):
        registrar = FakeRegistrar()
        service = make_service(registrar, session_factory, settings, clock)
        assert await service.check(["!!!"], ["com"]) == {}
        assert registrar.calls == []


class TestCheckDomain:
    """Tests for single-domain checks."""

    @pytest.mark.asyncio
    async def test_normalises_input(self, session_factory, settings, clock):
        registrar = FakeRegistrar({"brewhaven.com": False})
        service = make_service(registrar, session_factory, settings, clock)

        result = await service.check_domain("https://www.BrewHaven.com/")

        assert result.domain == "brewhaven.com"
        assert result.status == "taken"

    @pytest.mark.asyncio
    async def test_invalid_domain(self, session_factory, settings, clock):
        service = make_service(FakeRegistrar(), session_factory, settings, clock)
        with pytest.raises(InvalidDomainError):
            await service.check_domain("not a domain")

    @pytest.mark.asyncio
    async def test_non_json_reply(self, session_factory, settings, clock, whois_replies):
        whois_replies["brewhaven.com"] = httpx.Response(200, text="<html>gateway</html>")
        service = make_service(WhoisJsonRegistrar(timeout=0.5), session_factory, settings, clock)

        result = await service.check_domain("brewhaven.com")

        assert result.status == "error"
        assert result.available is None
