"""
Domain Availability Routes
"""

from fastapi import APIRouter, Depends, HTTPException

from namesmith.api.dependencies import get_services
from namesmith.api.middleware.auth import get_current_user_id
from namesmith.exceptions import InvalidDomainError
from namesmith.schemas.domain import DomainCheckRequest, DomainCheckResponse, DomainResult
from namesmith.services.container import ServiceContainer

router = APIRouter()


@router.post("/check", response_model=DomainCheckResponse)
async def check_domains(
    request: DomainCheckRequest,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    """
    Check every name against the requested TLDs (or the configured defaults).
    A registrar failure shows up as status=error on that domain only.
    """
    results = await services.domains.check(request.names, request.tlds)

    return DomainCheckResponse(
        results={domain: DomainResult(**r.to_dict()) for domain, r in results.items()},
        total=len(results),
        available=sum(1 for r in results.values() if r.status == "available"),
        errors=sum(1 for r in results.values() if r.status == "error"),
    )


@router.get("/{domain}", response_model=DomainResult)
async def check_single_domain(
    domain: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    """Check one fully-qualified domain such as example.com"""
    try:
        result = await services.domains.check_domain(domain)
    except InvalidDomainError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return DomainResult(**result.to_dict())
