"""
Cost & Usage Routes
"""

from fastapi import APIRouter, Depends, Query

from namesmith.api.dependencies import get_services
from namesmith.api.middleware.auth import get_current_user_id
from namesmith.schemas.cost import BudgetResponse, UsageResponse
from namesmith.services.container import ServiceContainer

router = APIRouter()


@router.get("/budget", response_model=BudgetResponse)
async def get_budget(
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    """Global daily and monthly spend against the caps"""
    state = await services.cost.get_budget_state()
    return BudgetResponse(**state.to_dict())


@router.get("/usage", response_model=UsageResponse)
async def get_usage(
    days: int = Query(30, ge=1, le=365),
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    """The caller's model usage and remaining generation allowance"""
    return UsageResponse(**await services.cost.get_user_usage(user_id, days=days))
