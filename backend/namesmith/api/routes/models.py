"""
Model Catalog Routes
Listing for everyone, mutations for administrators
"""

from fastapi import APIRouter, Depends, HTTPException

from namesmith.api.dependencies import get_services
from namesmith.api.middleware.auth import require_admin
from namesmith.schemas.catalog import (
    MaintenanceUpdate,
    ModelListResponse,
    ModelResponse,
    ModelUpdate,
)
from namesmith.services.container import ServiceContainer

router = APIRouter()


@router.get("", response_model=ModelListResponse)
async def list_models(services: ServiceContainer = Depends(get_services)):
    snapshot = services.registry.snapshot()
    return ModelListResponse(
        version=snapshot.version,
        maintenance_mode=snapshot.maintenance_mode,
        models=[ModelResponse(**m.to_dict()) for m in snapshot.models.values()],
    )


@router.put("/maintenance", response_model=ModelListResponse, dependencies=[Depends(require_admin)])
async def set_system_maintenance(
    request: MaintenanceUpdate,
    services: ServiceContainer = Depends(get_services),
):
    """Switch system-wide maintenance mode; new generations are refused while on"""
    snapshot = services.registry.set_maintenance_mode(request.enabled)
    return ModelListResponse(
        version=snapshot.version,
        maintenance_mode=snapshot.maintenance_mode,
        models=[ModelResponse(**m.to_dict()) for m in snapshot.models.values()],
    )


@router.patch("/{model_id}", response_model=ModelResponse, dependencies=[Depends(require_admin)])
async def update_model(
    model_id: str,
    request: ModelUpdate,
    services: ServiceContainer = Depends(get_services),
):
    changes = request.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=422, detail="No changes supplied")

    try:
        model = services.registry.update_model(model_id, **changes)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return ModelResponse(**model.to_dict())
