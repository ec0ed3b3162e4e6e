"""
API Routes
"""

from fastapi import APIRouter

from .generation import router as generation_router
from .models import router as models_router
from .domains import router as domains_router
from .preferences import router as preferences_router
from .cost import router as cost_router

api_router = APIRouter()

api_router.include_router(generation_router, prefix="/generations", tags=["Name Generation"])
api_router.include_router(models_router, prefix="/models", tags=["Model Catalog"])
api_router.include_router(domains_router, prefix="/domains", tags=["Domain Availability"])
api_router.include_router(preferences_router, prefix="/preferences", tags=["Preferences"])
api_router.include_router(cost_router, prefix="/cost", tags=["Cost & Usage"])
