"""
namesmith - Multi-model business name generation
Main FastAPI Application
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from namesmith import __version__
from namesmith.config import get_settings
from namesmith.exceptions import (
    GenerationRejectedError,
    GenerationValidationError,
    InvalidModelError,
    InvalidTransitionError,
    SessionNotFoundError,
)
from namesmith.services.access_guard import DenialReason

logger = logging.getLogger(__name__)

# Denials the caller can fix by waiting on their own usage
CLIENT_THROTTLE_REASONS = {DenialReason.RATE_LIMITED.value, DenialReason.CONCURRENCY_LIMITED.value}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the service container on startup, drain it on shutdown"""
    from namesmith.adapters.domain import get_registrar
    from namesmith.adapters.llm import build_provider_pool
    from namesmith.services.container import build_services
    from namesmith.utils import close_db, close_redis, get_redis, get_session_maker, init_db

    settings = get_settings()
    await init_db()
    redis_client = await get_redis()
    providers = build_provider_pool(settings.provider_api_keys)

    app.state.services = build_services(
        settings=settings,
        session_factory=get_session_maker(),
        redis_client=redis_client,
        providers=providers,
        registrar=get_registrar(settings),
    )
    logger.info(
        f"namesmith started with providers: {', '.join(p.value for p in providers) or 'none'}"
    )

    yield

    await app.state.services.shutdown()
    await close_db()
    await close_redis()


def register_exception_handlers(application: FastAPI) -> None:
    @application.exception_handler(GenerationValidationError)
    async def validation_error_handler(request: Request, exc: GenerationValidationError):
        content = {"detail": str(exc), "reason": "validation_error"}
        if isinstance(exc, InvalidModelError):
            content["model_id"] = exc.model_id
        return JSONResponse(status_code=422, content=content)

    @application.exception_handler(GenerationRejectedError)
    async def rejected_handler(request: Request, exc: GenerationRejectedError):
        status_code = 429 if exc.reason in CLIENT_THROTTLE_REASONS else 503
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
        return JSONResponse(
            status_code=status_code,
            content={"detail": str(exc), "reason": exc.reason, "retry_after": exc.retry_after},
            headers=headers,
        )

    @application.exception_handler(InvalidTransitionError)
    async def transition_handler(request: Request, exc: InvalidTransitionError):
        return JSONResponse(
            status_code=409,
            content={
                "detail": str(exc),
                "reason": "invalid_transition",
                "current_status": exc.current,
                "requested_status": exc.target,
            },
        )

    @application.exception_handler(SessionNotFoundError)
    async def not_found_handler(request: Request, exc: SessionNotFoundError):
        return JSONResponse(status_code=404, content={"detail": "Generation session not found"})

    @application.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unexpected errors"""
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        settings = get_settings()
        if settings.DEBUG:
            return JSONResponse(
                status_code=500,
                content={
                    "detail": str(exc),
                    "type": type(exc).__name__,
                },
            )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )


def create_app(use_lifespan: bool = True) -> FastAPI:
    """Factory function to create FastAPI app"""
    settings = get_settings()

    application = FastAPI(
        title="namesmith API",
        description="""
        Multi-model business name generation

        ## Features
        - Parallel generation across GPT-4, Claude, Gemini and Grok
        - Live progress with per-model partial failure
        - Result caching, per-user rate limits and a global cost budget
        - Domain availability checks
        """,
        version=__version__,
        lifespan=lifespan if use_lifespan else None,
        docs_url="/docs",
        redoc_url="/redoc" if settings.is_development else None,
    )

    # CORS middleware
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(application)

    from namesmith.api.routes import api_router
    application.include_router(api_router, prefix=f"/api/{settings.API_VERSION}")

    @application.get("/health")
    async def health_check(request: Request):
        """Health check endpoint"""
        settings = get_settings()
        services = getattr(request.app.state, "services", None)
        body = {
            "status": "healthy",
            "version": __version__,
            "environment": settings.APP_ENV,
        }
        if services is None:
            body["status"] = "starting"
            return body

        body["registry_version"] = services.registry.version
        body["maintenance_mode"] = services.registry.maintenance_mode
        body["active_generations"] = len(services.generations.active_sessions())
        try:
            await services.guard.ping()
            body["redis"] = "ok"
        except RedisError as e:
            logger.error(f"Health check could not reach Redis: {e}")
            body["redis"] = "unavailable"
            body["status"] = "degraded"
        return body

    @application.get("/")
    async def root():
        """Root endpoint"""
        return {
            "name": "namesmith API",
            "version": __version__,
            "docs": "/docs",
        }

    return application


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()

    uvicorn.run(
        "namesmith.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.is_development,
        workers=1 if settings.is_development else settings.WORKERS,
    )
