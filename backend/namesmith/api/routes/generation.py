"""
Name Generation Routes
"""

import json
from typing import List

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import StreamingResponse

from namesmith.api.dependencies import get_services
from namesmith.api.middleware.auth import get_current_user_id
from namesmith.models import GenerationMode, GenerationStrategy, SessionStatus
from namesmith.schemas.generation import (
    GenerationAccepted,
    GenerationCreate,
    GenerationStatus,
    GenerationSummary,
)
from namesmith.services.container import ServiceContainer
from namesmith.services.generation_service import GenerationRequest

router = APIRouter()


@router.post("", response_model=GenerationAccepted, status_code=status.HTTP_202_ACCEPTED)
async def create_generation(
    request: GenerationCreate,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    """
    Start generating names.
    Returns immediately; poll the session or subscribe to its events.
    """
    session = await services.generations.submit(GenerationRequest(
        user_id=user_id,
        business_description=request.business_description,
        requested_models=request.requested_models,
        generation_mode=request.generation_mode,
        deep_thinking=request.deep_thinking,
        generation_strategy=GenerationStrategy(request.generation_strategy),
        custom_parameters=request.custom_parameters.model_dump(exclude_none=True),
    ))

    return GenerationAccepted(
        session_id=session.session_id,
        status=SessionStatus(session.status).value,
        requested_models=list(session.requested_models),
    )


@router.get("", response_model=List[GenerationSummary])
async def list_generations(
    limit: int = Query(20, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    """Most recent sessions of the caller"""
    sessions = await services.generations.list_sessions(user_id, limit=limit)
    return [
        GenerationSummary(
            session_id=s.session_id,
            status=SessionStatus(s.status).value,
            progress_percentage=s.progress_percentage,
            generation_mode=GenerationMode(s.generation_mode).value,
            requested_models=list(s.requested_models or []),
            created_at=s.created_at,
            completed_at=s.completed_at,
        )
        for s in sessions
    ]


@router.get("/{session_id}", response_model=GenerationStatus)
async def get_generation(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return GenerationStatus(**await services.generations.status(session_id, user_id))


@router.get("/{session_id}/events")
async def stream_generation_events(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    """Server-sent progress events until the session finishes"""
    # Ownership is checked before the stream opens so a bad id is a 404
    await services.store.get(session_id, user_id)

    async def event_source():
        async for event in services.generations.events(session_id, user_id):
            yield f"event: progress\ndata: {json.dumps(event.to_dict())}\n\n"

    return StreamingResponse(
        event_source(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.post("/{session_id}/cancel", response_model=GenerationStatus)
async def cancel_generation(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    session = await services.generations.cancel(session_id, user_id)
    return GenerationStatus(**session.status_snapshot())
