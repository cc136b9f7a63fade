"""Ping lifecycle router: /api/v1/pings/*."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pruuf.clock import Clock
from pruuf.config import get_settings
from pruuf.dependencies import get_clock, get_db, get_dispatcher
from pruuf.notifications.base import NotificationDispatcher
from pruuf.pings.completion import CompletionRequest, complete_ping
from pruuf.pings.generator import generate_daily_pings
from pruuf.pings.missed import detect_missed_pings
from pruuf.pings.schemas import (
    CompleteRequest,
    CompletionResponse,
    GenerateRequest,
    GenerationResponse,
    MissedResponse,
)

router = APIRouter(prefix="/api/v1/pings", tags=["Pings"])


@router.post("/generate", response_model=GenerationResponse)
async def generate_endpoint(
    body: GenerateRequest | None = None,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> GenerationResponse:
    """Run daily generation for today (UTC) or ``target_date``."""
    settings = get_settings()
    result = await generate_daily_pings(
        db,
        clock(),
        target_date=body.target_date if body else None,
        deadline_minutes=settings.ping_deadline_minutes,
        grace_days=settings.past_due_grace_days,
    )
    return GenerationResponse(**result.as_dict())


@router.post("/complete", response_model=CompletionResponse)
async def complete_endpoint(
    body: CompleteRequest,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> CompletionResponse:
    """Complete the sender's open pings for today ("I'm OK")."""
    request = CompletionRequest(
        sender_id=body.sender_id,
        method=body.method,
        ping_id=body.ping_id,
        location=body.location.model_dump() if body.location else None,
    )
    result = await complete_ping(db, request, clock(), dispatcher=dispatcher)
    return CompletionResponse(
        completed_count=result.completed_count,
        on_time_count=result.on_time_count,
        late_count=result.late_count,
        method=result.method,
        completed_at=result.completed_at,
        receivers_notified=result.receivers_notified,
        has_location_verification=result.has_location_verification,
        ping_ids=result.ping_ids,
    )


@router.post("/check-missed", response_model=MissedResponse)
async def check_missed_endpoint(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> MissedResponse:
    """Mark overdue pending pings missed."""
    return MissedResponse(missed=await detect_missed_pings(db, clock(), dispatcher=dispatcher))
