"""Break calendar router: /api/v1/breaks/*."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pruuf.breaks.schemas import (
    BreakActionRequest,
    BreakCreateRequest,
    BreakCreateResponse,
    BreakListResponse,
    BreakResponse,
)
from pruuf.breaks.service import cancel_break, end_break_early, list_breaks, schedule_break
from pruuf.clock import Clock
from pruuf.dependencies import get_clock, get_db, get_dispatcher
from pruuf.notifications.base import NotificationDispatcher

router = APIRouter(prefix="/api/v1/breaks", tags=["Breaks"])


@router.post("", response_model=BreakCreateResponse, status_code=201)
async def create_break_endpoint(
    body: BreakCreateRequest,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> BreakCreateResponse:
    """Schedule a break; a break starting today takes effect immediately."""
    scheduled = await schedule_break(
        db,
        body.sender_id,
        body.start_date,
        body.end_date,
        clock(),
        notes=body.notes,
        dispatcher=dispatcher,
    )
    return BreakCreateResponse(
        break_=BreakResponse.model_validate(scheduled.record),
        warning=scheduled.warning,
    )


@router.get("", response_model=BreakListResponse)
async def list_breaks_endpoint(
    sender_id: str,
    db: AsyncSession = Depends(get_db),
) -> BreakListResponse:
    breaks = await list_breaks(db, sender_id)
    return BreakListResponse(breaks=[BreakResponse.model_validate(b) for b in breaks])


@router.post("/{break_id}/cancel", response_model=BreakResponse)
async def cancel_break_endpoint(
    break_id: str,
    body: BreakActionRequest,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> BreakResponse:
    record = await cancel_break(db, break_id, body.sender_id, clock(), dispatcher=dispatcher)
    return BreakResponse.model_validate(record)


@router.post("/{break_id}/end", response_model=BreakResponse)
async def end_break_endpoint(
    break_id: str,
    body: BreakActionRequest,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> BreakResponse:
    """End an active break today; tomorrow's ping is pending again."""
    record = await end_break_early(db, break_id, body.sender_id, clock(), dispatcher=dispatcher)
    return BreakResponse.model_validate(record)
