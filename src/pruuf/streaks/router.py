"""Streak router: /api/v1/streaks/*."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from pruuf.clock import Clock
from pruuf.config import get_settings
from pruuf.dependencies import get_clock, get_db
from pruuf.streaks.schemas import StreakRequest, StreakResponse
from pruuf.streaks.service import calculate_streak, resolve_connection

router = APIRouter(prefix="/api/v1/streaks", tags=["Streaks"])


@router.post("/calculate", response_model=StreakResponse)
async def calculate_endpoint(
    body: StreakRequest,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> StreakResponse:
    """Streak for a sender, a sender/receiver pair, or a connection."""
    sender_id, receiver_id = body.sender_id, body.receiver_id
    if body.connection_id:
        sender_id, receiver_id = await resolve_connection(db, body.connection_id)
    if not sender_id:
        raise HTTPException(status_code=400, detail="Either sender_id or connection_id is required")

    streak = await calculate_streak(
        db,
        sender_id,
        clock(),
        receiver_id=receiver_id,
        limit=get_settings().streak_history_limit,
    )
    return StreakResponse(streak=streak, sender_id=sender_id, receiver_id=receiver_id)
