"""Request/response schemas for streak endpoints."""

from __future__ import annotations

from pydantic import BaseModel


class StreakRequest(BaseModel):
    sender_id: str | None = None
    receiver_id: str | None = None
    connection_id: str | None = None


class StreakResponse(BaseModel):
    success: bool = True
    streak: int
    sender_id: str
    receiver_id: str | None = None
