"""Request/response schemas for ping endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field


class GenerateRequest(BaseModel):
    target_date: date | None = None


class GenerationResponse(BaseModel):
    date: date
    total_connections: int
    pings_created: int
    pending_pings: int
    on_break_pings: int
    skipped: int
    skipped_details: dict[str, int] = {}


class Location(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)
    accuracy: float | None = None


class CompleteRequest(BaseModel):
    sender_id: str
    method: Literal["tap", "in_person"]
    ping_id: str | None = None
    location: Location | None = None


class CompletionResponse(BaseModel):
    success: bool = True
    completed_count: int
    on_time_count: int
    late_count: int
    method: str
    completed_at: datetime
    receivers_notified: int
    has_location_verification: bool
    ping_ids: list[str] = []


class MissedResponse(BaseModel):
    missed: int
