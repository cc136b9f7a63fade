"""Request/response schemas for entitlement endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class EntitlementRequest(BaseModel):
    user_id: str


class EntitlementResponse(BaseModel):
    success: bool = True
    status: str | None
    valid: bool
    trial_days_remaining: int | None = None
    subscription_end_date: datetime | None = None
    message: str | None = None
