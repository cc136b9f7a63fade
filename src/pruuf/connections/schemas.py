"""Request/response schemas for connection endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ConnectionActionRequest(BaseModel):
    user_id: str | None = None


class ConnectionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    sender_id: str
    receiver_id: str
    status: str
    updated_at: datetime | None = None
    deleted_at: datetime | None = None


class ConnectionDeleteResponse(BaseModel):
    success: bool = True
    connection_id: str
    future_pings_removed: int
