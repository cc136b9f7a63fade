"""Request/response schemas for break endpoints."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field


class BreakCreateRequest(BaseModel):
    sender_id: str
    start_date: date
    end_date: date
    notes: str | None = None


class BreakActionRequest(BaseModel):
    sender_id: str


class BreakResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    sender_id: str
    start_date: date
    end_date: date
    status: str
    notes: str | None = None


class BreakCreateResponse(BaseModel):
    success: bool = True
    break_: BreakResponse = Field(alias="break")
    warning: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class BreakListResponse(BaseModel):
    breaks: list[BreakResponse]
