"""Connection lifecycle router: /api/v1/connections/*."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pruuf.clock import Clock
from pruuf.connections.schemas import (
    ConnectionActionRequest,
    ConnectionDeleteResponse,
    ConnectionResponse,
)
from pruuf.connections.service import delete_connection, pause_connection, resume_connection
from pruuf.dependencies import get_clock, get_db

router = APIRouter(prefix="/api/v1/connections", tags=["Connections"])


@router.post("/{connection_id}/pause", response_model=ConnectionResponse)
async def pause_endpoint(
    connection_id: str,
    body: ConnectionActionRequest | None = None,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> ConnectionResponse:
    """Stop generating pings for a connection."""
    connection = await pause_connection(db, connection_id, clock(), user_id=body.user_id if body else None)
    return ConnectionResponse.model_validate(connection)


@router.post("/{connection_id}/resume", response_model=ConnectionResponse)
async def resume_endpoint(
    connection_id: str,
    body: ConnectionActionRequest | None = None,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> ConnectionResponse:
    connection = await resume_connection(db, connection_id, clock(), user_id=body.user_id if body else None)
    return ConnectionResponse.model_validate(connection)


@router.delete("/{connection_id}", response_model=ConnectionDeleteResponse)
async def delete_endpoint(
    connection_id: str,
    user_id: str,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> ConnectionDeleteResponse:
    """Soft-delete; pings for dates after today are removed."""
    removed = await delete_connection(db, connection_id, user_id, clock())
    return ConnectionDeleteResponse(connection_id=connection_id, future_pings_removed=removed)
