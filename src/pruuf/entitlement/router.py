"""Entitlement router: /api/v1/entitlements/*."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pruuf.clock import Clock
from pruuf.config import get_settings
from pruuf.dependencies import get_clock, get_db
from pruuf.entitlement.schemas import EntitlementRequest, EntitlementResponse
from pruuf.entitlement.service import check_entitlement

router = APIRouter(prefix="/api/v1/entitlements", tags=["Entitlements"])


@router.post("/check", response_model=EntitlementResponse)
async def check_endpoint(
    body: EntitlementRequest,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> EntitlementResponse:
    """Current receiver entitlement; expires elapsed trials/subscriptions."""
    check = await check_entitlement(db, body.user_id, clock(), grace_days=get_settings().past_due_grace_days)
    return EntitlementResponse(
        status=check.status,
        valid=check.valid,
        trial_days_remaining=check.trial_days_remaining,
        subscription_end_date=check.subscription_end_date,
        message=check.message,
    )
