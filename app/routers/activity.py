"""Activity router for the audit trail."""

from fastapi import APIRouter, Depends, Query
from typing import List, Optional
from app.models.activity import ActivityLog
from app.models.user import UserProfile
from app.routers.auth import require_admin
from app.services.activity import list_activity

router = APIRouter(prefix="/activity", tags=["Activity"])


@router.get("", response_model=List[ActivityLog])
async def get_activity(
    lead_id: Optional[str] = None,
    donation_id: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: UserProfile = Depends(require_admin)
):
    """Get activity records, most recent first."""
    return await list_activity(
        lead_id=lead_id,
        donation_id=donation_id,
        limit=limit,
        offset=offset
    )
