"""Activity log service for the admin audit trail."""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from app.database import get_supabase, ACTIVITY_TABLE
from app.models.activity import ActivityLog
from app.models.user import UserProfile

logger = logging.getLogger(__name__)


async def log_activity(
    user: UserProfile,
    activity: str,
    details: dict[str, Any]
) -> None:
    """
    Record an activity performed by a user.

    Fire-and-forget: a failed insert is logged and never raised, so the
    action being audited is not blocked by the audit trail.
    """
    record = {
        "user_id": user.id,
        "user_name": user.name,
        "user_email": user.email,
        "role": user.role.value,
        "activity": activity,
        "details": details,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }

    try:
        get_supabase().table(ACTIVITY_TABLE).insert(record).execute()
    except Exception:
        logger.exception("Error logging activity %r for user %s", activity, user.id)


async def list_activity(
    lead_id: Optional[str] = None,
    donation_id: Optional[str] = None,
    limit: int = 50,
    offset: int = 0
) -> list[ActivityLog]:
    """Fetch activity records, most recent first."""
    supabase = get_supabase()

    query = supabase.table(ACTIVITY_TABLE).select("*")
    if lead_id:
        query = query.eq("details->>lead_id", lead_id)
    if donation_id:
        query = query.eq("details->>donation_id", donation_id)

    result = query.order("timestamp", desc=True).range(offset, offset + limit - 1).execute()

    return [ActivityLog(**row) for row in result.data]
