"""Activity (audit trail) models."""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional, Any


class ActivityLog(BaseModel):
    """Activity log record."""
    id: str
    user_id: str
    user_name: str
    user_email: Optional[str] = None
    role: str
    activity: str
    details: dict[str, Any] = {}
    timestamp: datetime

    class Config:
        from_attributes = True
