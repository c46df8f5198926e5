"""User models for the acting operator."""

from enum import Enum
from pydantic import BaseModel
from typing import Optional


class UserRole(str, Enum):
    """User role enumeration."""
    SUPER_ADMIN = "Super Admin"
    ADMIN = "Admin"
    FINANCE_ADMIN = "Finance Admin"
    DONOR = "Donor"
    BENEFICIARY = "Beneficiary"
    REFERRAL = "Referral"


ADMIN_ROLES = {UserRole.SUPER_ADMIN, UserRole.ADMIN, UserRole.FINANCE_ADMIN}


class UserProfile(BaseModel):
    """Operator profile resolved from the auth token."""
    id: str
    name: str
    email: Optional[str] = None
    role: UserRole

    class Config:
        from_attributes = True

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES
