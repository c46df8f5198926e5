"""Authentication router: resolves the acting operator from the bearer token."""

import logging
from fastapi import APIRouter, HTTPException, Depends, Header
from typing import Optional
from app.database import get_supabase, first_row, USERS_TABLE
from app.models.user import UserProfile, UserRole

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


async def get_current_user(authorization: Optional[str] = Header(None)) -> Optional[UserProfile]:
    """Extract and validate current user from auth header."""
    if not authorization or not authorization.startswith("Bearer "):
        return None

    token = authorization.replace("Bearer ", "")
    supabase = get_supabase()

    try:
        # Verify token with Supabase
        user_response = supabase.auth.get_user(token)
        if not user_response or not user_response.user:
            return None

        profile = first_row(supabase.table(USERS_TABLE).select("*").eq(
            "id", user_response.user.id
        ).execute())
    except Exception:
        logger.warning("Token verification failed", exc_info=True)
        return None

    if profile is None:
        return None

    return UserProfile(
        id=profile["id"],
        name=profile["name"],
        email=user_response.user.email,
        role=UserRole(profile["role"])
    )


async def require_auth(user: Optional[UserProfile] = Depends(get_current_user)) -> UserProfile:
    """Require authenticated user."""
    if not user:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user


async def require_admin(user: UserProfile = Depends(require_auth)) -> UserProfile:
    """Require an administrator."""
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin role required")
    return user


@router.get("/me", response_model=UserProfile)
async def get_me(user: UserProfile = Depends(require_auth)):
    """Get current user profile."""
    return user
