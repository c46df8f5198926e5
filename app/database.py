"""Supabase database client."""

from supabase import create_client, Client
from app.config import get_settings

_supabase_client: Client | None = None

LEADS_TABLE = "leads"
DONATIONS_TABLE = "donations"
ACTIVITY_TABLE = "activity_log"
USERS_TABLE = "users"


def get_supabase() -> Client:
    """Get Supabase client instance."""
    global _supabase_client

    if _supabase_client is None:
        settings = get_settings()
        _supabase_client = create_client(
            settings.supabase_url,
            settings.supabase_service_key or settings.supabase_key
        )

    return _supabase_client


def first_row(result) -> dict | None:
    """Return the first row of a query result, or None when nothing matched."""
    if not result.data:
        return None
    return result.data[0]
