"""Tests for the activity log service."""

import asyncio
import logging

from app import database
from app.database import ACTIVITY_TABLE
from app.services.activity import list_activity, log_activity


class BrokenSupabase:
    def table(self, name):
        raise RuntimeError("database unavailable")


def test_log_activity_records_user(fake_supabase, admin_user):
    asyncio.run(log_activity(admin_user, "Lead Created", {"lead_id": "lead-1"}))

    [entry] = fake_supabase.tables[ACTIVITY_TABLE]
    assert entry["user_name"] == "Asha Admin"
    assert entry["role"] == "Admin"
    assert entry["details"] == {"lead_id": "lead-1"}
    assert entry["timestamp"]


def test_log_activity_never_raises(monkeypatch, admin_user, caplog):
    monkeypatch.setattr(database, "_supabase_client", BrokenSupabase())

    with caplog.at_level(logging.ERROR, logger="app.services.activity"):
        asyncio.run(log_activity(admin_user, "Lead Created", {}))

    assert "Error logging activity" in caplog.text


def test_list_activity_newest_first(fake_supabase, admin_user):
    fake_supabase.tables[ACTIVITY_TABLE].extend([
        {"id": "a1", "user_id": "admin-1", "user_name": "A", "role": "Admin",
         "activity": "Lead Created", "details": {"lead_id": "L1"}, "timestamp": "2026-01-01T00:00:00+00:00"},
        {"id": "a2", "user_id": "admin-1", "user_name": "A", "role": "Admin",
         "activity": "Donation Created", "details": {"donation_id": "D1"}, "timestamp": "2026-01-02T00:00:00+00:00"},
        {"id": "a3", "user_id": "admin-1", "user_name": "A", "role": "Admin",
         "activity": "Allocated to Lead", "details": {"lead_id": "L1"}, "timestamp": "2026-01-03T00:00:00+00:00"},
    ])

    assert [a.id for a in asyncio.run(list_activity())] == ["a3", "a2", "a1"]
    assert [a.id for a in asyncio.run(list_activity(lead_id="L1"))] == ["a3", "a1"]
    assert [a.id for a in asyncio.run(list_activity(donation_id="D1", limit=5))] == ["a2"]
