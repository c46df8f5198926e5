"""Shared fixtures: an in-memory Supabase double and ledger rows."""

import copy
import itertools
from datetime import datetime, timezone

import pytest

from app import database
from app.config import get_settings
from app.models.user import UserProfile, UserRole


class FakeResult:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    """Subset of the PostgREST query builder used by the services."""

    def __init__(self, client, table):
        self._client = client
        self._table = table
        self._action = "select"
        self._payload = None
        self._filters = []
        self._orders = []
        self._range = None

    def select(self, *columns, count=None):
        self._action = "select"
        return self

    def insert(self, payload):
        self._action = "insert"
        self._payload = payload
        return self

    def update(self, payload):
        self._action = "update"
        self._payload = payload
        return self

    def delete(self):
        self._action = "delete"
        return self

    def eq(self, column, value):
        self._filters.append(lambda row: _column(row, column) == value)
        return self

    def in_(self, column, values):
        values = list(values)
        self._filters.append(lambda row: _column(row, column) in values)
        return self

    def order(self, column, desc=False):
        self._orders.append((column, desc))
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def limit(self, n):
        self._range = (0, n - 1)
        return self

    def _matching(self):
        return [row for row in self._client.tables[self._table] if all(f(row) for f in self._filters)]

    def execute(self):
        rows = self._client.tables[self._table]

        if self._action == "insert":
            payloads = self._payload if isinstance(self._payload, list) else [self._payload]
            inserted = []
            for payload in payloads:
                row = copy.deepcopy(payload)
                row.setdefault("id", f"{self._table}-{next(self._client.ids)}")
                rows.append(row)
                inserted.append(copy.deepcopy(row))
            return FakeResult(inserted)

        if self._action in ("update", "delete") and self._client.pending_hooks:
            self._client.pending_hooks.pop(0)(self._client)
            rows = self._client.tables[self._table]

        if self._action == "update":
            updated = []
            for row in self._matching():
                row.update(copy.deepcopy(self._payload))
                updated.append(copy.deepcopy(row))
            self._client.update_log.append((self._table, self._payload))
            return FakeResult(updated)

        if self._action == "delete":
            doomed = self._matching()
            self._client.tables[self._table] = [r for r in rows if r not in doomed]
            return FakeResult(copy.deepcopy(doomed))

        result = self._matching()
        for column, desc in reversed(self._orders):
            result.sort(key=lambda row: _column(row, column), reverse=desc)
        if self._range is not None:
            start, end = self._range
            result = result[start:end + 1]
        return FakeResult(copy.deepcopy(result), count=len(result))


def _column(row, column):
    if "->>" in column:
        outer, inner = column.split("->>")
        return (row.get(outer) or {}).get(inner)
    return row.get(column)


class FakeSupabase:
    """In-memory stand-in for the Supabase client."""

    def __init__(self):
        self.tables = {
            database.LEADS_TABLE: [],
            database.DONATIONS_TABLE: [],
            database.ACTIVITY_TABLE: [],
            database.USERS_TABLE: [],
        }
        self.ids = itertools.count(1)
        self.pending_hooks = []
        self.update_log = []

    def table(self, name):
        return FakeQuery(self, name)

    def before_next_update(self, hook):
        """Run hook(client) just before the next update or delete executes."""
        self.pending_hooks.append(hook)

    def row(self, table, row_id):
        return next(r for r in self.tables[table] if r["id"] == row_id)


@pytest.fixture()
def fake_supabase(monkeypatch):
    """Install an in-memory Supabase client as the app's singleton."""
    fake = FakeSupabase()
    monkeypatch.setattr(database, "_supabase_client", fake)
    return fake


@pytest.fixture()
def settings(monkeypatch):
    """Settings instance the services read, safe to mutate per test."""
    instance = get_settings()
    monkeypatch.setattr(instance, "allocation_max_retries", 3)
    return instance


@pytest.fixture()
def admin_user():
    return UserProfile(id="admin-1", name="Asha Admin", email="asha@example.org", role=UserRole.ADMIN)


@pytest.fixture()
def make_lead(fake_supabase):
    """Insert a lead row and return its ID."""
    def _make(lead_id="lead-1", help_requested=5000, help_given=0, **overrides):
        row = {
            "id": lead_id,
            "name": "Fatima Shaikh",
            "purpose": "Medical",
            "priority": "Medium",
            "help_requested": help_requested,
            "help_given": help_given,
            "status": "Open",
            "verified_status": "Verified",
            "donations": [],
            "fund_transfers": [],
            "version": 0,
            "created_at": datetime(2026, 1, 5, tzinfo=timezone.utc).isoformat(),
            **overrides,
        }
        fake_supabase.tables[database.LEADS_TABLE].append(row)
        return lead_id
    return _make


@pytest.fixture()
def make_donation(fake_supabase):
    """Insert a donation row and return its ID."""
    def _make(donation_id, amount, allocated=0, status="Verified", **overrides):
        allocations = []
        if allocated:
            allocations.append({
                "lead_id": "lead-old",
                "amount": allocated,
                "allocated_at": datetime(2026, 1, 1, tzinfo=timezone.utc).isoformat(),
                "allocated_by_user_id": "admin-0",
                "allocated_by_user_name": None,
            })
        row = {
            "id": donation_id,
            "donor_id": "donor-1",
            "donor_name": "Imran Khan",
            "amount": amount,
            "type": "Zakat",
            "status": status,
            "donation_date": "2026-01-02",
            "allocations": allocations,
            "version": 0,
            "created_at": datetime(2026, 1, 2, tzinfo=timezone.utc).isoformat(),
            **overrides,
        }
        fake_supabase.tables[database.DONATIONS_TABLE].append(row)
        return donation_id
    return _make
