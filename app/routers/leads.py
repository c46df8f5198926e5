"""Leads router for help-request cases."""

from fastapi import APIRouter, HTTPException, Depends, Query
from typing import Optional, List
from datetime import datetime, timezone
from app.database import get_supabase, LEADS_TABLE
from app.models.user import UserProfile
from app.models.lead import (
    BulkStatusUpdate, Lead, LeadCreate, LeadPurpose, LeadStatus,
    LeadUpdate, LeadVerificationStatus, PRIORITY_RANK
)
from app.routers.auth import require_admin
from app.services.activity import log_activity
from app.services.errors import LedgerError
from app.services.ledger import delete_lead as delete_lead_row, get_lead, update_lead

router = APIRouter(prefix="/leads", tags=["Leads"])


@router.post("", response_model=Lead, status_code=201)
async def create_lead(
    data: LeadCreate,
    user: UserProfile = Depends(require_admin)
):
    """Create a new lead."""
    supabase = get_supabase()
    now = datetime.now(timezone.utc)

    lead_data = {
        **data.model_dump(mode="json"),
        "help_given": 0,
        "status": LeadStatus.PENDING.value,
        "verified_status": LeadVerificationStatus.PENDING.value,
        "donations": [],
        "fund_transfers": [],
        "added_by_user_id": user.id,
        "version": 0,
        "created_at": now.isoformat()
    }

    result = supabase.table(LEADS_TABLE).insert(lead_data).execute()

    if not result.data:
        raise HTTPException(status_code=500, detail="Failed to create lead")

    lead = Lead(**result.data[0])
    await log_activity(user, "Lead Created", {
        "lead_id": lead.id,
        "lead_name": lead.name,
        "help_requested": lead.help_requested
    })

    return lead


@router.get("", response_model=List[Lead])
async def list_leads(
    status: Optional[LeadStatus] = None,
    verified_status: Optional[LeadVerificationStatus] = None,
    purpose: Optional[LeadPurpose] = None,
    sort_by: str = Query("recent", pattern="^(recent|requested|pending|priority)$"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: UserProfile = Depends(require_admin)
):
    """List leads with optional filters."""
    supabase = get_supabase()

    query = supabase.table(LEADS_TABLE).select("*")

    if status:
        query = query.eq("status", status.value)

    if verified_status:
        query = query.eq("verified_status", verified_status.value)

    if purpose:
        query = query.eq("purpose", purpose.value)

    # Columns the database can sort by are paged there; computed orders are
    # sorted and paged in memory.
    if sort_by == "recent":
        result = query.order("created_at", desc=True).range(offset, offset + limit - 1).execute()
        return [Lead(**row) for row in result.data]

    if sort_by == "requested":
        result = query.order("help_requested", desc=True).range(offset, offset + limit - 1).execute()
        return [Lead(**row) for row in result.data]

    leads = [Lead(**row) for row in query.execute().data]

    if sort_by == "pending":
        leads.sort(key=lambda lead: lead.needed_amount, reverse=True)
    else:
        leads.sort(key=lambda lead: (PRIORITY_RANK[lead.priority], lead.created_at))

    return leads[offset:offset + limit]


@router.post("/bulk-status")
async def bulk_update_status(
    data: BulkStatusUpdate,
    user: UserProfile = Depends(require_admin)
):
    """Change case or verification status of several leads."""
    if not data.lead_ids:
        raise HTTPException(status_code=400, detail="No leads selected")

    if (data.status is None) == (data.verified_status is None):
        raise HTTPException(
            status_code=400,
            detail="Provide exactly one of status or verified_status"
        )

    if data.status is not None:
        changes = {"status": data.status.value}
    else:
        changes = {"verified_status": data.verified_status.value}

    updated = []
    failed = []
    for lead_id in data.lead_ids:
        try:
            await update_lead(lead_id, changes)
        except LedgerError as e:
            failed.append({"lead_id": lead_id, "error": e.message})
            continue

        updated.append(lead_id)
        await log_activity(user, "Bulk Status Change", {
            "lead_id": lead_id,
            **changes,
            "details": "Part of bulk update operation."
        })

    return {"updated": updated, "failed": failed}


@router.get("/{lead_id}", response_model=Lead)
async def read_lead(
    lead_id: str,
    user: UserProfile = Depends(require_admin)
):
    """Get lead details by ID."""
    try:
        return await get_lead(lead_id)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/{lead_id}", response_model=Lead)
async def edit_lead(
    lead_id: str,
    data: LeadUpdate,
    user: UserProfile = Depends(require_admin)
):
    """Update editable lead fields."""
    changes = data.model_dump(mode="json", exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No changes supplied")

    try:
        lead = await update_lead(lead_id, changes)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    await log_activity(user, "Lead Updated", {
        "lead_id": lead.id,
        "lead_name": lead.name,
        "changes": changes
    })

    return lead


@router.delete("/{lead_id}", status_code=204)
async def delete_lead(
    lead_id: str,
    user: UserProfile = Depends(require_admin)
):
    """Delete a lead that has no allocations."""
    try:
        lead = await delete_lead_row(lead_id)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    await log_activity(user, "Lead Deleted", {
        "lead_id": lead.id,
        "lead_name": lead.name
    })
