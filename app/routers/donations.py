"""Donations router: record, verify and scan donations."""

from fastapi import APIRouter, HTTPException, Depends, Query, UploadFile, File
from typing import Optional, List
from datetime import datetime, timezone
from app.database import get_supabase, DONATIONS_TABLE
from app.models.user import UserProfile
from app.models.donation import (
    AllocatableDonation, Donation, DonationCreate, DonationDetails,
    DonationStatus, DonationStatusUpdate
)
from app.routers.auth import require_admin
from app.services.activity import log_activity
from app.services.errors import LedgerError
from app.services.extraction import extract_donation_details
from app.services.ledger import (
    delete_donation as delete_donation_row, get_donations,
    list_allocatable_donations, set_verification_outcome
)

router = APIRouter(prefix="/donations", tags=["Donations"])

MAX_SCAN_BYTES = 5 * 1024 * 1024


@router.post("", response_model=Donation, status_code=201)
async def create_donation(
    data: DonationCreate,
    user: UserProfile = Depends(require_admin)
):
    """Record a donation; it awaits verification before it can be allocated."""
    supabase = get_supabase()
    now = datetime.now(timezone.utc)

    donation_data = {
        **data.model_dump(mode="json"),
        "status": DonationStatus.PENDING_VERIFICATION.value,
        "allocations": [],
        "version": 0,
        "created_at": now.isoformat()
    }

    result = supabase.table(DONATIONS_TABLE).insert(donation_data).execute()

    if not result.data:
        raise HTTPException(status_code=500, detail="Failed to create donation")

    donation = Donation(**result.data[0])
    await log_activity(user, "Donation Created", {
        "donation_id": donation.id,
        "donor_name": donation.donor_name,
        "amount": donation.amount
    })

    return donation


@router.get("", response_model=List[Donation])
async def list_donations(
    status: Optional[DonationStatus] = None,
    donor_id: Optional[str] = None,
    sort_by: str = Query("recent", pattern="^(recent|amount)$"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: UserProfile = Depends(require_admin)
):
    """List donations with optional filters."""
    supabase = get_supabase()

    query = supabase.table(DONATIONS_TABLE).select("*")

    if status:
        query = query.eq("status", status.value)

    if donor_id:
        query = query.eq("donor_id", donor_id)

    if sort_by == "amount":
        query = query.order("amount", desc=True)
    else:
        query = query.order("donation_date", desc=True)

    result = query.range(offset, offset + limit - 1).execute()

    return [Donation(**row) for row in result.data]


@router.get("/allocatable", response_model=List[AllocatableDonation])
async def allocatable_donations(user: UserProfile = Depends(require_admin)):
    """Verified donations that still have an unallocated balance."""
    return await list_allocatable_donations()


@router.post("/scan", response_model=DonationDetails)
async def scan_donation_proof(
    screenshot: UploadFile = File(...),
    user: UserProfile = Depends(require_admin)
):
    """Extract donation details from a payment screenshot to pre-fill the form."""
    content = await screenshot.read()

    if not content:
        raise HTTPException(status_code=400, detail="No file was uploaded")

    if len(content) > MAX_SCAN_BYTES:
        raise HTTPException(status_code=413, detail="Screenshot is too large")

    if not (screenshot.content_type or "").startswith("image/"):
        raise HTTPException(status_code=400, detail="Screenshot must be an image")

    return await extract_donation_details(content, screenshot.content_type)


@router.get("/{donation_id}", response_model=Donation)
async def read_donation(
    donation_id: str,
    user: UserProfile = Depends(require_admin)
):
    """Get donation details by ID."""
    try:
        donations = await get_donations([donation_id])
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return donations[0]


@router.patch("/{donation_id}/status", response_model=Donation)
async def update_donation_status(
    donation_id: str,
    data: DonationStatusUpdate,
    user: UserProfile = Depends(require_admin)
):
    """Record the result of manually verifying a donation."""
    try:
        donation = await set_verification_outcome(donation_id, data.status, user)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    await log_activity(user, "Donation Status Changed", {
        "donation_id": donation.id,
        "status": donation.status.value,
        "notes": data.notes
    })

    return donation


@router.delete("/{donation_id}", status_code=204)
async def delete_donation(
    donation_id: str,
    user: UserProfile = Depends(require_admin)
):
    """Delete a donation that has not been allocated."""
    try:
        donation = await delete_donation_row(donation_id)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    await log_activity(user, "Donation Deleted", {
        "donation_id": donation.id,
        "amount": donation.amount
    })
