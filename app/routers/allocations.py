"""Allocations router: fund leads from verified donations."""

from fastapi import APIRouter, HTTPException, Depends
from app.models.user import UserProfile
from app.models.allocation import AllocationPreview, AllocationRequest, AllocationResult
from app.models.lead import FundTransferCreate, Lead
from app.routers.auth import require_admin
from app.services.errors import LedgerError
from app.services.ledger import (
    allocate_donations_to_lead, preview_lead_allocation, record_fund_transfer
)

router = APIRouter(prefix="/leads", tags=["Allocations"])


@router.post("/{lead_id}/allocations/preview", response_model=AllocationPreview)
async def preview(
    lead_id: str,
    data: AllocationRequest,
    user: UserProfile = Depends(require_admin)
):
    """Show how much the selected donations would allocate to the lead."""
    try:
        return await preview_lead_allocation(lead_id, data.donation_ids)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{lead_id}/allocations", response_model=AllocationResult)
async def allocate_donations(
    lead_id: str,
    data: AllocationRequest,
    user: UserProfile = Depends(require_admin)
):
    """
    Allocate the selected donations to a lead.

    Donations are drawn in the order listed until the lead's remaining
    need is met. An already funded lead returns an empty result.
    """
    try:
        return await allocate_donations_to_lead(lead_id, data.donation_ids, user)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{lead_id}/transfers", response_model=Lead)
async def add_fund_transfer(
    lead_id: str,
    data: FundTransferCreate,
    user: UserProfile = Depends(require_admin)
):
    """Record a payout to the beneficiary of a lead."""
    try:
        return await record_fund_transfer(lead_id, data, user)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
