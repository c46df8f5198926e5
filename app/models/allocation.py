"""Allocation models shared by the engine, the ledger and the API."""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List


class DonationAllocation(BaseModel):
    """Allocation record as stored on a donation row."""
    lead_id: str
    amount: int
    allocated_at: datetime
    allocated_by_user_id: str
    allocated_by_user_name: Optional[str] = None


class LeadDonationAllocation(BaseModel):
    """Allocation record as stored on a lead row."""
    donation_id: str
    amount: int
    allocated_at: datetime
    allocated_by_user_id: str
    allocated_by_user_name: Optional[str] = None


class Allocation(BaseModel):
    """A draw of part of one donation towards one lead."""
    lead_id: str
    donation_id: str
    amount: int = Field(gt=0)
    allocated_at: datetime
    allocated_by_user_id: str
    allocated_by_user_name: Optional[str] = None

    def for_donation(self) -> DonationAllocation:
        return DonationAllocation(
            lead_id=self.lead_id,
            amount=self.amount,
            allocated_at=self.allocated_at,
            allocated_by_user_id=self.allocated_by_user_id,
            allocated_by_user_name=self.allocated_by_user_name
        )

    def for_lead(self) -> LeadDonationAllocation:
        return LeadDonationAllocation(
            donation_id=self.donation_id,
            amount=self.amount,
            allocated_at=self.allocated_at,
            allocated_by_user_id=self.allocated_by_user_id,
            allocated_by_user_name=self.allocated_by_user_name
        )


class LeadSnapshot(BaseModel):
    """The part of a lead the allocation engine reads."""
    id: str
    help_requested: int
    help_given: int = 0


class DonationSnapshot(BaseModel):
    """The part of a donation the allocation engine reads."""
    id: str
    amount: int
    allocations: List[DonationAllocation] = []

    @property
    def allocated_amount(self) -> int:
        return sum(a.amount for a in self.allocations)

    @property
    def available_amount(self) -> int:
        return self.amount - self.allocated_amount


class AllocationResult(BaseModel):
    """Mutations computed for one lead.

    The caller persists ``allocations`` on the donation and lead rows and
    sets the lead's ``help_given`` to ``new_help_given``.
    """
    lead_id: str
    allocations: List[Allocation] = []
    total_allocated: int = 0
    new_help_given: int

    @property
    def is_empty(self) -> bool:
        return not self.allocations


class AllocationPreview(BaseModel):
    """Summary shown to the operator before confirming an allocation."""
    lead_id: str
    needed_amount: int
    selected_count: int
    total_selected_available: int
    final_allocation_amount: int


class AllocationRequest(BaseModel):
    """Payload to allocate donations to a lead, in selection order."""
    donation_ids: List[str]
