"""Donation models."""

from enum import Enum
from pydantic import BaseModel, EmailStr, Field
from datetime import datetime, date
from typing import Optional, List

from app.models.allocation import DonationAllocation


class DonationStatus(str, Enum):
    """Donation lifecycle status."""
    PENDING_VERIFICATION = "Pending verification"
    VERIFIED = "Verified"
    FAILED_INCOMPLETE = "Failed/Incomplete"
    PARTIALLY_ALLOCATED = "Partially Allocated"
    ALLOCATED = "Allocated"


ALLOCATABLE_STATUSES = {DonationStatus.VERIFIED, DonationStatus.PARTIALLY_ALLOCATED}


class DonationType(str, Enum):
    """Religious/fund category of a donation."""
    ZAKAT = "Zakat"
    SADAQAH = "Sadaqah"
    FITR = "Fitr"
    LILLAH = "Lillah"
    KAFFARAH = "Kaffarah"
    INTEREST = "Interest"
    SPLIT = "Split"
    ANY = "Any"


class DonationCreate(BaseModel):
    """Payload to record a new donation."""
    donor_id: str
    donor_name: str
    donor_email: Optional[EmailStr] = None
    amount: int = Field(gt=0)
    type: DonationType = DonationType.ANY
    purpose: Optional[str] = None
    is_anonymous: bool = False
    transaction_id: Optional[str] = None
    utr_number: Optional[str] = None
    payment_app: Optional[str] = None
    donation_date: date
    notes: Optional[str] = None


class Donation(BaseModel):
    """Full donation model."""
    id: str
    donor_id: str
    donor_name: str
    donor_email: Optional[str] = None
    amount: int
    type: DonationType = DonationType.ANY
    purpose: Optional[str] = None
    status: DonationStatus = DonationStatus.PENDING_VERIFICATION
    is_anonymous: bool = False
    transaction_id: Optional[str] = None
    utr_number: Optional[str] = None
    payment_app: Optional[str] = None
    donation_date: date
    notes: Optional[str] = None
    allocations: List[DonationAllocation] = []
    verified_by_user_id: Optional[str] = None
    version: int = 0
    created_at: datetime

    class Config:
        from_attributes = True

    @property
    def available_amount(self) -> int:
        return self.amount - sum(a.amount for a in self.allocations)

    @property
    def is_allocatable(self) -> bool:
        return self.status in ALLOCATABLE_STATUSES and self.available_amount > 0


class AllocatableDonation(BaseModel):
    """Donation eligible for allocation, with its unallocated balance."""
    id: str
    donor_name: str
    amount: int
    available_amount: int
    status: DonationStatus
    transaction_id: Optional[str] = None
    donation_date: date


class DonationStatusUpdate(BaseModel):
    """Payload to record the outcome of manual verification."""
    status: DonationStatus
    notes: Optional[str] = None


class DonationDetails(BaseModel):
    """Fields extracted from a payment screenshot, all optional."""
    amount: Optional[int] = None
    donor_name: Optional[str] = None
    transaction_id: Optional[str] = None
    utr_number: Optional[str] = None
    payment_app: Optional[str] = None
    donation_date: Optional[date] = None
    notes: Optional[str] = None
