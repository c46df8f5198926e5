"""Lead (help request) and fund transfer models."""

from enum import Enum
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List

from app.models.allocation import LeadDonationAllocation


class LeadStatus(str, Enum):
    """Case status of a lead."""
    PENDING = "Pending"
    OPEN = "Open"
    PARTIAL = "Partial"
    COMPLETE = "Complete"
    ON_HOLD = "On Hold"
    CANCELLED = "Cancelled"
    CLOSED = "Closed"


class LeadVerificationStatus(str, Enum):
    """Verification status of a lead."""
    PENDING = "Pending"
    VERIFIED = "Verified"
    REJECTED = "Rejected"
    MORE_INFO_REQUIRED = "More Info Required"
    DUPLICATE = "Duplicate"
    OTHER = "Other"


class LeadPurpose(str, Enum):
    """What the requested help is for."""
    EDUCATION = "Education"
    MEDICAL = "Medical"
    RELIEF_FUND = "Relief Fund"
    DEEN = "Deen"
    LOAN = "Loan"
    OTHER = "Other"


class LeadPriority(str, Enum):
    """Case priority."""
    URGENT = "Urgent"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


PRIORITY_RANK = {
    LeadPriority.URGENT: 0,
    LeadPriority.HIGH: 1,
    LeadPriority.MEDIUM: 2,
    LeadPriority.LOW: 3,
}


class FundTransferCreate(BaseModel):
    """Payload to record money paid out to a beneficiary."""
    amount: int = Field(gt=0)
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    utr_number: Optional[str] = None
    recipient_name: Optional[str] = None
    proof_url: Optional[str] = None
    notes: Optional[str] = None


class FundTransfer(FundTransferCreate):
    """Fund transfer record stored on a lead."""
    transferred_at: datetime
    transferred_by_user_id: str
    transferred_by_user_name: str


class LeadCreate(BaseModel):
    """Payload to create a new lead."""
    name: str
    beneficiary_id: Optional[str] = None
    campaign_id: Optional[str] = None
    purpose: LeadPurpose
    category: Optional[str] = None
    priority: LeadPriority = LeadPriority.MEDIUM
    help_requested: int = Field(gt=0)
    case_details: Optional[str] = None


class LeadUpdate(BaseModel):
    """Payload to update a lead."""
    name: Optional[str] = None
    purpose: Optional[LeadPurpose] = None
    category: Optional[str] = None
    priority: Optional[LeadPriority] = None
    help_requested: Optional[int] = Field(default=None, gt=0)
    case_details: Optional[str] = None
    status: Optional[LeadStatus] = None
    verified_status: Optional[LeadVerificationStatus] = None


class Lead(BaseModel):
    """Full lead model."""
    id: str
    name: str
    beneficiary_id: Optional[str] = None
    campaign_id: Optional[str] = None
    purpose: LeadPurpose
    category: Optional[str] = None
    priority: LeadPriority = LeadPriority.MEDIUM
    help_requested: int
    help_given: int = 0
    status: LeadStatus = LeadStatus.PENDING
    verified_status: LeadVerificationStatus = LeadVerificationStatus.PENDING
    case_details: Optional[str] = None
    donations: List[LeadDonationAllocation] = []
    fund_transfers: List[FundTransfer] = []
    added_by_user_id: Optional[str] = None
    version: int = 0
    created_at: datetime

    class Config:
        from_attributes = True

    @property
    def needed_amount(self) -> int:
        return self.help_requested - self.help_given

    @property
    def total_transferred(self) -> int:
        return sum(t.amount for t in self.fund_transfers)


class BulkStatusUpdate(BaseModel):
    """Payload to change the status of several leads at once."""
    lead_ids: List[str]
    status: Optional[LeadStatus] = None
    verified_status: Optional[LeadVerificationStatus] = None
