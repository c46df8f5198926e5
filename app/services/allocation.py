"""Allocation engine: matches donation balances against a lead's need.

Pure computation. Nothing here reads or writes the database; the ledger
service loads the snapshots and persists the returned mutations.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from app.models.allocation import (
    Allocation, AllocationPreview, AllocationResult, DonationSnapshot, LeadSnapshot
)
from app.services.errors import AllocationInputError

logger = logging.getLogger(__name__)


def _validate_candidates(donations: Sequence[DonationSnapshot]) -> None:
    if not donations:
        raise AllocationInputError("No donations selected")

    seen = set()
    for donation in donations:
        if donation.id in seen:
            raise AllocationInputError(
                f"Donation {donation.id} was selected more than once"
            )
        seen.add(donation.id)

        if donation.available_amount <= 0:
            raise AllocationInputError(
                f"Donation {donation.id} has no available balance"
            )


def allocate(
    lead: LeadSnapshot,
    donations: Sequence[DonationSnapshot],
    acting_user_id: str,
    allocated_at: Optional[datetime] = None,
    acting_user_name: Optional[str] = None
) -> AllocationResult:
    """
    Draw from donations, in the order given, until the lead's need is met.

    Each donation contributes ``min(available, remaining)``. Iteration stops
    as soon as the need is covered; later donations are left untouched.
    A fully funded lead yields an empty result whatever the candidates.
    If the candidates cannot cover the need the partial result is returned.

    Raises AllocationInputError for an empty candidate list or a candidate
    with nothing left to give.
    """
    needed = lead.help_requested - lead.help_given
    if needed <= 0:
        logger.info("Lead %s is already fully funded, nothing to allocate", lead.id)
        return AllocationResult(lead_id=lead.id, new_help_given=lead.help_given)

    _validate_candidates(donations)

    if allocated_at is None:
        allocated_at = datetime.now(timezone.utc)

    remaining = needed
    allocations = []

    for donation in donations:
        draw = min(donation.available_amount, remaining)
        if draw <= 0:
            continue

        allocations.append(Allocation(
            lead_id=lead.id,
            donation_id=donation.id,
            amount=draw,
            allocated_at=allocated_at,
            allocated_by_user_id=acting_user_id,
            allocated_by_user_name=acting_user_name
        ))
        remaining -= draw

        if remaining == 0:
            break

    total = needed - remaining
    if remaining > 0:
        logger.info(
            "Lead %s partially funded: %d of %d allocated",
            lead.id, total, needed
        )

    return AllocationResult(
        lead_id=lead.id,
        allocations=allocations,
        total_allocated=total,
        new_help_given=lead.help_given + total
    )


def preview_allocation(
    lead: LeadSnapshot,
    donations: Sequence[DonationSnapshot]
) -> AllocationPreview:
    """Amount an allocation would move, without validating the candidates."""
    needed = lead.help_requested - lead.help_given
    total_available = sum(max(d.available_amount, 0) for d in donations)

    return AllocationPreview(
        lead_id=lead.id,
        needed_amount=needed,
        selected_count=len(donations),
        total_selected_available=total_available,
        final_allocation_amount=min(total_available, max(needed, 0))
    )
