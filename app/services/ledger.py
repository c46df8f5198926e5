"""Ledger service: persists allocations and fund transfers.

Every write to a lead or donation row is a compare-and-swap on the row's
``version`` column. An allocation touches several rows; if any swap
misses, the rows already written in that attempt are restored and the
whole read/compute/write cycle is retried with fresh data.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Sequence

from app.config import get_settings
from app.database import get_supabase, first_row, LEADS_TABLE, DONATIONS_TABLE
from app.models.allocation import (
    AllocationPreview, AllocationResult, DonationSnapshot, LeadSnapshot
)
from app.models.donation import (
    ALLOCATABLE_STATUSES, AllocatableDonation, Donation, DonationStatus
)
from app.models.lead import FundTransfer, FundTransferCreate, Lead, LeadStatus
from app.models.user import UserProfile
from app.services.activity import log_activity
from app.services.allocation import allocate, preview_allocation
from app.services.errors import (
    AllocationConflictError, AllocationInputError, NotFoundError
)

logger = logging.getLogger(__name__)

# Lead statuses that allocation moves forward automatically.
FUNDING_STATUSES = {LeadStatus.PENDING, LeadStatus.OPEN, LeadStatus.PARTIAL}

# On Hold, Cancelled and Closed leads take no new money.
ALLOCATABLE_LEAD_STATUSES = FUNDING_STATUSES | {LeadStatus.COMPLETE}


def _dump(models) -> list[dict[str, Any]]:
    return [m.model_dump(mode="json") for m in models]


def _compare_and_swap(
    table: str,
    row_id: str,
    expected_version: int,
    changes: dict[str, Any]
) -> dict | None:
    """Apply changes only if the row still has the expected version."""
    supabase = get_supabase()
    result = supabase.table(table).update({
        **changes,
        "version": expected_version + 1
    }).eq("id", row_id).eq("version", expected_version).execute()
    return first_row(result)


def _rollback(written: list[tuple[str, str, int, dict[str, Any]]]) -> None:
    """Restore rows written during a failed attempt, newest first."""
    for table, row_id, version, pre_image in reversed(written):
        if _compare_and_swap(table, row_id, version, pre_image) is None:
            logger.error(
                "Could not roll back %s row %s at version %d; manual repair needed",
                table, row_id, version
            )


async def get_lead(lead_id: str) -> Lead:
    """Fetch a lead by ID."""
    supabase = get_supabase()
    row = first_row(supabase.table(LEADS_TABLE).select("*").eq("id", lead_id).execute())

    if row is None:
        raise NotFoundError(f"Lead {lead_id} not found")

    return Lead(**row)


async def get_donations(donation_ids: Sequence[str]) -> list[Donation]:
    """Fetch donations by ID, in the order the IDs were given."""
    if len(set(donation_ids)) != len(donation_ids):
        raise AllocationInputError("A donation was selected more than once")

    supabase = get_supabase()
    result = supabase.table(DONATIONS_TABLE).select("*").in_(
        "id", list(donation_ids)
    ).execute()

    by_id = {row["id"]: Donation(**row) for row in result.data}
    missing = [d for d in donation_ids if d not in by_id]
    if missing:
        raise NotFoundError(f"Donation {missing[0]} not found")

    return [by_id[d] for d in donation_ids]


async def list_allocatable_donations() -> list[AllocatableDonation]:
    """Donations that can still be allocated, oldest first."""
    supabase = get_supabase()
    result = supabase.table(DONATIONS_TABLE).select("*").in_(
        "status", [s.value for s in ALLOCATABLE_STATUSES]
    ).order("donation_date", desc=False).execute()

    allocatable = []
    for row in result.data:
        donation = Donation(**row)
        if not donation.is_allocatable:
            continue
        allocatable.append(AllocatableDonation(
            id=donation.id,
            donor_name=donation.donor_name,
            amount=donation.amount,
            available_amount=donation.available_amount,
            status=donation.status,
            transaction_id=donation.transaction_id,
            donation_date=donation.donation_date
        ))

    return allocatable


def _lead_snapshot(lead: Lead) -> LeadSnapshot:
    return LeadSnapshot(
        id=lead.id,
        help_requested=lead.help_requested,
        help_given=lead.help_given
    )


def _donation_snapshot(donation: Donation) -> DonationSnapshot:
    return DonationSnapshot(
        id=donation.id,
        amount=donation.amount,
        allocations=donation.allocations
    )


async def preview_lead_allocation(
    lead_id: str,
    donation_ids: Sequence[str]
) -> AllocationPreview:
    """Show how much selecting these donations would move to the lead."""
    lead = await get_lead(lead_id)
    donations = await get_donations(donation_ids)
    return preview_allocation(
        _lead_snapshot(lead),
        [_donation_snapshot(d) for d in donations]
    )


async def _allocate_once(
    lead_id: str,
    donation_ids: Sequence[str],
    user: UserProfile
) -> tuple[Lead, AllocationResult]:
    """One read/compute/write attempt."""
    lead = await get_lead(lead_id)
    if lead.status not in ALLOCATABLE_LEAD_STATUSES:
        raise AllocationInputError(
            f"Lead {lead.id} is '{lead.status.value}' and cannot receive allocations"
        )

    donations = await get_donations(donation_ids)

    for donation in donations:
        if not donation.is_allocatable:
            raise AllocationInputError(
                f"Donation {donation.id} is '{donation.status.value}' with "
                f"{donation.available_amount} available and cannot be allocated"
            )

    result = allocate(
        _lead_snapshot(lead),
        [_donation_snapshot(d) for d in donations],
        acting_user_id=user.id,
        acting_user_name=user.name
    )

    if result.is_empty:
        return lead, result

    by_id = {d.id: d for d in donations}
    written: list[tuple[str, str, int, dict[str, Any]]] = []

    try:
        for allocation in result.allocations:
            donation = by_id[allocation.donation_id]
            new_allocations = donation.allocations + [allocation.for_donation()]
            remaining = donation.amount - sum(a.amount for a in new_allocations)
            status = DonationStatus.ALLOCATED if remaining == 0 else DonationStatus.PARTIALLY_ALLOCATED

            row = _compare_and_swap(DONATIONS_TABLE, donation.id, donation.version, {
                "allocations": _dump(new_allocations),
                "status": status.value
            })
            if row is None:
                raise AllocationConflictError(
                    f"Donation {donation.id} changed during allocation"
                )
            written.append((DONATIONS_TABLE, donation.id, donation.version + 1, {
                "allocations": _dump(donation.allocations),
                "status": donation.status.value
            }))

        lead_status = lead.status
        if lead_status in FUNDING_STATUSES:
            if result.new_help_given >= lead.help_requested:
                lead_status = LeadStatus.COMPLETE
            else:
                lead_status = LeadStatus.PARTIAL

        new_lead_allocations = lead.donations + [a.for_lead() for a in result.allocations]
        row = _compare_and_swap(LEADS_TABLE, lead.id, lead.version, {
            "help_given": result.new_help_given,
            "donations": _dump(new_lead_allocations),
            "status": lead_status.value,
            "updated_at": datetime.now(timezone.utc).isoformat()
        })
        if row is None:
            raise AllocationConflictError(f"Lead {lead.id} changed during allocation")

    except Exception:
        _rollback(written)
        raise

    return Lead(**row), result


async def allocate_donations_to_lead(
    lead_id: str,
    donation_ids: Sequence[str],
    user: UserProfile
) -> AllocationResult:
    """
    Allocate the selected donations, in selection order, to a lead.

    Retries on concurrent modification up to ``allocation_max_retries``
    times, then raises AllocationConflictError.
    """
    if not donation_ids:
        raise AllocationInputError("No donations selected")

    settings = get_settings()
    attempts = max(settings.allocation_max_retries, 1)

    for attempt in range(1, attempts + 1):
        try:
            lead, result = await _allocate_once(lead_id, donation_ids, user)
            break
        except AllocationConflictError as e:
            logger.warning(
                "Allocation to lead %s conflicted (attempt %d/%d): %s",
                lead_id, attempt, attempts, e.message
            )
    else:
        raise AllocationConflictError(
            f"Allocation to lead {lead_id} failed after {attempts} attempts due to concurrent updates"
        )

    if result.is_empty:
        return result

    logger.info(
        "Allocated %d from %d donation(s) to lead %s",
        result.total_allocated, len(result.allocations), lead_id
    )

    # One record per donation so each donation's audit trail shows its draw.
    for allocation in result.allocations:
        await log_activity(user, "Allocated to Lead", {
            "lead_id": lead.id,
            "lead_name": lead.name,
            "donation_id": allocation.donation_id,
            "amount": allocation.amount,
        })

    return result


async def set_verification_outcome(
    donation_id: str,
    status: DonationStatus,
    user: UserProfile
) -> Donation:
    """Move a donation out of 'Pending verification' after manual review."""
    if status not in (DonationStatus.VERIFIED, DonationStatus.FAILED_INCOMPLETE):
        raise AllocationInputError(
            f"Verification can only mark a donation Verified or Failed/Incomplete, not '{status.value}'"
        )

    donation = (await get_donations([donation_id]))[0]
    if donation.status != DonationStatus.PENDING_VERIFICATION:
        raise AllocationInputError(
            f"Donation {donation_id} is '{donation.status.value}', not pending verification"
        )

    row = _compare_and_swap(DONATIONS_TABLE, donation.id, donation.version, {
        "status": status.value,
        "verified_by_user_id": user.id
    })
    if row is None:
        raise AllocationConflictError(f"Donation {donation_id} was modified concurrently, reload and retry")

    return Donation(**row)


def _delete_at_version(table: str, row_id: str, expected_version: int) -> bool:
    """Delete a row only if nothing has written to it since it was read."""
    supabase = get_supabase()
    result = supabase.table(table).delete().eq("id", row_id).eq(
        "version", expected_version
    ).execute()
    return bool(result.data)


async def delete_lead(lead_id: str) -> Lead:
    """Delete a lead that has never received an allocation."""
    lead = await get_lead(lead_id)

    if lead.donations:
        raise AllocationInputError("Lead has allocated donations and cannot be deleted")

    if not _delete_at_version(LEADS_TABLE, lead.id, lead.version):
        raise AllocationConflictError(f"Lead {lead.id} was modified concurrently, reload and retry")

    return lead


async def delete_donation(donation_id: str) -> Donation:
    """Delete a donation that has never been allocated."""
    donation = (await get_donations([donation_id]))[0]

    if donation.allocations:
        raise AllocationInputError("Donation has allocations and cannot be deleted")

    if not _delete_at_version(DONATIONS_TABLE, donation.id, donation.version):
        raise AllocationConflictError(
            f"Donation {donation.id} was modified concurrently, reload and retry"
        )

    return donation


async def update_lead(lead_id: str, changes: dict[str, Any]) -> Lead:
    """Apply an edit to a lead without letting help_requested fall below help_given."""
    lead = await get_lead(lead_id)

    help_requested = changes.get("help_requested")
    if help_requested is not None and help_requested < lead.help_given:
        raise AllocationInputError(
            f"Help requested cannot be less than the {lead.help_given} already allocated"
        )

    row = _compare_and_swap(LEADS_TABLE, lead.id, lead.version, {
        **changes,
        "updated_at": datetime.now(timezone.utc).isoformat()
    })
    if row is None:
        raise AllocationConflictError(f"Lead {lead.id} was modified concurrently, reload and retry")

    return Lead(**row)


async def record_fund_transfer(
    lead_id: str,
    data: FundTransferCreate,
    user: UserProfile
) -> Lead:
    """Record money paid out against the funds allocated to a lead."""
    settings = get_settings()
    attempts = max(settings.allocation_max_retries, 1)

    for attempt in range(1, attempts + 1):
        lead = await get_lead(lead_id)

        if lead.total_transferred + data.amount > lead.help_given:
            raise AllocationInputError(
                f"Transfer of {data.amount} exceeds the undisbursed allocated amount "
                f"({lead.help_given - lead.total_transferred})"
            )

        transfer = FundTransfer(
            **data.model_dump(),
            transferred_at=datetime.now(timezone.utc),
            transferred_by_user_id=user.id,
            transferred_by_user_name=user.name
        )

        row = _compare_and_swap(LEADS_TABLE, lead.id, lead.version, {
            "fund_transfers": _dump(lead.fund_transfers + [transfer]),
            "updated_at": datetime.now(timezone.utc).isoformat()
        })
        if row is not None:
            break

        logger.warning(
            "Fund transfer for lead %s conflicted (attempt %d/%d)",
            lead_id, attempt, attempts
        )
    else:
        raise AllocationConflictError(
            f"Fund transfer for lead {lead_id} failed after {attempts} attempts due to concurrent updates"
        )

    await log_activity(user, "Fund Transfer Recorded", {
        "lead_id": lead.id,
        "lead_name": lead.name,
        "amount": data.amount,
    })

    return Lead(**row)
