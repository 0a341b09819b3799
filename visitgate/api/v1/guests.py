"""Guest administration router — blacklist and purge (admin only)."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from visitgate.api.deps import get_admin_user, get_db, get_desk_user
from visitgate.models.user import User
from visitgate.schemas.guest import GuestResponse, PurgeResponse
from visitgate.services import guests as guest_service

router = APIRouter(prefix="/api/v1/guests", tags=["guests"])


@router.get("/{guest_id}", response_model=GuestResponse)
async def get_guest(
    guest_id: uuid.UUID,
    _user: User = Depends(get_desk_user),
    db: AsyncSession = Depends(get_db),
) -> GuestResponse:
    return GuestResponse.model_validate(await guest_service.get_guest(db, guest_id))


@router.post("/{guest_id}/blacklist", response_model=GuestResponse)
async def blacklist_guest(
    guest_id: uuid.UUID,
    _admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
) -> GuestResponse:
    guest = await guest_service.set_blacklisted(db, guest_id, True)
    return GuestResponse.model_validate(guest)


@router.delete("/{guest_id}/blacklist", response_model=GuestResponse)
async def unblacklist_guest(
    guest_id: uuid.UUID,
    _admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
) -> GuestResponse:
    guest = await guest_service.set_blacklisted(db, guest_id, False)
    return GuestResponse.model_validate(guest)


@router.delete("/{guest_id}", response_model=PurgeResponse)
async def purge_guest(
    guest_id: uuid.UUID,
    _admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
) -> PurgeResponse:
    """Remove a guest and all their invitations, visits and acceptances."""
    summary = await guest_service.purge_guest(db, guest_id)
    return PurgeResponse(
        guest_id=guest_id,
        discounts=summary.discounts,
        acceptances=summary.acceptances,
        visits=summary.visits,
        invitations=summary.invitations,
    )
