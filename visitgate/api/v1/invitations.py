"""Invitations API router — host-facing lifecycle operations.

Ownership rule: a host only sees and acts on invitations they issued.
Security and admin staff see every invitation.
"""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from visitgate.api.deps import get_admin_user, get_db, get_staff_user
from visitgate.errors import NotFound
from visitgate.models.invitation import Invitation
from visitgate.models.user import User
from visitgate.schemas.invitation import (
    AcceptanceLinkResponse,
    InvitationCreate,
    InvitationListResponse,
    InvitationResponse,
    SweepResponse,
)
from visitgate.services import invitations as invitation_service
from visitgate.services.clock import get_clock

router = APIRouter(prefix="/api/v1/invitations", tags=["invitations"])


def _host_scope(user: User) -> uuid.UUID | None:
    return user.id if user.role == "host" else None


async def _get_owned(db: AsyncSession, invitation_id: uuid.UUID, user: User) -> Invitation:
    """Fetch an invitation the caller may act on, else 404."""
    invitation = await invitation_service.get_invitation(db, invitation_id)
    host_id = _host_scope(user)
    if host_id is not None and invitation.host_id != host_id:
        raise NotFound("Invitation", invitation_id)
    return invitation


@router.post("", response_model=InvitationResponse, status_code=status.HTTP_201_CREATED)
async def create_invitation(
    body: InvitationCreate,
    current_user: User = Depends(get_staff_user),
    db: AsyncSession = Depends(get_db),
) -> InvitationResponse:
    """Invite a guest (PENDING). The guest record is reused for a known email."""
    invitation = await invitation_service.create_invitation(
        db,
        email=body.email,
        host_id=current_user.id,
        location_id=body.location_id,
        invite_date=body.invite_date,
    )
    return InvitationResponse.model_validate(invitation)


@router.get("", response_model=InvitationListResponse)
async def list_invitations(
    invite_date: str | None = Query(None, alias="date", description="YYYY-MM-DD"),
    current_user: User = Depends(get_staff_user),
    db: AsyncSession = Depends(get_db),
) -> InvitationListResponse:
    parsed = get_clock().parse_calendar_date(invite_date) if invite_date else None
    items = await invitation_service.list_invitations(
        db,
        host_id=_host_scope(current_user),
        invite_date=parsed,
    )
    return InvitationListResponse(
        items=[InvitationResponse.model_validate(i) for i in items],
        total=len(items),
    )


# Registered before "/{invitation_id}" routes so "expire-sweep" is not parsed as an id.
@router.post("/expire-sweep", response_model=SweepResponse)
async def expire_sweep(
    _admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
) -> SweepResponse:
    """Expire every activated invitation whose QR token has lapsed."""
    return SweepResponse(expired=await invitation_service.expire_stale_invitations(db))


@router.get("/{invitation_id}", response_model=InvitationResponse)
async def get_invitation(
    invitation_id: uuid.UUID,
    current_user: User = Depends(get_staff_user),
    db: AsyncSession = Depends(get_db),
) -> InvitationResponse:
    return InvitationResponse.model_validate(await _get_owned(db, invitation_id, current_user))


@router.post("/{invitation_id}/activate", response_model=InvitationResponse)
async def activate_invitation(
    invitation_id: uuid.UUID,
    current_user: User = Depends(get_staff_user),
    db: AsyncSession = Depends(get_db),
) -> InvitationResponse:
    """Issue the QR entry token (PENDING -> ACTIVATED)."""
    await _get_owned(db, invitation_id, current_user)
    invitation = await invitation_service.activate(db, invitation_id)
    return InvitationResponse.model_validate(invitation)


@router.post("/{invitation_id}/reissue", response_model=InvitationResponse)
async def reissue_invitation(
    invitation_id: uuid.UUID,
    current_user: User = Depends(get_staff_user),
    db: AsyncSession = Depends(get_db),
) -> InvitationResponse:
    """Issue a fresh QR token for an expired invitation."""
    await _get_owned(db, invitation_id, current_user)
    invitation = await invitation_service.reissue(db, invitation_id)
    return InvitationResponse.model_validate(invitation)


@router.post("/{invitation_id}/expire", response_model=InvitationResponse)
async def expire_invitation(
    invitation_id: uuid.UUID,
    current_user: User = Depends(get_staff_user),
    db: AsyncSession = Depends(get_db),
) -> InvitationResponse:
    await _get_owned(db, invitation_id, current_user)
    invitation = await invitation_service.mark_expired(db, invitation_id)
    return InvitationResponse.model_validate(invitation)


@router.post("/{invitation_id}/acceptance-link", response_model=AcceptanceLinkResponse)
async def send_acceptance_link(
    invitation_id: uuid.UUID,
    current_user: User = Depends(get_staff_user),
    db: AsyncSession = Depends(get_db),
) -> AcceptanceLinkResponse:
    """Email the guest a signed link for accepting the visitor terms."""
    await _get_owned(db, invitation_id, current_user)
    token = await invitation_service.send_acceptance_link(db, invitation_id)
    return AcceptanceLinkResponse(token=token)
