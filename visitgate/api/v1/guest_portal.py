"""Public guest endpoints reached from invitation and acceptance emails.

No staff authentication: knowledge of the invitation id (delivered by email)
or a signed acceptance token is the credential.
"""

import uuid

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from visitgate.api.deps import get_db
from visitgate.schemas.guest import (
    AcceptanceResponse,
    AcceptTermsRequest,
    AcceptTokenRequest,
    CompleteProfileRequest,
    GuestResponse,
)
from visitgate.schemas.invitation import PublicInvitationResponse
from visitgate.services.acceptance import accept_invitation_terms, accept_with_token
from visitgate.services.guests import complete_profile
from visitgate.services.invitations import get_invitation

router = APIRouter(prefix="/api/v1/guest", tags=["guest"])
accept_router = APIRouter(prefix="/api/v1/accept", tags=["guest"])


def _client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


@router.get("/invitations/{invitation_id}", response_model=PublicInvitationResponse)
async def view_invitation(
    invitation_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> PublicInvitationResponse:
    invitation = await get_invitation(db, invitation_id)
    return PublicInvitationResponse(
        id=invitation.id,
        invite_date=invitation.invite_date,
        status=invitation.status,
        guest_email=invitation.guest.email,
        guest_name=invitation.guest.name,
        profile_completed=invitation.guest.profile_completed,
        host_name=invitation.host.name,
        location_name=invitation.location.name,
    )


@router.post("/complete-profile", response_model=GuestResponse)
async def complete_guest_profile(
    body: CompleteProfileRequest,
    db: AsyncSession = Depends(get_db),
) -> GuestResponse:
    """Self-registration; the host is notified."""
    guest = await complete_profile(
        db,
        body.invitation_id,
        name=body.name,
        phone=body.phone,
        company=body.company,
        country=body.country,
    )
    return GuestResponse.model_validate(guest)


@router.post("/accept-terms", response_model=AcceptanceResponse)
async def accept_terms(
    body: AcceptTermsRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AcceptanceResponse:
    acceptance = await accept_invitation_terms(
        db,
        body.invitation_id,
        terms_accepted=body.terms_accepted,
        visitor_agreement_accepted=body.visitor_agreement_accepted,
        signature=body.signature,
        ip_address=_client_ip(request),
    )
    return AcceptanceResponse.model_validate(acceptance)


@accept_router.post("", response_model=AcceptanceResponse)
async def accept_with_link(
    body: AcceptTokenRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AcceptanceResponse:
    """Accept the visitor terms through a signed acceptance link."""
    acceptance = await accept_with_token(
        db,
        body.token,
        signature=body.signature,
        ip_address=_client_ip(request),
    )
    return AcceptanceResponse.model_validate(acceptance)
