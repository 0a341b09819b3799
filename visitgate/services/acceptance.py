"""Terms acceptance records.

One row per (guest, invitation) or (guest, visit). Re-accepting refreshes the
existing row in place. The guest row is locked first so concurrent
submissions for the same guest are serialized; the unique constraints on the
table back this up.
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from visitgate.config import settings
from visitgate.errors import NotFound, ValidationError
from visitgate.models.acceptance import Acceptance
from visitgate.models.guest import Guest
from visitgate.models.invitation import Invitation
from visitgate.models.visit import Visit
from visitgate.services.clock import BusinessClock, get_clock
from visitgate.services.tokens import InvitationAcceptanceClaims, verify_acceptance_token

logger = logging.getLogger(__name__)


async def record_acceptance(
    db: AsyncSession,
    guest_id: uuid.UUID,
    *,
    invitation_id: uuid.UUID | None = None,
    visit_id: uuid.UUID | None = None,
    signature: str | None = None,
    ip_address: str | None = None,
    clock: BusinessClock | None = None,
) -> Acceptance:
    """Find-or-create the acceptance for one scope and stamp it as accepted now.

    Invitation-scoped acceptances last
    ``settings.invitation_acceptance_expire_days``; visit-scoped ones last
    ``settings.visit_acceptance_expire_hours``.

    Raises:
        ValidationError: If not exactly one scope is given, or the scope
            belongs to another guest.
        NotFound: If the guest or the scoped record does not exist.
    """
    if (invitation_id is None) == (visit_id is None):
        raise ValidationError("Acceptance must be scoped to exactly one invitation or visit")
    clock = clock or get_clock()

    guest_result = await db.execute(select(Guest).where(Guest.id == guest_id).with_for_update())
    guest = guest_result.scalar_one_or_none()
    if guest is None:
        raise NotFound("Guest", guest_id)

    scope = await db.get(Invitation, invitation_id) if invitation_id else await db.get(Visit, visit_id)
    if scope is None:
        raise NotFound("Invitation" if invitation_id else "Visit", invitation_id or visit_id)
    if scope.guest_id != guest_id:
        raise ValidationError("Acceptance scope belongs to a different guest")

    now = clock.now_in_zone()
    if invitation_id is not None:
        expires_at = clock.add_days(now, settings.invitation_acceptance_expire_days)
        scope_filter = Acceptance.invitation_id == invitation_id
    else:
        expires_at = clock.add_hours(now, settings.visit_acceptance_expire_hours)
        scope_filter = Acceptance.visit_id == visit_id

    result = await db.execute(select(Acceptance).where(Acceptance.guest_id == guest_id, scope_filter))
    acceptance = result.scalar_one_or_none()
    if acceptance is None:
        acceptance = Acceptance(
            guest_id=guest_id,
            invitation_id=invitation_id,
            visit_id=visit_id,
        )
        db.add(acceptance)
    acceptance.accepted_at = now
    acceptance.expires_at = expires_at
    acceptance.signature = signature
    acceptance.ip_address = ip_address

    guest.terms_accepted_at = now
    await db.flush()
    logger.info(
        "Recorded acceptance %s for guest %s (%s %s)",
        acceptance.id,
        guest_id,
        "invitation" if invitation_id else "visit",
        invitation_id or visit_id,
    )
    return acceptance


async def accept_with_token(
    db: AsyncSession,
    token: str,
    *,
    signature: str | None = None,
    ip_address: str | None = None,
    clock: BusinessClock | None = None,
) -> Acceptance:
    """Record the acceptance authorized by a signed acceptance token.

    Raises:
        ValidationError: If the token is invalid, expired or tampered with.
    """
    clock = clock or get_clock()
    claims = verify_acceptance_token(token, clock=clock)
    if claims is None:
        raise ValidationError("Invalid or expired acceptance link")

    if isinstance(claims, InvitationAcceptanceClaims):
        scope = {"invitation_id": claims.invitation_id}
    else:
        scope = {"visit_id": claims.visit_id}
    return await record_acceptance(
        db,
        claims.guest_id,
        signature=signature,
        ip_address=ip_address,
        clock=clock,
        **scope,
    )


async def accept_invitation_terms(
    db: AsyncSession,
    invitation_id: uuid.UUID,
    *,
    terms_accepted: bool,
    visitor_agreement_accepted: bool,
    signature: str | None = None,
    ip_address: str | None = None,
    clock: BusinessClock | None = None,
) -> Acceptance:
    """Guest self-service acceptance from the registration flow."""
    if not (terms_accepted and visitor_agreement_accepted):
        raise ValidationError("Please accept both Terms and Conditions and Visitor Agreement")
    invitation = await db.get(Invitation, invitation_id)
    if invitation is None:
        raise NotFound("Invitation", invitation_id)
    return await record_acceptance(
        db,
        invitation.guest_id,
        invitation_id=invitation.id,
        signature=signature,
        ip_address=ip_address,
        clock=clock,
    )
