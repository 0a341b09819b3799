"""Guest records — lookup by email, self-registration, blacklist, purge."""

import logging
import uuid
from dataclasses import dataclass

from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from visitgate.errors import NotFound, ValidationError
from visitgate.models.acceptance import Acceptance
from visitgate.models.discount import Discount
from visitgate.models.guest import Guest
from visitgate.models.invitation import Invitation
from visitgate.models.visit import Visit
from visitgate.services.clock import BusinessClock, get_clock
from visitgate.services.notifications import NotificationKind, enqueue_notification

logger = logging.getLogger(__name__)

_email_adapter: TypeAdapter = TypeAdapter(EmailStr)


def normalize_email(email: str | None) -> str:
    """Validate and lower-case an email address.

    Raises:
        ValidationError: If the email is missing or malformed.
    """
    if not email or not email.strip():
        raise ValidationError("Email is required")
    try:
        return _email_adapter.validate_python(email.strip()).lower()
    except PydanticValidationError:
        raise ValidationError("Email address is not valid") from None


async def get_or_create_guest(db: AsyncSession, email: str) -> tuple[Guest, bool]:
    """Return ``(guest, created)``. An existing guest is returned untouched."""
    email = normalize_email(email)
    result = await db.execute(select(Guest).where(Guest.email == email))
    guest = result.scalar_one_or_none()
    if guest is not None:
        return guest, False

    guest = Guest(email=email, name="", profile_completed=False)
    db.add(guest)
    await db.flush()
    logger.info("Created guest %s", guest.id)
    return guest, True


async def get_guest(db: AsyncSession, guest_id: uuid.UUID) -> Guest:
    guest = await db.get(Guest, guest_id)
    if guest is None:
        raise NotFound("Guest", guest_id)
    return guest


async def complete_profile(
    db: AsyncSession,
    invitation_id: uuid.UUID,
    *,
    name: str,
    phone: str | None = None,
    company: str | None = None,
    country: str | None = None,
) -> Guest:
    """Guest self-registration: fill in the profile and notify the host."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Name is required")

    invitation = await db.get(Invitation, invitation_id)
    if invitation is None:
        raise NotFound("Invitation", invitation_id)

    guest = invitation.guest
    guest.name = name
    if phone is not None:
        guest.phone = phone
    if company is not None:
        guest.company = company
    if country is not None:
        guest.country = country
    guest.profile_completed = True
    await db.flush()

    await enqueue_notification(
        db,
        NotificationKind.PROFILE_COMPLETED,
        invitation.host.email,
        guest_name=guest.name,
        host_name=invitation.host.name,
        location_name=invitation.location.name,
    )
    logger.info("Guest %s completed profile via invitation %s", guest.id, invitation.id)
    return guest


async def set_blacklisted(
    db: AsyncSession,
    guest_id: uuid.UUID,
    blacklisted: bool,
    clock: BusinessClock | None = None,
) -> Guest:
    """Set or clear the blacklist flag. Setting an already-set flag keeps the original time."""
    guest = await get_guest(db, guest_id)
    if blacklisted and guest.blacklisted_at is None:
        guest.blacklisted_at = (clock or get_clock()).now_in_zone()
        logger.warning("Guest %s blacklisted", guest.id)
    elif not blacklisted and guest.blacklisted_at is not None:
        guest.blacklisted_at = None
        logger.info("Guest %s removed from blacklist", guest.id)
    await db.flush()
    return guest


@dataclass(frozen=True)
class PurgeSummary:
    discounts: int
    acceptances: int
    visits: int
    invitations: int


async def purge_guest(db: AsyncSession, guest_id: uuid.UUID) -> PurgeSummary:
    """Delete a guest and every dependent row, children first.

    Override audit rows are kept; they reference visits by id only.
    """
    guest = await get_guest(db, guest_id)

    discounts = await db.execute(delete(Discount).where(Discount.guest_id == guest.id))
    acceptances = await db.execute(delete(Acceptance).where(Acceptance.guest_id == guest.id))
    visits = await db.execute(delete(Visit).where(Visit.guest_id == guest.id))
    invitations = await db.execute(delete(Invitation).where(Invitation.guest_id == guest.id))
    await db.delete(guest)
    await db.flush()

    summary = PurgeSummary(
        discounts=discounts.rowcount,
        acceptances=acceptances.rowcount,
        visits=visits.rowcount,
        invitations=invitations.rowcount,
    )
    logger.warning("Purged guest %s: %s", guest_id, summary)
    return summary
