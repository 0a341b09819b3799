"""Invitation lifecycle — create, activate, check in, expire, reissue.

States::

    PENDING --activate--> ACTIVATED --check_in--> CHECKED_IN
                              |
                              +--(qr_expires_at passes)--> EXPIRED --reissue--> ACTIVATED

Expiry has two paths that must agree. Reads call ``effective_status`` and
persist the EXPIRED flip when it differs from the stored status; a scheduled
``expire_stale_invitations`` sweep applies the same ``_expire`` transition in
bulk. A row is EXPIRED once ``now > qr_expires_at`` on either path.

The QR token is present exactly while the status is ACTIVATED or CHECKED_IN.
A lapsed token moves to ``lapsed_qr_token`` so scanning it again still
answers QrExpired rather than NotFound.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from visitgate.config import settings
from visitgate.errors import AlreadyActivated, Expired, InvalidTransition, NotFound, QrExpired
from visitgate.models.discount import Discount
from visitgate.models.invitation import Invitation, InvitationStatus
from visitgate.models.location import Location
from visitgate.models.user import User
from visitgate.models.visit import Visit
from visitgate.services.clock import BusinessClock, get_clock
from visitgate.services.guests import get_or_create_guest, normalize_email
from visitgate.services.notifications import NotificationKind, enqueue_notification, notify_invitation
from visitgate.services.policy import Deny, Verdict, evaluate_admission, load_admission_context
from visitgate.services.tokens import InvitationAcceptanceClaims, issue_acceptance_token, issue_qr_token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckInResult:
    """Outcome of a check-in attempt.

    ``visit`` is set when the guest was admitted; otherwise ``verdict`` is
    the ``Deny`` the caller must act on.
    """

    invitation: Invitation
    verdict: Verdict
    visit: Visit | None = None
    discount_triggered: bool = False

    @property
    def admitted(self) -> bool:
        return self.visit is not None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def effective_status(invitation: Invitation, now: datetime) -> InvitationStatus:
    """Status as of ``now``, treating a lapsed QR token as EXPIRED."""
    if (
        invitation.status == InvitationStatus.ACTIVATED
        and invitation.qr_expires_at is not None
        and now > invitation.qr_expires_at
    ):
        return InvitationStatus.EXPIRED
    return invitation.status


def _expire(invitation: Invitation) -> None:
    if invitation.qr_token is not None:
        invitation.lapsed_qr_token = invitation.qr_token
    invitation.status = InvitationStatus.EXPIRED
    invitation.qr_token = None
    logger.info("Invitation %s expired", invitation.id)


def _issue_qr(invitation: Invitation, clock: BusinessClock) -> None:
    qr = issue_qr_token(clock)
    invitation.qr_token = qr.token
    invitation.qr_issued_at = qr.issued_at
    invitation.qr_expires_at = qr.expires_at
    invitation.status = InvitationStatus.ACTIVATED


async def _get_for_update(db: AsyncSession, invitation_id: uuid.UUID) -> Invitation:
    result = await db.execute(
        select(Invitation)
        .where(Invitation.id == invitation_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    invitation = result.scalar_one_or_none()
    if invitation is None:
        raise NotFound("Invitation", invitation_id)
    return invitation


async def _apply_lazy_expiry(db: AsyncSession, invitations: list[Invitation], now: datetime) -> None:
    changed = False
    for invitation in invitations:
        if effective_status(invitation, now) != invitation.status:
            _expire(invitation)
            changed = True
    if changed:
        await db.flush()


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_invitation(
    db: AsyncSession,
    invitation_id: uuid.UUID,
    clock: BusinessClock | None = None,
) -> Invitation:
    """Load an invitation, persisting a lazily detected expiry."""
    clock = clock or get_clock()
    invitation = await db.get(Invitation, invitation_id)
    if invitation is None:
        raise NotFound("Invitation", invitation_id)
    await _apply_lazy_expiry(db, [invitation], clock.now_in_zone())
    return invitation


async def list_invitations(
    db: AsyncSession,
    *,
    host_id: uuid.UUID | None = None,
    invite_date: date | None = None,
    clock: BusinessClock | None = None,
) -> list[Invitation]:
    clock = clock or get_clock()
    query = select(Invitation)
    if host_id is not None:
        query = query.where(Invitation.host_id == host_id)
    if invite_date is not None:
        query = query.where(Invitation.invite_date == invite_date)
    result = await db.execute(query.order_by(Invitation.created_at.desc()))
    invitations = list(result.scalars().all())
    await _apply_lazy_expiry(db, invitations, clock.now_in_zone())
    return invitations


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


async def create_invitation(
    db: AsyncSession,
    *,
    email: str,
    host_id: uuid.UUID,
    location_id: uuid.UUID,
    invite_date: date | str | None = None,
    clock: BusinessClock | None = None,
) -> Invitation:
    """Create a PENDING invitation, reusing the guest row for a known email.

    An existing guest's profile, terms and blacklist state are left as they are.

    Raises:
        ValidationError: Missing or malformed email.
        InvalidDate: Malformed ``invite_date`` string.
        NotFound: Unknown host or location.
    """
    clock = clock or get_clock()
    email = normalize_email(email)
    if isinstance(invite_date, str):
        invite_date = clock.parse_calendar_date(invite_date)
    elif invite_date is None:
        invite_date = clock.today()

    host = await db.get(User, host_id)
    if host is None:
        raise NotFound("Host", host_id)
    location = await db.get(Location, location_id)
    if location is None:
        raise NotFound("Location", location_id)

    guest, _ = await get_or_create_guest(db, email)
    invitation = Invitation(
        guest=guest,
        host=host,
        location=location,
        invite_date=invite_date,
        status=InvitationStatus.PENDING,
    )
    db.add(invitation)
    await db.flush()
    logger.info("Invitation %s created by host %s for %s", invitation.id, host.id, invite_date)

    await notify_invitation(db, invitation)
    return invitation


async def activate(
    db: AsyncSession,
    invitation_id: uuid.UUID,
    clock: BusinessClock | None = None,
) -> Invitation:
    """PENDING -> ACTIVATED: issue the QR entry token.

    Raises:
        NotFound: Unknown invitation.
        AlreadyActivated: Status is not PENDING.
        Expired: The invitation date is already over.
    """
    clock = clock or get_clock()
    invitation = await _get_for_update(db, invitation_id)
    if invitation.status != InvitationStatus.PENDING:
        raise AlreadyActivated(f"Invitation is already {invitation.status.value.lower()}")
    if clock.now_in_zone() >= clock.invite_deadline(invitation.invite_date):
        raise Expired()

    _issue_qr(invitation, clock)
    await db.flush()
    logger.info("Invitation %s activated until %s", invitation.id, invitation.qr_expires_at)

    await notify_invitation(db, invitation)
    return invitation


async def reissue(
    db: AsyncSession,
    invitation_id: uuid.UUID,
    clock: BusinessClock | None = None,
) -> Invitation:
    """EXPIRED -> ACTIVATED with a fresh token and validity window.

    The invitation date is not re-checked: a reissue extends an invitation
    the host already activated.
    """
    clock = clock or get_clock()
    invitation = await _get_for_update(db, invitation_id)
    if effective_status(invitation, clock.now_in_zone()) != invitation.status:
        _expire(invitation)
    if invitation.status != InvitationStatus.EXPIRED:
        raise InvalidTransition("Only expired invitations can be reissued")

    _issue_qr(invitation, clock)
    await db.flush()
    logger.info("Invitation %s reissued until %s", invitation.id, invitation.qr_expires_at)

    await notify_invitation(db, invitation)
    return invitation


async def mark_expired(
    db: AsyncSession,
    invitation_id: uuid.UUID,
) -> Invitation:
    """ACTIVATED -> EXPIRED. Expiring an EXPIRED invitation is a no-op."""
    invitation = await _get_for_update(db, invitation_id)
    if invitation.status == InvitationStatus.EXPIRED:
        return invitation
    if invitation.status != InvitationStatus.ACTIVATED:
        raise InvalidTransition(f"Cannot expire a {invitation.status.value.lower()} invitation")
    _expire(invitation)
    await db.flush()
    return invitation


async def expire_stale_invitations(db: AsyncSession, clock: BusinessClock | None = None) -> int:
    """Sweep: expire every ACTIVATED invitation whose QR token has lapsed."""
    clock = clock or get_clock()
    result = await db.execute(
        select(Invitation)
        .where(
            Invitation.status == InvitationStatus.ACTIVATED,
            Invitation.qr_expires_at < clock.now_in_zone(),
        )
        .with_for_update()
    )
    stale = list(result.scalars().all())
    for invitation in stale:
        _expire(invitation)
    await db.flush()
    if stale:
        logger.info("Expiry sweep expired %d invitation(s)", len(stale))
    return len(stale)


async def check_in(
    db: AsyncSession,
    qr_token: str,
    host_id: uuid.UUID | None = None,
    clock: BusinessClock | None = None,
) -> CheckInResult:
    """ACTIVATED -> CHECKED_IN if the admission policy allows it.

    A denial is returned in the result, with nothing written.

    Raises:
        NotFound: Unknown token, or the invitation belongs to another host.
        QrExpired: The token has lapsed. The EXPIRED status is committed
            before this propagates.
        InvalidTransition: The invitation was already used.
    """
    clock = clock or get_clock()
    invitation = await find_by_token(db, qr_token, host_id)

    if invitation.status == InvitationStatus.CHECKED_IN:
        raise InvalidTransition("Guest has already checked in with this invitation")
    await raise_if_expired(db, invitation, clock)

    context, thresholds = await load_admission_context(db, invitation, clock)
    verdict = evaluate_admission(context, thresholds)
    if isinstance(verdict, Deny):
        logger.warning("Check-in denied for invitation %s: %s", invitation.id, verdict.kind.value)
        return CheckInResult(invitation=invitation, verdict=verdict)

    visit, discount_triggered = await admit(db, invitation, clock)
    return CheckInResult(
        invitation=invitation,
        verdict=verdict,
        visit=visit,
        discount_triggered=discount_triggered,
    )


async def raise_if_expired(db: AsyncSession, invitation: Invitation, clock: BusinessClock) -> None:
    """Raise QrExpired for a lapsed invitation, committing the EXPIRED flip first.

    The flip is kept even though the request fails, so the read path and the
    sweep see the same state afterwards.
    """
    if effective_status(invitation, clock.now_in_zone()) != InvitationStatus.EXPIRED:
        return
    if invitation.status != InvitationStatus.EXPIRED:
        _expire(invitation)
        await db.commit()
    raise QrExpired()


async def find_by_token(
    db: AsyncSession,
    qr_token: str,
    host_id: uuid.UUID | None = None,
) -> Invitation:
    """Locked lookup of the invitation a QR token belongs to.

    Raises:
        NotFound: Unknown token, or the invitation belongs to another host.
        QrExpired: The token is one that has already lapsed.
    """
    if not qr_token:
        raise NotFound("Invitation")
    result = await db.execute(
        select(Invitation)
        .where(or_(Invitation.qr_token == qr_token, Invitation.lapsed_qr_token == qr_token))
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    invitation = result.scalar_one_or_none()
    # A host scanning another host's guest sees the same answer as a bad token.
    if invitation is None or (host_id is not None and invitation.host_id != host_id):
        raise NotFound("Invitation")
    if invitation.qr_token != qr_token:
        raise QrExpired()
    return invitation


async def admit(
    db: AsyncSession,
    invitation: Invitation,
    clock: BusinessClock,
    *,
    override_reason: str | None = None,
    override_by: uuid.UUID | None = None,
) -> tuple[Visit, bool]:
    """Create the visit and mark the invitation CHECKED_IN.

    Callers must have evaluated policy (or an override) under the locks
    taken by ``load_admission_context``.
    """
    now = clock.now_in_zone()
    visit = Visit(
        guest_id=invitation.guest_id,
        host_id=invitation.host_id,
        location_id=invitation.location_id,
        invitation_id=invitation.id,
        checked_in_at=now,
        expires_at=clock.calculate_visit_expiration(now),
        override_reason=override_reason,
        override_by=override_by,
    )
    db.add(visit)
    invitation.status = InvitationStatus.CHECKED_IN
    await db.flush()
    logger.info("Guest %s checked in (visit %s)", invitation.guest_id, visit.id)

    discount_triggered = await _maybe_trigger_discount(db, invitation, clock)
    return visit, discount_triggered


async def _maybe_trigger_discount(db: AsyncSession, invitation: Invitation, clock: BusinessClock) -> bool:
    """Reward a guest once their lifetime visit count reaches the threshold."""
    count_result = await db.execute(
        select(func.count()).select_from(Visit).where(Visit.guest_id == invitation.guest_id)
    )
    visit_count = count_result.scalar_one()
    if visit_count < settings.discount_visit_threshold:
        return False

    existing = await db.execute(select(Discount.id).where(Discount.guest_id == invitation.guest_id))
    if existing.first() is not None:
        return False

    db.add(
        Discount(
            guest_id=invitation.guest_id,
            visit_count=visit_count,
            triggered_at=clock.now_in_zone(),
        )
    )
    await db.flush()
    await enqueue_notification(
        db,
        NotificationKind.DISCOUNT,
        invitation.guest.email,
        guest_name=invitation.guest.name,
        host_name=invitation.host.name,
        location_name=invitation.location.name,
        visit_count=visit_count,
    )
    logger.info("Discount earned by guest %s at visit %d", invitation.guest_id, visit_count)
    return True


async def check_out(
    db: AsyncSession,
    visit_id: uuid.UUID,
    clock: BusinessClock | None = None,
) -> Visit:
    clock = clock or get_clock()
    visit = await db.get(Visit, visit_id)
    if visit is None:
        raise NotFound("Visit", visit_id)
    if visit.checked_out_at is not None:
        raise InvalidTransition("Visit has already been checked out")
    visit.checked_out_at = clock.now_in_zone()
    await db.flush()
    logger.info("Visit %s checked out", visit.id)
    return visit


async def send_acceptance_link(
    db: AsyncSession,
    invitation_id: uuid.UUID,
    clock: BusinessClock | None = None,
) -> str:
    """Issue an invitation acceptance token and queue the email carrying it."""
    clock = clock or get_clock()
    invitation = await get_invitation(db, invitation_id, clock)
    token = issue_acceptance_token(
        InvitationAcceptanceClaims(
            invitation_id=invitation.id,
            guest_id=invitation.guest_id,
            guest_email=invitation.guest.email,
        ),
        clock=clock,
    )
    await enqueue_notification(
        db,
        NotificationKind.ACCEPTANCE,
        invitation.guest.email,
        guest_name=invitation.guest.name,
        host_name=invitation.host.name,
        location_name=invitation.location.name,
        acceptance_token=token,
    )
    return token
