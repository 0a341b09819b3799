"""Admission policy — decides whether a check-in may proceed right now.

``evaluate_admission`` is pure: it looks only at an ``AdmissionContext``
snapshot and the applicable ``PolicyThresholds``. ``load_admission_context``
builds that snapshot from the database at evaluation time, under row locks on
the host and the guest, so two concurrent check-ins for the same host cannot
both see ``count = limit - 1``.
"""

import enum
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from visitgate.config import settings
from visitgate.models.acceptance import Acceptance
from visitgate.models.guest import Guest
from visitgate.models.invitation import Invitation, InvitationStatus
from visitgate.models.policy import Policy
from visitgate.models.user import User
from visitgate.models.visit import Visit
from visitgate.services.clock import BusinessClock

logger = logging.getLogger(__name__)


class DenialKind(str, enum.Enum):
    BLACKLISTED = "blacklisted"
    TERMS_REQUIRED = "terms_required"
    QR_EXPIRED = "qr_expired"
    LOCATION_CLOSED = "location_closed"
    AFTER_CUTOFF = "after_cutoff"
    GUEST_LIMIT_EXCEEDED = "guest_limit_exceeded"
    HOST_AT_CAPACITY = "host_at_capacity"


OVERRIDABLE_DENIALS = frozenset({DenialKind.HOST_AT_CAPACITY})


@dataclass(frozen=True)
class Allow:
    allowed = True


@dataclass(frozen=True)
class Deny:
    kind: DenialKind
    message: str
    current: int | None = None
    limit: int | None = None
    next_eligible_at: datetime | None = None

    allowed = False

    @property
    def overridable(self) -> bool:
        return self.kind in OVERRIDABLE_DENIALS


Verdict = Allow | Deny


@dataclass(frozen=True)
class PolicyThresholds:
    guest_monthly_limit: int
    host_concurrent_limit: int


@dataclass(frozen=True)
class AdmissionContext:
    """Everything the evaluator needs, read in one transaction."""

    now: datetime
    guest_blacklisted_at: datetime | None
    has_valid_acceptance: bool
    invitation_status: InvitationStatus
    qr_expires_at: datetime | None
    location_name: str
    location_active: bool
    cutoff_hour: int
    guest_visits_in_window: int
    next_eligible_at: datetime | None
    host_concurrent_count: int


def evaluate_admission(context: AdmissionContext, thresholds: PolicyThresholds) -> Verdict:
    """Run the admission checks in fixed order; the first failure wins."""
    if context.guest_blacklisted_at is not None:
        return Deny(
            DenialKind.BLACKLISTED,
            "Guest is not authorized for building access. Contact security for assistance.",
        )

    if not context.has_valid_acceptance:
        return Deny(
            DenialKind.TERMS_REQUIRED,
            "Guest needs to accept visitor terms before check-in.",
        )

    qr_expired = context.qr_expires_at is not None and context.now > context.qr_expires_at
    if qr_expired or context.invitation_status == InvitationStatus.EXPIRED:
        return Deny(
            DenialKind.QR_EXPIRED,
            "This QR code has expired. Please generate a new invitation.",
        )

    if not context.location_active:
        return Deny(
            DenialKind.LOCATION_CLOSED,
            f"{context.location_name} is currently closed for visits",
        )

    if context.now.hour >= context.cutoff_hour:
        return Deny(
            DenialKind.AFTER_CUTOFF,
            f"{context.location_name} is closed for the night. Check-ins resume tomorrow morning.",
        )

    if context.guest_visits_in_window >= thresholds.guest_monthly_limit:
        return Deny(
            DenialKind.GUEST_LIMIT_EXCEEDED,
            f"Guest has reached {thresholds.guest_monthly_limit} visits this month",
            current=context.guest_visits_in_window,
            limit=thresholds.guest_monthly_limit,
            next_eligible_at=context.next_eligible_at,
        )

    if context.host_concurrent_count >= thresholds.host_concurrent_limit:
        return Deny(
            DenialKind.HOST_AT_CAPACITY,
            f"Host at capacity with {context.host_concurrent_count} guests at {context.location_name}",
            current=context.host_concurrent_count,
            limit=thresholds.host_concurrent_limit,
        )

    return Allow()


# ---------------------------------------------------------------------------
# Database reads
# ---------------------------------------------------------------------------


async def get_policy_thresholds(db: AsyncSession, location_id: uuid.UUID | None) -> PolicyThresholds:
    """Location policy, else the global policy, else configured defaults."""
    policy = None
    if location_id is not None:
        result = await db.execute(select(Policy).where(Policy.location_id == location_id))
        policy = result.scalar_one_or_none()
    if policy is None:
        result = await db.execute(select(Policy).where(Policy.location_id.is_(None)))
        policy = result.scalar_one_or_none()
    if policy is None:
        return PolicyThresholds(
            guest_monthly_limit=settings.default_guest_monthly_limit,
            host_concurrent_limit=settings.default_host_concurrent_limit,
        )
    return PolicyThresholds(
        guest_monthly_limit=policy.guest_monthly_limit,
        host_concurrent_limit=policy.host_concurrent_limit,
    )


async def count_host_concurrent(db: AsyncSession, host_id: uuid.UUID, now: datetime) -> int:
    """Guests currently inside under ``host_id``."""
    result = await db.execute(
        select(func.count())
        .select_from(Visit)
        .where(
            Visit.host_id == host_id,
            Visit.checked_out_at.is_(None),
            Visit.expires_at > now,
        )
    )
    return result.scalar_one()


async def guest_window_stats(
    db: AsyncSession, guest_id: uuid.UUID, window_start: datetime
) -> tuple[int, datetime | None]:
    """Visit count and oldest check-in after ``window_start``."""
    result = await db.execute(
        select(func.count(Visit.id), func.min(Visit.checked_in_at)).where(
            Visit.guest_id == guest_id,
            Visit.checked_in_at > window_start,
        )
    )
    count, oldest = result.one()
    return count, oldest


async def has_valid_invitation_acceptance(
    db: AsyncSession, guest_id: uuid.UUID, invitation_id: uuid.UUID, now: datetime
) -> bool:
    result = await db.execute(
        select(Acceptance.id).where(
            Acceptance.guest_id == guest_id,
            Acceptance.invitation_id == invitation_id,
            Acceptance.expires_at > now,
        )
    )
    return result.first() is not None


async def load_admission_context(
    db: AsyncSession,
    invitation: Invitation,
    clock: BusinessClock,
) -> tuple[AdmissionContext, PolicyThresholds]:
    """Lock host and guest rows, then read fresh counts for ``invitation``."""
    await db.execute(select(User.id).where(User.id == invitation.host_id).with_for_update())
    guest_result = await db.execute(
        select(Guest)
        .where(Guest.id == invitation.guest_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    guest = guest_result.scalar_one()

    now = clock.now_in_zone()
    window_start = clock.days_ago(settings.guest_rolling_window_days)
    visits_in_window, oldest = await guest_window_stats(db, guest.id, window_start)
    location = invitation.location
    cutoff_hour = location.check_in_cutoff_hour
    if cutoff_hour is None:
        cutoff_hour = settings.check_in_cutoff_hour

    context = AdmissionContext(
        now=now,
        guest_blacklisted_at=guest.blacklisted_at,
        has_valid_acceptance=await has_valid_invitation_acceptance(db, guest.id, invitation.id, now),
        invitation_status=invitation.status,
        qr_expires_at=invitation.qr_expires_at,
        location_name=location.name,
        location_active=location.is_active,
        cutoff_hour=cutoff_hour,
        guest_visits_in_window=visits_in_window,
        next_eligible_at=clock.calculate_next_eligible_date(oldest) if oldest is not None else None,
        host_concurrent_count=await count_host_concurrent(db, invitation.host_id, now),
    )
    thresholds = await get_policy_thresholds(db, invitation.location_id)
    return context, thresholds
