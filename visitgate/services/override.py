"""Override authority: security staff admitting a guest past host capacity.

Only a ``HOST_AT_CAPACITY`` denial can be bypassed. Every bypass writes one
``Override`` audit row alongside the visit it produced.
"""

import logging
import secrets
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from visitgate.config import settings
from visitgate.errors import InvalidCredential, InvalidTransition, NotOverridable, ReasonRequired
from visitgate.models.invitation import InvitationStatus
from visitgate.models.override import Override
from visitgate.models.user import User
from visitgate.services.clock import BusinessClock, get_clock
from visitgate.services.invitations import CheckInResult, admit, find_by_token, raise_if_expired
from visitgate.services.policy import DenialKind, Deny, evaluate_admission, load_admission_context

logger = logging.getLogger(__name__)


def verify_override_password(password: str | None) -> bool:
    if not password:
        return False
    return secrets.compare_digest(password.encode("utf-8"), settings.override_password.encode("utf-8"))


async def override_check_in(
    db: AsyncSession,
    qr_token: str,
    reason: str | None,
    password: str | None,
    caller: User,
    host_id: uuid.UUID | None = None,
    clock: BusinessClock | None = None,
) -> CheckInResult:
    """Check a guest in, bypassing host capacity if that is the only obstacle.

    Raises:
        InvalidCredential: Wrong or missing override password.
        ReasonRequired: Reason is empty after trimming.
        NotOverridable: The guest is denied for a reason other than capacity.
        NotFound / QrExpired / InvalidTransition: As for a plain check-in;
            a lapsed token is marked EXPIRED and committed before QrExpired.
    """
    clock = clock or get_clock()
    if not verify_override_password(password):
        logger.warning("Rejected override attempt by user %s: bad credentials", caller.id)
        raise InvalidCredential()
    reason = (reason or "").strip()
    if not reason:
        raise ReasonRequired()

    invitation = await find_by_token(db, qr_token, host_id)
    if invitation.status == InvitationStatus.CHECKED_IN:
        raise InvalidTransition("Guest has already checked in with this invitation")
    await raise_if_expired(db, invitation, clock)

    context, thresholds = await load_admission_context(db, invitation, clock)
    verdict = evaluate_admission(context, thresholds)

    if not isinstance(verdict, Deny):
        visit, discount_triggered = await admit(db, invitation, clock)
        return CheckInResult(invitation, verdict, visit, discount_triggered)

    if verdict.kind != DenialKind.HOST_AT_CAPACITY:
        logger.warning(
            "Rejected override by user %s for invitation %s: %s is not overridable",
            caller.id,
            invitation.id,
            verdict.kind.value,
        )
        raise NotOverridable(verdict.message)

    visit, discount_triggered = await admit(
        db,
        invitation,
        clock,
        override_reason=reason,
        override_by=caller.id,
    )
    db.add(
        Override(
            visit_id=visit.id,
            user_id=caller.id,
            reason=reason,
            created_at=clock.now_in_zone(),
        )
    )
    await db.flush()
    logger.warning(
        "Capacity override by user %s admitted guest %s (visit %s, host at %d/%d)",
        caller.id,
        invitation.guest_id,
        visit.id,
        verdict.current,
        verdict.limit,
    )
    return CheckInResult(invitation, verdict, visit, discount_triggered)
