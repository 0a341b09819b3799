"""Notification trigger — records which emails are due and hands them off.

The engine never renders or transmits email. Lifecycle operations call
``enqueue_notification`` inside their own transaction, so a request exists if
and only if the transition committed. ``dispatch_pending`` later passes each
request to an ``EmailSender``; a sender failure is logged and recorded on the
row and never touches admission state.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from visitgate.models.invitation import Invitation
from visitgate.models.notification import NotificationRequest
from visitgate.services.clock import BusinessClock, get_clock

logger = logging.getLogger(__name__)


class NotificationKind(str, enum.Enum):
    INVITATION = "invitation"
    DISCOUNT = "discount"
    PROFILE_COMPLETED = "profile_completed"
    ACCEPTANCE = "acceptance"


class EmailSender(Protocol):
    """External email collaborator."""

    async def send(self, payload: dict) -> None: ...


class LoggingEmailSender:
    """Default sender: logs the request instead of delivering it."""

    async def send(self, payload: dict) -> None:
        logger.info("Email requested: kind=%s to=%s", payload.get("kind"), payload.get("to"))


@dataclass(frozen=True)
class DispatchSummary:
    sent: int
    failed: int


async def enqueue_notification(
    db: AsyncSession,
    kind: NotificationKind,
    to: str,
    *,
    guest_name: str,
    host_name: str,
    location_name: str,
    qr_token: str | None = None,
    expires_at: datetime | None = None,
    visit_count: int | None = None,
    acceptance_token: str | None = None,
) -> NotificationRequest:
    """Record that ``kind`` should be emailed to ``to``."""
    payload: dict = {
        "kind": kind.value,
        "to": to,
        "guest_name": guest_name,
        "host_name": host_name,
        "location_name": location_name,
    }
    if qr_token is not None:
        payload["qr_token"] = qr_token
    if expires_at is not None:
        payload["expires_at"] = expires_at.isoformat()
    if visit_count is not None:
        payload["visit_count"] = visit_count
    if acceptance_token is not None:
        payload["acceptance_token"] = acceptance_token

    request = NotificationRequest(kind=kind.value, recipient=to, payload=payload)
    db.add(request)
    await db.flush()
    logger.info("Queued %s notification %s", kind.value, request.id)
    return request


async def notify_invitation(db: AsyncSession, invitation: Invitation) -> NotificationRequest:
    """Invitation email to the guest; carries the QR token once activated."""
    return await enqueue_notification(
        db,
        NotificationKind.INVITATION,
        invitation.guest.email,
        guest_name=invitation.guest.name,
        host_name=invitation.host.name,
        location_name=invitation.location.name,
        qr_token=invitation.qr_token,
        expires_at=invitation.qr_expires_at,
    )


async def dispatch_pending(
    db: AsyncSession,
    sender: EmailSender,
    limit: int = 100,
    clock: BusinessClock | None = None,
) -> DispatchSummary:
    """Hand undispatched requests to ``sender``, oldest first."""
    clock = clock or get_clock()
    result = await db.execute(
        select(NotificationRequest)
        .where(NotificationRequest.dispatched_at.is_(None))
        .order_by(NotificationRequest.created_at, NotificationRequest.id)
        .limit(limit)
    )
    sent = failed = 0
    for request in result.scalars().all():
        try:
            await sender.send(request.payload)
        except Exception as exc:  # transport is external; its failures must not propagate
            logger.exception("Failed to dispatch notification %s", request.id)
            request.last_error = str(exc) or exc.__class__.__name__
            failed += 1
            continue
        request.dispatched_at = clock.now_in_zone()
        request.last_error = None
        sent += 1

    await db.flush()
    if sent or failed:
        logger.info("Dispatched notifications: sent=%d failed=%d", sent, failed)
    return DispatchSummary(sent=sent, failed=failed)
