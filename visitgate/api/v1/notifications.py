"""Notification outbox router."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from visitgate.api.deps import get_admin_user, get_db
from visitgate.models.user import User
from visitgate.schemas.invitation import DispatchResponse
from visitgate.services.notifications import EmailSender, LoggingEmailSender, dispatch_pending

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


def get_email_sender() -> EmailSender:
    """Email transport; override in tests or deployments."""
    return LoggingEmailSender()


@router.post("/dispatch", response_model=DispatchResponse)
async def dispatch_notifications(
    _admin: User = Depends(get_admin_user),
    sender: EmailSender = Depends(get_email_sender),
    db: AsyncSession = Depends(get_db),
) -> DispatchResponse:
    """Hand pending notification requests to the email sender."""
    summary = await dispatch_pending(db, sender)
    return DispatchResponse(sent=summary.sent, failed=summary.failed)
