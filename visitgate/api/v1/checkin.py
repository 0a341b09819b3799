"""Check-in API router — the desk scans a QR token.

Responses:

* 200 with the visit when the guest is admitted (plainly or by override).
* 409 with the denial when policy refuses; ``requires_override`` is true
  only for host capacity, which security staff may bypass.
* 401 with ``password_error`` when an override credential is wrong.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from visitgate.api.deps import get_db, get_staff_user
from visitgate.errors import InvalidCredential
from visitgate.models.user import User
from visitgate.schemas.guest import GuestResponse
from visitgate.schemas.invitation import CheckInRequest, CheckInResponse, DenialResponse, VisitResponse
from visitgate.services.invitations import CheckInResult, check_in
from visitgate.services.override import override_check_in
from visitgate.services.policy import Deny

router = APIRouter(prefix="/api/v1/checkin", tags=["checkin"])


def _denial_response(verdict: Deny) -> JSONResponse:
    body = DenialResponse(
        reason=verdict.kind.value,
        detail=verdict.message,
        requires_override=verdict.overridable,
        current=verdict.current,
        limit=verdict.limit,
        next_eligible_at=verdict.next_eligible_at,
    )
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=body.model_dump(mode="json"))


def _admitted_response(result: CheckInResult, overridden: bool) -> CheckInResponse:
    return CheckInResponse(
        visit=VisitResponse.model_validate(result.visit),
        guest=GuestResponse.model_validate(result.invitation.guest),
        discount_triggered=result.discount_triggered,
        overridden=overridden,
    )


@router.post("", response_model=CheckInResponse, responses={409: {"model": DenialResponse}})
async def check_in_guest(
    body: CheckInRequest,
    current_user: User = Depends(get_staff_user),
    db: AsyncSession = Depends(get_db),
):
    """Admit the guest holding ``body.token``, or report why not."""
    # Hosts may scan their own guests; the desk may scan anyone's.
    host_id = current_user.id if current_user.role == "host" else None

    if not body.is_override:
        result = await check_in(db, body.token, host_id=host_id)
        if not result.admitted:
            return _denial_response(result.verdict)
        return _admitted_response(result, overridden=False)

    if current_user.role == "host":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only security staff can override a denial",
        )
    try:
        result = await override_check_in(
            db,
            body.token,
            body.override_reason,
            body.override_password,
            caller=current_user,
        )
    except InvalidCredential as exc:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.code, "detail": exc.message, "password_error": True},
        )
    return _admitted_response(result, overridden=result.visit.override_by is not None)
