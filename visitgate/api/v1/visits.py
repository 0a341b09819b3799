"""Visits API router."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from visitgate.api.deps import get_db, get_staff_user
from visitgate.models.user import User
from visitgate.schemas.invitation import VisitResponse
from visitgate.services.invitations import check_out

router = APIRouter(prefix="/api/v1/visits", tags=["visits"])


@router.post("/{visit_id}/checkout", response_model=VisitResponse)
async def checkout_visit(
    visit_id: uuid.UUID,
    _user: User = Depends(get_staff_user),
    db: AsyncSession = Depends(get_db),
) -> VisitResponse:
    """Record that the guest has left; frees a slot of the host's capacity."""
    return VisitResponse.model_validate(await check_out(db, visit_id))
