"""Pydantic v2 request/response schemas for invitations, check-in and visits."""

import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from visitgate.models.invitation import InvitationStatus
from visitgate.schemas.guest import GuestResponse

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class InvitationCreate(BaseModel):
    """Schema for a host inviting a guest.

    ``invite_date`` is a ``YYYY-MM-DD`` string, parsed strictly by the
    service so that impossible dates surface as ``invalid_date``.
    """

    email: str = Field(..., max_length=255)
    location_id: uuid.UUID
    invite_date: str | None = None


class CheckInRequest(BaseModel):
    """QR scan at the desk, optionally carrying a capacity override."""

    token: str
    override_reason: str | None = None
    override_password: str | None = None

    @property
    def is_override(self) -> bool:
        return self.override_reason is not None or self.override_password is not None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class LocationSummary(BaseModel):
    id: uuid.UUID
    name: str

    model_config = ConfigDict(from_attributes=True)


class HostSummary(BaseModel):
    id: uuid.UUID
    name: str
    email: str

    model_config = ConfigDict(from_attributes=True)


class InvitationResponse(BaseModel):
    """Invitation as seen by its host and the desk."""

    id: uuid.UUID
    invite_date: date
    status: InvitationStatus
    qr_token: str | None = None
    qr_issued_at: datetime | None = None
    qr_expires_at: datetime | None = None
    created_at: datetime
    guest: GuestResponse
    host: HostSummary
    location: LocationSummary

    model_config = ConfigDict(from_attributes=True)


class InvitationListResponse(BaseModel):
    items: list[InvitationResponse]
    total: int


class PublicInvitationResponse(BaseModel):
    """What a guest sees on the invitation page; no QR token."""

    id: uuid.UUID
    invite_date: date
    status: InvitationStatus
    guest_email: str
    guest_name: str
    profile_completed: bool
    host_name: str
    location_name: str


class AcceptanceLinkResponse(BaseModel):
    token: str


class SweepResponse(BaseModel):
    expired: int


class VisitResponse(BaseModel):
    id: uuid.UUID
    guest_id: uuid.UUID
    host_id: uuid.UUID
    location_id: uuid.UUID
    invitation_id: uuid.UUID | None = None
    checked_in_at: datetime
    expires_at: datetime
    checked_out_at: datetime | None = None
    override_reason: str | None = None

    model_config = ConfigDict(from_attributes=True)


class CheckInResponse(BaseModel):
    """Successful admission."""

    visit: VisitResponse
    guest: GuestResponse
    discount_triggered: bool = False
    overridden: bool = False


class DenialResponse(BaseModel):
    """Body of a 409 admission denial."""

    error: str = "denied"
    reason: str
    detail: str
    requires_override: bool
    current: int | None = None
    limit: int | None = None
    next_eligible_at: datetime | None = None


class DispatchResponse(BaseModel):
    sent: int
    failed: int
