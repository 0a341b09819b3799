"""Pydantic v2 schemas for guest self-service and guest administration."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CompleteProfileRequest(BaseModel):
    """Guest self-registration submitted from the invitation link."""

    invitation_id: uuid.UUID
    name: str = Field(..., max_length=255)
    phone: str | None = Field(None, max_length=50)
    company: str | None = Field(None, max_length=255)
    country: str | None = Field(None, max_length=100)


class AcceptTermsRequest(BaseModel):
    invitation_id: uuid.UUID
    terms_accepted: bool = False
    visitor_agreement_accepted: bool = False
    signature: str | None = None


class AcceptTokenRequest(BaseModel):
    """Acceptance through a signed link sent by email."""

    token: str
    signature: str | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class GuestResponse(BaseModel):
    """Guest record as seen by staff."""

    id: uuid.UUID
    email: str
    name: str
    phone: str | None = None
    company: str | None = None
    country: str | None = None
    profile_completed: bool
    terms_accepted_at: datetime | None = None
    blacklisted_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class AcceptanceResponse(BaseModel):
    id: uuid.UUID
    guest_id: uuid.UUID
    invitation_id: uuid.UUID | None = None
    visit_id: uuid.UUID | None = None
    accepted_at: datetime
    expires_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PurgeResponse(BaseModel):
    """Row counts removed by a guest purge."""

    guest_id: uuid.UUID
    discounts: int
    acceptances: int
    visits: int
    invitations: int
