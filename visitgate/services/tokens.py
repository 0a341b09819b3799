"""Acceptance tokens and QR entry tokens.

Acceptance tokens are HS256 JWTs carrying a tagged claim set: an
``invitation`` token names an invitation, a ``visit`` token names a visit,
never both. They authorize terms acceptance only.

QR entry tokens are opaque random strings stored on the invitation. They
identify an invitation at the kiosk and carry no claims.
"""

import logging
import secrets
import string
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Annotated, Literal, Union

from jose import JWTError, jwt
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from visitgate.config import settings
from visitgate.errors import ValidationError
from visitgate.services.clock import BusinessClock, get_clock

logger = logging.getLogger(__name__)

QR_TOKEN_LENGTH = 32
_QR_ALPHABET = string.ascii_letters + string.digits
_REGISTERED_CLAIMS = frozenset({"iat", "exp", "nbf", "iss", "aud", "sub", "jti"})


# ---------------------------------------------------------------------------
# Acceptance token claims
# ---------------------------------------------------------------------------


class _AcceptanceClaimsBase(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    guest_id: uuid.UUID
    guest_email: str = Field(..., min_length=3, max_length=255)


class InvitationAcceptanceClaims(_AcceptanceClaimsBase):
    """Terms acceptance for a planned visit."""

    type: Literal["invitation"] = "invitation"
    invitation_id: uuid.UUID


class VisitAcceptanceClaims(_AcceptanceClaimsBase):
    """Terms acceptance for a visit already in progress."""

    type: Literal["visit"] = "visit"
    visit_id: uuid.UUID


AcceptanceTokenClaims = Annotated[
    Union[InvitationAcceptanceClaims, VisitAcceptanceClaims],
    Field(discriminator="type"),
]

_claims_adapter: TypeAdapter = TypeAdapter(AcceptanceTokenClaims)


def parse_acceptance_claims(data: dict) -> InvitationAcceptanceClaims | VisitAcceptanceClaims:
    """Validate a raw claim mapping into its tagged variant.

    Raises:
        ValidationError: If the type tag is unknown, the scope id does not
            match the tag, or a required field is missing.
    """
    try:
        return _claims_adapter.validate_python(data)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid acceptance token claims: {exc.error_count()} error(s)") from exc


def issue_acceptance_token(
    claims: InvitationAcceptanceClaims | VisitAcceptanceClaims | dict,
    clock: BusinessClock | None = None,
) -> str:
    """Sign an acceptance token valid for ``settings.acceptance_token_expire_days``."""
    if isinstance(claims, dict):
        claims = parse_acceptance_claims(claims)
    clock = clock or get_clock()

    now = clock.now_in_zone()
    expire = clock.add_days(now, settings.acceptance_token_expire_days)
    to_encode = claims.model_dump(mode="json")
    to_encode.update({"iat": int(now.timestamp()), "exp": int(expire.timestamp())})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_acceptance_token(
    token: str,
    clock: BusinessClock | None = None,
) -> InvitationAcceptanceClaims | VisitAcceptanceClaims | None:
    """Return the token's claims, or ``None`` if it cannot be trusted.

    Never raises. The signature is checked before any claim is read; expiry
    is judged against the business clock.
    """
    if not isinstance(token, str) or token.count(".") != 2:
        return None

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"verify_exp": False},
        )
    except JWTError:
        logger.debug("Rejected acceptance token with bad signature or encoding")
        return None

    exp = payload.get("exp")
    if not isinstance(exp, (int, float)):
        return None
    clock = clock or get_clock()
    if exp <= clock.now_in_zone().timestamp():
        return None

    claims = {key: value for key, value in payload.items() if key not in _REGISTERED_CLAIMS}
    try:
        return _claims_adapter.validate_python(claims)
    except PydanticValidationError:
        return None


# ---------------------------------------------------------------------------
# QR entry tokens
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class QrEntryToken:
    token: str
    issued_at: datetime
    expires_at: datetime


def generate_qr_token() -> str:
    """Opaque alphanumeric kiosk credential."""
    return "".join(secrets.choice(_QR_ALPHABET) for _ in range(QR_TOKEN_LENGTH))


def issue_qr_token(clock: BusinessClock | None = None) -> QrEntryToken:
    """New QR token valid for ``settings.qr_token_expire_days``."""
    clock = clock or get_clock()
    return QrEntryToken(
        token=generate_qr_token(),
        issued_at=clock.now_in_zone(),
        expires_at=clock.qr_token_expiration(),
    )
