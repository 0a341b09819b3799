"""Invitation model — one planned visit and its QR entry credential."""

import enum
import uuid
from datetime import date, datetime

from sqlalchemy import CheckConstraint, Date, Enum, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from visitgate.database import Base, UUIDPrimaryKeyMixin, utcnow


class InvitationStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACTIVATED = "ACTIVATED"
    CHECKED_IN = "CHECKED_IN"
    EXPIRED = "EXPIRED"


# States in which a QR token must be present on the row.
TOKEN_BEARING_STATUSES = frozenset({InvitationStatus.ACTIVATED, InvitationStatus.CHECKED_IN})
_TOKEN_BEARING_SQL = ", ".join(sorted(f"'{s.value}'" for s in TOKEN_BEARING_STATUSES))


class Invitation(UUIDPrimaryKeyMixin, Base):
    """A host's invitation for one guest to one location on one calendar date."""

    __tablename__ = "invitations"

    guest_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("guests.id"),
        nullable=False,
        index=True,
    )
    host_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    location_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("locations.id"),
        nullable=False,
        index=True,
    )
    invite_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[InvitationStatus] = mapped_column(
        Enum(InvitationStatus, native_enum=False, length=20),
        default=InvitationStatus.PENDING,
        nullable=False,
        index=True,
    )
    qr_token: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    # Last token that lapsed, kept so a late scan is reported as expired.
    lapsed_qr_token: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    qr_issued_at: Mapped[datetime | None] = mapped_column(default=None)
    qr_expires_at: Mapped[datetime | None] = mapped_column(default=None)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )

    # Relationships
    guest: Mapped["Guest"] = relationship(lazy="selectin")  # type: ignore[name-defined]  # noqa: F821
    host: Mapped["User"] = relationship(lazy="selectin")  # type: ignore[name-defined]  # noqa: F821
    location: Mapped["Location"] = relationship(lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    __table_args__ = (
        Index("ix_invitations_invite_date", "invite_date"),
        CheckConstraint(
            f"(qr_token IS NOT NULL) = (status IN ({_TOKEN_BEARING_SQL}))",
            name="ck_invitations_qr_token_state",
        ),
    )

    def __repr__(self) -> str:
        return f"<Invitation(id={self.id}, guest_id={self.guest_id}, status={self.status.value})>"
