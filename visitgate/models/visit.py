"""Visit model — a realized, time-bounded admission."""

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from visitgate.database import Base, UUIDPrimaryKeyMixin


class Visit(UUIDPrimaryKeyMixin, Base):
    """Created exactly once when an invitation is checked in.

    Only ``checked_out_at`` changes after creation.
    """

    __tablename__ = "visits"

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
    )
    invitation_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("invitations.id"),
        unique=True,
        nullable=True,
    )
    checked_in_at: Mapped[datetime] = mapped_column(nullable=False)
    expires_at: Mapped[datetime] = mapped_column(nullable=False)
    checked_out_at: Mapped[datetime | None] = mapped_column(default=None)
    override_reason: Mapped[str | None] = mapped_column(Text, default=None)
    override_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id"),
        default=None,
    )

    guest: Mapped["Guest"] = relationship(lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    __table_args__ = (Index("ix_visits_checked_in_at", "checked_in_at"),)

    def __repr__(self) -> str:
        return f"<Visit(id={self.id}, guest_id={self.guest_id}, host_id={self.host_id})>"
