"""Acceptance model — time-bounded agreement to the visitor terms."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from visitgate.database import Base, UUIDPrimaryKeyMixin


class Acceptance(UUIDPrimaryKeyMixin, Base):
    """Scoped to exactly one invitation or one visit, never both."""

    __tablename__ = "acceptances"

    guest_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("guests.id"),
        nullable=False,
        index=True,
    )
    invitation_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("invitations.id"),
        nullable=True,
        index=True,
    )
    visit_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("visits.id"),
        nullable=True,
        index=True,
    )
    accepted_at: Mapped[datetime] = mapped_column(nullable=False)
    expires_at: Mapped[datetime] = mapped_column(nullable=False)
    signature: Mapped[str | None] = mapped_column(Text, default=None)
    ip_address: Mapped[str | None] = mapped_column(String(64), default=None)

    __table_args__ = (
        CheckConstraint(
            "(invitation_id IS NULL) <> (visit_id IS NULL)",
            name="ck_acceptances_single_scope",
        ),
        UniqueConstraint("guest_id", "invitation_id", name="uq_acceptances_guest_invitation"),
        UniqueConstraint("guest_id", "visit_id", name="uq_acceptances_guest_visit"),
    )
