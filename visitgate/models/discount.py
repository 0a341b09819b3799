"""Discount model — loyalty reward earned by frequent guests."""

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from visitgate.database import Base, UUIDPrimaryKeyMixin


class Discount(UUIDPrimaryKeyMixin, Base):
    """At most one per guest, created when the visit threshold is crossed."""

    __tablename__ = "discounts"

    guest_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("guests.id"),
        unique=True,
        nullable=False,
    )
    visit_count: Mapped[int] = mapped_column(Integer, nullable=False)
    triggered_at: Mapped[datetime] = mapped_column(nullable=False)
