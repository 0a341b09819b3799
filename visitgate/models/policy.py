"""Policy model — admission thresholds, global or per location."""

import uuid

from sqlalchemy import ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from visitgate.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Policy(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Thresholds read by the policy evaluator.

    A row with ``location_id = NULL`` is the global policy; a location row
    takes precedence over it.
    """

    __tablename__ = "policies"

    location_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("locations.id", ondelete="CASCADE"),
        unique=True,
        nullable=True,
    )
    guest_monthly_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    host_concurrent_limit: Mapped[int] = mapped_column(Integer, nullable=False)
