"""Location model — buildings or towers guests are admitted to."""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from visitgate.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Location(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A physical site with its own opening state and check-in cutoff."""

    __tablename__ = "locations"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    # Local hour after which check-ins stop; 24 = open around the clock,
    # None = settings.check_in_cutoff_hour.
    check_in_cutoff_hour: Mapped[int | None] = mapped_column(default=None)

    def __repr__(self) -> str:
        return f"<Location(id={self.id}, name={self.name!r}, active={self.is_active})>"
