"""User model — staff accounts (hosts, security, admins)."""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from visitgate.database import Base, TimestampMixin, UUIDPrimaryKeyMixin

STAFF_ROLES = ("host", "security", "admin")


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Staff member. Hosts invite guests; security and admins run the desk."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    hashed_password: Mapped[str | None] = mapped_column(String(255), nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    role: Mapped[str] = mapped_column(String(50), default="host", nullable=False)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role!r}>"
