"""NotificationRequest model — outbox of emails the engine has asked for."""

from datetime import datetime

from sqlalchemy import JSON, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from visitgate.database import Base, UUIDPrimaryKeyMixin, utcnow


class NotificationRequest(UUIDPrimaryKeyMixin, Base):
    """Written in the same transaction as the lifecycle change that caused it."""

    __tablename__ = "notification_requests"

    kind: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    recipient: Mapped[str] = mapped_column(String(255), nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, server_default=func.now())
    dispatched_at: Mapped[datetime | None] = mapped_column(default=None, index=True)
    last_error: Mapped[str | None] = mapped_column(Text, default=None)

    def __repr__(self) -> str:
        return f"<NotificationRequest(id={self.id}, kind={self.kind!r}, to={self.recipient!r})>"
