"""Override audit model — append-only record of capacity bypasses."""

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Text, event
from sqlalchemy.orm import Mapped, mapped_column

from visitgate.database import Base, UUIDPrimaryKeyMixin


class Override(UUIDPrimaryKeyMixin, Base):
    """Who bypassed a host capacity denial, for which visit, and why.

    ``visit_id`` is a plain column, not a foreign key: the audit trail
    survives an administrative guest purge.
    """

    __tablename__ = "overrides"

    visit_id: Mapped[uuid.UUID] = mapped_column(nullable=False, index=True)
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)


class AuditRecordImmutable(RuntimeError):
    """Raised when code attempts to change or remove an Override row."""


@event.listens_for(Override, "before_update")
def _block_update(mapper, connection, target) -> None:
    raise AuditRecordImmutable(f"Override {target.id} is append-only")


@event.listens_for(Override, "before_delete")
def _block_delete(mapper, connection, target) -> None:
    raise AuditRecordImmutable(f"Override {target.id} is append-only")
