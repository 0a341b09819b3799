"""SQLAlchemy models for VisitGate.

All models are imported here so that ``Base.metadata`` knows every table
before ``create_all`` runs. If you add a new model, import it in this file.
"""

from visitgate.models.acceptance import Acceptance
from visitgate.models.discount import Discount
from visitgate.models.guest import Guest
from visitgate.models.invitation import Invitation, InvitationStatus
from visitgate.models.location import Location
from visitgate.models.notification import NotificationRequest
from visitgate.models.override import Override
from visitgate.models.policy import Policy
from visitgate.models.user import User
from visitgate.models.visit import Visit

__all__ = [
    "Acceptance",
    "Discount",
    "Guest",
    "Invitation",
    "InvitationStatus",
    "Location",
    "NotificationRequest",
    "Override",
    "Policy",
    "User",
    "Visit",
]
