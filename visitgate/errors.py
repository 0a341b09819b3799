"""Domain exceptions raised by the admission engine.

Services raise these; the API layer renders them through a single exception
handler (see ``visitgate.main``) as ``{"error": code, "detail": message}``.
Policy denials are not exceptions: they are ``Deny`` verdicts returned by
``visitgate.services.policy``.
"""

from fastapi import status


class AdmissionError(Exception):
    """Base class for all engine failures surfaced to the caller."""

    code = "admission_error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request could not be processed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AdmissionError):
    code = "validation_error"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Invalid input"


class InvalidDate(ValidationError):
    code = "invalid_date"
    default_message = "Date must be a valid calendar date in YYYY-MM-DD format"


class NotFound(AdmissionError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"

    def __init__(self, entity: str, entity_id: object | None = None) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class InvalidTransition(AdmissionError):
    code = "invalid_transition"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Operation is not allowed in the current state"


class AlreadyActivated(InvalidTransition):
    code = "already_activated"
    default_message = "Invitation has already been activated"


class Expired(AdmissionError):
    code = "expired"
    status_code = status.HTTP_409_CONFLICT
    default_message = "The invitation date has passed. Please create a new invitation."


class QrExpired(AdmissionError):
    code = "qr_expired"
    status_code = status.HTTP_410_GONE
    default_message = "This QR code has expired. Please generate a new invitation."


class InvalidCredential(AdmissionError):
    code = "invalid_credential"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid override credentials"


class ReasonRequired(AdmissionError):
    code = "reason_required"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "An override reason is required"


class NotOverridable(AdmissionError):
    code = "not_overridable"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Only host capacity denials can be overridden"


class StoreUnavailable(AdmissionError):
    code = "store_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Storage is temporarily unavailable. Please retry."
