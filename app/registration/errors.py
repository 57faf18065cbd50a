"""Errors raised by the registration workflow.

Each error carries the HTTP status the routes answer with, so the routes
can translate any of them into an ``HTTPException`` in one place.
"""


class RegistrationError(Exception):
    """Base class for registration workflow errors."""

    status_code = 400
    default_message = "Registration request failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)


class MissingFieldError(RegistrationError):
    default_message = "Missing or malformed field"


class InvalidActionError(RegistrationError):
    default_message = "Invalid action"


class DeadlineExpiredError(RegistrationError):
    default_message = "Registration deadline has passed"


class CapacityExceededError(RegistrationError):
    default_message = "Event is full"


class OccurrenceNotFoundError(RegistrationError):
    status_code = 404
    default_message = "Event occurrence not found"


class RegistrationNotFoundError(RegistrationError):
    status_code = 404
    default_message = "Registration not found"


class ParticipantNotFoundError(RegistrationError):
    status_code = 404
    default_message = "Participant not found"


class EventNotFoundError(RegistrationError):
    status_code = 404
    default_message = "Event not found"


class DuplicateRegistrationError(RegistrationError):
    status_code = 409
    default_message = "Participant is already registered for this occurrence"


class DuplicateOccurrenceError(RegistrationError):
    status_code = 409
    default_message = "An occurrence already starts at this time"


class OccurrenceInUseError(RegistrationError):
    status_code = 409
    default_message = "Occurrence still has active registrations"


class StoreError(RegistrationError):
    """The database failed; details are logged, never shown to the client."""

    status_code = 500
    default_message = "Internal store error"
