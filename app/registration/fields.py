"""Parse and validate request fields for the registration workflow.

Clients post either form data or JSON, so every value may arrive as a
string, a number or already-typed Python value. The helpers here turn them
into the types the services use and raise ``MissingFieldError`` for
anything absent or malformed.
"""
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from app.models import RegistrationStatus
from app.registration.errors import InvalidActionError, MissingFieldError


class AttendanceAction(str, Enum):
    """Actions accepted by the attendance/cancellation transition."""

    ATTENDED = "attended"
    ABSENT = "absent"
    CANCEL = "cancel"

    @property
    def target_status(self) -> RegistrationStatus:
        return ACTION_STATUS[self]


ACTION_STATUS = {
    AttendanceAction.ATTENDED: RegistrationStatus.ATTENDED,
    AttendanceAction.ABSENT: RegistrationStatus.NO_SHOW,
    AttendanceAction.CANCEL: RegistrationStatus.CANCELLED,
}


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to an aware UTC value.

    Naive values are taken to already be UTC; SQLite hands stored
    timestamps back without tzinfo.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_id(value: Any, name: str) -> int:
    """Parse a positive integer identifier."""
    if _is_blank(value) or isinstance(value, bool):
        raise MissingFieldError(f"{name} is required")
    try:
        parsed = int(str(value).strip())
    except ValueError:
        raise MissingFieldError(f"{name} must be an integer") from None
    if parsed <= 0:
        raise MissingFieldError(f"{name} must be a positive integer")
    return parsed


def parse_count(value: Any, name: str) -> int:
    """Parse a non-negative integer such as a capacity."""
    if _is_blank(value) or isinstance(value, bool):
        raise MissingFieldError(f"{name} is required")
    try:
        parsed = int(str(value).strip())
    except ValueError:
        raise MissingFieldError(f"{name} must be an integer") from None
    if parsed < 0:
        raise MissingFieldError(f"{name} must not be negative")
    return parsed


def parse_timestamp(value: Any, name: str) -> datetime:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.

    Accepts "Z" as the UTC suffix and a space instead of "T", the way
    browsers and HTML datetime-local inputs send them.
    """
    if isinstance(value, datetime):
        return as_utc(value)
    if _is_blank(value) or not isinstance(value, str):
        raise MissingFieldError(f"{name} is required")
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        raise MissingFieldError(f"{name} must be an ISO-8601 timestamp") from None
    return as_utc(parsed)


def parse_optional_timestamp(value: Any, name: str) -> datetime | None:
    if _is_blank(value):
        return None
    return parse_timestamp(value, name)


def parse_action(value: Any) -> AttendanceAction:
    """Parse the attendance action, rejecting anything not in the enum."""
    if _is_blank(value):
        raise MissingFieldError("action is required")
    try:
        return AttendanceAction(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(a.value for a in AttendanceAction)
        raise InvalidActionError(
            f"Invalid action {value!r}; expected one of: {allowed}"
        ) from None
