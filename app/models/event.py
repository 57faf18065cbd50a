"""Event template model.

An Event is the recurring template (e.g. "Saturday food bank shift") that
admins schedule dated occurrences of. Registrations never point at the
template directly, only at one of its occurrences.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.occurrence import EventOccurrence


class Event(SQLModel, table=True):
    """A recurring event template.

    Attributes:
        id: Integer identifier, exposed to clients as ``Event_ID``.
        name: Display name of the event.
        description: Free-form description shown on occurrence pages.
        created_at: When the template was created.
        occurrences: Scheduled, dated instances of this event.
    """
    id: int | None = Field(default=None, primary_key=True)
    name: str
    description: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    # Relationships
    occurrences: list["EventOccurrence"] = Relationship(back_populates="event")
