"""Event occurrence model with seat accounting.

An occurrence is one dated instance of an Event template. It is keyed by
the template id plus its start time, and it carries the capacity,
registration deadline and a running count of seats taken.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.event import Event


class EventOccurrence(SQLModel, table=True):
    """A scheduled occurrence of an event.

    ``registered_count`` is a denormalized cache: it must always equal the
    number of this occurrence's registrations that are not cancelled. The
    registration services keep it in step using conditional updates, and
    the check constraints below stop it leaving ``0..capacity``.

    Attributes:
        event_id: Foreign key to the Event template (part of the key).
        event_datetime_start: Start time, UTC (part of the key).
        event_datetime_end: End time, if known.
        location: Where the occurrence takes place.
        capacity: Maximum number of active registrations.
        registration_deadline: Last moment registration is accepted. ``None``
            means registration never closes.
        registered_count: Number of active (non-cancelled) registrations.
        event: Reference to the parent Event template.
    """
    __tablename__ = "event_occurrence"
    __table_args__ = (
        CheckConstraint("capacity >= 0", name="ck_occurrence_capacity_non_negative"),
        CheckConstraint("registered_count >= 0", name="ck_occurrence_count_non_negative"),
        CheckConstraint("registered_count <= capacity", name="ck_occurrence_count_within_capacity"),
    )

    event_id: int = Field(foreign_key="event.id", primary_key=True)
    event_datetime_start: datetime = Field(primary_key=True)
    event_datetime_end: datetime | None = None
    location: str | None = None
    capacity: int
    registration_deadline: datetime | None = None
    registered_count: int = Field(default=0)

    # Relationship
    event: Optional["Event"] = Relationship(back_populates="occurrences")

    @property
    def seats_left(self) -> int:
        return max(self.capacity - self.registered_count, 0)
