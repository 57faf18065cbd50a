"""Registration model linking a participant to one event occurrence.

A registration is created in the "tbd" state and then moved by the
attendance/cancellation workflow. Cancelling never deletes the row, so the
history of who signed up is kept.
"""

from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import ForeignKeyConstraint
from sqlmodel import Field, SQLModel


class RegistrationStatus(str, Enum):
    """Lifecycle status of a registration."""

    TBD = "tbd"
    ATTENDED = "attended"
    NO_SHOW = "no-show"
    CANCELLED = "cancelled"

    @property
    def holds_seat(self) -> bool:
        return self != RegistrationStatus.CANCELLED


class Registration(SQLModel, table=True):
    """A participant's claim on a seat in one occurrence.

    There is no stored "attended" flag; ``attended`` is derived from the
    status so the two can never disagree.

    Attributes:
        participant_id: Foreign key to the Participant (part of the key).
        event_id: Event template of the occurrence (part of the key).
        event_datetime_start: Start of the occurrence (part of the key).
        status: Current lifecycle status.
        created_at: When the participant registered.
    """
    __table_args__ = (
        ForeignKeyConstraint(
            ["event_id", "event_datetime_start"],
            ["event_occurrence.event_id", "event_occurrence.event_datetime_start"],
            name="fk_registration_occurrence",
        ),
    )

    participant_id: int = Field(foreign_key="participant.id", primary_key=True)
    event_id: int = Field(primary_key=True)
    event_datetime_start: datetime = Field(primary_key=True)
    status: RegistrationStatus = Field(default=RegistrationStatus.TBD, index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def attended(self) -> bool:
        return self.status == RegistrationStatus.ATTENDED
