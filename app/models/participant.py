"""Participant model for volunteers who register for events.

Participants are managed outside the registration workflow; here they only
need to exist so that registrations can reference them.
"""

from datetime import UTC, datetime

from sqlmodel import Field, SQLModel


class Participant(SQLModel, table=True):
    """A person who registers for events, donates or answers surveys.

    Attributes:
        id: Integer identifier, exposed to clients as ``Participant_ID``.
        first_name: Given name.
        last_name: Family name.
        email: Contact address, unique when present.
        created_at: When the participant record was created.
    """
    id: int | None = Field(default=None, primary_key=True)
    first_name: str
    last_name: str
    email: str | None = Field(default=None, unique=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
