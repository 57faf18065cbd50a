"""Shared test fixtures."""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel
from sqlmodel.pool import StaticPool

from app.core.database import build_engine, get_session
from app.main import app
from app.models import Event, EventOccurrence, Participant, Registration, RegistrationStatus


def in_days(days: float) -> datetime:
    """A UTC timestamp ``days`` from now, truncated to the second."""
    return (datetime.now(UTC) + timedelta(days=days)).replace(microsecond=0)


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = build_engine("sqlite://", poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    """Create a new database session for each test."""
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Create a test client with the test database session."""

    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="event")
def event_fixture(session: Session) -> Event:
    """Create an event template."""
    event = Event(name="Food Bank Shift", description="Sort and pack donations")
    session.add(event)
    session.commit()
    session.refresh(event)
    return event


@pytest.fixture(name="participants")
def participants_fixture(session: Session) -> list[Participant]:
    """Create three participants."""
    participants = [
        Participant(first_name="Ada", last_name="Lovelace", email="ada@example.com"),
        Participant(first_name="Grace", last_name="Hopper", email="grace@example.com"),
        Participant(first_name="Alan", last_name="Turing", email="alan@example.com"),
    ]
    for participant in participants:
        session.add(participant)
    session.commit()
    for participant in participants:
        session.refresh(participant)
    return participants


@pytest.fixture(name="make_occurrence")
def make_occurrence_fixture(session: Session, event: Event):
    """Factory for occurrences of the sample event.

    Defaults: starts in two days, registration closes tomorrow, two seats.
    """

    def make(
        capacity: int = 2,
        start: datetime | None = None,
        deadline: datetime | None = None,
        no_deadline: bool = False,
        registered_count: int = 0,
        location: str | None = "Community Hall",
    ) -> EventOccurrence:
        start = start or in_days(2)
        occurrence = EventOccurrence(
            event_id=event.id,
            event_datetime_start=start,
            event_datetime_end=start + timedelta(hours=3),
            location=location,
            capacity=capacity,
            registration_deadline=None if no_deadline else (deadline or in_days(1)),
            registered_count=registered_count,
        )
        session.add(occurrence)
        session.commit()
        session.refresh(occurrence)
        return occurrence

    return make


@pytest.fixture(name="occurrence")
def occurrence_fixture(make_occurrence) -> EventOccurrence:
    """An occurrence with two free seats and a deadline tomorrow."""
    return make_occurrence()


@pytest.fixture(name="registration")
def registration_fixture(
    session: Session, make_occurrence, participants: list[Participant]
) -> Registration:
    """A "tbd" registration of the first participant, with the count already at 1."""
    occurrence = make_occurrence(capacity=2, registered_count=1)
    registration = Registration(
        participant_id=participants[0].id,
        event_id=occurrence.event_id,
        event_datetime_start=occurrence.event_datetime_start,
        status=RegistrationStatus.TBD,
    )
    session.add(registration)
    session.commit()
    session.refresh(registration)
    return registration
