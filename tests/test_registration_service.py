"""Tests for the registration service."""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from sqlalchemy import func
from sqlmodel import Session, select

from app.models import EventOccurrence, Participant, Registration, RegistrationStatus
from app.registration.errors import (
    CapacityExceededError,
    DeadlineExpiredError,
    DuplicateRegistrationError,
    MissingFieldError,
    OccurrenceNotFoundError,
    ParticipantNotFoundError,
)
from app.registration.fields import as_utc
from app.registration.service import RegistrationService
from conftest import in_days


def registration_count(session: Session) -> int:
    return session.exec(select(func.count()).select_from(Registration)).one()


def registered_count(session: Session, occurrence: EventOccurrence) -> int:
    session.refresh(occurrence)
    return occurrence.registered_count


class TestRegister:
    """Successful registrations."""

    def test_register_creates_tbd_registration(
        self, session: Session, occurrence: EventOccurrence, participants: list[Participant]
    ):
        """Test that a registration starts as "tbd" and takes a seat."""
        service = RegistrationService(session)
        registration = service.register(
            participants[0].id, occurrence.event_id, occurrence.event_datetime_start
        )

        assert registration.status == RegistrationStatus.TBD
        assert registration.attended is False
        assert registration.created_at is not None
        assert registered_count(session, occurrence) == 1
        assert registration_count(session) == 1

    def test_register_accepts_string_fields(
        self, session: Session, occurrence: EventOccurrence, participants: list[Participant]
    ):
        """Test that form-style string values are parsed."""
        service = RegistrationService(session)
        start = as_utc(occurrence.event_datetime_start).isoformat().replace("+00:00", "Z")

        service.register(str(participants[0].id), str(occurrence.event_id), start)

        assert registered_count(session, occurrence) == 1

    def test_register_converts_offset_timestamps_to_utc(
        self, session: Session, occurrence: EventOccurrence, participants: list[Participant]
    ):
        """Test that the same instant in another timezone finds the occurrence."""
        service = RegistrationService(session)
        plus_two = timezone(timedelta(hours=2))
        start = as_utc(occurrence.event_datetime_start).astimezone(plus_two)

        service.register(participants[0].id, occurrence.event_id, start.isoformat())

        assert registered_count(session, occurrence) == 1

    def test_capacity_two_scenario(
        self, session: Session, make_occurrence, participants: list[Participant]
    ):
        """Test P1 and P2 fit into two seats and P3 is turned away."""
        occurrence = make_occurrence(capacity=2)
        service = RegistrationService(session)
        key = (occurrence.event_id, occurrence.event_datetime_start)

        service.register(participants[0].id, *key)
        assert registered_count(session, occurrence) == 1

        service.register(participants[1].id, *key)
        assert registered_count(session, occurrence) == 2

        with pytest.raises(CapacityExceededError):
            service.register(participants[2].id, *key)
        assert registered_count(session, occurrence) == 2
        assert registration_count(session) == 2

    def test_no_deadline_never_expires(
        self, session: Session, make_occurrence, participants: list[Participant]
    ):
        """Test that a null deadline accepts registrations at any time."""
        occurrence = make_occurrence(no_deadline=True)
        far_future = RegistrationService(session, clock=lambda: datetime(2999, 1, 1, tzinfo=UTC))

        far_future.register(
            participants[0].id, occurrence.event_id, occurrence.event_datetime_start
        )

        assert registered_count(session, occurrence) == 1

    def test_register_exactly_at_deadline(
        self, session: Session, make_occurrence, participants: list[Participant]
    ):
        """Test that registering at the deadline instant is still allowed."""
        deadline = in_days(1)
        occurrence = make_occurrence(deadline=deadline)
        service = RegistrationService(session, clock=lambda: deadline)

        service.register(
            participants[0].id, occurrence.event_id, occurrence.event_datetime_start
        )

        assert registered_count(session, occurrence) == 1


class TestRegisterFailures:
    """Each validation failure is distinct and leaves no trace."""

    @pytest.mark.parametrize(
        "participant_id,event_id,start",
        [
            (None, 1, "2030-01-01T10:00:00"),
            (1, None, "2030-01-01T10:00:00"),
            (1, 1, None),
            ("", 1, "2030-01-01T10:00:00"),
            ("abc", 1, "2030-01-01T10:00:00"),
            (1, "-4", "2030-01-01T10:00:00"),
            (1, 1, "next tuesday"),
        ],
    )
    def test_missing_or_malformed_fields(
        self, session: Session, participant_id, event_id, start
    ):
        """Test that absent or malformed identifiers raise MissingFieldError."""
        service = RegistrationService(session)
        with pytest.raises(MissingFieldError):
            service.register(participant_id, event_id, start)
        assert registration_count(session) == 0

    def test_unknown_occurrence(
        self, session: Session, occurrence: EventOccurrence, participants: list[Participant]
    ):
        """Test that a non-existent occurrence fails and creates no row."""
        service = RegistrationService(session)
        wrong_start = as_utc(occurrence.event_datetime_start) + timedelta(hours=1)

        with pytest.raises(OccurrenceNotFoundError):
            service.register(participants[0].id, occurrence.event_id, wrong_start)
        with pytest.raises(OccurrenceNotFoundError):
            service.register(participants[0].id, 999, occurrence.event_datetime_start)

        assert registration_count(session) == 0
        assert registered_count(session, occurrence) == 0

    def test_unknown_participant(self, session: Session, occurrence: EventOccurrence):
        """Test that registering a participant who does not exist fails cleanly."""
        service = RegistrationService(session)

        with pytest.raises(ParticipantNotFoundError):
            service.register(999, occurrence.event_id, occurrence.event_datetime_start)

        assert registration_count(session) == 0
        assert registered_count(session, occurrence) == 0

    def test_past_deadline_with_free_seats(
        self, session: Session, make_occurrence, participants: list[Participant]
    ):
        """Test that a passed deadline wins even when seats remain."""
        occurrence = make_occurrence(capacity=50, deadline=in_days(-1))
        service = RegistrationService(session)

        with pytest.raises(DeadlineExpiredError):
            service.register(
                participants[0].id, occurrence.event_id, occurrence.event_datetime_start
            )

        assert registration_count(session) == 0
        assert registered_count(session, occurrence) == 0

    def test_past_deadline_checked_before_capacity(
        self, session: Session, make_occurrence, participants: list[Participant]
    ):
        """Test that a full occurrence past its deadline reports the deadline."""
        occurrence = make_occurrence(capacity=1, registered_count=1, deadline=in_days(-1))
        service = RegistrationService(session)

        with pytest.raises(DeadlineExpiredError):
            service.register(
                participants[0].id, occurrence.event_id, occurrence.event_datetime_start
            )

    def test_duplicate_registration(
        self, session: Session, occurrence: EventOccurrence, participants: list[Participant]
    ):
        """Test that registering twice fails and does not take a second seat."""
        service = RegistrationService(session)
        key = (occurrence.event_id, occurrence.event_datetime_start)
        service.register(participants[0].id, *key)

        with pytest.raises(DuplicateRegistrationError):
            service.register(participants[0].id, *key)

        assert registration_count(session) == 1
        assert registered_count(session, occurrence) == 1

    def test_cancelled_registration_is_still_a_duplicate(
        self, session: Session, registration: Registration
    ):
        """Test that a cancelled row still blocks a fresh registration."""
        registration.status = RegistrationStatus.CANCELLED
        session.add(registration)
        session.commit()

        service = RegistrationService(session)
        with pytest.raises(DuplicateRegistrationError):
            service.register(
                registration.participant_id,
                registration.event_id,
                registration.event_datetime_start,
            )

    def test_duplicate_insert_race(
        self, session: Session, registration: Registration, monkeypatch
    ):
        """Test that losing the insert race to an identical request reports a duplicate."""
        key = (registration.participant_id, registration.event_id, registration.event_datetime_start)
        session.expunge(registration)
        monkeypatch.setattr(
            "app.registration.service.lock_registration", lambda *args, **kwargs: None
        )

        with pytest.raises(DuplicateRegistrationError):
            RegistrationService(session).register(*key)

        occurrence = session.get(EventOccurrence, key[1:])
        assert registration_count(session) == 1
        assert registered_count(session, occurrence) == 1

    def test_participant_removed_before_insert(
        self, session: Session, occurrence: EventOccurrence, monkeypatch
    ):
        """Test that a foreign key failure on insert reports the missing participant."""
        real_get = session.get

        def get_with_stale_participant(entity, ident, **kwargs):
            if entity is Participant:
                return Participant(id=ident, first_name="Gone", last_name="Away")
            return real_get(entity, ident, **kwargs)

        monkeypatch.setattr(session, "get", get_with_stale_participant)

        with pytest.raises(ParticipantNotFoundError):
            RegistrationService(session).register(
                999, occurrence.event_id, occurrence.event_datetime_start
            )

        monkeypatch.undo()
        assert registration_count(session) == 0
        assert registered_count(session, occurrence) == 0

    def test_full_occurrence(
        self, session: Session, make_occurrence, participants: list[Participant]
    ):
        """Test that a full occurrence rejects registration."""
        occurrence = make_occurrence(capacity=0)
        service = RegistrationService(session)

        with pytest.raises(CapacityExceededError):
            service.register(
                participants[0].id, occurrence.event_id, occurrence.event_datetime_start
            )
        assert registration_count(session) == 0
