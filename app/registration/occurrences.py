"""Admin operations on event occurrences.

Scheduling, listing, deleting and recounting occurrences. Deleting is
refused while any registration still holds a seat, so registrations are
never orphaned; cancelled registrations are removed along with the
occurrence they belong to.
"""
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy import delete as sa_delete
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.models import Event, EventOccurrence, Participant, Registration
from app.registration.errors import (
    DuplicateOccurrenceError,
    EventNotFoundError,
    MissingFieldError,
    OccurrenceInUseError,
    OccurrenceNotFoundError,
)
from app.registration.fields import (
    parse_count,
    parse_id,
    parse_optional_timestamp,
    parse_timestamp,
    utc_now,
)
from app.registration.store import (
    count_active_registrations,
    lock_occurrence,
    reading,
    transaction,
    violated_constraint,
)

logger = logging.getLogger(__name__)


class OccurrenceService:
    """Schedule and maintain occurrences of event templates."""

    def __init__(self, session: Session, clock: Callable[[], datetime] = utc_now):
        self._session = session
        self._clock = clock

    def schedule(
        self,
        event_id: Any,
        start: Any,
        capacity: Any,
        end: Any = None,
        location: str | None = None,
        deadline: Any = None,
    ) -> EventOccurrence:
        """
        Schedule a new occurrence of an event with no registrations.

        The end time, when given, must come after the start.
        """
        event_id = parse_id(event_id, "Event_ID")
        start = parse_timestamp(start, "EventDateTimeStart")
        capacity = parse_count(capacity, "Capacity")
        end = parse_optional_timestamp(end, "EventDateTimeEnd")
        deadline = parse_optional_timestamp(deadline, "RegistrationDeadline")
        if end is not None and end <= start:
            raise MissingFieldError("EventDateTimeEnd must be after EventDateTimeStart")

        session = self._session
        with transaction(session, "schedule occurrence"):
            if session.get(Event, event_id) is None:
                raise EventNotFoundError(f"Event {event_id} not found")
            if lock_occurrence(session, event_id, start) is not None:
                raise DuplicateOccurrenceError()

            occurrence = EventOccurrence(
                event_id=event_id,
                event_datetime_start=start,
                event_datetime_end=end,
                location=location.strip() if location and location.strip() else None,
                capacity=capacity,
                registration_deadline=deadline,
                registered_count=0,
            )
            session.add(occurrence)
            try:
                session.flush()
            except IntegrityError as e:
                kind = violated_constraint(e)
                if kind == "unique":
                    raise DuplicateOccurrenceError() from None
                if kind == "foreign_key":
                    raise EventNotFoundError(f"Event {event_id} not found") from None
                raise

        session.refresh(occurrence)
        logger.info(
            f"Scheduled event {event_id} at {start.isoformat()} with {capacity} seats"
        )
        return occurrence

    def upcoming(self) -> list[EventOccurrence]:
        """Occurrences that have not started yet, soonest first."""
        statement = (
            select(EventOccurrence)
            .where(EventOccurrence.event_datetime_start >= self._clock())
            .order_by(EventOccurrence.event_datetime_start)
        )
        with reading(self._session, "list upcoming occurrences"):
            return list(self._session.exec(statement).all())

    def get(self, event_id: Any, start: Any) -> EventOccurrence:
        event_id = parse_id(event_id, "Event_ID")
        start = parse_timestamp(start, "EventDateTimeStart")
        statement = (
            select(EventOccurrence)
            .where(EventOccurrence.event_id == event_id)
            .where(EventOccurrence.event_datetime_start == start)
        )
        with reading(self._session, "get occurrence"):
            occurrence = self._session.exec(statement).first()
        if occurrence is None:
            raise OccurrenceNotFoundError(
                f"No occurrence of event {event_id} starts at {start.isoformat()}"
            )
        return occurrence

    def roster(self, event_id: Any, start: Any) -> list[tuple[Registration, Participant]]:
        """Registrations for an occurrence with their participants, by sign-up time."""
        occurrence = self.get(event_id, start)
        statement = (
            select(Registration, Participant)
            .join(Participant, Participant.id == Registration.participant_id)
            .where(Registration.event_id == occurrence.event_id)
            .where(Registration.event_datetime_start == occurrence.event_datetime_start)
            .order_by(Registration.created_at)
        )
        with reading(self._session, "load roster"):
            return list(self._session.exec(statement).all())

    def delete(self, event_id: Any, start: Any) -> None:
        """Delete an occurrence that no longer has active registrations."""
        event_id = parse_id(event_id, "Event_ID")
        start = parse_timestamp(start, "EventDateTimeStart")

        session = self._session
        with transaction(session, "delete occurrence"):
            occurrence = lock_occurrence(session, event_id, start)
            if occurrence is None:
                raise OccurrenceNotFoundError(
                    f"No occurrence of event {event_id} starts at {start.isoformat()}"
                )

            active = count_active_registrations(session, event_id, start)
            if active:
                raise OccurrenceInUseError(
                    f"Occurrence still has {active} active registrations"
                )

            session.exec(
                sa_delete(Registration)
                .where(Registration.event_id == event_id)
                .where(Registration.event_datetime_start == start)
                .execution_options(synchronize_session=False)
            )
            session.delete(occurrence)

        logger.info(f"Deleted occurrence of event {event_id} at {start.isoformat()}")

    def recount(self, event_id: Any, start: Any) -> tuple[int, int]:
        """
        Recompute the registered-count from the registration rows.

        Returns (previous count, recomputed count).
        """
        event_id = parse_id(event_id, "Event_ID")
        start = parse_timestamp(start, "EventDateTimeStart")

        session = self._session
        with transaction(session, "recount occurrence"):
            occurrence = lock_occurrence(session, event_id, start)
            if occurrence is None:
                raise OccurrenceNotFoundError(
                    f"No occurrence of event {event_id} starts at {start.isoformat()}"
                )

            previous = occurrence.registered_count
            actual = count_active_registrations(session, event_id, start)
            if previous != actual:
                logger.warning(
                    f"Registered count drift for event {event_id} at {start.isoformat()}: "
                    f"stored {previous}, actual {actual}"
                )
                occurrence.registered_count = actual
                session.add(occurrence)

        return previous, actual
