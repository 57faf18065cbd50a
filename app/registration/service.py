"""Registration service: sign a participant up for an event occurrence."""
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.models import Participant, Registration, RegistrationStatus
from app.registration.errors import (
    CapacityExceededError,
    DeadlineExpiredError,
    DuplicateRegistrationError,
    OccurrenceNotFoundError,
    ParticipantNotFoundError,
)
from app.registration.fields import as_utc, parse_id, parse_timestamp, utc_now
from app.registration.store import (
    lock_occurrence,
    lock_registration,
    take_seat,
    transaction,
    violated_constraint,
)

logger = logging.getLogger(__name__)


class RegistrationService:
    """Create registrations while enforcing deadline and capacity.

    The service is bound to one database session. ``clock`` supplies the
    current time and can be replaced in tests.
    """

    def __init__(self, session: Session, clock: Callable[[], datetime] = utc_now):
        self._session = session
        self._clock = clock

    def register(
        self, participant_id: Any, event_id: Any, occurrence_start: Any
    ) -> Registration:
        """
        Register a participant for one occurrence.

        Checks run in this order, each with its own error: fields present and
        well-formed, occurrence exists, participant exists, deadline not
        passed, not already registered, seat available. The seat is taken
        with a conditional increment in the same transaction as the insert,
        so concurrent requests cannot oversell the occurrence.
        """
        participant_id = parse_id(participant_id, "Participant_ID")
        event_id = parse_id(event_id, "Event_ID")
        start = parse_timestamp(occurrence_start, "EventDateTimeStart")

        session = self._session
        with transaction(session, "register"):
            occurrence = lock_occurrence(session, event_id, start)
            if occurrence is None:
                raise OccurrenceNotFoundError(
                    f"No occurrence of event {event_id} starts at {start.isoformat()}"
                )

            if session.get(Participant, participant_id) is None:
                raise ParticipantNotFoundError(f"Participant {participant_id} not found")

            now = self._clock()
            deadline = occurrence.registration_deadline
            if deadline is not None and now > as_utc(deadline):
                raise DeadlineExpiredError(
                    f"Registration closed at {as_utc(deadline).isoformat()}"
                )

            if lock_registration(session, participant_id, event_id, start) is not None:
                raise DuplicateRegistrationError()

            if not take_seat(session, event_id, start):
                raise CapacityExceededError(
                    f"Event is full ({occurrence.capacity} seats)"
                )

            registration = Registration(
                participant_id=participant_id,
                event_id=event_id,
                event_datetime_start=start,
                status=RegistrationStatus.TBD,
                created_at=now,
            )
            session.add(registration)
            try:
                session.flush()
            except IntegrityError as e:
                # Lost a race between the lookups above and the insert.
                kind = violated_constraint(e)
                if kind == "unique":
                    raise DuplicateRegistrationError() from None
                if kind == "foreign_key":
                    raise ParticipantNotFoundError(
                        f"Participant {participant_id} not found"
                    ) from None
                raise

        session.refresh(registration)
        logger.info(
            f"Participant {participant_id} registered for event {event_id} at {start.isoformat()}"
        )
        return registration
