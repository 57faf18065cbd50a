"""Attendance and cancellation transitions for existing registrations."""
import logging
from typing import Any

from sqlmodel import Session

from app.models import Registration, RegistrationStatus
from app.registration.errors import CapacityExceededError, RegistrationNotFoundError
from app.registration.fields import parse_action, parse_id, parse_timestamp
from app.registration.store import lock_registration, release_seat, take_seat, transaction

logger = logging.getLogger(__name__)


class AttendanceService:
    """Move registrations between tbd, attended, no-show and cancelled.

    Any status may move to any other. The occurrence's registered-count
    only changes when a registration stops or starts holding a seat:

    - first cancellation releases the seat (count - 1, floored at 0)
    - cancelling again changes nothing and is not an error
    - marking a cancelled registration attended or no-show takes the seat
      back, which fails with ``CapacityExceededError`` if the occurrence
      has filled up in the meantime
    """

    def __init__(self, session: Session):
        self._session = session

    def update_registration(
        self, participant_id: Any, event_id: Any, occurrence_start: Any, action: Any
    ) -> Registration:
        participant_id = parse_id(participant_id, "Participant_ID")
        event_id = parse_id(event_id, "Event_ID")
        start = parse_timestamp(occurrence_start, "EventDateTimeStart")
        action = parse_action(action)
        target = action.target_status

        session = self._session
        with transaction(session, f"update registration ({action.value})"):
            registration = lock_registration(session, participant_id, event_id, start)
            if registration is None:
                raise RegistrationNotFoundError(
                    f"Participant {participant_id} is not registered for event "
                    f"{event_id} at {start.isoformat()}"
                )

            prior = RegistrationStatus(registration.status)
            if prior.holds_seat and not target.holds_seat:
                if not release_seat(session, event_id, start):
                    logger.warning(
                        f"Registered count for event {event_id} at {start.isoformat()} "
                        "was already 0 on cancellation"
                    )
            elif not prior.holds_seat and target.holds_seat:
                if not take_seat(session, event_id, start):
                    raise CapacityExceededError(
                        "Event is full; cancelled registration cannot be reinstated"
                    )

            registration.status = target
            session.add(registration)

        session.refresh(registration)
        logger.info(
            f"Registration of participant {participant_id} for event {event_id} at "
            f"{start.isoformat()}: {prior.value} -> {target.value}"
        )
        return registration
