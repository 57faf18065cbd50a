"""Request body helpers shared by the routers."""
from json import JSONDecodeError
from typing import Any

from fastapi import HTTPException, Request

from app.models import EventOccurrence, Registration, RegistrationStatus


def wants_json(request: Request) -> bool:
    """Check if the client prefers JSON response (AJAX request)."""
    accept = request.headers.get("accept", "")
    content_type = request.headers.get("content-type", "")
    return "application/json" in accept or "application/json" in content_type


async def read_fields(request: Request) -> dict[str, Any]:
    """
    Read the request body as a flat dict.

    HTML forms post form-encoded bodies and API clients post JSON; both
    are accepted. Query parameters fill in anything the body leaves out.
    """
    fields: dict[str, Any] = dict(request.query_params)
    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            body = await request.json()
        except (JSONDecodeError, UnicodeDecodeError):
            raise HTTPException(status_code=400, detail="Malformed JSON body") from None
        if not isinstance(body, dict):
            raise HTTPException(status_code=400, detail="JSON body must be an object")
        fields.update(body)
    else:
        form = await request.form()
        fields.update({key: value for key, value in form.items() if isinstance(value, str)})
    return fields


def registration_json(registration: Registration) -> dict[str, Any]:
    """JSON view of a registration, including the derived attended flag."""
    return {
        "Participant_ID": registration.participant_id,
        "Event_ID": registration.event_id,
        "EventDateTimeStart": registration.event_datetime_start.isoformat(),
        "status": RegistrationStatus(registration.status).value,
        "attended": registration.attended,
        "created_at": registration.created_at.isoformat(),
    }


def occurrence_json(occurrence: EventOccurrence) -> dict[str, Any]:
    deadline = occurrence.registration_deadline
    end = occurrence.event_datetime_end
    return {
        "Event_ID": occurrence.event_id,
        "EventDateTimeStart": occurrence.event_datetime_start.isoformat(),
        "EventDateTimeEnd": end.isoformat() if end else None,
        "location": occurrence.location,
        "capacity": occurrence.capacity,
        "registration_deadline": deadline.isoformat() if deadline else None,
        "registered_count": occurrence.registered_count,
        "seats_left": occurrence.seats_left,
    }
