"""Registration routes: sign up for an occurrence and record attendance."""
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from sqlmodel import Session

from app.core.database import get_session
from app.registration.attendance import AttendanceService
from app.registration.errors import RegistrationError
from app.registration.service import RegistrationService
from app.routes.payload import read_fields, registration_json, wants_json

router = APIRouter(tags=["registrations"])


def get_registration_service(session: Session = Depends(get_session)) -> RegistrationService:
    return RegistrationService(session)


def get_attendance_service(session: Session = Depends(get_session)) -> AttendanceService:
    return AttendanceService(session)


@router.post("/register")
async def register(
    request: Request,
    service: RegistrationService = Depends(get_registration_service),
):
    """
    Register a participant for an event occurrence.

    Expects Participant_ID, Event_ID and EventDateTimeStart as form fields
    or JSON. Returns 400 for missing fields, a passed deadline or a full
    event; 404 when the occurrence or participant does not exist; 409 when
    the participant is already registered.
    """
    fields = await read_fields(request)
    try:
        registration = service.register(
            fields.get("Participant_ID"),
            fields.get("Event_ID"),
            fields.get("EventDateTimeStart"),
        )
    except RegistrationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from None

    return JSONResponse({"success": True, "registration": registration_json(registration)})


async def _update_registration(request: Request, service: AttendanceService):
    fields = await read_fields(request)
    try:
        registration = service.update_registration(
            fields.get("Participant_ID"),
            fields.get("Event_ID"),
            fields.get("EventDateTimeStart"),
            fields.get("action"),
        )
    except RegistrationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from None

    if wants_json(request):
        return JSONResponse({"success": True, "registration": registration_json(registration)})

    start = registration.event_datetime_start.isoformat()
    return RedirectResponse(f"/occurrences/{registration.event_id}/{start}", status_code=303)


@router.post("/registration/update")
async def update_registration(
    request: Request,
    service: AttendanceService = Depends(get_attendance_service),
):
    """
    Mark a registration attended, absent (no-show) or cancelled.

    Expects Participant_ID, Event_ID, EventDateTimeStart and action. JSON
    clients receive the updated registration; form posts are redirected
    back to the occurrence page.
    """
    return await _update_registration(request, service)


@router.patch("/registration")
async def patch_registration(
    request: Request,
    service: AttendanceService = Depends(get_attendance_service),
):
    """Same transition as POST /registration/update, for API clients."""
    return await _update_registration(request, service)
