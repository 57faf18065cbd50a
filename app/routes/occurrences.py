"""Occurrence routes for listing, scheduling and maintaining occurrences."""
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlmodel import Session

from app.core.config import settings
from app.core.database import get_session
from app.models import RegistrationStatus
from app.registration.errors import RegistrationError
from app.registration.fields import AttendanceAction
from app.registration.occurrences import OccurrenceService
from app.routes.payload import occurrence_json, read_fields, registration_json, wants_json

router = APIRouter(prefix="/occurrences", tags=["occurrences"])
templates = Jinja2Templates(directory=str(settings.template_dir))


def get_occurrence_service(session: Session = Depends(get_session)) -> OccurrenceService:
    return OccurrenceService(session)


@router.get("/upcoming", response_class=HTMLResponse)
async def upcoming_occurrences(
    request: Request,
    service: OccurrenceService = Depends(get_occurrence_service),
):
    """
    Display occurrences that have not started yet, soonest first.

    Returns JSON instead of HTML when Accept: application/json is sent.
    """
    try:
        occurrences = service.upcoming()
    except RegistrationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from None

    if wants_json(request):
        return JSONResponse({"occurrences": [occurrence_json(o) for o in occurrences]})

    return templates.TemplateResponse(
        request,
        "occurrences.html",
        {"occurrences": occurrences},
    )


@router.post("")
async def schedule_occurrence(
    request: Request,
    service: OccurrenceService = Depends(get_occurrence_service),
):
    """
    Schedule a new occurrence of an event.

    Expects Event_ID, EventDateTimeStart and Capacity; EventDateTimeEnd,
    Location and RegistrationDeadline are optional. Returns 404 if the
    event does not exist and 409 if the event already has an occurrence
    starting at that time.
    """
    fields = await read_fields(request)
    try:
        occurrence = service.schedule(
            fields.get("Event_ID"),
            fields.get("EventDateTimeStart"),
            fields.get("Capacity"),
            end=fields.get("EventDateTimeEnd"),
            location=fields.get("Location"),
            deadline=fields.get("RegistrationDeadline"),
        )
    except RegistrationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from None

    if wants_json(request):
        return JSONResponse(occurrence_json(occurrence), status_code=201)

    start = occurrence.event_datetime_start.isoformat()
    return RedirectResponse(f"/occurrences/{occurrence.event_id}/{start}", status_code=303)


@router.get("/{event_id}/{start}", response_class=HTMLResponse)
async def occurrence_detail(
    event_id: str,
    start: str,
    request: Request,
    service: OccurrenceService = Depends(get_occurrence_service),
):
    """
    Display one occurrence with its roster.

    Each registration row offers attended / absent / cancel actions that
    post to /registration/update.
    """
    try:
        occurrence = service.get(event_id, start)
        roster = service.roster(event_id, start)
    except RegistrationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from None

    if wants_json(request):
        return JSONResponse({
            "occurrence": occurrence_json(occurrence),
            "registrations": [registration_json(r) for r, _ in roster],
        })

    return templates.TemplateResponse(
        request,
        "occurrence_detail.html",
        {
            "occurrence": occurrence,
            "roster": roster,
            "actions": list(AttendanceAction),
            "cancelled": RegistrationStatus.CANCELLED,
        },
    )


@router.post("/{event_id}/{start}/delete")
async def delete_occurrence(
    event_id: str,
    start: str,
    service: OccurrenceService = Depends(get_occurrence_service),
):
    """
    Delete an occurrence.

    Refused with 409 while any registration still holds a seat; cancel
    those registrations first. Cancelled registrations are deleted along
    with the occurrence.
    """
    try:
        service.delete(event_id, start)
    except RegistrationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from None

    return RedirectResponse("/occurrences/upcoming", status_code=303)


@router.post("/{event_id}/{start}/recount")
async def recount_occurrence(
    event_id: str,
    start: str,
    service: OccurrenceService = Depends(get_occurrence_service),
):
    """Recompute the registered count from the registration rows."""
    try:
        previous, actual = service.recount(event_id, start)
    except RegistrationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from None

    return {"previous_count": previous, "registered_count": actual, "changed": previous != actual}
