from app.models.event import Event
from app.models.occurrence import EventOccurrence
from app.models.participant import Participant
from app.models.registration import Registration, RegistrationStatus

__all__ = ["Event", "EventOccurrence", "Participant", "Registration", "RegistrationStatus"]
