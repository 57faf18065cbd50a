"""Shared data access for the registration services.

Every service operation that writes runs inside :func:`transaction`, which
commits on success and rolls back on any error. Read-only queries run
inside :func:`reading`. In both, store failures are logged and re-raised
as ``StoreError`` so a half-applied change can never be left behind or
leak driver details to the client.

Seat accounting never reads a count, compares it and writes it back in
separate steps. :func:`take_seat` and :func:`release_seat` are single
conditional UPDATE statements; their row count says whether the guard held.
"""
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from app.core.database import WRITE_TRANSACTION
from app.models import EventOccurrence, Registration, RegistrationStatus
from app.registration.errors import StoreError

logger = logging.getLogger(__name__)


@contextmanager
def transaction(session: Session, operation: str) -> Iterator[Session]:
    """Run a unit of work, committing on success and rolling back on error.

    A session with no transaction in progress begins one as a writer
    (BEGIN IMMEDIATE on SQLite). A transaction the session already has
    open is carried on and committed here.
    """
    try:
        if not session.in_transaction():
            session.connection(execution_options=WRITE_TRANSACTION)
        yield session
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Store failure during {operation}")
        raise StoreError() from e
    except Exception:
        session.rollback()
        raise


@contextmanager
def reading(session: Session, operation: str) -> Iterator[Session]:
    """Run read-only queries, turning store failures into ``StoreError``."""
    try:
        yield session
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Store failure during {operation}")
        raise StoreError() from e


def violated_constraint(error: IntegrityError) -> str | None:
    """Classify an IntegrityError as "unique", "foreign_key" or None (anything else)."""
    orig = error.orig
    pgcode = getattr(orig, "pgcode", None)
    message = str(orig).upper()
    if pgcode == "23505" or "UNIQUE CONSTRAINT" in message:
        return "unique"
    if pgcode == "23503" or "FOREIGN KEY CONSTRAINT" in message:
        return "foreign_key"
    return None


def _occurrence_matches(event_id: int, start: datetime):
    return (
        (EventOccurrence.event_id == event_id)
        & (EventOccurrence.event_datetime_start == start)
    )


def lock_occurrence(
    session: Session, event_id: int, start: datetime
) -> EventOccurrence | None:
    """Load an occurrence, holding a row lock until the transaction ends."""
    statement = (
        select(EventOccurrence)
        .where(_occurrence_matches(event_id, start))
        .with_for_update()
    )
    return session.exec(statement).first()


def lock_registration(
    session: Session, participant_id: int, event_id: int, start: datetime
) -> Registration | None:
    """Load a registration, holding a row lock until the transaction ends."""
    statement = (
        select(Registration)
        .where(Registration.participant_id == participant_id)
        .where(Registration.event_id == event_id)
        .where(Registration.event_datetime_start == start)
        .with_for_update()
    )
    return session.exec(statement).first()


def take_seat(session: Session, event_id: int, start: datetime) -> bool:
    """Increment the registered-count if a seat is free. Returns False when full."""
    statement = (
        update(EventOccurrence)
        .where(_occurrence_matches(event_id, start))
        .where(EventOccurrence.registered_count < EventOccurrence.capacity)
        .values(registered_count=EventOccurrence.registered_count + 1)
        .execution_options(synchronize_session=False)
    )
    return session.exec(statement).rowcount == 1


def release_seat(session: Session, event_id: int, start: datetime) -> bool:
    """Decrement the registered-count, never below zero. Returns False at zero."""
    statement = (
        update(EventOccurrence)
        .where(_occurrence_matches(event_id, start))
        .where(EventOccurrence.registered_count > 0)
        .values(registered_count=EventOccurrence.registered_count - 1)
        .execution_options(synchronize_session=False)
    )
    return session.exec(statement).rowcount == 1


def count_active_registrations(session: Session, event_id: int, start: datetime) -> int:
    """Count registrations for an occurrence that still hold a seat."""
    statement = (
        select(func.count())
        .select_from(Registration)
        .where(Registration.event_id == event_id)
        .where(Registration.event_datetime_start == start)
        .where(Registration.status != RegistrationStatus.CANCELLED)
    )
    return session.exec(statement).one()
