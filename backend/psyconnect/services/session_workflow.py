"""
Session lifecycle.

    pending  -> accepted | declined      (tutor)
    accepted -> completed                (tutor)
    accepted -> cancelled                (either participant)

Every status write is a compare-and-swap on the status column, so two
concurrent writers cannot both move the same session: the loser gets a 409.
"""
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import List

from fastapi import HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from psyconnect.models import Session, User

logger = logging.getLogger(__name__)

TRANSITIONS: dict[str, set[str]] = {
    "pending": {"accepted", "declined"},
    "accepted": {"completed", "cancelled"},
    "declined": set(),
    "completed": set(),
    "cancelled": set(),
}

# target status -> who may request it
TUTOR_ONLY = {"accepted", "declined", "completed"}
EITHER_PARTICIPANT = {"cancelled"}

STUDENT_OVERVIEW_STATUSES = ("pending", "accepted")


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, set())


def is_bookable(user: User | None) -> bool:
    """A psychologist shows up in listings and accepts bookings only once approved and enabled."""
    return bool(
        user
        and user.is_tutor
        and not user.is_disabled
        and user.validation_status == "approved"
    )


def price_for_specialty(user: User, specialty: str) -> int:
    for rate in user.specialty_rates or []:
        if rate.get("name") == specialty:
            return int(rate.get("price") or 0)
    return user.hourly_rate or 0


async def get_student_sessions(db: AsyncSession, student_id: int) -> List[Session]:
    q = (
        select(Session)
        .where(Session.student_id == student_id)
        .order_by(Session.created_at.desc(), Session.id.desc())
    )
    return list((await db.execute(q)).scalars().all())


async def get_psychologist_active_sessions(db: AsyncSession, tutor_id: int) -> List[Session]:
    """Pending requests and accepted sessions of a tutor; the dashboard splits them."""
    q = (
        select(Session)
        .where(
            Session.tutor_id == tutor_id,
            Session.status.in_(("pending", "accepted")),
        )
        .order_by(Session.created_at.desc(), Session.id.desc())
    )
    return list((await db.execute(q)).scalars().all())


async def get_accepted_sessions(db: AsyncSession, user: User) -> List[Session]:
    """Active sessions view. Pending requests never show up here."""
    participant = Session.tutor_id == user.id if user.is_tutor else Session.student_id == user.id
    q = (
        select(Session)
        .where(participant, Session.status == "accepted")
        .order_by(Session.session_date.is_(None), Session.session_date, Session.id.desc())
    )
    return list((await db.execute(q)).scalars().all())


async def get_session_for_participant(db: AsyncSession, session_id: int, user: User) -> Session:
    """Loads a session; anyone who is not one of its two participants gets a 404."""
    session = await db.get(Session, session_id)
    if not session or user.id not in (session.student_id, session.tutor_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sesión no encontrada.")
    return session


async def book_session(db: AsyncSession, student: User, tutor_id: int, course: str) -> Session:
    if student.is_tutor:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Los psicólogos no pueden reservar sesiones.")

    tutor = await db.get(User, tutor_id)
    if not is_bookable(tutor):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Psicólogo no encontrado.")
    if course not in (tutor.courses or []):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="El psicólogo no atiende la especialidad seleccionada.",
        )

    session = Session(
        student_id=student.id,
        tutor_id=tutor.id,
        status="pending",
        course=course,
        tutor={"name": tutor.name, "image_url": tutor.image_url, "email": tutor.email},
        student={"name": student.name, "image_url": student.image_url, "age": student.age},
    )
    db.add(session)
    await db.commit()
    await db.refresh(session)
    logger.info("[session_workflow] session %s requested by %s for tutor %s", session.id, student.id, tutor.id)
    return session


async def transition_session_status(
    db: AsyncSession,
    session: Session,
    target: str,
    actor: User,
) -> Session:
    # 1. role guard
    if target in TUTOR_ONLY and actor.id != session.tutor_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Solo el psicólogo asignado puede realizar esta acción.",
        )
    if target in EITHER_PARTICIPANT and actor.id not in (session.tutor_id, session.student_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No tienes permiso sobre esta sesión.")

    # 2. transition table
    expected = session.status
    if not can_transition(expected, target):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"No se puede pasar una sesión de '{expected}' a '{target}'.",
        )

    # 3. compare-and-swap on status
    session_id = session.id
    values = {"status": target}
    if target in ("accepted", "declined"):
        values["responded_at"] = datetime.now(timezone.utc)

    result = await db.execute(
        update(Session)
        .where(Session.id == session_id, Session.status == expected)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        # rollback expires loaded rows; only locals are safe to read below
        await db.rollback()
        logger.warning(
            "[session_workflow] conflict on session %s: expected '%s', wanted '%s'",
            session_id, expected, target,
        )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="La sesión fue modificada por otra acción. Recarga e inténtalo de nuevo.",
        )
    await db.commit()
    await db.refresh(session)

    logger.info("[session_workflow] session %s: %s -> %s by %s", session_id, expected, target, actor.id)
    return session


async def schedule_session(db: AsyncSession, session: Session, session_date: datetime) -> Session:
    """Sets the date only while the session is still accepted, checked in the UPDATE itself."""
    session_id = session.id
    result = await db.execute(
        update(Session)
        .where(Session.id == session_id, Session.status == "accepted")
        .values(session_date=session_date)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Solo se pueden agendar sesiones aceptadas.",
        )
    await db.commit()
    await db.refresh(session)
    return session
