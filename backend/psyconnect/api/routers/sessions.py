from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from psyconnect.db import get_db
from psyconnect.models import Session, SessionMessage, User
from psyconnect.schemas import (
    SessionCreate, SessionPublic, SessionRespondReq, SessionScheduleReq,
    PsychologistSessions, MessageCreate, MessagePublic,
)
from psyconnect.services.auth_service import get_current_user
from psyconnect.services import session_workflow as workflow
from psyconnect import kafka

router = APIRouter(prefix="/sessions", tags=["sessions"])


async def _status_changed(session: Session, actor: User) -> None:
    await kafka.publish_event(
        "session.status_changed",
        session.id,
        {"session_id": session.id, "status": session.status, "actor_id": actor.id},
    )


# [1] booking
@router.post("", response_model=SessionPublic, status_code=status.HTTP_201_CREATED)
async def book_session(
    req: SessionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    session = await workflow.book_session(db, current_user, req.tutor_id, req.course.strip())
    await kafka.publish_event(
        "session.requested",
        session.id,
        {"session_id": session.id, "student_id": session.student_id,
         "tutor_id": session.tutor_id, "course": session.course},
    )
    return session


# [2] dashboards
@router.get("/my", response_model=List[SessionPublic])
async def get_my_sessions(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Student status overview: pending and accepted requests."""
    sessions = await workflow.get_student_sessions(db, current_user.id)
    return [s for s in sessions if s.status in workflow.STUDENT_OVERVIEW_STATUSES]


@router.get("/history", response_model=List[SessionPublic])
async def get_my_session_history(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Every session the student ever requested, whatever its status."""
    return await workflow.get_student_sessions(db, current_user.id)


@router.get("/requests", response_model=PsychologistSessions)
async def get_psychologist_dashboard(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not current_user.is_tutor:
        raise HTTPException(status_code=403, detail="Solo los psicólogos reciben solicitudes.")

    sessions = await workflow.get_psychologist_active_sessions(db, current_user.id)
    return PsychologistSessions(
        pending_requests=[s for s in sessions if s.status == "pending"],
        accepted_sessions=[s for s in sessions if s.status == "accepted"],
    )


@router.get("/active", response_model=List[SessionPublic])
async def get_active_sessions(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await workflow.get_accepted_sessions(db, current_user)


# [3] single session
@router.get("/{session_id}", response_model=SessionPublic)
async def get_session(
    session_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await workflow.get_session_for_participant(db, session_id, current_user)


@router.post("/{session_id}/respond", response_model=SessionPublic)
async def respond_to_session(
    session_id: int,
    req: SessionRespondReq,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    session = await workflow.get_session_for_participant(db, session_id, current_user)
    session = await workflow.transition_session_status(db, session, req.response, current_user)
    await _status_changed(session, current_user)
    return session


@router.post("/{session_id}/complete", response_model=SessionPublic)
async def complete_session(
    session_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    session = await workflow.get_session_for_participant(db, session_id, current_user)
    session = await workflow.transition_session_status(db, session, "completed", current_user)
    await _status_changed(session, current_user)
    return session


@router.post("/{session_id}/cancel", response_model=SessionPublic)
async def cancel_session(
    session_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    session = await workflow.get_session_for_participant(db, session_id, current_user)
    session = await workflow.transition_session_status(db, session, "cancelled", current_user)
    await _status_changed(session, current_user)
    return session


@router.put("/{session_id}/schedule", response_model=SessionPublic)
async def schedule_session(
    session_id: int,
    req: SessionScheduleReq,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    session = await workflow.get_session_for_participant(db, session_id, current_user)
    return await workflow.schedule_session(db, session, req.session_date)


# [4] chat
@router.get("/{session_id}/messages", response_model=List[MessagePublic])
async def list_messages(
    session_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    await workflow.get_session_for_participant(db, session_id, current_user)
    q = (
        select(SessionMessage)
        .where(SessionMessage.session_id == session_id)
        .order_by(SessionMessage.created_at, SessionMessage.id)
    )
    return (await db.execute(q)).scalars().all()


@router.post("/{session_id}/messages", response_model=MessagePublic, status_code=status.HTTP_201_CREATED)
async def post_message(
    session_id: int,
    req: MessageCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    session = await workflow.get_session_for_participant(db, session_id, current_user)
    # chat only opens once the tutor accepts
    if session.status != "accepted":
        raise HTTPException(status_code=409, detail="El chat solo está disponible en sesiones aceptadas.")

    content = req.content.strip()
    if not content:
        raise HTTPException(status_code=400, detail="El mensaje no puede estar vacío.")

    message = SessionMessage(session_id=session.id, sender_id=current_user.id, content=content)
    db.add(message)
    await db.commit()
    await db.refresh(message)
    return message
