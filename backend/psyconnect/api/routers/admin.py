from __future__ import annotations
import logging
from typing import List, Optional, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, update, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from psyconnect.db import get_db
from psyconnect.models import User, Report
from psyconnect.schemas import (
    AdminStats, AdminUserDetail, ReportPublic, ReportStatusUpdate,
    UserDisabledUpdate, UserPublic, ValidationUpdate,
)
from psyconnect.services.auth_service import get_admin_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(get_admin_user)])


async def get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="Usuario no encontrado.")
    return user


async def get_report_or_404(db: AsyncSession, report_id: int) -> Report:
    report = await db.get(Report, report_id)
    if not report:
        raise HTTPException(status_code=404, detail="Reporte no encontrado.")
    return report


# --- dashboard ---
@router.get("/stats", response_model=AdminStats)
async def get_stats(db: AsyncSession = Depends(get_db)):
    async def count(*conditions) -> int:
        return (await db.execute(select(func.count()).select_from(User).where(*conditions))).scalar_one()

    open_reports = (await db.execute(
        select(func.count()).select_from(Report).where(Report.status.in_(("Pendiente", "En Revisión")))
    )).scalar_one()

    return AdminStats(
        total_users=await count(User.is_tutor.is_(False)),
        total_psychologists=await count(User.is_tutor.is_(True)),
        pending_validations=await count(User.is_tutor.is_(True), User.validation_status == "pending"),
        open_reports=open_reports,
        disabled_users=await count(User.is_disabled.is_(True)),
    )


# --- users ---
@router.get("/users", response_model=List[UserPublic])
async def list_users(
    is_tutor: Optional[bool] = Query(None),
    validation_status: Optional[Literal["pending", "approved", "rejected"]] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    q = select(User).order_by(User.created_at.desc(), User.id.desc())
    if is_tutor is not None:
        q = q.where(User.is_tutor.is_(is_tutor))
    if validation_status is not None:
        q = q.where(User.validation_status == validation_status)
    return (await db.execute(q)).scalars().all()


@router.get("/users/{user_id}", response_model=AdminUserDetail)
async def get_user_detail(user_id: int, db: AsyncSession = Depends(get_db)):
    """User profile plus the reports filed against them and the ones they filed."""
    user = await get_user_or_404(db, user_id)

    q = (
        select(Report)
        .where(or_(Report.reported_user_id == user_id, Report.reported_by_user_id == user_id))
        .order_by(Report.created_at.desc(), Report.id.desc())
    )
    reports = (await db.execute(q)).scalars().all()

    detail = AdminUserDetail.model_validate(user)
    detail.reports_against = [ReportPublic.model_validate(r) for r in reports if r.reported_user_id == user_id]
    detail.reports_by = [ReportPublic.model_validate(r) for r in reports if r.reported_by_user_id == user_id]
    return detail


@router.put("/users/{user_id}/status", response_model=UserPublic)
async def set_user_disabled(
    user_id: int,
    req: UserDisabledUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_admin_user),
):
    """
    Suspends or reactivates an account. The body carries the target value rather than
    a toggle, so sending the same request twice leaves the account in the same state.
    """
    user = await get_user_or_404(db, user_id)
    if user.id == admin.id:
        raise HTTPException(status_code=400, detail="No puedes suspender tu propia cuenta.")

    await db.execute(
        update(User).where(User.id == user_id).values(is_disabled=req.is_disabled)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    await db.refresh(user)
    logger.info("[admin] user %s is_disabled=%s", user_id, req.is_disabled)
    return user


@router.put("/users/{user_id}/validation", response_model=UserPublic)
async def validate_psychologist(
    user_id: int,
    req: ValidationUpdate,
    db: AsyncSession = Depends(get_db),
):
    user = await get_user_or_404(db, user_id)
    if not user.is_tutor:
        raise HTTPException(status_code=400, detail="Solo se pueden validar cuentas de psicólogos.")

    # approval enables the account, rejection disables it, even after an earlier approval
    values = {"validation_status": req.status, "is_disabled": req.status == "rejected"}

    await db.execute(
        update(User).where(User.id == user_id).values(**values)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    await db.refresh(user)
    logger.info("[admin] psychologist %s validation=%s", user_id, req.status)
    return user


# --- reports ---
@router.get("/reports", response_model=List[ReportPublic])
async def list_reports(
    status_filter: Optional[Literal["Pendiente", "En Revisión", "Resuelto", "Descartado"]] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
):
    q = select(Report).order_by(Report.created_at.desc(), Report.id.desc())
    if status_filter is not None:
        q = q.where(Report.status == status_filter)
    return (await db.execute(q)).scalars().all()


@router.get("/reports/{report_id}", response_model=ReportPublic)
async def get_report(report_id: int, db: AsyncSession = Depends(get_db)):
    return await get_report_or_404(db, report_id)


@router.put("/reports/{report_id}/status", response_model=ReportPublic)
async def update_report_status(
    report_id: int,
    req: ReportStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    report = await get_report_or_404(db, report_id)
    report.status = req.status
    await db.commit()
    await db.refresh(report)
    logger.info("[admin] report %s -> %s", report_id, req.status)
    return report
