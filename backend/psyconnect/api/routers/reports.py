import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from psyconnect.db import get_db
from psyconnect.models import Report, User
from psyconnect.schemas import ReportCreate, ReportPublic
from psyconnect.services.auth_service import get_current_user
from psyconnect import kafka

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])


@router.post("", response_model=ReportPublic, status_code=status.HTTP_201_CREATED)
async def create_report(
    req: ReportCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Files a complaint against another user. It lands in the admin queue as 'Pendiente'."""
    if req.reported_user_id == current_user.id:
        raise HTTPException(status_code=400, detail="No puedes reportarte a ti mismo.")

    reported = await db.get(User, req.reported_user_id)
    if not reported:
        raise HTTPException(status_code=404, detail="Usuario no encontrado.")

    report = Report(
        reported_user_id=reported.id,
        reported_user_name=reported.name,
        reported_by_user_id=current_user.id,
        reported_by_user_name=current_user.name,
        reason=req.reason.strip(),
        status="Pendiente",
    )
    db.add(report)
    await db.commit()
    await db.refresh(report)

    logger.info("[reports] report %s filed by %s against %s", report.id, current_user.id, reported.id)
    await kafka.publish_event(
        "report.created",
        report.id,
        {"report_id": report.id, "reported_user_id": reported.id, "reported_by_user_id": current_user.id},
    )
    return report
