from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from psyconnect.db import get_db
from psyconnect.models import Course, User
from psyconnect.schemas import CourseCreate, CoursePublic
from psyconnect.services.auth_service import get_admin_user
from psyconnect.services.courses import get_all_courses

router = APIRouter(prefix="/courses", tags=["courses"])


@router.get("", response_model=List[CoursePublic])
async def list_courses(db: AsyncSession = Depends(get_db)):
    return await get_all_courses(db)


@router.post("", response_model=CoursePublic, status_code=status.HTTP_201_CREATED)
async def create_course(
    req: CourseCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_admin_user),
):
    name = req.name.strip()
    existing = (await db.execute(select(Course).where(Course.name == name))).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=400, detail="La especialidad ya existe.")

    course = Course(name=name)
    db.add(course)
    await db.commit()
    await db.refresh(course)
    return course
