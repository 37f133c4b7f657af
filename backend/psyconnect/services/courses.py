from __future__ import annotations
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from psyconnect.models import Course


async def get_available_specialties(db: AsyncSession) -> List[str]:
    """Names of every specialty, in the order they were seeded."""
    res = await db.execute(select(Course.name).order_by(Course.id))
    return list(res.scalars().all())


async def get_all_courses(db: AsyncSession) -> List[Course]:
    res = await db.execute(select(Course).order_by(Course.id))
    return list(res.scalars().all())
