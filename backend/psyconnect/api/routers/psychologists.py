from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from psyconnect.db import get_db
from psyconnect.models import User
from psyconnect.schemas import (
    PsychologistCard, PsychologistDetail, ReviewCreate, ReviewPublic, SpecialtyPrice,
)
from psyconnect.services.auth_service import get_current_user
from psyconnect.services.reviews import add_review, get_reviews
from psyconnect.services.session_workflow import is_bookable, price_for_specialty

router = APIRouter(prefix="/psychologists", tags=["psychologists"])


def matches_search(user: User, term: str) -> bool:
    """Case-insensitive substring match against the name or any specialty."""
    needle = term.lower()
    if needle in (user.name or "").lower():
        return True
    return any(needle in course.lower() for course in (user.courses or []))


async def get_bookable_psychologist(db: AsyncSession, psychologist_id: int) -> User:
    psychologist = await db.get(User, psychologist_id)
    if not is_bookable(psychologist):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Psicólogo no encontrado.")
    return psychologist


@router.get("", response_model=List[PsychologistCard])
async def list_psychologists(
    search: Optional[str] = Query(None, description="Name or specialty fragment"),
    db: AsyncSession = Depends(get_db),
):
    """Approved, enabled psychologists, optionally filtered by name or specialty."""
    q = (
        select(User)
        .where(
            User.is_tutor.is_(True),
            User.is_disabled.is_(False),
            User.validation_status == "approved",
        )
        .order_by(User.rating.desc(), User.name)
    )
    psychologists = (await db.execute(q)).scalars().all()

    term = (search or "").strip()
    if term:
        psychologists = [p for p in psychologists if matches_search(p, term)]
    return psychologists


@router.get("/{psychologist_id}", response_model=PsychologistDetail)
async def get_psychologist(psychologist_id: int, db: AsyncSession = Depends(get_db)):
    psychologist = await get_bookable_psychologist(db, psychologist_id)
    return PsychologistDetail(
        id=psychologist.id,
        name=psychologist.name,
        image_url=psychologist.image_url,
        rating=psychologist.rating,
        reviews=psychologist.reviews,
        hourly_rate=psychologist.hourly_rate,
        courses=psychologist.courses or [],
        bio=psychologist.bio,
        professional_link=psychologist.professional_link,
        specialty_rates=psychologist.specialty_rates or [],
    )


@router.get("/{psychologist_id}/price", response_model=SpecialtyPrice)
async def get_specialty_price(
    psychologist_id: int,
    specialty: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
):
    psychologist = await get_bookable_psychologist(db, psychologist_id)
    return SpecialtyPrice(specialty=specialty, price=price_for_specialty(psychologist, specialty))


@router.get("/{psychologist_id}/reviews", response_model=List[ReviewPublic])
async def list_reviews(psychologist_id: int, db: AsyncSession = Depends(get_db)):
    await get_bookable_psychologist(db, psychologist_id)
    return await get_reviews(db, psychologist_id)


@router.post("/{psychologist_id}/reviews", response_model=ReviewPublic, status_code=status.HTTP_201_CREATED)
async def create_review(
    psychologist_id: int,
    req: ReviewCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await add_review(db, psychologist_id, current_user, req.rating, req.comment.strip())
