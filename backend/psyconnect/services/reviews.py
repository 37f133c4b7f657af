from __future__ import annotations
import logging
from typing import List

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from psyconnect.models import Review, Session, User

logger = logging.getLogger(__name__)

REVIEWABLE_STATUSES = ("accepted", "completed")


async def get_reviews(db: AsyncSession, psychologist_id: int) -> List[Review]:
    q = (
        select(Review)
        .where(Review.psychologist_id == psychologist_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
    )
    res = await db.execute(q)
    return list(res.scalars().all())


def recompute_rating(old_rating: float | None, old_count: int | None, new_rating: int) -> tuple[float, int]:
    """Running average, same formula the profile cards have always used."""
    old_rating = old_rating or 0
    old_count = old_count or 0
    new_count = old_count + 1
    return (old_rating * old_count + new_rating) / new_count, new_count


async def add_review(
    db: AsyncSession,
    psychologist_id: int,
    author: User,
    rating: int,
    comment: str,
) -> Review:
    """
    Inserts the review and updates the psychologist's rating and review count in a
    single transaction. The psychologist row is locked first (FOR UPDATE) so two
    concurrent reviews cannot both read the same old average.
    """
    q = select(User).where(User.id == psychologist_id).with_for_update()
    psychologist = (await db.execute(q)).scalar_one_or_none()
    if not psychologist or not psychologist.is_tutor:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Psicólogo no encontrado.")

    if author.id == psychologist.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No puedes calificarte a ti mismo.")

    # Only students who actually had a session with this psychologist can rate them
    q_session = select(Session.id).where(
        Session.student_id == author.id,
        Session.tutor_id == psychologist.id,
        Session.status.in_(REVIEWABLE_STATUSES),
    ).limit(1)
    if (await db.execute(q_session)).scalar_one_or_none() is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Solo puedes calificar a psicólogos con quienes tuviste una sesión.",
        )

    new_average, new_count = recompute_rating(psychologist.rating, psychologist.reviews, rating)

    review = Review(
        psychologist_id=psychologist.id,
        author_id=author.id,
        author_name=author.name,
        author_image_url=author.image_url,
        rating=rating,
        comment=comment,
    )
    db.add(review)
    psychologist.rating = new_average
    psychologist.reviews = new_count
    await db.commit()
    await db.refresh(review)

    logger.info(
        "[reviews] psychologist %s now rated %.2f over %d reviews",
        psychologist.id, new_average, new_count,
    )
    return review
