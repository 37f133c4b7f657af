"""
Seeds the specialty catalogue and, optionally, a demo student, psychologist and
pending session.

    python -m psyconnect.seed            # specialties only
    python -m psyconnect.seed --demo     # plus demo accounts
"""
import argparse
import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from psyconnect.db import Base, SessionLocal, engine
from psyconnect.models import Course, Session, User
from psyconnect.services.auth_service import hash_password

logger = logging.getLogger(__name__)

SPECIALTIES = [
    "Psicología Clínica",
    "Terapia Cognitivo-Conductual (TCC)",
    "Psicoanálisis",
    "Psicología Humanista",
    "Terapia de Pareja y Familia",
    "Psicología Infantil y del Adolescente",
    "Neuropsicología",
    "Psicología Organizacional",
    "Psicología del Deporte",
    "Mindfulness y Bienestar",
    "Trastornos de Ansiedad",
    "Depresión y Trastornos del Ánimo",
    "Adicciones",
    "Trastornos de la Conducta Alimentaria",
    "Psicogerontología",
]

DEMO_PASSWORD = "cambiar123"


async def seed_specialties(db: AsyncSession, names=SPECIALTIES) -> int:
    """Inserts the specialties that are missing. Returns how many were added."""
    existing = set((await db.execute(select(Course.name))).scalars().all())
    missing = [name for name in names if name not in existing]
    db.add_all(Course(name=name) for name in missing)
    await db.commit()
    return len(missing)


async def seed_demo(db: AsyncSession) -> None:
    if (await db.execute(select(User).where(User.email == "student.test@gmail.com"))).scalar_one_or_none():
        logger.info("[seed] demo accounts already present")
        return

    student = User(
        email="student.test@gmail.com",
        password_hash=hash_password(DEMO_PASSWORD),
        name="Usuario Anónimo",
        age=24,
        image_url="https://placehold.co/200x200/EBF4FF/76A9FA?text=A",
        is_tutor=False,
    )
    courses = ["Psicología Clínica", "Terapia Cognitivo-Conductual (TCC)", "Trastornos de Ansiedad"]
    psychologist = User(
        email="psyc.test@gmail.com",
        password_hash=hash_password(DEMO_PASSWORD),
        name="Dra. Ana Molina",
        image_url="https://placehold.co/400x400/d1d4f7/434b8c?text=AP",
        is_tutor=True,
        is_disabled=False,
        validation_status="approved",
        rating=4.9,
        reviews=150,
        hourly_rate=45000,
        courses=courses,
        specialty_rates=[{"name": c, "price": 45000} for c in courses],
        bio=(
            "Psicóloga clínica con más de 15 años de experiencia. Me especializo en terapia "
            "cognitivo-conductual para tratar la ansiedad, la depresión y el estrés."
        ),
    )
    db.add_all([student, psychologist])
    await db.flush()

    db.add(Session(
        student_id=student.id,
        tutor_id=psychologist.id,
        status="pending",
        course="Trastornos de Ansiedad",
        student={"name": student.name, "image_url": student.image_url, "age": student.age},
        tutor={"name": psychologist.name, "image_url": psychologist.image_url, "email": psychologist.email},
    ))
    await db.commit()


async def seed_data(demo: bool = False):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with SessionLocal() as db:
        added = await seed_specialties(db)
        logger.info("[seed] %d specialties added", added)
        if demo:
            await seed_demo(db)
            logger.info("[seed] demo accounts ready (password: %s)", DEMO_PASSWORD)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    parser = argparse.ArgumentParser(description="Seed the PsyConnect database")
    parser.add_argument("--demo", action="store_true", help="also create demo accounts and a pending session")
    args = parser.parse_args()
    asyncio.run(seed_data(demo=args.demo))
