import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from psyconnect.config import PLACEHOLDER_IMAGE_URL
from psyconnect.db import get_db
from psyconnect.models import User
from psyconnect.services.auth_service import (
    create_access_token, verify_password, hash_password, get_onboarding_user,
    disabled_account_message, is_locked_out,
)
from psyconnect.services.courses import get_available_specialties
from psyconnect.schemas import UserCreate, PsychologistCreate, Token, UserPublic

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

EMAIL_IN_USE = "El correo electrónico que ingresaste ya se encuentra registrado."
BLANK_NAME = "El nombre no puede estar vacío."


def placeholder_image(name: str) -> str:
    return PLACEHOLDER_IMAGE_URL.format(initial=(name.strip()[:1] or "U").upper())


async def get_user_by_email(db: AsyncSession, email: str):
    q = select(User).where(User.email == email.strip().lower())
    res = await db.execute(q)
    return res.scalar_one_or_none()


@router.post("/register", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
async def register_user(user_in: UserCreate, db: AsyncSession = Depends(get_db)):
    """Regular (patient) signup."""
    if await get_user_by_email(db, user_in.email):
        raise HTTPException(status_code=400, detail=EMAIL_IN_USE)

    name = user_in.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail=BLANK_NAME)
    user = User(
        email=user_in.email.strip().lower(),
        password_hash=hash_password(user_in.password),
        name=name,
        age=user_in.age,
        image_url=placeholder_image(name),
        is_tutor=False,
        is_disabled=False,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("[auth] user %s registered", user.id)
    return user


@router.post("/register/psychologist", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
async def register_psychologist(req: PsychologistCreate, db: AsyncSession = Depends(get_db)):
    """
    Psychologist signup. The account is created disabled with validation_status='pending'
    and can only book, chat or appear in listings once an admin approves it.
    """
    if await get_user_by_email(db, req.email):
        raise HTTPException(status_code=400, detail=EMAIL_IN_USE)

    # 1. every specialty must exist in the catalogue
    available = set(await get_available_specialties(db))
    specialties = list(dict.fromkeys(s.strip() for s in req.specialties if s.strip()))
    if not specialties:
        raise HTTPException(status_code=400, detail="Debes seleccionar al menos una especialidad.")
    unknown = [s for s in specialties if s not in available]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Especialidades desconocidas: {', '.join(unknown)}")

    # 2. create the disabled profile
    name = req.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail=BLANK_NAME)
    user = User(
        email=req.email.strip().lower(),
        password_hash=hash_password(req.password),
        name=name,
        image_url=placeholder_image(name),
        is_tutor=True,
        bio=req.bio,
        courses=specialties,
        hourly_rate=req.hourly_rate,
        specialty_rates=[{"name": s, "price": req.hourly_rate} for s in specialties],
        professional_link=req.professional_link.strip(),
        rating=5.0,
        reviews=0,
        is_disabled=True,
        validation_status="pending",
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("[auth] psychologist %s registered, waiting for validation", user.id)
    return user


@router.post("/login", response_model=Token)
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db)
):
    user = await get_user_by_email(db, form_data.username)

    if not user or not user.password_hash or not verify_password(form_data.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Correo electrónico o contraseña incorrectos.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    # psychologists waiting for validation still get a token to finish onboarding
    if is_locked_out(user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=disabled_account_message(user))

    access_token = create_access_token(
        data={"sub": str(user.id), "is_tutor": user.is_tutor}
    )
    return Token(access_token=access_token, token_type="bearer")


@router.get("/me", response_model=UserPublic)
async def get_my_info(current_user: User = Depends(get_onboarding_user)):
    """Current user, resolved from the bearer token."""
    return current_user
