from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from psyconnect.db import get_db
from psyconnect.models import User
from psyconnect.services.auth_service import get_current_user, get_onboarding_user
from psyconnect.services.courses import get_available_specialties
from psyconnect.services.storage import save_profile_picture, save_verification_document
from psyconnect.schemas import UserPublic, ProfileUpdate

router = APIRouter(prefix="/user", tags=["user"])

TUTOR_ONLY_FIELDS = ("bio", "professional_link", "specialty_rates")


# [1] profile
@router.get("/profile", response_model=UserPublic)
async def get_user_profile(
    current_user: User = Depends(get_current_user)
):
    return current_user


# [2] profile update
@router.put("/profile", response_model=UserPublic)
async def update_user_profile(
    profile_in: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Updates name and age for everyone; bio, professional link and per-specialty
    rates for psychologists. Rates also rewrite the course list so both stay in sync.
    """
    update_data = profile_in.model_dump(exclude_unset=True)

    if not update_data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No hay cambios para guardar."
        )

    if not current_user.is_tutor and any(k in update_data for k in TUTOR_ONLY_FIELDS):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Solo los psicólogos pueden editar estos campos."
        )

    if update_data.get("name") is not None:
        name = update_data["name"].strip()
        if not name:
            raise HTTPException(status_code=400, detail="El nombre no puede estar vacío.")
        current_user.name = name
    if "age" in update_data:
        current_user.age = update_data["age"]
    if "bio" in update_data:
        current_user.bio = update_data["bio"]
    if "professional_link" in update_data:
        current_user.professional_link = update_data["professional_link"]

    if update_data.get("specialty_rates") is not None:
        rates = update_data["specialty_rates"]
        if not rates:
            raise HTTPException(status_code=400, detail="Debes mantener al menos una especialidad.")
        available = set(await get_available_specialties(db))
        names = [r["name"].strip() for r in rates]
        if len(set(names)) != len(names):
            raise HTTPException(status_code=400, detail="Hay especialidades repetidas.")
        unknown = [n for n in names if n not in available]
        if unknown:
            raise HTTPException(status_code=400, detail=f"Especialidades desconocidas: {', '.join(unknown)}")
        current_user.specialty_rates = [{"name": n, "price": r["price"]} for n, r in zip(names, rates)]
        current_user.courses = names

    await db.commit()
    await db.refresh(current_user)

    return current_user


# [3] profile picture
@router.post("/profile/picture", response_model=UserPublic)
async def upload_profile_picture(
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    current_user.image_url = await save_profile_picture(current_user.id, file)
    await db.commit()
    await db.refresh(current_user)
    return current_user


# [4] verification document (psychologists)
@router.post("/verification-document", status_code=status.HTTP_201_CREATED)
async def upload_verification_document(
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_onboarding_user)
):
    if not current_user.is_tutor:
        raise HTTPException(status_code=403, detail="Solo los psicólogos pueden subir documentos de verificación.")

    current_user.verification_document_url = await save_verification_document(current_user.id, file)
    await db.commit()
    return {"verification_document_url": current_user.verification_document_url}
