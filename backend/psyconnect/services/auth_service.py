import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from psyconnect.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES, ADMIN_EMAIL
from psyconnect.db import get_db
from psyconnect.models import User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def verify_password(plain_password, password_hash):
    return pwd_context.verify(plain_password, password_hash)


def hash_password(password):
    if not isinstance(password, (str, bytes)):
        raise TypeError("Password must be a string or bytes.")

    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


def is_admin(user: User) -> bool:
    return (user.email or "").strip().lower() == ADMIN_EMAIL


def disabled_account_message(user: User) -> str:
    """Message shown when a disabled account tries to log in or call the API."""
    if user.is_tutor and user.validation_status == "pending":
        return "Tu registro está pendiente de aprobación por un administrador."
    if user.is_tutor and user.validation_status == "rejected":
        return "Tu registro como psicólogo fue rechazado."
    return "Tu cuenta ha sido suspendida."


async def get_token_user(token: str = Depends(oauth2_scheme), db: AsyncSession = Depends(get_db)) -> User:
    """
    Validates the bearer token and loads the user it belongs to, without looking at
    moderation flags.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="No se pudo validar tu sesión. Inicia sesión de nuevo.",
        headers={"WWW-Authenticate": "Bearer"},
    )
    user_id = None
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id_str: str = payload.get("sub")
        if user_id_str is None:
            raise credentials_exception
        try:
            user_id = int(user_id_str)
        except ValueError:
            raise credentials_exception

    except JWTError:
        raise credentials_exception

    res = await db.execute(select(User).where(User.id == user_id))
    user = res.scalar_one_or_none()

    if user is None:
        raise credentials_exception
    return user


def is_pending_psychologist(user: User) -> bool:
    return bool(user.is_tutor and user.validation_status == "pending")


def is_rejected_psychologist(user: User) -> bool:
    return bool(user.is_tutor and user.validation_status == "rejected")


def is_locked_out(user: User) -> bool:
    """Suspended or rejected accounts. A pending psychologist is not locked out, only limited."""
    if is_rejected_psychologist(user):
        return True
    return user.is_disabled and not is_pending_psychologist(user)


async def get_current_user(user: User = Depends(get_token_user)) -> User:
    """Dependency for every protected route: suspended and rejected accounts stop here."""
    if user.is_disabled or is_rejected_psychologist(user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=disabled_account_message(user))
    return user


async def get_onboarding_user(user: User = Depends(get_token_user)) -> User:
    """Like get_current_user, but also lets a psychologist waiting for validation through."""
    if is_locked_out(user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=disabled_account_message(user))
    return user


async def get_admin_user(current_user: User = Depends(get_current_user)) -> User:
    # Email equality against ADMIN_EMAIL, same rule the moderation panel always used
    if not is_admin(current_user):
        logger.warning("[auth] non-admin user %s tried to reach an admin route", current_user.id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Acceso restringido a administradores.")
    return current_user
