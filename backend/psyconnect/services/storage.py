from __future__ import annotations
import asyncio
import logging
import os
import re

from fastapi import HTTPException, UploadFile, status

from psyconnect.config import STATIC_DIR

logger = logging.getLogger(__name__)

PROFILE_PICTURES = "profile-pictures"
VERIFICATION_DOCUMENTS = "verification-documents"

MAX_PICTURE_BYTES = 5 * 1024 * 1024
MAX_DOCUMENT_BYTES = 10 * 1024 * 1024

DOCUMENT_CONTENT_TYPES = {"application/pdf", "image/jpeg", "image/png", "image/webp"}
# raster formats only, each stored with its extension
PICTURE_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_filename(filename: str | None) -> str:
    name = os.path.basename(filename or "").strip()
    name = _UNSAFE_CHARS.sub("_", name).lstrip(".")
    return name or "document"


def _write_bytes(path: str, data: bytes) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(data)


async def _read_limited(file: UploadFile, max_bytes: int) -> bytes:
    data = await file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"El archivo supera el tamaño máximo de {max_bytes // (1024 * 1024)} MB.",
        )
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="El archivo está vacío.")
    return data


async def store_upload(relative_path: str, data: bytes) -> str:
    """Writes data under STATIC_DIR and returns the public /static URL."""
    target = os.path.join(STATIC_DIR, relative_path)
    await asyncio.to_thread(_write_bytes, target, data)
    logger.info("[storage] stored %d bytes at %s", len(data), relative_path)
    return f"/static/{relative_path}"


def _remove_pictures(user_id: int) -> None:
    for extension in PICTURE_EXTENSIONS.values():
        path = os.path.join(STATIC_DIR, PROFILE_PICTURES, f"{user_id}{extension}")
        if os.path.exists(path):
            os.remove(path)


async def save_profile_picture(user_id: int, file: UploadFile) -> str:
    extension = PICTURE_EXTENSIONS.get(file.content_type or "")
    if extension is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="La foto de perfil debe ser una imagen JPG, PNG, WEBP o GIF.",
        )
    data = await _read_limited(file, MAX_PICTURE_BYTES)
    # one picture per user, keyed by id; a new upload replaces the old one
    await asyncio.to_thread(_remove_pictures, user_id)
    return await store_upload(f"{PROFILE_PICTURES}/{user_id}{extension}", data)


async def save_verification_document(user_id: int, file: UploadFile) -> str:
    if file.content_type not in DOCUMENT_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="El documento debe ser un PDF o una imagen.",
        )
    data = await _read_limited(file, MAX_DOCUMENT_BYTES)
    return await store_upload(f"{VERIFICATION_DOCUMENTS}/{user_id}/{safe_filename(file.filename)}", data)
