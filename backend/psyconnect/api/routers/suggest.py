import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from psyconnect.db import get_db
from psyconnect.schemas import SpecialtySuggestionReq, SpecialtySuggestion
from psyconnect.services.courses import get_available_specialties
from psyconnect.services.openai_client import SpecialtySuggestionError, suggest_specialty

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["ai"])

PROBLEM_REQUIRED = "La descripción del problema es requerida."
INVALID_REQUEST = "La solicitud no es válida."


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post(
    "/suggest-specialty",
    response_model=SpecialtySuggestion,
    openapi_extra={"requestBody": {"content": {"application/json": {
        "schema": SpecialtySuggestionReq.model_json_schema(),
    }}}},
)
async def suggest_specialty_route(request: Request, db: AsyncSession = Depends(get_db)):
    """
    Free-text complaint in, one specialty label plus a short rationale out.
    Every failure, malformed bodies included, comes back as {"error": ...} so the
    client can show it in a toast.
    """
    # a bad body answers 400 {"error"}, never FastAPI's 422
    try:
        req = SpecialtySuggestionReq.model_validate_json(await request.body())
    except ValidationError as e:
        logger.info("[suggest] rejected request body: %s", e.errors()[0].get("type"))
        return error_response(status.HTTP_400_BAD_REQUEST, INVALID_REQUEST)

    problem = (req.problem or "").strip()
    if not problem:
        return error_response(status.HTTP_400_BAD_REQUEST, PROBLEM_REQUIRED)

    specialties = await get_available_specialties(db)
    try:
        result = await suggest_specialty(problem, specialties)
    except SpecialtySuggestionError as e:
        logger.warning("[suggest] %s", e)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "No se pudo obtener la sugerencia de la IA.")
    return SpecialtySuggestion(**result)
