from __future__ import annotations
import asyncio
import json
import logging
from functools import lru_cache
from typing import Dict, List

from openai import OpenAI, OpenAIError

from psyconnect.config import OPENAI_MODEL, OPENAI_TIMEOUT_S, SPECIALTY_SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class SpecialtySuggestionError(RuntimeError):
    """The model call failed or its answer could not be turned into a known specialty."""


@lru_cache(maxsize=1)
def get_client() -> OpenAI:
    return OpenAI()  # OPENAI_API_KEY is read from the environment


def build_messages(problem: str, specialties: List[str]) -> List[Dict[str, str]]:
    specialty_lines = "\n".join(f"- {s}" for s in specialties)
    return [
        {"role": "system", "content": SPECIALTY_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": (
                "Debes elegir exactamente una especialidad de la siguiente lista de especialidades disponibles:\n"
                f"{specialty_lines}\n\n"
                f"Problema del usuario: \"{problem}\"\n\n"
                "Basado en el problema del usuario, devuelve un objeto JSON con dos claves:\n"
                "1. \"specialty\": El nombre exacto de la especialidad recomendada de la lista.\n"
                "2. \"reasoning\": Una explicación breve y amigable de una sola frase para la recomendación, "
                "dirigida al usuario. Empieza con \"¡Listo! \". Por ejemplo: \"¡Listo! Te recomiendo "
                "'Terapia de Pareja y Familia' porque mencionaste que tienes problemas con tu cónyuge.\"\n\n"
                "Responde únicamente con el objeto JSON, sin texto adicional ni formato de código."
            ),
        },
    ]


def extract_json_object(raw_text: str | None) -> dict:
    """Strips code fences and anything outside the outermost braces, then parses."""
    if not raw_text:
        raise json.JSONDecodeError("model returned empty content", "", 0)

    text = raw_text.strip()
    if text.startswith("```json"):
        text = text[7:].strip()
    elif text.startswith("```"):
        text = text[3:].strip()
    if text.endswith("```"):
        text = text[:-3].strip()

    json_start = text.find("{")
    json_end = text.rfind("}")
    if json_start != -1 and json_end != -1 and json_end > json_start:
        text = text[json_start:json_end + 1]

    parsed = json.loads(text)
    if not isinstance(parsed, dict):
        raise json.JSONDecodeError("model output is not a JSON object", text, 0)
    return parsed


def match_specialty(candidate: str, specialties: List[str]) -> str | None:
    """Maps the model's label back to the exact stored label (case and spacing insensitive)."""
    wanted = " ".join(candidate.split()).casefold()
    for name in specialties:
        if " ".join(name.split()).casefold() == wanted:
            return name
    return None


def parse_suggestion(raw_text: str | None, specialties: List[str]) -> Dict[str, str]:
    try:
        data = extract_json_object(raw_text)
    except json.JSONDecodeError as e:
        raise SpecialtySuggestionError(f"unparseable model output: {e}") from e

    specialty = data.get("specialty")
    reasoning = data.get("reasoning")
    if not isinstance(specialty, str) or not isinstance(reasoning, str):
        raise SpecialtySuggestionError("model output is missing specialty or reasoning")

    matched = match_specialty(specialty, specialties)
    if matched is None:
        raise SpecialtySuggestionError(f"model suggested an unknown specialty: {specialty!r}")
    return {"specialty": matched, "reasoning": reasoning.strip()}


async def request_completion(messages: List[Dict[str, str]]) -> str | None:
    def _call():
        return get_client().chat.completions.create(
            model=OPENAI_MODEL,
            messages=messages,
            response_format={"type": "json_object"},
            timeout=OPENAI_TIMEOUT_S,
        )
    resp = await asyncio.to_thread(_call)
    return resp.choices[0].message.content


async def suggest_specialty(problem: str, specialties: List[str]) -> Dict[str, str]:
    """
    One prompt-and-parse round trip: free text in, {"specialty", "reasoning"} out.
    The specialty is always one of `specialties`. No retry, no fallback ranking.
    """
    if not specialties:
        raise SpecialtySuggestionError("no specialties available to choose from")

    try:
        raw = await request_completion(build_messages(problem, specialties))
    except (OpenAIError, IndexError, AttributeError) as e:
        logger.exception("[openai_client] specialty suggestion call failed")
        raise SpecialtySuggestionError(f"OpenAI error: {e}") from e

    return parse_suggestion(raw, specialties)
