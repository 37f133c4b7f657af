# backend/psyconnect/config.py
import os
from dotenv import load_dotenv

load_dotenv(dotenv_path=os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), ".env"))


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

ASYNC_DB_URL = os.getenv("ASYNC_DATABASE_URL", "sqlite+aiosqlite:///./psyconnect.db")

SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# Single moderator account; everything under /admin compares against it
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@connect.udp.cl").strip().lower()

OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_TIMEOUT_S = float(os.getenv("OPENAI_TIMEOUT_S", "15"))

KAFKA_ENABLED = _get_bool(os.getenv("KAFKA_ENABLED"), default=False)
KAFKA_BOOTSTRAP = os.getenv("KAFKA_BOOTSTRAP", "redpanda:9092")
KAFKA_TOPIC_EVENTS = os.getenv("KAFKA_TOPIC_EVENTS", "psyconnect.events")

STATIC_DIR = os.getenv(
    "STATIC_DIR",
    os.path.join(os.path.dirname(os.path.abspath(__file__)), "static"),
)

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if origin.strip()
]

PLACEHOLDER_IMAGE_URL = "https://placehold.co/200x200/EBF4FF/76A9FA?text={initial}"

SPECIALTY_SYSTEM_PROMPT = """
Eres un sistema experto para una app de salud mental. Tu objetivo es recomendar
la mejor especialidad para un usuario basado en la descripción de su problema.
Reglas:
- Debes elegir exactamente una especialidad de la lista entregada, copiando su nombre tal cual.
- No entregues diagnósticos médicos.
- Responde únicamente con un objeto JSON, sin texto adicional ni formato de código.
"""


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and SECRET_KEY == "change-me":
        raise RuntimeError("SECRET_KEY must be set in production.")
