# /backend/psyconnect/main.py

from __future__ import annotations
import logging
import os

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from contextlib import asynccontextmanager

from psyconnect.config import CORS_ORIGINS, LOG_LEVEL, STATIC_DIR, validate_runtime_config
from psyconnect.db import get_db
from psyconnect.api.routers import admin, auth, courses, psychologists, reports, sessions, suggest, user
from psyconnect.kafka import start_kafka, stop_kafka

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    validate_runtime_config()
    await start_kafka()
    try:
        yield
    finally:
        await stop_kafka()

app = FastAPI(
    title="PsyConnect API",
    lifespan=lifespan,
)

# CORS goes first so every route gets the policy
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# uploaded profile pictures and verification documents
os.makedirs(STATIC_DIR, exist_ok=True)
app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")
logger.info("Serving static files from: %s", STATIC_DIR)

app.include_router(auth.router)
app.include_router(user.router)
app.include_router(courses.router)
app.include_router(psychologists.router)
app.include_router(sessions.router)
app.include_router(reports.router)
app.include_router(admin.router)
app.include_router(suggest.router)


@app.get("/health")
async def health():
    return {"ok": True}


@app.get("/db-health")
async def db_health(db: AsyncSession = Depends(get_db)):
    result = await db.execute(text("SELECT 1"))
    return {"db": "ok", "result": result.scalar_one()}
