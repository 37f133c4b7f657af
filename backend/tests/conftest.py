import asyncio
import os
import tempfile

# settings are read at import time, so the environment goes first
_TMP = tempfile.mkdtemp(prefix="psyconnect-tests-")
os.environ["APP_ENV"] = "test"
os.environ["ASYNC_DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP, 'app.db')}"
os.environ["STATIC_DIR"] = os.path.join(_TMP, "static")
os.environ["ADMIN_EMAIL"] = "admin@connect.udp.cl"
os.environ["KAFKA_ENABLED"] = "false"
os.environ.setdefault("OPENAI_API_KEY", "sk-test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from psyconnect.db import Base, get_db
from psyconnect.main import app
from psyconnect.seed import seed_specialties

PASSWORD = "secreto123"
ADMIN_EMAIL = "admin@connect.udp.cl"


@pytest.fixture()
def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    async def init():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        async with factory() as db:
            await seed_specialties(db)

    asyncio.run(init())
    yield factory
    asyncio.run(engine.dispose())


@pytest.fixture()
def client(session_factory):
    async def override_get_db():
        async with session_factory() as db:
            yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def login(client):
    def _login(email, password=PASSWORD):
        r = client.post("/auth/login", data={"username": email, "password": password})
        assert r.status_code == 200, r.text
        return {"Authorization": f"Bearer {r.json()['access_token']}"}
    return _login


@pytest.fixture()
def admin_headers(client, login):
    r = client.post("/auth/register", json={
        "name": "Moderación", "age": 40, "email": ADMIN_EMAIL, "password": PASSWORD,
    })
    assert r.status_code == 201, r.text
    return login(ADMIN_EMAIL)


@pytest.fixture()
def create_student(client, login):
    """Registers a patient and returns (user json, auth headers)."""
    def _create(name="Camila Rojas", email="camila.rojas@gmail.com", age=27):
        r = client.post("/auth/register", json={
            "name": name, "age": age, "email": email, "password": PASSWORD,
        })
        assert r.status_code == 201, r.text
        return r.json(), login(email)
    return _create


@pytest.fixture()
def create_psychologist(client, login, admin_headers):
    """Registers a psychologist, approves it unless told otherwise, returns (user json, auth headers)."""
    def _create(
        name="Dra. Ana Molina",
        email="ana.molina@mail.udp.cl",
        specialties=("Psicología Clínica", "Trastornos de Ansiedad"),
        hourly_rate=40000,
        approve=True,
    ):
        r = client.post("/auth/register/psychologist", json={
            "name": name,
            "email": email,
            "password": PASSWORD,
            "bio": "Psicóloga clínica con experiencia en ansiedad.",
            "specialties": list(specialties),
            "hourly_rate": hourly_rate,
            "professional_link": "https://www.linkedin.com/in/ana-molina",
        })
        assert r.status_code == 201, r.text
        user = r.json()
        if approve:
            r = client.put(f"/admin/users/{user['id']}/validation",
                           json={"status": "approved"}, headers=admin_headers)
            assert r.status_code == 200, r.text
            user = r.json()
        return user, login(email)
    return _create


@pytest.fixture()
def accepted_session(client, create_student, create_psychologist):
    """A student, an approved psychologist and a session the psychologist already accepted."""
    student, student_headers = create_student()
    tutor, tutor_headers = create_psychologist()
    r = client.post("/sessions", json={"tutor_id": tutor["id"], "course": "Trastornos de Ansiedad"},
                    headers=student_headers)
    assert r.status_code == 201, r.text
    session = r.json()
    r = client.post(f"/sessions/{session['id']}/respond", json={"response": "accepted"}, headers=tutor_headers)
    assert r.status_code == 200, r.text
    return {
        "session": r.json(),
        "student": student,
        "student_headers": student_headers,
        "tutor": tutor,
        "tutor_headers": tutor_headers,
    }
