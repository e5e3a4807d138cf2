import os
import tempfile

# Configuration is read at import time, so the environment has to be ready first
_DB_DIR = tempfile.mkdtemp(prefix="momcare-tests-")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(_DB_DIR, "test.db")
os.environ["CORS_ORIGINS"] = "http://localhost:5173"
os.environ["GROQ_API_KEY"] = "test-key"

import httpx
import pytest
from fastapi.testclient import TestClient

from momcare.database import Base, engine
from momcare.fetch import get_http_client
from momcare.main import app

ADMIN = {"adminEmail": "admin@vnx.com", "adminPassword": "admin123"}


class FakeUpstream:
    """
    Stands in for every third-party site. Routes are keyed by (host, path);
    a route is either an httpx.Response or a callable taking the request.
    Anything unrouted answers 503.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []

    def route(self, url, response):
        parsed = httpx.URL(url)
        self.routes[(parsed.host, parsed.path)] = response

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        target = self.routes.get((request.url.host, request.url.path))
        if target is None:
            return httpx.Response(503, text="unavailable")
        if callable(target):
            return target(request)
        return target

    def called(self, host):
        return [c for c in self.calls if c.url.host == host]


async def _reset_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def client(upstream):
    async def _fake_http_client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler)) as c:
            yield c

    app.dependency_overrides[get_http_client] = _fake_http_client
    with TestClient(app) as c:
        yield c
        c.portal.call(_reset_db)
    app.dependency_overrides.clear()


def make_doctor(client, email="meera@vnx.com", name="Dr. Meera", password="secret1"):
    res = client.post("/api/auth/admin/create-doctor", json={
        **ADMIN, "name": name, "email": email, "password": password, "specialty": "Obstetrics",
    })
    assert res.status_code == 201, res.text
    return res.json()["doctor"]


def make_patient(client, doctor_id, email="anu@vnx.com", name="Anu", password="secret2",
                 start="2025-01-01"):
    res = client.post("/api/auth/doctor/create-patient", json={
        "doctorId": doctor_id, "name": name, "email": email, "password": password,
        "age": 27, "pregnancyStartDate": start, "phone": "9876543210",
    })
    assert res.status_code == 201, res.text
    return res.json()["patient"]


@pytest.fixture
def doctor(client):
    return make_doctor(client)


@pytest.fixture
def patient(client, doctor):
    return make_patient(client, doctor["id"])
