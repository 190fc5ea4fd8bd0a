"""Shared fixtures: an in-memory MongoDB and a TestClient wired to it."""

from datetime import date, timedelta

import mongomock
import pytest
from fastapi.testclient import TestClient

from auth import ensure_default_admin
from database import ensure_indexes, get_db
from main import app


@pytest.fixture
def db():
    database = mongomock.MongoClient().civicfix_test
    ensure_indexes(database)
    return database


@pytest.fixture
def client(db) -> TestClient:
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


PASSWORD = "s3cret-pass"


@pytest.fixture
def admin_headers(client: TestClient, db) -> dict:
    ensure_default_admin(db, "admin@example.com", PASSWORD, "Asha Admin")
    resp = client.post("/admin/login", json={"email": "admin@example.com", "password": PASSWORD})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['token']}"}


@pytest.fixture
def user_headers(client: TestClient) -> dict:
    resp = client.post("/auth/register", json={
        "name": "Citizen Kane", "email": "citizen@example.com", "password": PASSWORD,
    })
    assert resp.status_code == 201, resp.text
    return {"Authorization": f"Bearer {resp.json()['token']}"}


REPORT_BODY = {
    "title": "Streetlight out",
    "description": "The light at the corner has been dark for a week",
    "wardNumber": "12",
    "category": "Street Lighting",
    "urgency": "high",
    "location": {"type": "Point", "coordinates": [77.59, 12.97], "address": "MG Road corner"},
}


@pytest.fixture
def report_id(client: TestClient, user_headers: dict) -> str:
    resp = client.post("/reports", json=REPORT_BODY, headers=user_headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["report"]["id"]


RAJ = {
    "name": "Raj",
    "skills": ["Electrical"],
    "specializedFields": [],
    "availability": "weekends",
    "contact": "9990001111",
}


@pytest.fixture
def raj_id(client: TestClient, admin_headers: dict) -> str:
    resp = client.post("/volunteers", json=RAJ, headers=admin_headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


def future_date(days: int = 7) -> str:
    return (date.today() + timedelta(days=days)).isoformat()


def assignment_body(report_id: str, volunteer_id: str, **overrides) -> dict:
    body = {
        "issueId": report_id,
        "category": "Electrical",
        "field": "Wiring Repair",
        "mainVolunteer": volunteer_id,
        "subVolunteersCount": 1,
        "estimatedCompletionDate": future_date(),
    }
    body.update(overrides)
    return body
