from datetime import datetime

import mongomock
import pytest
from fastapi.testclient import TestClient

import auth
import database
from main import app

ADMIN_EMAIL = "root@example.com"


@pytest.fixture
def store(monkeypatch):
    db = mongomock.MongoClient().catalog_admin
    monkeypatch.setattr(database, "db", db)
    auth.SESSIONS.clear()
    yield db
    auth.SESSIONS.clear()


@pytest.fixture
def client(store):
    return TestClient(app)


@pytest.fixture
def headers(client, store):
    store["admins"].insert_one({"name": "Root", "email": ADMIN_EMAIL, "created_at": datetime(2024, 1, 1)})
    response = client.post("/api/admin/login", json={"email": ADMIN_EMAIL})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def artisan_id(store):
    result = store["artisans"].insert_one({
        "name": "Meera",
        "image": "https://cdn.example.com/meera.jpg",
        "address": "Srinagar",
        "phone": "9876543210",
        "story": "<p>Papier-mache since 1990</p>",
        "created_at": datetime(2024, 1, 2),
    })
    return str(result.inserted_id)


@pytest.fixture
def category_id(store):
    result = store["categories"].insert_one({
        "category_name": "Pottery",
        "category_image": "",
        "created_at": datetime(2024, 1, 3),
    })
    return str(result.inserted_id)
