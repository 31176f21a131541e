import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from config import Settings
from main import create_app

VALID_PAYLOADS = {
    "anime": {
        "title": "Cowboy Bebop",
        "genres": ["Action"],
        "releaseYear": 1998,
        "status": "finished",
    },
    "manga": {
        "title": "One Piece",
        "genres": ["Adventure", "Fantasy"],
        "author": "Eiichiro Oda",
        "chapters": 1100,
        "status": "ongoing",
    },
    "users": {
        "email": "demo@example.com",
        "displayName": "Demo User",
        "role": "user",
    },
    "watchlists": {
        "userId": "6640a2f2d7b3c1a9f0a11223",
        "kind": "anime",
        "refId": "665f6a0f2c3d4b1a9f0a1234",
        "status": "planned",
        "notes": "Start this weekend",
    },
}


@pytest.fixture
def mongo(monkeypatch):
    client = mongomock.MongoClient()
    monkeypatch.setattr(database, "MongoClient", lambda *args, **kwargs: client)
    yield client
    database.close_db()


@pytest.fixture
def settings():
    return Settings(mongodb_uri="mongodb://localhost:27017", db_name="anime_test", auth_disabled=True)


@pytest.fixture
def app(mongo, settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
