from datetime import datetime, timezone

import mongomock
import pytest
from bson import ObjectId

import database


@pytest.fixture
def db(mongo):
    return database.connect_to_db("mongodb://localhost:27017", "anime_test")


def test_get_db_before_connect_fails(monkeypatch):
    monkeypatch.setattr(database, "_db", None)
    with pytest.raises(database.DatabaseNotInitialized):
        database.get_db()


@pytest.mark.parametrize("uri,name", [("", "anime_test"), ("mongodb://localhost", "")])
def test_connect_requires_uri_and_name(uri, name):
    with pytest.raises(ValueError):
        database.connect_to_db(uri, name)


def test_connect_is_idempotent(monkeypatch):
    calls = []
    client = mongomock.MongoClient()

    def factory(*args, **kwargs):
        calls.append(args)
        return client

    monkeypatch.setattr(database, "MongoClient", factory)
    try:
        first = database.connect_to_db("mongodb://localhost:27017", "anime_test")
        second = database.connect_to_db("mongodb://localhost:27017", "anime_test")
        assert first is second
        assert first.name == "anime_test"
        assert len(calls) == 1
    finally:
        database.close_db()


def test_failed_ping_leaves_gateway_uninitialized(monkeypatch):
    class Admin:
        def command(self, name):
            raise ConnectionError("server selection timed out")

    class DeadClient:
        admin = Admin()
        closed = False

        def close(self):
            DeadClient.closed = True

    monkeypatch.setattr(database, "MongoClient", lambda *a, **kw: DeadClient())
    with pytest.raises(ConnectionError):
        database.connect_to_db("mongodb://localhost:27017", "anime_test")
    assert DeadClient.closed
    with pytest.raises(database.DatabaseNotInitialized):
        database.get_db()


def test_close_resets_state(db):
    database.close_db()
    with pytest.raises(database.DatabaseNotInitialized):
        database.collection("anime")
    # closing twice is harmless
    database.close_db()


def test_create_document_stamps_timestamps(db):
    oid = database.create_document("anime", {"title": "Akira"})
    assert isinstance(oid, ObjectId)
    doc = database.get_document("anime", oid)
    assert doc["title"] == "Akira"
    assert doc["createdAt"] == doc["updatedAt"]


def test_get_documents_returns_all(db):
    database.create_document("manga", {"title": "A"})
    database.create_document("manga", {"title": "B"})
    assert sorted(d["title"] for d in database.get_documents("manga")) == ["A", "B"]
    assert database.get_documents("users") == []


def test_replace_document_overwrites_and_keeps_created_at(db, monkeypatch):
    created = datetime(2024, 1, 1, tzinfo=timezone.utc)
    replaced = datetime(2024, 6, 1, tzinfo=timezone.utc)
    monkeypatch.setattr(database, "_now", lambda: created)
    oid = database.create_document("anime", {"title": "Old", "rating": 7.0, "studio": "Bones"})

    monkeypatch.setattr(database, "_now", lambda: replaced)
    ok = database.replace_document("anime", oid, {"title": "New"})
    assert ok

    doc = database.get_document("anime", oid)
    assert doc["title"] == "New"
    assert "rating" not in doc
    assert "studio" not in doc
    assert doc["createdAt"].replace(tzinfo=timezone.utc) == created
    assert doc["updatedAt"].replace(tzinfo=timezone.utc) == replaced


def test_replace_document_drops_fields_outside_the_payload(db):
    oid = database.collection("anime").insert_one(
        {"title": "Old", "legacyScore": 99, "createdAt": datetime(2024, 1, 1)}
    ).inserted_id

    assert database.replace_document("anime", oid, {"title": "New", "genres": ["Drama"]})

    doc = database.get_document("anime", oid)
    assert set(doc) == {"_id", "title", "genres", "createdAt", "updatedAt"}
    assert doc["genres"] == ["Drama"]


def test_replace_document_stores_dollar_strings_verbatim(db):
    oid = database.create_document("anime", {"title": "Old"})
    database.replace_document("anime", oid, {"title": "$title", "synopsis": "$$ROOT"})

    doc = database.get_document("anime", oid)
    assert doc["title"] == "$title"
    assert doc["synopsis"] == "$$ROOT"


def test_replace_and_delete_missing_document(db):
    missing = ObjectId("ffffffffffffffffffffffff")
    assert database.replace_document("anime", missing, {"title": "X"}) is False
    assert database.delete_document("anime", missing) is False


def test_delete_document(db):
    oid = database.create_document("users", {"email": "a@example.com"})
    assert database.delete_document("users", oid) is True
    assert database.get_document("users", oid) is None


def test_serialize_doc():
    oid = ObjectId()
    doc = {"_id": oid, "title": "X", "createdAt": datetime(2024, 1, 1, 12, 30)}
    out = database.serialize_doc(doc)
    assert out == {"id": str(oid), "title": "X", "createdAt": "2024-01-01T12:30:00+00:00"}
    # the stored document is left alone
    assert "_id" in doc
