"""
MongoDB access.

One client per process, opened by connect_to_db() during application
startup and closed by close_db() on shutdown. Request handlers reach the
database only through get_db()/collection() and the document helpers below;
they never connect on their own.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.server_api import ServerApi

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT_MS = 10000

_client: Optional[MongoClient] = None
_db: Optional[Database] = None


class DatabaseNotInitialized(RuntimeError):
    pass


def connect_to_db(uri: str, db_name: str) -> Database:
    global _client, _db
    if not uri:
        raise ValueError("MONGODB_URI missing")
    if not db_name:
        raise ValueError("DB_NAME missing")
    if _db is not None:
        return _db

    logger.info("Connecting to MongoDB...")
    client = MongoClient(
        uri,
        server_api=ServerApi("1", strict=True, deprecation_errors=True),
        serverSelectionTimeoutMS=CONNECT_TIMEOUT_MS,
        connectTimeoutMS=CONNECT_TIMEOUT_MS,
    )
    try:
        client.admin.command("ping")
    except Exception:
        client.close()
        raise

    _client = client
    _db = client[db_name]
    logger.info("Connected: %s", _db.name)
    return _db


def get_db() -> Database:
    if _db is None:
        raise DatabaseNotInitialized("DB not initialized. Call connect_to_db first.")
    return _db


def close_db() -> None:
    global _client, _db
    if _client is None:
        return
    logger.info("Closing Mongo client...")
    _client.close()
    _client = None
    _db = None
    logger.info("Mongo client closed.")


def collection(name: str) -> Collection:
    return get_db()[name]


# -----------------------------
# Document helpers
# -----------------------------

def _now() -> datetime:
    return datetime.now(timezone.utc)


def get_documents(collection_name: str) -> List[Dict[str, Any]]:
    return list(collection(collection_name).find({}))


def get_document(collection_name: str, oid: ObjectId) -> Optional[Dict[str, Any]]:
    return collection(collection_name).find_one({"_id": oid})


def create_document(collection_name: str, data: Dict[str, Any]) -> ObjectId:
    now = _now()
    doc = {**data, "createdAt": now, "updatedAt": now}
    result = collection(collection_name).insert_one(doc)
    return result.inserted_id


def replace_document(collection_name: str, oid: ObjectId, data: Dict[str, Any]) -> bool:
    """Overwrite a document with `data`, keeping its _id and createdAt.

    One pipeline update: the stored document is swapped for `data`, so no
    field of the previous version survives, not even ones outside the
    current schema. Values go in as $literal so strings starting with "$"
    are not read as field paths. Returns False when no document has that id.
    """
    new_root: Dict[str, Any] = {name: {"$literal": value} for name, value in data.items()}
    new_root.update({"_id": "$_id", "createdAt": "$createdAt", "updatedAt": {"$literal": _now()}})
    result = collection(collection_name).update_one(
        {"_id": oid}, [{"$replaceRoot": {"newRoot": new_root}}]
    )
    return result.matched_count > 0


def delete_document(collection_name: str, oid: ObjectId) -> bool:
    result = collection(collection_name).delete_one({"_id": oid})
    return result.deleted_count > 0


def serialize_doc(doc: Dict[str, Any]) -> Dict[str, Any]:
    d = {**doc}
    _id = d.pop("_id", None)
    if _id is not None:
        d["id"] = str(_id)
    for k, v in list(d.items()):
        if isinstance(v, datetime):
            if v.tzinfo is None:
                v = v.replace(tzinfo=timezone.utc)
            d[k] = v.astimezone(timezone.utc).isoformat()
    return d
