"""
MongoDB access for CivicFix.

`db` is None when DATABASE_URL is not configured; routes obtain the handle
through the `get_db` dependency so tests can swap in another database.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from config import DATABASE_NAME, DATABASE_URL
from errors import Internal, ValidationError

logger = logging.getLogger(__name__)

client: Optional[MongoClient] = MongoClient(DATABASE_URL) if DATABASE_URL else None
db: Optional[Database] = client[DATABASE_NAME] if client is not None else None


def get_db() -> Database:
    if db is None:
        raise Internal("Database not configured")
    return db


def ensure_indexes(database: Database) -> None:
    """Create the uniqueness constraints the services rely on."""
    database["user"].create_index([("email", ASCENDING)], unique=True)
    database["volunteer"].create_index([("contact", ASCENDING)], unique=True)
    # one assignment per report, enforced by the store itself
    database["volunteer_assignment"].create_index([("issueId", ASCENDING)], unique=True)
    database["report"].create_index([("user", ASCENDING), ("createdAt", ASCENDING)])
    logger.info("Indexes ensured on database %s", database.name)


def now() -> datetime:
    return datetime.now(timezone.utc)


def create_document(database: Database, collection_name: str, data: dict) -> str:
    """Insert a document stamped with createdAt/updatedAt and return its id."""
    stamp = now()
    doc = dict(data)
    doc.setdefault("createdAt", stamp)
    doc["updatedAt"] = stamp
    result = database[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(database: Database, collection_name: str, filter_dict: Optional[dict] = None,
                  limit: Optional[int] = None) -> list:
    """Fetch documents newest first."""
    cursor = database[collection_name].find(filter_dict or {}).sort([("createdAt", -1), ("_id", -1)])
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def to_object_id(value: Any, label: str = "id") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise ValidationError(f"Invalid {label}", errors=[{"field": label, "message": f"Invalid {label}"}])
    return ObjectId(value)


def as_datetime(value: date) -> datetime:
    """BSON has no date type; store dates as midnight UTC."""
    if isinstance(value, datetime):
        return value
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


def serialize(value: Any) -> Any:
    """Convert a stored document into JSON-friendly output (`_id` -> `id`)."""
    if isinstance(value, dict):
        out = {}
        for k, v in value.items():
            if k == "_id":
                out["id"] = str(v)
            else:
                out[k] = serialize(v)
        return out
    if isinstance(value, list):
        return [serialize(v) for v in value]
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    return value
