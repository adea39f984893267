"""
Database helpers

Thin layer over pymongo. The application builds one Database handle at
startup with connect() and passes it around explicitly; there is no
module-level client.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import MongoClient
from pymongo.database import Database

from config import Settings

logger = logging.getLogger(__name__)

USERS = "users"
TASKS = "tasks"


def connect(settings: Settings) -> Database:
    """Return a handle to the configured database. The client connects lazily."""
    client: MongoClient = MongoClient(settings.database_url, tz_aware=True)
    logger.info("Using MongoDB database %r", settings.database_name)
    return client[settings.database_name]


def utcnow_ms() -> datetime:
    """Current UTC time at the millisecond precision BSON dates keep."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Coerce a path/body id to an ObjectId, or None when it is not one."""
    if isinstance(value, ObjectId):
        return value
    # ObjectId(None) would mint a fresh id
    if not isinstance(value, str):
        return None
    try:
        return ObjectId(value)
    except InvalidId:
        return None


def create_document(db: Database, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Insert a document, stamping createdAt when absent, and return it with its _id."""
    doc = dict(data)
    doc.setdefault("createdAt", utcnow_ms())
    res = db[collection].insert_one(doc)
    doc["_id"] = res.inserted_id
    return doc


def get_documents(db: Database, collection: str, filter_dict: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    return list(db[collection].find(filter_dict or {}))


def serialize(doc: Dict[str, Any]) -> Dict[str, Any]:
    """JSON-ready copy of a document: ObjectIds as hex, datetimes as UTC ISO strings."""
    if not doc:
        return doc
    d = {**doc}
    if "_id" in d:
        d["_id"] = str(d["_id"])
        d["id"] = d["_id"]
    for k, v in list(d.items()):
        if isinstance(v, datetime):
            if v.tzinfo is None:
                v = v.replace(tzinfo=timezone.utc)
            d[k] = v.astimezone(timezone.utc).isoformat()
        elif isinstance(v, ObjectId):
            d[k] = str(v)
    return d
