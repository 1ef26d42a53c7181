"""
MongoDB access for the storefront.

``db`` is created once from settings; route handlers receive it through
the ``get_db`` dependency so tests can swap in another database.
"""

import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from config import get_settings
from errors import StoreError
from helpers import isoformat, utcnow

logger = logging.getLogger(__name__)

PRODUCTS = "products"
ORDERS = "orders"
USERS = "users"
RATE_LIMITS = "rate_limits"

_settings = get_settings()
client: Optional[MongoClient] = MongoClient(_settings.database_url) if _settings.database_url else None
db: Optional[Database] = client[_settings.database_name] if client is not None else None


def get_db() -> Database:
    if db is None:
        raise StoreError("unavailable", "Database not configured")
    return db


def to_dict(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not doc:
        return doc
    d = dict(doc)
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    return d


def object_id(id_str: str) -> Optional[ObjectId]:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        return None


def find_by_id(database: Database, collection_name: str, id_str: str) -> Optional[Dict[str, Any]]:
    """Fetch one document; an id that is not a valid ObjectId is simply not found."""
    oid = object_id(id_str)
    if oid is None:
        return None
    return database[collection_name].find_one({"_id": oid})


def create_document(database: Database, collection_name: str, data: Dict[str, Any]) -> str:
    doc = dict(data)
    now = isoformat(utcnow())
    doc.setdefault("createdAt", now)
    doc.setdefault("updatedAt", now)
    result = database[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(database: Database, collection_name: str, filter_dict: Optional[Dict[str, Any]] = None,
                  limit: Optional[int] = None) -> List[Dict[str, Any]]:
    cursor = database[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return [to_dict(d) for d in cursor]


def ensure_indexes(database: Database) -> None:
    database[USERS].create_index([("email", ASCENDING)], unique=True)
    database[ORDERS].create_index([("orderId", ASCENDING)])
    database[ORDERS].create_index([("customerInfo.email", ASCENDING)])
    logger.info("Indexes ensured on %s", database.name)
