"""
MongoDB access for the chat app.

`db` is created from DATABASE_URL / DATABASE_NAME at import time and stays None
when no connection string is configured. Helpers look it up on every call so
it can be swapped (tests patch `database.db`).
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel
from pymongo import MongoClient

import config
from errors import InternalError

logger = logging.getLogger(__name__)

client: Optional[MongoClient] = None
db = None

if config.DATABASE_URL:
    client = MongoClient(config.DATABASE_URL)
    db = client[config.DATABASE_NAME]
else:
    logger.warning("DATABASE_URL is not set, store is unavailable")


def ensure_indexes() -> None:
    if db is None:
        logger.warning("Skipping index creation, store is unavailable")
        return
    db["user"].create_index("email", unique=True)


def collection(name: str):
    if db is None:
        logger.error("Store access to '%s' without a configured database", name)
        raise InternalError()
    return db[name]


def create_document(collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    """Insert a document, stamping createdAt/updatedAt, and return it with its _id."""
    if isinstance(data, BaseModel):
        doc = data.model_dump(exclude_none=True)
    else:
        doc = dict(data)
    now = datetime.now(timezone.utc)
    doc.setdefault("createdAt", now)
    doc["updatedAt"] = now
    res = collection(collection_name).insert_one(doc)
    doc["_id"] = res.inserted_id
    return doc


def get_documents(
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    projection: Optional[Dict[str, Any]] = None,
    sort: Optional[List[tuple]] = None,
) -> List[Dict[str, Any]]:
    cursor = collection(collection_name).find(filter_dict or {}, projection)
    if sort:
        cursor = cursor.sort(sort)
    return list(cursor)
