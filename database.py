"""
Database helpers

One MongoClient per process, handed to endpoints through the get_db
dependency. Collection names match the ones the public site and the admin
back-office read from.
"""

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, Iterable, Iterator, List, Optional, Type, TypeVar, Union

from bson import ObjectId
from fastapi import HTTPException
from pydantic import BaseModel, ValidationError
from pymongo import MongoClient
from pymongo.database import Database

from config import get_settings

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

POSTS = "posts"
COMMENTS = "comments"
EVENTS = "events"
TESTIMONIES = "testimonies"
PRAYER_REQUESTS = "prayerRequests"
CONTACT_MESSAGES = "contactMessages"
SUBSCRIBERS = "subscribers"
USERS = "users"
CATEGORIES = "categories"

COLLECTIONS = [
    POSTS,
    COMMENTS,
    EVENTS,
    TESTIMONIES,
    PRAYER_REQUESTS,
    CONTACT_MESSAGES,
    SUBSCRIBERS,
    USERS,
    CATEGORIES,
]

# Never returned to clients
PRIVATE_FIELDS = ("password_hash", "liked_by")


@lru_cache()
def get_client() -> MongoClient:
    settings = get_settings()
    logger.info("Connecting to MongoDB database %s", settings.DATABASE_NAME)
    return MongoClient(settings.DATABASE_URL, tz_aware=True)


def get_db() -> Database:
    return get_client()[get_settings().DATABASE_NAME]


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def create_document(db: Database, collection_name: str, data: Union[BaseModel, dict]) -> str:
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)
    data_dict.setdefault("created_at", now_utc())
    result = db[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(
    db: Database,
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    limit: Optional[int] = None,
) -> List[dict]:
    cursor = db[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def parse_document(model: Type[M], doc: dict) -> M:
    d = dict(doc)
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    return model.model_validate(d)


def iter_parsed(model: Type[M], docs: Iterable[dict]) -> Iterator[dict]:
    """Validate raw documents one at a time, dropping the ones that don't fit."""
    for doc in docs:
        try:
            yield parse_document(model, doc).model_dump()
        except ValidationError as e:
            logger.warning(
                "Skipping malformed %s document %s (%d errors)",
                model.__name__, doc.get("_id", doc.get("id")), e.error_count(),
            )


def parse_documents(model: Type[M], docs: Iterable[dict]) -> List[dict]:
    return list(iter_parsed(model, docs))


def object_id(id: str) -> ObjectId:
    if not ObjectId.is_valid(id):
        raise HTTPException(status_code=400, detail="Invalid id")
    return ObjectId(id)


def get_or_404(db: Database, collection_name: str, id: str, detail: str = "Not found") -> dict:
    doc = db[collection_name].find_one({"_id": object_id(id)})
    if not doc:
        raise HTTPException(status_code=404, detail=detail)
    return doc


# Utility to convert Mongo docs to JSON safe

def serialize_doc(doc):
    if not doc:
        return doc
    d = dict(doc)
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    # Convert datetimes
    for k, v in list(d.items()):
        if isinstance(v, datetime):
            if v.tzinfo is None:
                v = v.replace(tzinfo=timezone.utc)
            d[k] = v.astimezone(timezone.utc).isoformat()
    for k in PRIVATE_FIELDS:
        d.pop(k, None)
    return d
