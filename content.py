"""
Content helpers: slugs, reading time and the query layer used by every
listing endpoint.

A ContentQuery can be evaluated two ways. "native" hands the filter and sort
to Mongo. "scan" fetches the whole collection and does the work in
memory, which needs no indexes on the store. Both return the same documents.
"""

import logging
import math
import re
from datetime import datetime, timezone
from itertools import islice
from typing import Any, Dict, Iterable, List, Optional, Type

from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database

from database import iter_parsed, object_id, parse_documents

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 200
EXCERPT_LENGTH = 150

SCAN = "scan"
NATIVE = "native"
QUERY_MODES = (SCAN, NATIVE)

SEARCH_FIELDS = ("title", "excerpt", "content", "tags")

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def slugify(title: str) -> str:
    return _NON_ALNUM.sub("-", title.lower()).strip("-")


def reading_time(text: str) -> int:
    """Minutes needed to read text at 200 words per minute, never less than 1."""
    words = len(text.strip().split()) or 1
    return math.ceil(words / WORDS_PER_MINUTE)


def default_excerpt(content: str) -> str:
    return content[:EXCERPT_LENGTH] + "..."


def timestamp_key(value: Any) -> float:
    # Missing or unparseable timestamps sort as the epoch
    if isinstance(value, str):
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return 0.0
    if not isinstance(value, datetime):
        return 0.0
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH).total_seconds()


def _sort_key(field: str):
    def key(doc: dict):
        value = doc.get(field)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        return timestamp_key(value)
    return key


def _value(v):
    return getattr(v, "value", v)


class ContentQuery(BaseModel):
    """Conjunctive filter, sort and page window over one collection."""

    status: Optional[str] = None
    category: Optional[str] = None
    content_type: Optional[str] = None
    author_id: Optional[str] = None
    post_id: Optional[str] = None
    featured: Optional[bool] = None
    search: Optional[str] = None
    exclude_id: Optional[str] = None
    since: Optional[datetime] = None
    sort_field: str = "created_at"
    descending: bool = True
    skip: int = 0
    limit: Optional[int] = None

    def equality(self) -> Dict[str, Any]:
        pairs = {
            "status": _value(self.status),
            "category": self.category,
            "content_type": _value(self.content_type),
            "author_id": self.author_id,
            "post_id": self.post_id,
            "featured": self.featured,
        }
        return {k: v for k, v in pairs.items() if v is not None}

    def matches(self, doc: dict) -> bool:
        for field, expected in self.equality().items():
            if doc.get(field) != expected:
                return False
        if self.exclude_id and str(doc.get("id", doc.get("_id"))) == self.exclude_id:
            return False
        if self.since is not None and timestamp_key(doc.get(self.sort_field)) < timestamp_key(self.since):
            return False
        if self.search:
            needle = self.search.lower()
            if not any(needle in text.lower() for text in _searchable(doc)):
                return False
        return True

    def to_mongo(self) -> Dict[str, Any]:
        filt: Dict[str, Any] = dict(self.equality())
        if self.exclude_id:
            filt["_id"] = {"$ne": object_id(self.exclude_id)}
        if self.since is not None:
            filt[self.sort_field] = {"$gte": self.since}
        if self.search:
            pattern = re.escape(self.search)
            filt["$or"] = [{f: {"$regex": pattern, "$options": "i"}} for f in SEARCH_FIELDS]
        return filt


def _searchable(doc: dict) -> Iterable[str]:
    for field in SEARCH_FIELDS:
        value = doc.get(field)
        if isinstance(value, str):
            yield value
        elif isinstance(value, list):
            for item in value:
                if isinstance(item, str):
                    yield item


def filter_documents(docs: Iterable[dict], query: ContentQuery) -> List[dict]:
    return [d for d in docs if query.matches(d)]


def sort_documents(docs: Iterable[dict], field: str = "created_at", descending: bool = True) -> List[dict]:
    # sorted() is stable, so ties keep fetch order
    return sorted(docs, key=_sort_key(field), reverse=descending)


def page_documents(docs: List[dict], query: ContentQuery) -> List[dict]:
    stop = query.skip + query.limit if query.limit else None
    return docs[query.skip:stop]


def apply_query(docs: Iterable[dict], query: ContentQuery) -> List[dict]:
    """Filter, sort, then page. Truncating earlier would undercount."""
    return page_documents(sort_documents(filter_documents(docs, query), query.sort_field, query.descending), query)


def _matching(
    db: Database,
    collection_name: str,
    query: ContentQuery,
    model: Optional[Type[BaseModel]],
    mode: str,
) -> Iterable[dict]:
    # Every valid match in order, before paging
    if mode not in QUERY_MODES:
        raise ValueError(f"Unknown query mode: {mode}")

    if mode == SCAN:
        docs = list(db[collection_name].find({}))
        if model is not None:
            docs = parse_documents(model, docs)
        results = sort_documents(filter_documents(docs, query), query.sort_field, query.descending)
        logger.debug("Scanned %d %s documents, matched %d", len(docs), collection_name, len(results))
        return results

    cursor = db[collection_name].find(query.to_mongo()).sort(
        query.sort_field, DESCENDING if query.descending else ASCENDING
    )
    if model is None:
        return cursor
    # Validation drops documents, so paging has to wait until after it
    return iter_parsed(model, cursor)


def run_query(
    db: Database,
    collection_name: str,
    query: ContentQuery,
    model: Optional[Type[BaseModel]] = None,
    mode: str = NATIVE,
) -> List[dict]:
    if mode == NATIVE and model is None:
        cursor = db[collection_name].find(query.to_mongo()).sort(
            query.sort_field, DESCENDING if query.descending else ASCENDING
        ).skip(query.skip)
        if query.limit:
            cursor = cursor.limit(query.limit)
        return list(cursor)

    stop = query.skip + query.limit if query.limit else None
    return list(islice(_matching(db, collection_name, query, model, mode), query.skip, stop))


def count_query(
    db: Database,
    collection_name: str,
    query: ContentQuery,
    model: Optional[Type[BaseModel]] = None,
    mode: str = NATIVE,
) -> int:
    """Number of documents the query matches, ignoring skip and limit."""
    if mode == NATIVE and model is None:
        return db[collection_name].count_documents(query.to_mongo())
    return sum(1 for _ in _matching(db, collection_name, query, model, mode))
