"""
Document store access for the admin console.

Thin helpers over pymongo. Every collection is a top-level collection and
documents are exposed to clients with a string ``id`` in place of ``_id``.
"""
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import MongoClient

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "catalog_admin")

COLL_ADMINS = "admins"
COLL_ARTISANS = "artisans"
COLL_PRODUCTS = "products"
COLL_CATEGORIES = "categories"
COLL_GENRES = "genres"
COLL_BANNERS = "banners"
COLL_SALES = "sales"
COLL_DELIVERY = "delivery"
COLL_ORDERS = "orders"

db = None
if DATABASE_URL:
    _client = MongoClient(DATABASE_URL)
    db = _client[DATABASE_NAME]


def db_ready() -> bool:
    return db is not None


def now() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(doc_id: str) -> Union[ObjectId, str]:
    """Store ids are ObjectIds except for fixed singleton ids."""
    if ObjectId.is_valid(doc_id):
        return ObjectId(doc_id)
    return doc_id


def to_public(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return None
    doc = dict(doc)
    if "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    return doc


def _as_dict(data: Union[BaseModel, dict]) -> dict:
    if isinstance(data, BaseModel):
        return data.model_dump()
    return dict(data)


def create_document(collection_name: str, data: Union[BaseModel, dict], stamp: bool = True) -> str:
    data_dict = _as_dict(data)
    if stamp:
        data_dict.setdefault("created_at", now())
    result = db[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    limit: Optional[int] = None,
    sort: Optional[List[tuple]] = None,
) -> List[dict]:
    cursor = db[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def get_document(collection_name: str, doc_id: str) -> Optional[dict]:
    return db[collection_name].find_one({"_id": to_object_id(doc_id)})


def update_document(collection_name: str, doc_id: str, updates: Dict[str, Any]) -> bool:
    """Merge ``updates`` into an existing document. False when it does not exist."""
    result = db[collection_name].update_one({"_id": to_object_id(doc_id)}, {"$set": updates})
    return result.matched_count > 0


def upsert_document(collection_name: str, doc_id: str, data: Dict[str, Any]) -> bool:
    """Set-with-merge at a fixed id.

    ``created_at`` is written only when the document is inserted, ``updated_at``
    on every call. Returns True when the document already existed.
    """
    stamp = now()
    result = db[collection_name].update_one(
        {"_id": doc_id},
        {"$set": {**data, "updated_at": stamp}, "$setOnInsert": {"created_at": stamp}},
        upsert=True,
    )
    return result.matched_count > 0


def delete_document(collection_name: str, doc_id: str) -> bool:
    result = db[collection_name].delete_one({"_id": to_object_id(doc_id)})
    return result.deleted_count > 0


def count_documents(collection_name: str, filter_dict: Optional[Dict[str, Any]] = None) -> int:
    return db[collection_name].count_documents(filter_dict or {})
