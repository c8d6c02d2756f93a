"""
Cursor pagination and windowed search over a collection.

Pages are read in descending ``sort_key`` order, ties broken by ``_id``.
``start_after`` moves forward from the last document of the current page and
``end_before`` moves back from its first document. A search term switches to
a bounded window filtered in memory, and cursors are ignored while it is set.
"""
import math
from typing import Any, List, Optional

from fastapi import HTTPException
from pydantic import BaseModel

import database

PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
SEARCH_WINDOW = 100
PICKER_PAGE_SIZE = 8


class Page(BaseModel):
    items: List[dict]
    total: int
    total_pages: int
    page_size: int
    next_cursor: Optional[str] = None
    prev_cursor: Optional[str] = None
    search: Optional[str] = None


def total_pages(count: int, page_size: int) -> int:
    return max(1, math.ceil(count / page_size))


def matches(doc: dict, field: str, term: str) -> bool:
    return term.lower() in str(doc.get(field) or "").lower()


def _cursor_doc(collection_name: str, cursor_id: str) -> dict:
    doc = database.get_document(collection_name, cursor_id)
    if doc is None:
        raise HTTPException(status_code=400, detail="Invalid cursor")
    return doc


def _beyond(sort_key: str, value: Any, doc_id: Any, op: str) -> dict:
    return {"$or": [
        {sort_key: {op: value}},
        {sort_key: value, "_id": {op: doc_id}},
    ]}


def fetch_page(
    collection_name: str,
    sort_key: str,
    page_size: int = PAGE_SIZE,
    start_after: Optional[str] = None,
    end_before: Optional[str] = None,
    search: Optional[str] = None,
    search_field: str = "name",
) -> Page:
    coll = database.db[collection_name]
    total = coll.count_documents({})
    pages = total_pages(total, page_size)
    descending = [(sort_key, -1), ("_id", -1)]

    term = (search or "").strip()
    if term:
        window = list(coll.find({}).sort(descending).limit(SEARCH_WINDOW))
        hits = [database.to_public(d) for d in window if matches(d, search_field, term)]
        return Page(items=hits, total=len(hits), total_pages=total_pages(len(hits), page_size),
                    page_size=page_size, search=term)

    # one extra document tells whether another page follows
    if start_after:
        anchor = _cursor_doc(collection_name, start_after)
        docs = list(coll.find(_beyond(sort_key, anchor.get(sort_key), anchor["_id"], "$lt"))
                    .sort(descending).limit(page_size + 1))
        has_next = len(docs) > page_size
        docs = docs[:page_size]
    elif end_before:
        anchor = _cursor_doc(collection_name, end_before)
        ascending = [(sort_key, 1), ("_id", 1)]
        docs = list(coll.find(_beyond(sort_key, anchor.get(sort_key), anchor["_id"], "$gt"))
                    .sort(ascending).limit(page_size))
        docs.reverse()
        has_next = True
    else:
        docs = list(coll.find({}).sort(descending).limit(page_size + 1))
        has_next = len(docs) > page_size
        docs = docs[:page_size]

    items = [database.to_public(d) for d in docs]
    return Page(
        items=items,
        total=total,
        total_pages=pages,
        page_size=page_size,
        next_cursor=items[-1]["id"] if items and has_next else None,
        prev_cursor=items[0]["id"] if items and (start_after or end_before) else None,
    )


def slice_page(docs: List[dict], page: int, search: Optional[str] = None,
               field: str = "name", page_size: int = PICKER_PAGE_SIZE) -> dict:
    """Page-number slicing over an already-loaded list, used by the pickers."""
    term = (search or "").strip()
    filtered = [d for d in docs if matches(d, field, term)] if term else list(docs)
    pages = total_pages(len(filtered), page_size)
    page = min(max(page, 1), pages)
    start = (page - 1) * page_size
    return {
        "items": filtered[start:start + page_size],
        "page": page,
        "total_pages": pages,
        "total": len(filtered),
    }
