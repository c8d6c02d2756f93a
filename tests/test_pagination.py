from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException

from pagination import fetch_page, slice_page, total_pages


@pytest.fixture
def artisans(store):
    base = datetime(2024, 3, 1)
    docs = []
    for i in range(25):
        # every third pair shares a timestamp so the id tie-break matters
        created = base + timedelta(minutes=i - (i % 3 == 1))
        docs.append({"name": f"Artisan {i:02d}", "created_at": created})
    store["artisans"].insert_many(docs)
    ordered = sorted(store["artisans"].find({}), key=lambda d: (d["created_at"], d["_id"]), reverse=True)
    return [str(d["_id"]) for d in ordered]


def ids(page):
    return [item["id"] for item in page.items]


def test_forward_pages_are_disjoint_and_contiguous(artisans):
    seen = []
    page = fetch_page("artisans", "created_at", page_size=10)
    sizes = []
    while True:
        seen.extend(ids(page))
        sizes.append(len(page.items))
        if page.next_cursor is None:
            break
        page = fetch_page("artisans", "created_at", page_size=10, start_after=page.next_cursor)
    assert sizes == [10, 10, 5]
    assert seen == artisans
    assert page.total_pages == 3


def test_last_full_page_has_no_next_cursor(artisans):
    page = fetch_page("artisans", "created_at", page_size=5)
    pages = 1
    while page.next_cursor is not None:
        page = fetch_page("artisans", "created_at", page_size=5, start_after=page.next_cursor)
        pages += 1
        assert len(page.items) == 5
    assert pages == 5
    assert ids(page) == artisans[20:]


def test_end_before_returns_previous_page(artisans):
    first = fetch_page("artisans", "created_at", page_size=10)
    second = fetch_page("artisans", "created_at", page_size=10, start_after=first.next_cursor)
    back = fetch_page("artisans", "created_at", page_size=10, end_before=second.prev_cursor)
    assert ids(second) == artisans[10:20]
    assert ids(back) == ids(first)


def test_page_reports_totals(artisans):
    page = fetch_page("artisans", "created_at", page_size=7)
    assert page.total == 25
    assert page.total_pages == 4
    assert page.prev_cursor is None


def test_search_supersedes_cursors(artisans):
    first = fetch_page("artisans", "created_at", page_size=10)
    page = fetch_page("artisans", "created_at", page_size=10, start_after=first.next_cursor,
                      search="artisan 1")
    names = [item["name"] for item in page.items]
    assert sorted(names) == [f"Artisan {i}" for i in range(10, 20)]
    assert page.next_cursor is None and page.prev_cursor is None
    assert page.search == "artisan 1"


def test_blank_search_returns_first_page(artisans):
    page = fetch_page("artisans", "created_at", page_size=10, search="   ")
    assert ids(page) == artisans[:10]
    assert page.search is None


def test_unknown_cursor_rejected(artisans):
    with pytest.raises(HTTPException) as exc:
        fetch_page("artisans", "created_at", start_after="0123456789abcdef01234567")
    assert exc.value.status_code == 400


def test_empty_collection_has_one_page(store):
    page = fetch_page("banners", "createdAt")
    assert page.items == []
    assert page.total_pages == 1
    assert page.next_cursor is None


def test_total_pages():
    assert total_pages(0, 10) == 1
    assert total_pages(10, 10) == 1
    assert total_pages(11, 10) == 2


def test_slice_page_filters_and_clamps():
    rows = [{"id": str(i), "name": f"Shawl {i}" if i % 2 else f"Bowl {i}"} for i in range(20)]
    result = slice_page(rows, page=2, search="shawl")
    assert result["total"] == 10
    assert result["total_pages"] == 2
    assert [r["id"] for r in result["items"]] == ["17", "19"]
    assert slice_page(rows, page=99)["page"] == 3
    assert slice_page(rows, page=0)["page"] == 1
