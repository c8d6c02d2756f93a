from datetime import datetime, timedelta

import pytest

import database


@pytest.fixture
def ticking_clock(monkeypatch):
    moments = iter(datetime(2024, 6, 1) + timedelta(minutes=i) for i in range(100))
    monkeypatch.setattr(database, "now", lambda: next(moments))


def test_delivery_defaults_when_missing(client, headers):
    body = client.get("/api/admin/delivery", headers=headers).json()
    assert body == {
        "indian_delivery_cost": 0,
        "international_delivery_cost": 0,
        "id": "current_delivery",
        "exists": False,
    }


def test_delivery_saved_twice_keeps_one_document(client, store, headers, ticking_clock):
    first = client.put("/api/admin/delivery", json={"indian_delivery_cost": 80, "international_delivery_cost": 25},
                       headers=headers)
    assert first.json()["message"] == "Delivery costs saved successfully."
    before = store["delivery"].find_one({"_id": "current_delivery"})

    second = client.put("/api/admin/delivery", json={"indian_delivery_cost": 90, "international_delivery_cost": 30},
                        headers=headers)
    assert second.json()["message"] == "Delivery costs updated successfully."
    after = store["delivery"].find_one({"_id": "current_delivery"})

    assert store["delivery"].count_documents({}) == 1
    assert after["created_at"] == before["created_at"]
    assert after["updated_at"] > before["updated_at"]
    assert after["indian_delivery_cost"] == 90


def test_cleared_delivery_input_becomes_zero(client, store, headers):
    response = client.put("/api/admin/delivery", json={"indian_delivery_cost": "", "international_delivery_cost": 12},
                          headers=headers)
    assert response.status_code == 200
    doc = store["delivery"].find_one({})
    assert doc["indian_delivery_cost"] == 0
    assert doc["international_delivery_cost"] == 12


def test_negative_delivery_cost_rejected(client, headers):
    response = client.put("/api/admin/delivery", json={"indian_delivery_cost": -5}, headers=headers)
    assert response.status_code == 422


SALE = {
    "title": "Winter Sale",
    "thumbnail_image": "https://cdn.example.com/sale.jpg",
    "product_ids": ["p1", "p2", "p1"],
    "status": "live",
}


def test_sale_upsert(client, store, headers, ticking_clock):
    first = client.put("/api/admin/sales", json=SALE, headers=headers)
    assert first.json()["message"] == "Sale created successfully."
    second = client.put("/api/admin/sales", json={**SALE, "status": "closed"}, headers=headers)
    assert second.json()["message"] == "Sale updated successfully."

    docs = list(store["sales"].find({}))
    assert len(docs) == 1
    assert docs[0]["_id"] == "current_sale"
    assert docs[0]["status"] == "closed"
    assert docs[0]["product_ids"] == ["p1", "p2"]
    assert docs[0]["updated_at"] > docs[0]["created_at"]

    body = client.get("/api/admin/sales", headers=headers).json()
    assert body["exists"] is True
    assert body["id"] == "current_sale"


@pytest.mark.parametrize("field, message", [
    ("title", "Title is required"),
    ("thumbnail_image", "Thumbnail image is required"),
])
def test_sale_required_fields(client, store, headers, field, message):
    response = client.put("/api/admin/sales", json={**SALE, field: " "}, headers=headers)
    assert response.status_code == 400
    assert response.json()["detail"] == message
    assert store["sales"].count_documents({}) == 0


def test_sale_status_must_be_known(client, headers):
    response = client.put("/api/admin/sales", json={**SALE, "status": "paused"}, headers=headers)
    assert response.status_code == 422


def test_sale_product_picker(client, store, headers):
    store["products"].insert_many([{"name": f"Product {i:02d}"} for i in range(10)])
    body = client.get("/api/admin/sales/products", params={"page": 2}, headers=headers).json()
    assert [p["name"] for p in body["items"]] == ["Product 08", "Product 09"]
    assert body["total_pages"] == 2
