"""Integration tests for the inventory endpoints."""

from __future__ import annotations

from fastapi import status

from tests.integration.utils import auth_headers

NEW_ITEM = {
    "itemName": "Basil",
    "unitOfMeasurement": "bunch",
    "boxOrPackageQty": 6,
    "unitPrice": "$1.50",
    "totalPrice": "$9.00",
    "idealQty": 12,
    "currentQty": 4,
    "category": "produce",
}


def test_inventory_endpoint_returns_items(client):
    response = client.get("/inventory")

    assert response.status_code == status.HTTP_200_OK
    payload = response.json()
    assert len(payload) == 5
    assert {"id", "itemName", "unitOfMeasurement", "currentQty", "idealQty", "lastUpdated"} <= payload[0].keys()
    assert payload[0]["currentQty"] == 5


def test_inventory_filter_by_category(client):
    response = client.get("/inventory", params={"category": "bakery"})

    assert [item["itemName"] for item in response.json()] == ["Garlic Bread", "Pizza Dough"]


def test_low_stock_includes_stock_level(client):
    response = client.get("/inventory/low-stock")

    assert response.status_code == status.HTTP_200_OK
    levels = {item["itemName"]: item["stockLevel"] for item in response.json()}
    assert levels == {"Fresh Tomatoes": "good", "Garlic Bread": "critical", "Olive Oil": "good"}


def test_inventory_create_get_update_flow(client):
    response = client.post("/inventory", json=NEW_ITEM, headers=auth_headers())
    assert response.status_code == status.HTTP_201_CREATED
    item_id = response.json()["id"]

    response = client.get(f"/inventory/{item_id}")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["itemName"] == "Basil"

    response = client.patch(f"/inventory/{item_id}", json={"idealQty": 10}, headers=auth_headers())
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["idealQty"] == 10
    assert response.json()["currentQty"] == 4


def test_inventory_create_validation_lists_fields(client):
    response = client.post(
        "/inventory",
        json={**NEW_ITEM, "itemName": "B", "boxOrPackageQty": 0},
        headers=auth_headers(),
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert set(response.json()["fields"]) == {"itemName", "boxOrPackageQty"}


def test_unknown_inventory_item_returns_404(client):
    response = client.get("/inventory/999")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "Inventory item 999 not found"


def test_non_numeric_id_returns_400(client):
    response = client.get("/inventory/basil")

    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_stock_adjustment(client):
    response = client.patch(
        "/inventory/1/stock",
        json={"quantityChange": -0.2, "unitPrice": "$7.40", "totalPrice": "$7.40"},
        headers=auth_headers(),
    )

    assert response.status_code == status.HTTP_200_OK
    payload = response.json()
    assert payload["currentQty"] == 4.8
    assert payload["unitPrice"] == "$7.40"


def test_stock_adjustment_below_zero_conflicts(client):
    response = client.patch("/inventory/5/stock", json={"quantityChange": -6}, headers=auth_headers())

    assert response.status_code == status.HTTP_409_CONFLICT
    assert client.get("/inventory/5").json()["currentQty"] == 5


def test_stock_adjustment_requires_quantity_change(client):
    response = client.patch("/inventory/1/stock", json={"unitPrice": "$1.00"}, headers=auth_headers())

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["fields"] == ["quantityChange"]


def test_bulk_upload_reports_row_errors(client):
    data = "\n".join(
        [
            "item_name,unit_of_measurement,box_or_package_qty,unit_price,ideal_qty,current_qty",
            "Flour,kg,10,1.20,20,15",
            "Sugar,kg,5,0.90,10,-1",
            "Yeast,pack,12,0.40,24,30",
        ]
    )

    response = client.post("/inventory/bulk-upload", json={"data": data}, headers=auth_headers())

    assert response.status_code == status.HTTP_200_OK
    payload = response.json()
    assert payload["imported"] == 2
    assert len(payload["errors"]) == 1
    assert payload["errors"][0].startswith("Row 2:")


def test_bulk_upload_without_errors_omits_error_list(client):
    data = "item_name,unit_of_measurement,box_or_package_qty,unit_price,ideal_qty,current_qty\nFlour,kg,10,1.20,20,15"

    response = client.post("/inventory/bulk-upload", json={"data": data}, headers=auth_headers())

    assert response.json() == {"imported": 1}


def test_bulk_upload_missing_headers_rejected(client):
    response = client.post("/inventory/bulk-upload", json={"data": "item_name\nFlour"}, headers=auth_headers())

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "Missing required headers" in response.json()["detail"]
