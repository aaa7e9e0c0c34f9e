"""Integration tests for the notification feed."""

from __future__ import annotations

from fastapi import status

from tests.integration.utils import auth_headers


def _create(client, **fields):
    response = client.post("/notifications", json={"type": "inventory", "message": "Check stock", **fields}, headers=auth_headers())
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()


def test_notification_feed_scoping(client):
    broadcast = _create(client)
    personal = _create(client, type="order", message="Order ready", userId=3)
    _create(client, message="For someone else", userId=4)

    response = client.get("/notifications", params={"userId": 3})

    assert response.status_code == status.HTTP_200_OK
    assert [n["id"] for n in response.json()] == [personal["id"], broadcast["id"]]
    assert len(client.get("/notifications").json()) == 3


def test_mark_read_and_read_all(client):
    first = _create(client, details={"inventoryId": 2})
    _create(client, message="Another")

    response = client.patch(f"/notifications/{first['id']}/read", headers=auth_headers())
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["isRead"] is True
    assert response.json()["details"] == {"inventoryId": 2}

    unread = client.get("/notifications/unread").json()
    assert [n["message"] for n in unread] == ["Another"]

    response = client.post("/notifications/read-all", headers=auth_headers())
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["updated"] == 1
    assert client.get("/notifications/unread").json() == []


def test_read_all_scoped_to_user(client):
    _create(client, userId=3)
    _create(client, userId=4)

    response = client.post("/notifications/read-all", json={"userId": 3}, headers=auth_headers())

    assert response.json()["updated"] == 1
    assert len(client.get("/notifications/unread", params={"userId": 4}).json()) == 1


def test_mark_unknown_notification_returns_404(client):
    response = client.patch("/notifications/999/read", headers=auth_headers())

    assert response.status_code == status.HTTP_404_NOT_FOUND
