from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from marketplace.api.deps import get_lock_service, get_notification_service
from marketplace.domain.clock import utcnow
from marketplace.main import app

CUSTOMER = {"name": "Budi", "phone": "081234567890", "whatsapp": "081234567890", "user_id": "user-1"}
ITEMS = [
    {"item": {"id": "item-1", "name": "Nasi Goreng", "price": 25000}, "quantity": 2},
    {"item": {"id": "item-2", "name": "Es Teh", "price": 5000}, "quantity": 1},
]
VENDOR = {
    "name": "Warung Bu Sri",
    "delivery_fee": 10000,
    "whatsapp": "081298765432",
    "loyalty_program": {
        "is_active": True,
        "points_per_order": 2,
        "reward_tiers": [
            {
                "id": "tier-10",
                "points_required": 2,
                "benefit": {"reward_type": "discount", "discount_percentage": 10},
                "description": "10% off",
            }
        ],
    },
}


@pytest.fixture
def client(db, lock_service, notifier):
    app.dependency_overrides[get_lock_service] = lambda: lock_service
    app.dependency_overrides[get_notification_service] = lambda: notifier
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def vendor_id(client):
    res = client.put("/vendors/warung-1", json=VENDOR)
    assert res.status_code == 200
    return "warung-1"


def _place(client, vendor_id):
    res = client.post(
        "/orders/",
        json={"vendor_id": vendor_id, "customer": CUSTOMER, "delivery_address": "Jl. Sudirman 1", "items": ITEMS},
    )
    assert res.status_code == 201, res.text
    return res.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_vendor_round_trip(client, vendor_id):
    body = client.get(f"/vendors/{vendor_id}").json()
    assert body["loyalty_program"]["reward_tiers"][0]["benefit"]["reward_type"] == "discount"
    assert client.get("/vendors/unknown").status_code == 404


def test_place_and_fetch_order(client, vendor_id):
    order = _place(client, vendor_id)
    assert order["status"] == "pending"
    assert order["subtotal"] == 55000
    assert order["total"] == 65000

    fetched = client.get(f"/orders/{order['id']}").json()
    assert fetched["id"] == order["id"]
    assert client.get("/orders/order_missing").status_code == 404

    listed = client.get("/orders/", params={"vendor_id": vendor_id, "status": ["pending"]}).json()
    assert [o["id"] for o in listed] == [order["id"]]
    assert client.get("/orders/").status_code == 400


def test_empty_order_is_rejected(client, vendor_id):
    res = client.post(
        "/orders/",
        json={"vendor_id": vendor_id, "customer": CUSTOMER, "delivery_address": "addr", "items": []},
    )
    assert res.status_code == 422


def test_invalid_transition_is_400(client, vendor_id):
    order = _place(client, vendor_id)
    res = client.post(f"/orders/{order['id']}/status", json={"status": "delivered"})
    assert res.status_code == 400
    assert "pending" in res.json()["detail"]


def test_locked_order_is_409(client, vendor_id, lock_service):
    order = _place(client, vendor_id)
    lock_service.held.add(("order", order["id"]))
    res = client.post(f"/orders/{order['id']}/status", json={"status": "accepted"})
    assert res.status_code == 409


def test_delivery_then_reward(client, vendor_id):
    order = _place(client, vendor_id)
    for status in ["accepted", "preparing", "ready", "driver_assigned", "picked_up", "on_the_way", "delivered"]:
        res = client.post(f"/orders/{order['id']}/status", json={"status": status})
        assert res.status_code == 200, res.text

    rewards = client.get("/loyalty/user-1/rewards", params={"vendor_id": vendor_id}).json()
    assert len(rewards) == 1
    progress = client.get(f"/loyalty/user-1/progress/{vendor_id}").json()
    assert progress["current_points"] == 2
    assert progress["progress"] == 100.0

    second = _place(client, vendor_id)
    res = client.post(f"/orders/{second['id']}/rewards/{rewards[0]['id']}", json={"user_id": "user-1"})
    assert res.status_code == 200, res.text
    assert res.json()["discount"] == 5500
    assert res.json()["amount_due"] == 59500

    again = client.post(f"/orders/{second['id']}/rewards/{rewards[0]['id']}", json={"user_id": "user-1"})
    assert again.status_code == 400


def test_reject_needs_reason(client, vendor_id):
    order = _place(client, vendor_id)
    assert client.post(f"/orders/{order['id']}/reject", json={"reason": ""}).status_code == 422
    res = client.post(f"/orders/{order['id']}/reject", json={"reason": "Kitchen closed"})
    assert res.json()["status"] == "rejected"


def test_scheduled_order_endpoints(client, vendor_id):
    scheduled_for = (utcnow() + timedelta(hours=5)).isoformat()
    res = client.post(
        "/scheduled-orders/",
        json={
            "vendor_id": vendor_id,
            "customer": CUSTOMER,
            "scheduled_for": scheduled_for,
            "delivery_address": "Jl. Sudirman 1",
            "items": ITEMS,
        },
    )
    assert res.status_code == 201, res.text
    sched_id = res.json()["id"]

    assert client.post(f"/scheduled-orders/{sched_id}/payment", json={"payment_method": "Bank Transfer"}).status_code == 400
    res = client.post(f"/scheduled-orders/{sched_id}/confirm", json={"confirmed_by": "Bu Sri"})
    assert res.json()["status"] == "confirmed"
    res = client.post(
        f"/scheduled-orders/{sched_id}/driver",
        json={"driver_id": "d1", "driver_name": "Agus", "driver_phone": "0812", "vehicle_type": "motorbike"},
    )
    assert res.json()["status"] == "driver_booked"
    res = client.post(
        f"/scheduled-orders/{sched_id}/payment",
        json={"payment_method": "Bank Transfer", "payment_provider": "BCA"},
    )
    assert res.json()["status"] == "paid"

    countdown = client.get(f"/scheduled-orders/{sched_id}/countdown").json()
    assert countdown["is_past"] is False

    listed = client.get("/scheduled-orders/", params={"customer_phone": CUSTOMER["phone"]}).json()
    assert [o["id"] for o in listed] == [sched_id]
    assert client.post(f"/scheduled-orders/{sched_id}/cancel").json()["status"] == "cancelled"


def test_schedule_too_soon_is_400(client, vendor_id):
    res = client.post(
        "/scheduled-orders/",
        json={
            "vendor_id": vendor_id,
            "customer": CUSTOMER,
            "scheduled_for": (utcnow() + timedelta(minutes=30)).isoformat(),
            "delivery_address": "addr",
            "items": ITEMS,
        },
    )
    assert res.status_code == 400


def test_group_order_endpoints(client):
    res = client.post(
        "/group-orders/",
        json={"coordinator": {"id": "user-1", "name": "Budi", "phone": "081234567890"}, "delivery_address": "Kantor"},
    )
    assert res.status_code == 201
    group_id = res.json()["id"]

    assert client.post(f"/group-orders/{group_id}/close").status_code == 400

    join = {
        "user_id": "user-2",
        "user_name": "Sari",
        "vendor_id": "warung-1",
        "vendor_name": "Warung Bu Sri",
        "items": ITEMS,
        "delivery_fee": 10000,
    }
    assert client.post(f"/group-orders/{group_id}/participants", json=join).status_code == 200

    restaurants = client.get(f"/group-orders/{group_id}/restaurants").json()
    assert restaurants[0]["total_amount"] == 55000

    assert client.post(f"/group-orders/{group_id}/close").json()["status"] == "closed"
    assert client.post(f"/group-orders/{group_id}/participants", json=join).status_code == 400
    assert client.post(f"/group-orders/{group_id}/confirm").json()["status"] == "confirmed"
    paid = client.post(f"/group-orders/{group_id}/pay", json={"payment_method": "Cash on Delivery"})
    assert paid.json()["status"] == "paid"

    share = client.get(f"/group-orders/{group_id}/share").json()
    assert share["link"].endswith(f"/group-order/{group_id}")
    assert share["whatsapp_url"].startswith("https://wa.me/?text=")

    mine = client.get("/group-orders/", params={"user_id": "user-2"}).json()
    assert [g["id"] for g in mine] == [group_id]
    assert client.get("/group-orders/missing").status_code == 404
