from ridelink.config import settings
from ridelink.store import store


def test_login_wrong_password(client):
    r = client.post("/api/admin/auth/login", json={"email": settings.ADMIN_EMAIL, "password": "nope"})
    assert r.status_code == 401
    assert r.json() == {"success": False, "message": "Invalid email or password", "detail": "Invalid email or password"}


def test_login_stores_session(client, fake_redis, admin_token):
    assert f"session:{admin_token}" in fake_redis.values
    assert fake_redis.ttls[f"session:{admin_token}"] == settings.SESSION_TTL_SEC


def test_verify_and_profile(client, admin_headers):
    r = client.get("/api/admin/auth/verify", headers=admin_headers)
    assert r.status_code == 200
    r = client.get("/api/admin/auth/profile", headers=admin_headers)
    assert r.json()["user"]["email"] == settings.ADMIN_EMAIL
    assert r.json()["user"]["permissions"] == ["all"]
    assert "password_hash" not in str(r.json())


def test_protected_routes_need_token(client):
    assert client.get("/api/admin/rides").status_code == 401
    assert client.get("/api/admin/rides", headers={"Authorization": "Bearer missing"}).status_code == 401
    assert client.get("/api/admin/rides", headers={"Authorization": "Basic abc"}).status_code == 401


def test_logout_ends_session(client, admin_headers):
    assert client.post("/api/admin/auth/logout", headers=admin_headers).status_code == 200
    assert client.get("/api/admin/auth/verify", headers=admin_headers).status_code == 401


def test_refresh_rotates_token(client, admin_headers):
    r = client.post("/api/admin/auth/refresh", headers=admin_headers)
    assert r.status_code == 200
    token = r.json()["token"]
    assert client.get("/api/admin/auth/verify", headers=admin_headers).status_code == 401
    assert client.get("/api/admin/auth/verify", headers={"Authorization": f"Bearer {token}"}).status_code == 200


def test_change_password(client, admin_headers):
    r = client.put("/api/admin/auth/change-password", headers=admin_headers,
                   json={"current_password": "wrong", "new_password": "N3w@Passw0rd"})
    assert r.status_code == 400
    r = client.put("/api/admin/auth/change-password", headers=admin_headers,
                   json={"current_password": settings.ADMIN_PASSWORD, "new_password": "N3w@Passw0rd"})
    assert r.status_code == 200
    r = client.post("/api/admin/auth/login", json={"email": settings.ADMIN_EMAIL, "password": "N3w@Passw0rd"})
    assert r.status_code == 200


def test_password_reset(client, fake_redis):
    r = client.post("/api/admin/auth/request-password-reset", json={"email": settings.ADMIN_EMAIL})
    assert r.status_code == 200
    token = next(k for k in fake_redis.values if k.startswith("reset:"))[len("reset:"):]
    r = client.post("/api/admin/auth/reset-password", json={"token": token, "new_password": "R3set@Passw0rd"})
    assert r.status_code == 200
    r = client.post("/api/admin/auth/login", json={"email": settings.ADMIN_EMAIL, "password": "R3set@Passw0rd"})
    assert r.status_code == 200


def test_list_rides_filters(client, admin_headers):
    r = client.get("/api/admin/rides", headers=admin_headers, params={"status": "completed"})
    assert r.status_code == 200
    assert [ride["id"] for ride in r.json()["rides"]] == ["RIDE002"]
    r = client.get("/api/admin/rides", headers=admin_headers, params={"search": "alex"})
    assert [ride["id"] for ride in r.json()["rides"]] == ["RIDE003"]


def test_admin_assign_and_cancel(client, admin_headers):
    ride_id = client.post("/api/rides/request", json={
        "customer_id": "CUST002",
        "pickup": {"lat": 40.7505, "lng": -73.9934},
        "destination": {"lat": 40.7282, "lng": -74.0776},
    }).json()["ride"]["id"]
    r = client.post(f"/api/admin/rides/{ride_id}/assign", headers=admin_headers, json={"driver_id": "DRV002"})
    assert r.status_code == 200
    assert store.rides[ride_id]["driver_id"] == "DRV002"

    r = client.post(f"/api/admin/rides/{ride_id}/cancel", headers=admin_headers, json={"reason": "duplicate"})
    assert r.status_code == 200
    assert store.rides[ride_id]["cancelled_by"] == "admin"
    history = client.get(f"/api/admin/rides/{ride_id}/history", headers=admin_headers).json()
    assert [step["status"] for step in history["timeline"]] == ["pending", "driver_assigned", "cancelled"]


def test_assign_suspended_driver(client, admin_headers):
    ride_id = client.post("/api/rides/request", json={
        "customer_id": "CUST002",
        "pickup": {"lat": 40.7505, "lng": -73.9934},
        "destination": {"lat": 40.7282, "lng": -74.0776},
    }).json()["ride"]["id"]
    r = client.post(f"/api/admin/rides/{ride_id}/assign", headers=admin_headers, json={"driver_id": "DRV003"})
    assert r.status_code == 403


def test_reassign_to_another_driver_conflicts(client, admin_headers):
    ride_id = client.post("/api/rides/request", json={
        "customer_id": "CUST002",
        "pickup": {"lat": 40.7505, "lng": -73.9934},
        "destination": {"lat": 40.7282, "lng": -74.0776},
    }).json()["ride"]["id"]
    url = f"/api/admin/rides/{ride_id}/assign"
    assert client.post(url, headers=admin_headers, json={"driver_id": "DRV002"}).status_code == 200
    version = store.rides[ride_id]["version"]

    for other in ("DRV003", "NOPE"):
        r = client.post(url, headers=admin_headers, json={"driver_id": other})
        assert r.status_code == 409
        assert r.json()["message"] == "Ride already has a driver"
    assert store.rides[ride_id]["driver_id"] == "DRV002"

    r = client.post(url, headers=admin_headers, json={"driver_id": "DRV002"})
    assert r.status_code == 200
    assert store.rides[ride_id]["version"] == version


def test_create_driver_and_duplicate_email(client, admin_headers):
    body = {
        "name": "Nadia Khan",
        "email": "nadia@ridelink.dev",
        "phone": "+12025550123",
        "vehicle": {"make": "Toyota", "model": "Corolla", "year": 2021, "license_plate": "NYC-4821"},
    }
    r = client.post("/api/admin/drivers", headers=admin_headers, json=body)
    assert r.status_code == 201
    driver = r.json()
    assert driver["id"] == "DRV004"
    assert driver["status"] == "offline"
    assert client.post("/api/admin/drivers", headers=admin_headers, json=body).status_code == 409


def test_suspend_and_approve_driver(client, admin_headers):
    r = client.post("/api/admin/drivers/DRV001/suspend", headers=admin_headers, json={"reason": "complaints"})
    assert r.status_code == 200
    assert store.drivers["DRV001"]["status"] == "suspended"
    r = client.post("/api/admin/drivers/DRV001/approve", headers=admin_headers)
    assert r.status_code == 200
    assert store.drivers["DRV001"]["status"] == "offline"


def test_suspended_driver_stays_suspended(client, admin_headers):
    client.post("/api/admin/drivers/DRV002/suspend", headers=admin_headers, json={"reason": "complaints"})
    for status in ("offline", "online"):
        r = client.put("/api/drivers/DRV002/status", json={"status": status})
        assert r.status_code == 403
    assert store.drivers["DRV002"]["status"] == "suspended"

    ride_id = client.post("/api/rides/request", json={
        "customer_id": "CUST001",
        "pickup": {"lat": 40.7505, "lng": -73.9934},
        "destination": {"lat": 40.7282, "lng": -74.0776},
    }).json()["ride"]["id"]
    assert client.post(f"/api/rides/{ride_id}/accept", json={"driver_id": "DRV002"}).status_code == 403
    assert store.rides[ride_id]["status"] == "pending"

    r = client.put("/api/admin/drivers/DRV002/status", headers=admin_headers, json={"status": "online"})
    assert r.status_code == 200
    assert store.drivers["DRV002"]["status"] == "online"


def test_ban_and_unban_customer(client, admin_headers):
    assert client.post("/api/admin/customers/CUST001/ban", headers=admin_headers, json={"reason": "fraud"}).status_code == 200
    assert store.customers["CUST001"]["status"] == "banned"
    r = client.post("/api/rides/request", json={
        "customer_id": "CUST001",
        "pickup": {"lat": 40.7505, "lng": -73.9934},
        "destination": {"lat": 40.7282, "lng": -74.0776},
    })
    assert r.status_code == 403
    assert client.post("/api/admin/customers/CUST001/unban", headers=admin_headers).status_code == 200
    assert store.customers["CUST001"]["status"] == "active"


def test_exports_are_csv(client, admin_headers):
    r = client.get("/api/admin/rides/export", headers=admin_headers)
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    lines = r.text.strip().splitlines()
    assert lines[0].startswith("id,customer,driver")
    assert len(lines) == 4


def test_dashboard_stats(client, admin_headers):
    r = client.get("/api/admin/dashboard/stats", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["totalRides"] == 3


def test_finance_payout(client, admin_headers):
    r = client.post("/api/admin/finance/payouts/process", headers=admin_headers, json={"driver_ids": ["DRV001"]})
    assert r.status_code == 200
    payouts = [t for t in store.transactions if t["type"] == "payout"]
    assert payouts and payouts[0]["driver_id"] == "DRV001"


def test_payout_with_unknown_driver_changes_nothing(client, admin_headers):
    r = client.post("/api/admin/finance/payouts/process", headers=admin_headers,
                    json={"driver_ids": ["DRV001", "NOPE"]})
    assert r.status_code == 404
    assert store.drivers["DRV001"]["earnings"]["this_month"] == 450.25
    assert [t for t in store.transactions if t["type"] == "payout"] == []


def test_reports(client, admin_headers):
    r = client.post("/api/admin/reports/generate", headers=admin_headers, json={"type": "rides"})
    assert r.status_code == 200
    report_id = r.json()["id"]
    assert client.get(f"/api/admin/reports/{report_id}/status", headers=admin_headers).json()["status"] == "completed"
    r = client.post("/api/admin/reports/generate", headers=admin_headers, json={"type": "weather"})
    assert r.status_code == 400


def test_push_requires_target(client, admin_headers):
    r = client.post("/api/admin/integration/driver/push", headers=admin_headers, json={"message": "hi"})
    assert r.status_code == 400
    assert r.json()["message"] == "driver_id is required"


def test_customer_broadcast_delivers_to_sockets(client, admin_headers):
    with client.websocket_connect("/ws/customer?customer_id=CUST001") as customer:
        r = client.post("/api/admin/integration/customer/broadcast", headers=admin_headers,
                        json={"message": "Promo today", "title": "Deals"})
        assert r.json() == {"success": True, "delivered": 1}
        frame = customer.receive_json()
        assert frame["event"] == "notification"
        assert frame["data"]["message"] == "Promo today"
