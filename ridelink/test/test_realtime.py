import pytest
from starlette.websockets import WebSocketDisconnect

from ridelink import events, services
from ridelink.socket_client import SocketService, ADMIN, DRIVER
from ridelink.store import store
from ridelink.view_state import DashboardState, DriverRideState, RideBoard

PICKUP = {"address": "123 Main St, New York, NY", "lat": 40.7128, "lng": -74.0060}
DESTINATION = {"address": "456 Oak Ave, New York, NY", "lat": 40.7589, "lng": -73.9851}


def _request_ride(client, customer_id="CUST001"):
    r = client.post("/api/rides/request", json={
        "customer_id": customer_id, "pickup": PICKUP, "destination": DESTINATION,
    })
    assert r.status_code == 201
    return r.json()["ride"]


def _until(ws, event, limit=20):
    """Read frames until ``event`` arrives; returns its data."""
    for _ in range(limit):
        frame = ws.receive_json()
        if frame["event"] == event:
            return frame["data"]
    raise AssertionError(f"{event} not received")


def test_admin_socket_rejects_bad_token(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws/admin?token=nope") as ws:
            ws.receive_json()


def test_admin_join_sends_stats(client, admin_token):
    with client.websocket_connect(f"/ws/admin?token={admin_token}") as ws:
        ws.send_json({"event": "join_admin_room", "data": {}})
        assert ws.receive_json() == {"event": "room_joined", "data": {"room": "admins"}}
        frame = ws.receive_json()
        assert frame["event"] == "stats_update"
        assert frame["data"]["totalRides"] == 3


def test_unknown_and_malformed_frames(client, admin_token):
    with client.websocket_connect(f"/ws/admin?token={admin_token}") as ws:
        ws.send_json({"event": "teleport", "data": {}})
        frame = ws.receive_json()
        assert frame["event"] == "error"
        assert frame["data"]["message"] == "Unknown event: teleport"

        ws.send_text("not json")
        assert ws.receive_json()["data"]["message"] == "Malformed frame"


def test_frames_with_wrong_shapes_keep_socket_open(client, admin_token):
    with client.websocket_connect(f"/ws/admin?token={admin_token}") as ws:
        for frame in ({"event": "admin_maintenance_notification", "data": ["x"]},
                      {"event": "admin_emergency_broadcast", "data": "flood"},
                      {"event": ["join_admin_room"], "data": {}}):
            ws.send_json(frame)
            assert ws.receive_json() == {"event": "error", "data": {"message": "Malformed frame"}}

        ws.send_json({"event": "join_admin_room", "data": {}})
        assert ws.receive_json()["event"] == "room_joined"


def test_admin_cancel_of_finished_ride_is_rejected(client, admin_token):
    with client.websocket_connect(f"/ws/admin?token={admin_token}") as ws:
        ws.send_json({"event": "admin_cancel_ride", "data": {"ride_id": "RIDE002"}})
        frame = ws.receive_json()
        assert frame["event"] == "error"
        assert frame["data"]["event"] == "admin_cancel_ride"
        assert store.rides["RIDE002"]["status"] == "completed"


def test_new_ride_reaches_admins_and_drivers(client, admin_token):
    with client.websocket_connect(f"/ws/admin?token={admin_token}") as admin, \
            client.websocket_connect("/ws/driver?driver_id=DRV001") as driver:
        ride = _request_ride(client)

        assert admin.receive_json() == {"event": "new_ride", "data": ride}
        assert admin.receive_json()["event"] == "ride_created"
        assert admin.receive_json()["event"] == "stats_update"

        frame = driver.receive_json()
        assert frame["event"] == "ride:new-request"
        assert frame["data"]["rideId"] == ride["id"]
        assert frame["data"]["fare"] == ride["fare"]
        assert frame["data"]["rideType"] == "standard"


def test_status_changes_fan_out(client, admin_token):
    with client.websocket_connect(f"/ws/admin?token={admin_token}") as admin, \
            client.websocket_connect("/ws/driver?driver_id=DRV002") as driver, \
            client.websocket_connect("/ws/customer?customer_id=CUST001") as customer:
        ride = _request_ride(client)
        driver.receive_json()
        client.post(f"/api/rides/{ride['id']}/accept", json={"driver_id": "DRV002"})

        updated = _until(admin, "ride_updated")
        assert updated["status"] == "driver_assigned"
        assert _until(admin, "driver_status_update") == {
            "driver_id": "DRV002", "status": "busy", "location": store.drivers["DRV002"]["location"],
        }

        assigned = _until(customer, "driver_assigned")
        assert assigned["driver"]["id"] == "DRV002"

        status = _until(driver, "ride:status-update")
        assert status["rideId"] == ride["id"]
        assert status["status"] == "driver_assigned"
        assert status["version"] == 2


def test_customer_cancel_notifies_driver(client):
    with client.websocket_connect("/ws/driver?driver_id=DRV002") as driver, \
            client.websocket_connect("/ws/customer?customer_id=CUST001") as customer:
        ride = _request_ride(client)
        client.post(f"/api/rides/{ride['id']}/accept", json={"driver_id": "DRV002"})
        customer.send_json({"event": "cancel_ride", "data": {"ride_id": ride["id"], "reason": "too slow"}})

        assert _until(customer, "ride_cancelled")["status"] == "cancelled"
        data = _until(driver, "ride:cancelled-by-customer")
        assert data == {"rideId": ride["id"], "reason": "too slow"}
        assert store.drivers["DRV002"]["status"] == "online"


def test_customer_cannot_cancel_someone_elses_ride(client):
    with client.websocket_connect("/ws/customer?customer_id=CUST002") as customer:
        customer.send_json({"event": "cancel_ride", "data": {"ride_id": "RIDE001"}})
        frame = customer.receive_json()
        assert frame["event"] == "error"
        assert frame["data"]["message"] == "Ride belongs to another customer"


def test_customer_requests_ride_over_socket(client):
    with client.websocket_connect("/ws/customer?customer_id=CUST001") as customer:
        customer.send_json({"event": "request_ride", "data": {"pickup": PICKUP, "destination": DESTINATION}})
        ride = _until(customer, "ride_requested")
        assert ride["status"] == "pending"
        assert store.rides[ride["id"]]["customer"]["id"] == "CUST001"


def test_force_driver_offline(client, admin_token):
    with client.websocket_connect(f"/ws/admin?token={admin_token}") as admin, \
            client.websocket_connect("/ws/driver?driver_id=DRV001") as driver:
        admin.send_json({"event": "admin_force_driver_offline", "data": {"driver_id": "DRV001", "reason": "audit"}})
        assert _until(admin, "driver_offline")["driver_id"] == "DRV001"
        note = _until(driver, "admin:notification")
        assert note["force_offline"] is True
        assert note["message"] == "audit"
        assert store.drivers["DRV001"]["status"] == "offline"


def test_driver_location_over_socket(client, admin_token, fake_redis):
    with client.websocket_connect(f"/ws/admin?token={admin_token}") as admin, \
            client.websocket_connect("/ws/driver?driver_id=DRV002") as driver:
        driver.send_json({"event": "driver:location-update",
                          "data": {"driverId": "DRV002", "location": {"lat": 40.73, "lng": -74.0}}})
        data = _until(admin, "driver_location_update")
        assert data["driver_id"] == "DRV002"
        assert data["location"] == {"lat": 40.73, "lng": -74.0}
        assert "driver:DRV002" in fake_redis.hashes


def test_emergency_broadcast_reaches_every_namespace(client, admin_token):
    with client.websocket_connect(f"/ws/admin?token={admin_token}") as admin, \
            client.websocket_connect("/ws/driver?driver_id=DRV001") as driver, \
            client.websocket_connect("/ws/customer?customer_id=CUST001") as customer:
        admin.send_json({"event": "admin_emergency_broadcast", "data": {"message": "Flooding on 5th Ave"}})
        for ws in (admin, driver, customer):
            alert = _until(ws, "emergency_alert")
            assert alert["message"] == "Flooding on 5th Ave"
            assert alert["severity"] == "high"


def test_socket_service_feeds_dashboard(client, admin_token):
    with client.websocket_connect(f"/ws/admin?token={admin_token}") as ws:
        socket = SocketService(ADMIN, transport=ws)
        dashboard = DashboardState(recent_rides=[]).bind(socket)
        board = RideBoard(list(store.rides.values())).bind(socket)

        assert socket.pump()[0] == events.ROOM_JOINED
        assert socket.pump()[0] == events.STATS_UPDATE
        assert dashboard.stats["totalRides"] == 3

        ride = _request_ride(client)
        for _ in range(3):
            socket.pump()
        assert dashboard.recent_rides[0]["id"] == ride["id"]
        assert board.rides[0]["id"] == ride["id"]
        assert dashboard.stats["totalRides"] == 4


def test_socket_service_feeds_driver_state(client):
    with client.websocket_connect("/ws/driver?driver_id=DRV002") as ws:
        socket = SocketService(DRIVER, transport=ws, driver_id="DRV002")
        state = DriverRideState("DRV002").bind(socket)
        assert socket.pump() == (events.ROOM_JOINED, {"room": "driver:DRV002"})

        ride = _request_ride(client)
        socket.pump()
        assert [r["id"] for r in state.pending_requests] == [ride["id"]]

        state.accept_ride(state.pending_requests[0])
        client.post(f"/api/rides/{ride['id']}/accept", json={"driver_id": "DRV002"})
        event, _ = socket.pump()
        assert event == events.RIDE_STATUS
        assert state.active_ride["version"] == 2

        socket.emit_ride_update(ride["id"], "in_progress")
        event, data = socket.pump()
        assert event == events.RIDE_STATUS
        assert state.active_ride["status"] == "in_progress"
        assert store.rides[ride["id"]]["status"] == "in_progress"


def test_suspended_driver_stays_suspended_over_socket(client, admin_token):
    with client.websocket_connect(f"/ws/admin?token={admin_token}") as admin, \
            client.websocket_connect("/ws/driver?driver_id=DRV003") as driver:
        driver.send_json({"event": "driver:status-update", "data": {"isOnline": False}})
        frame = driver.receive_json()
        assert frame["event"] == "error"
        assert frame["data"]["message"] == "Driver is suspended"

        admin.send_json({"event": "admin_force_driver_offline", "data": {"driver_id": "DRV003"}})
        assert _until(driver, "admin:notification")["force_offline"] is True
    assert store.drivers["DRV003"]["status"] == "suspended"


def test_stale_location_sweep(client, admin_token, fake_redis):
    for driver_id in ("DRV001", "DRV002"):
        client.post(f"/api/drivers/{driver_id}/location", json={"lat": 40.75, "lng": -73.99})
    with client.websocket_connect(f"/ws/admin?token={admin_token}") as admin:
        del fake_redis.hashes["driver:DRV001"]
        del fake_redis.hashes["driver:DRV002"]
        assert client.portal.call(services.sweep_stale_drivers) == ["DRV002"]

        assert _until(admin, "driver_status_update") == {
            "driver_id": "DRV002", "status": "offline", "location": store.drivers["DRV002"]["location"],
        }
        assert _until(admin, "driver_offline")["driver_id"] == "DRV002"
    assert store.drivers["DRV002"]["status"] == "offline"
    assert store.drivers["DRV001"]["status"] == "busy"
    assert fake_redis.sets["drivers_live"] == set()
