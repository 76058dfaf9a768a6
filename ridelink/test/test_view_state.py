from ridelink import events
from ridelink.socket_client import SocketService, ADMIN, DRIVER
from ridelink.storage import Storage
from ridelink.view_state import (
    BookingState, DashboardState, DriverBoard, DriverProfileState, DriverRideState, RideBoard,
    merge_by_id, upsert_by_id,
)


class FakeTransport:
    def __init__(self, incoming=None):
        self.sent = []
        self.incoming = list(incoming or [])

    def send_json(self, frame):
        self.sent.append(frame)

    def receive_json(self):
        return self.incoming.pop(0)


def test_merge_ignores_stale_and_unknown():
    rides = [{"id": "R1", "status": "in_progress", "version": 3}]
    assert merge_by_id(rides, {"id": "R1", "status": "driver_assigned", "version": 2}) == rides
    assert merge_by_id(rides, {"id": "R9", "status": "pending", "version": 1}) == rides
    merged = merge_by_id(rides, {"id": "R1", "status": "completed", "version": 4})
    assert merged[0]["status"] == "completed"
    assert rides[0]["status"] == "in_progress"


def test_upsert_prepends_new():
    rides = [{"id": "R1", "version": 1}]
    assert [r["id"] for r in upsert_by_id(rides, {"id": "R2", "version": 1})] == ["R2", "R1"]


def test_socket_dispatch_and_off():
    socket = SocketService(ADMIN)
    seen = []
    listener = socket.on("ping", seen.append)
    socket.on("ping", lambda data: 1 / 0)
    assert socket.dispatch("ping", {"n": 1}) == 1
    assert seen == [{"n": 1}]
    socket.off("ping", listener)
    socket.dispatch("ping", {"n": 2})
    assert seen == [{"n": 1}]
    socket.off("ping")
    assert socket.dispatch("ping") == 0


def test_socket_emit_needs_connection():
    socket = SocketService(ADMIN)
    assert socket.emit("join_admin_room") is False

    transport = FakeTransport()
    connected = []
    socket.on("connect", lambda data: connected.append(True))
    socket.attach(transport)
    assert connected == [True]
    assert transport.sent == [{"event": "join_admin_room", "data": {}}]
    assert socket.force_driver_offline("DRV001", "audit") is True
    assert transport.sent[-1] == {"event": "admin_force_driver_offline", "data": {"driver_id": "DRV001", "reason": "audit"}}

    reasons = []
    socket.on("disconnect", reasons.append)
    socket.detach("server shutdown")
    assert reasons == ["server shutdown"]
    assert socket.emit("join_admin_room") is False


def test_driver_socket_joins_room_on_connect():
    transport = FakeTransport()
    socket = SocketService(DRIVER, transport=transport, driver_id="DRV001")
    assert transport.sent == [{"event": "driver:join-room", "data": {"driverId": "DRV001"}}]
    socket.emit_driver_status(True, {"lat": 1.0, "lng": 2.0})
    assert transport.sent[-1]["data"] == {"driverId": "DRV001", "isOnline": True, "location": {"lat": 1.0, "lng": 2.0}}


def test_reconnect_gives_up():
    socket = SocketService(ADMIN)
    socket.max_reconnect_attempts = 2
    failed = []
    socket.on("reconnect_failed", failed.append)
    assert socket.connection_failed("refused") is True
    assert socket.connection_failed("refused") is False
    assert failed == [2]


def test_ride_board_through_socket():
    transport = FakeTransport([
        {"event": events.RIDE_CREATED, "data": {"id": "R2", "status": "pending", "version": 1}},
        {"event": events.RIDE_UPDATED, "data": {"id": "R1", "status": "completed", "version": 5}},
        {"event": events.RIDE_UPDATED, "data": {"id": "R1", "status": "in_progress", "version": 4}},
    ])
    socket = SocketService(ADMIN, transport=transport)
    board = RideBoard([{"id": "R1", "status": "in_progress", "version": 4, "driver_id": "DRV001"}]).bind(socket)
    board.select("R1")
    for _ in range(3):
        socket.pump()
    assert [r["id"] for r in board.rides] == ["R2", "R1"]
    assert board.rides[1]["status"] == "completed"
    assert board.selected["status"] == "completed"


def test_ride_board_location_by_driver():
    board = RideBoard([{"id": "R1", "driver_id": "DRV001"}, {"id": "R2", "driver_id": "DRV002"}])
    board.on_driver_location({"driver_id": "DRV002", "location": {"lat": 1, "lng": 2}})
    assert "driver_location" not in board.rides[0]
    assert board.rides[1]["driver_location"] == {"lat": 1, "lng": 2}


def test_dashboard_keeps_ten_recent():
    dashboard = DashboardState(stats={"totalRides": 1, "onlineDrivers": 2})
    for i in range(12):
        dashboard.on_new_ride({"id": f"R{i}", "version": 1})
    assert len(dashboard.recent_rides) == 10
    assert dashboard.recent_rides[0]["id"] == "R11"
    dashboard.on_stats_update({"totalRides": 13})
    assert dashboard.stats == {"totalRides": 13, "onlineDrivers": 2}


def test_driver_board_status():
    board = DriverBoard([{"id": "DRV001", "status": "online", "location": {"lat": 0, "lng": 0}}])
    board.on_driver_status_update({"driver_id": "DRV001", "status": "offline", "location": None})
    assert board.drivers[0] == {"id": "DRV001", "status": "offline", "location": {"lat": 0, "lng": 0}}


def test_driver_ride_flow():
    state = DriverRideState("DRV001")
    state.on_new_request({"rideId": "R1", "fare": 12.5, "pickup": {"lat": 1, "lng": 2}})
    state.on_new_request({"rideId": "R1", "fare": 12.5})
    state.on_new_request({"rideId": "R2", "fare": 8})
    assert [r["id"] for r in state.pending_requests] == ["R1", "R2"]

    state.decline_ride("R2")
    ride = state.accept_ride(state.pending_requests[0])
    assert ride["status"] == "driver_assigned"
    assert ride["driver_id"] == "DRV001"
    assert state.pending_requests == []

    assert state.start_ride("R9") is None
    assert state.start_ride("R1")["status"] == "in_progress"
    done = state.complete_ride("R1", final_fare=13.0)
    assert done["status"] == "completed"
    assert done["final_fare"] == 13.0
    assert state.active_ride is None
    assert state.history[0]["id"] == "R1"


def test_driver_cancelled_by_customer():
    state = DriverRideState("DRV001")
    state.on_new_request({"rideId": "R1"})
    state.accept_ride(state.pending_requests[0])
    state.on_cancelled_by_customer({"rideId": "R1", "reason": "wrong address"})
    assert state.active_ride is None
    assert state.history[0]["status"] == "cancelled"
    assert state.history[0]["cancellation_reason"] == "wrong address"


def test_driver_ride_status_skips_stale():
    state = DriverRideState("DRV001")
    state.on_new_request({"rideId": "R1"})
    state.accept_ride(state.pending_requests[0])
    state.on_ride_status({"rideId": "R1", "status": "in_progress", "version": 3})
    state.on_ride_status({"rideId": "R1", "status": "driver_assigned", "version": 2})
    assert state.active_ride["status"] == "in_progress"
    state.on_ride_status({"rideId": "R1", "status": "completed", "version": 4})
    assert state.active_ride is None
    assert state.history[0]["status"] == "completed"


def test_booking_flow():
    bookings = BookingState()
    booking = bookings.create_booking(pickup="Home", destination="Work", fare=12.0)
    assert booking["id"].startswith("PR")
    assert booking["status"] == "pending"
    bookings.start_ride(booking)
    assert bookings.current_booking["status"] == "in_progress"
    bookings.complete_ride(booking["id"])
    assert bookings.current_booking is None
    assert bookings.history[0]["status"] == "completed"

    second = bookings.create_booking(pickup="Work", destination="Gym")
    bookings.cancel_booking(second["id"])
    assert bookings.history[0]["status"] == "cancelled"
    assert bookings.active_ride is None


def test_driver_profile_persists(tmp_path):
    storage = Storage(str(tmp_path / "storage.json"))
    profile = DriverProfileState(storage, {"id": "DRV001", "name": "Mike Wilson"})
    assert profile.location == {"lat": 33.6844, "lng": 73.0479}
    profile.update_status("online")
    assert profile.is_online
    assert storage.get_json("driverData") == {"id": "DRV001", "name": "Mike Wilson", "status": "online"}
    assert DriverProfileState(storage).driver["status"] == "online"
