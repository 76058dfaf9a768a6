from ridelink import notifications, styles
from ridelink.notifications import NotificationManager


def test_badges_per_screen():
    assert styles.badge("admin_rides", "completed") == ("text-green-600 bg-green-100", "CheckCircle", None)
    assert styles.badge("admin_rides", "teleported").icon == "AlertTriangle"
    assert styles.badge("admin_drivers", "suspended").icon == "Ban"
    assert styles.badge("admin_customers", "suspended").classes == "text-yellow-600 bg-yellow-100"
    assert styles.badge("customer_ride_details", "unknown").icon == "Clock"
    assert styles.badge("customer_rides", "ongoing").classes == "bg-blue-100 text-blue-600"
    assert styles.badge("driver_documents", "pending").label == "Under Review"
    assert styles.badge("driver_documents", None) == styles.DRIVER_DOCUMENTS_DEFAULT


def test_status_color():
    assert styles.get_status_color("In_Progress") == "text-blue-600 bg-blue-100"
    assert styles.get_status_color("banned") == "text-red-600 bg-red-100"
    assert styles.get_status_color(None) == "text-gray-600 bg-gray-100"


def test_notify_payload():
    assert notifications.notify("Saved", "Settings") == {"type": "info", "title": "Settings", "message": "Saved"}
    assert notifications.notify("Oops", type="error", duration=0)["duration"] == 0
    assert notifications.icon_for("warning") == "AlertTriangle"
    assert notifications.icon_for("custom") == "Info"
    assert notifications.styles_for(None).startswith("bg-blue-50")


def test_manager_expiry():
    clock = [100.0]
    manager = NotificationManager(clock=lambda: clock[0])
    first = manager.add(notifications.notify("Driver approved", type="success"))
    sticky = manager.add({"message": "Server offline", "type": "error", "duration": -1})
    assert (first["id"], sticky["id"]) == (1, 2)
    assert first["duration"] == 5000

    clock[0] = 104.9
    assert manager.expire() == []
    clock[0] = 105.0
    assert [n["id"] for n in manager.expire()] == [1]
    assert [n["id"] for n in manager.notifications] == [2]

    manager.remove(2)
    assert manager.notifications == []
