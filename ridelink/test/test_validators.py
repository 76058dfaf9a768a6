from datetime import datetime, timezone

from ridelink import validators as v

NOW = datetime(2025, 9, 14, 12, 0, tzinfo=timezone.utc)


def test_empty_values_pass_all_but_required():
    assert v.validate_required("  ", "Name") == "Name is required"
    assert v.validate_required([], "Stops") == "Stops is required"
    assert v.validate_required(0, "Count") is None
    assert v.validate_email("") is None
    assert v.validate_phone(None) is None
    assert v.validate_fare("") is None


def test_strings():
    assert v.validate_email("ops@ridelink.dev") is None
    assert v.validate_email("ops@ridelink") == "Email must be a valid email address"
    assert v.validate_phone("+1 (212) 555-0199") is None
    assert v.validate_phone("555") == "Phone number must be a valid phone number"
    assert v.validate_length("a", 2, 5, "Name") == "Name must be at least 2 characters long"
    assert v.validate_length("abcdef", 2, 5, "Name") == "Name must be no more than 5 characters long"


def test_password_rules():
    assert v.validate_password("Short1!") == "Password must be at least 8 characters long"
    assert "uppercase letter" in v.validate_password("alllowercase1!")
    assert v.validate_password("Str0ng@Pass") is None
    assert v.validate_password_confirmation("a", "b") == "Password confirmation must match the password"


def test_numbers_and_business_rules():
    assert v.validate_number("12.5") is None
    assert v.validate_number("twelve", "Fare") == "Fare must be a valid number"
    assert v.validate_range(7, 1, 5, "Rating") == "Rating must be no more than 5"
    assert v.validate_ride_distance(0.2) == "Ride distance must be at least 0.5"
    assert v.validate_fare(750) == "Fare must be no more than 500.0"
    assert v.validate_rating(4.5) is None
    assert v.validate_license_plate("NYC4821") is None
    assert v.validate_license_plate("NYC 4821") == "License plate must be a valid license plate number"
    assert v.validate_coordinates("40.7128, -74.0060") is None
    assert v.validate_coordinates("91, 0") is not None


def test_dates():
    assert v.validate_date("not a date") == "Date must be a valid date"
    assert v.validate_future_date("2025-09-15T00:00:00Z", now=NOW) is None
    assert v.validate_future_date("2025-09-13T00:00:00Z", now=NOW) == "Date must be in the future"
    assert v.validate_past_date("2025-09-13T00:00:00Z", now=NOW) is None
    assert v.validate_date_range("2025-09-14", "2025-09-13") == "End date must be after start date"
    assert v.validate_date_range("2025-09-13", "2025-09-14") is None


def test_forms_keep_first_error():
    result = v.validate_driver_form({"name": "M", "email": "bad", "phone": "", "license_plate": "ABC123"})
    assert result["is_valid"] is False
    assert result["errors"] == {
        "name": "Full name must be at least 2 characters long",
        "email": "Email must be a valid email address",
        "phone": "Phone number is required",
    }
    assert v.validate_login_form({"email": "ops@ridelink.dev", "password": "x"}) == {"is_valid": True, "errors": {}}
    ride = v.validate_ride_form({"pickup_address": "Home", "destination_address": "", "fare": 2})
    assert ride["errors"] == {
        "destination_address": "Destination address is required",
        "fare": "Fare must be at least 5.0",
    }


def test_check_password_change():
    mismatch = v.check_password_change("Old@Pass1", "N3w@Passw0rd", "N3w@Passw0rD")
    assert mismatch == {
        "type": "error",
        "title": "Password Mismatch",
        "message": "New password and confirmation do not match.",
    }
    assert v.check_password_change("", "N3w@Passw0rd", "N3w@Passw0rd")["title"] == "Missing Password"
    weak = v.check_password_change("Old@Pass1", "weakpass", "weakpass")
    assert weak["title"] == "Weak Password"
    assert weak["message"].startswith("New password must contain")
    assert v.check_password_change("Old@Pass1", "N3w@Passw0rd", "N3w@Passw0rd") is None
